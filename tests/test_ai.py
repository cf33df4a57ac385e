import json

import httpx
import pytest

from carehub.services import ai_service


def mock_openai(monkeypatch, status=200, body=None):
    """Route the service's AsyncClient through a MockTransport; returns the captured requests"""
    monkeypatch.setattr(ai_service, "OPENAI_API_KEY", "sk-test")
    body = body if body is not None else {"choices": [{"message": {"content": "  Rest for two days.  "}}]}
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(status, json=body)

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        ai_service.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )
    return captured


def test_improve_text(client, doctor_headers, monkeypatch):
    captured = mock_openai(monkeypatch)
    response = client.post(
        "/ai/improve-text", json={"text": "rest 2 days", "context": "task_description"}, headers=doctor_headers
    )
    assert response.status_code == 200
    assert response.json() == {"improvedText": "Rest for two days.", "originalText": "rest 2 days"}

    sent = json.loads(captured[0].content)
    assert captured[0].headers["Authorization"] == "Bearer sk-test"
    assert sent["messages"][0]["content"] == ai_service.build_system_prompt("task_description")
    assert sent["messages"][1] == {"role": "user", "content": "rest 2 days"}


def test_empty_answer_falls_back_to_input(client, doctor_headers, monkeypatch):
    mock_openai(monkeypatch, body={"choices": [{"message": {"content": ""}}]})
    response = client.post("/ai/improve-text", json={"text": "rest 2 days"}, headers=doctor_headers)
    assert response.json()["improvedText"] == "rest 2 days"


def test_upstream_error(client, doctor_headers, monkeypatch):
    mock_openai(monkeypatch, status=500, body={"error": "boom"})
    response = client.post("/ai/improve-text", json={"text": "rest 2 days"}, headers=doctor_headers)
    assert response.status_code == 502


def test_unexpected_shape(client, doctor_headers, monkeypatch):
    mock_openai(monkeypatch, body={"choices": []})
    response = client.post("/ai/improve-text", json={"text": "rest 2 days"}, headers=doctor_headers)
    assert response.status_code == 502


def test_not_configured(client, doctor_headers, monkeypatch):
    monkeypatch.setattr(ai_service, "OPENAI_API_KEY", None)
    response = client.post("/ai/improve-text", json={"text": "rest 2 days"}, headers=doctor_headers)
    assert response.status_code == 503


def test_blank_text_rejected(client, doctor_headers):
    response = client.post("/ai/improve-text", json={"text": "   "}, headers=doctor_headers)
    assert response.status_code == 422


def test_patients_cannot_use_ai(client, patient_headers):
    assert client.post("/ai/improve-text", json={"text": "x"}, headers=patient_headers).status_code == 403


@pytest.mark.parametrize("context", ["task_title", "protocol_name", "medical_notes"])
def test_system_prompt_per_context(context):
    assert ai_service.build_system_prompt(context).startswith(ai_service.CONTEXT_PROMPTS[context])


def test_default_system_prompt():
    assert ai_service.build_system_prompt("unknown").startswith(ai_service.DEFAULT_PROMPT)
    assert ai_service.build_system_prompt(None).endswith("Reply ONLY with the improved text.")
