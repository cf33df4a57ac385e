import pytest

from conftest import auth_headers


@pytest.fixture
def questions(client, doctor_headers, protocol):
    url = f"/doctor/protocols/{protocol['id']}/checkin-questions"
    created = [
        client.post(url, json={"question": "How do you feel?", "type": "SCALE", "order": 1}, headers=doctor_headers),
        client.post(
            url,
            json={"question": "Any swelling?", "type": "MULTIPLE_CHOICE", "options": ["None", "Some"], "order": 2},
            headers=doctor_headers,
        ),
    ]
    assert all(r.status_code == 201 for r in created)
    return [r.json() for r in created]


def test_multiple_choice_needs_options(client, doctor_headers, protocol):
    response = client.post(
        f"/doctor/protocols/{protocol['id']}/checkin-questions",
        json={"question": "Pick one", "type": "MULTIPLE_CHOICE"},
        headers=doctor_headers,
    )
    assert response.status_code == 400


def test_unknown_question_type(client, doctor_headers, protocol):
    response = client.post(
        f"/doctor/protocols/{protocol['id']}/checkin-questions",
        json={"question": "?", "type": "RATING"},
        headers=doctor_headers,
    )
    assert response.status_code == 422


def test_doctor_manages_questions(client, doctor_headers, protocol, questions):
    url = f"/doctor/protocols/{protocol['id']}/checkin-questions"
    listed = client.get(url, headers=doctor_headers).json()
    assert [q["question"] for q in listed] == ["How do you feel?", "Any swelling?"]

    updated = client.put(f"{url}/{questions[0]['id']}", json={"question": "Pain level?"}, headers=doctor_headers)
    assert updated.json()["question"] == "Pain level?"

    removed = client.delete(f"{url}/{questions[1]['id']}", headers=doctor_headers)
    assert removed.status_code == 200
    assert [q["id"] for q in client.get(url, headers=doctor_headers).json()] == [questions[0]["id"]]


def test_question_of_other_protocol(client, doctor_headers, protocol, questions):
    other = client.post("/doctor/protocols", json={"name": "Other"}, headers=doctor_headers).json()
    response = client.put(
        f"/doctor/protocols/{other['id']}/checkin-questions/{questions[0]['id']}",
        json={"question": "Moved?"},
        headers=doctor_headers,
    )
    assert response.status_code == 403


def test_other_doctor_cannot_manage(client, protocol, other_doctor):
    response = client.get(
        f"/doctor/protocols/{protocol['id']}/checkin-questions", headers=auth_headers(other_doctor)
    )
    assert response.status_code == 404


def test_patient_needs_active_prescription(client, patient_headers, protocol, prescription, questions):
    response = client.get(
        "/patient/checkins/questions", params={"protocol_id": protocol["id"]}, headers=patient_headers
    )
    assert response.status_code == 404


def test_protocol_id_required(client, patient_headers):
    response = client.get("/patient/checkins/questions", headers=patient_headers)
    assert response.status_code == 400


def test_submit_then_update(client, patient_headers, doctor_headers, protocol, active_prescription, questions):
    today = client.get(
        "/patient/checkins/questions", params={"protocol_id": protocol["id"]}, headers=patient_headers
    ).json()
    assert today["hasCheckinToday"] is False
    assert len(today["questions"]) == 2

    payload = {
        "protocol_id": protocol["id"],
        "responses": [
            {"question_id": questions[0]["id"], "answer": "7"},
            {"question_id": questions[1]["id"], "answer": "None"},
        ],
    }
    first = client.post("/patient/checkins/responses", json=payload, headers=patient_headers)
    assert first.status_code == 201
    assert first.json()["isUpdate"] is False

    payload["responses"] = [{"question_id": questions[0]["id"], "answer": "8"}]
    second = client.post("/patient/checkins/responses", json=payload, headers=patient_headers)
    assert second.status_code == 200
    assert second.json()["isUpdate"] is True
    assert second.json()["responses"][0]["id"] == first.json()["responses"][0]["id"]

    status = client.get("/patient/checkins/status", params={"protocol_id": protocol["id"]}, headers=patient_headers)
    body = status.json()
    assert body["hasCheckinToday"] is True
    assert body["completedQuestions"] == 2
    assert body["totalQuestions"] == 2
    assert body["isComplete"] is True
    assert body["progress"]["currentDay"] == 1
    assert body["progress"]["totalDays"] == 2
    assert len(body["recentHistory"]) == 1

    answers = client.get(f"/doctor/protocols/{protocol['id']}/checkin-responses", headers=doctor_headers).json()
    assert sorted(a["answer"] for a in answers) == ["8", "None"]

    by_date = client.get(
        f"/doctor/protocols/{protocol['id']}/checkin-responses",
        params={"date": "2000-01-01"},
        headers=doctor_headers,
    ).json()
    assert by_date == []


def test_submit_foreign_question(client, patient_headers, protocol, active_prescription):
    response = client.post(
        "/patient/checkins/responses",
        json={"protocol_id": protocol["id"], "responses": [{"question_id": 999, "answer": "x"}]},
        headers=patient_headers,
    )
    assert response.status_code == 400
