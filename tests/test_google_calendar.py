from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from carehub.models import GoogleCalendarIntegration
from carehub.security_utils import decrypt_value, encrypt_value, generate_timed_token
from carehub.services.google_calendar_service import google_calendar_service


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(google_calendar_service, "client_id", "client-id")
    monkeypatch.setattr(google_calendar_service, "client_secret", "client-secret")


def test_status_when_disconnected(client, doctor_headers):
    body = client.get("/google-calendar/status", headers=doctor_headers).json()
    assert body["connected"] is False


def test_connect_requires_configuration(client, doctor_headers, monkeypatch):
    monkeypatch.setattr(google_calendar_service, "client_id", None)
    assert client.get("/google-calendar/connect", headers=doctor_headers).status_code == 500


def test_connect_returns_authorization_url(client, doctor_headers, configured):
    url = client.get("/google-calendar/connect", headers=doctor_headers).json()["authorization_url"]
    assert url.startswith(google_calendar_service.AUTH_URL)
    assert "access_type=offline" in url
    assert "state=" in url


def test_callback_rejects_bad_state(client, doctor_headers):
    response = client.post(
        "/google-calendar/callback", json={"code": "abc", "state": "forged"}, headers=doctor_headers
    )
    assert response.status_code == 400


def test_callback_stores_encrypted_tokens(client, db, doctor, doctor_headers, monkeypatch):
    monkeypatch.setattr(
        google_calendar_service,
        "exchange_code_for_token",
        AsyncMock(return_value={"access_token": "at", "refresh_token": "rt", "expires_in": 3600}),
    )
    monkeypatch.setattr(google_calendar_service, "get_user_email", AsyncMock(return_value="house@gmail.com"))
    state = generate_timed_token({"user_id": doctor.id}, salt="google-calendar-oauth")

    response = client.post("/google-calendar/callback", json={"code": "abc", "state": state}, headers=doctor_headers)
    assert response.status_code == 200
    assert response.json()["user_email"] == "house@gmail.com"

    stored = db.query(GoogleCalendarIntegration).one()
    assert stored.access_token != "at"
    assert decrypt_value(stored.access_token) == "at"
    assert decrypt_value(stored.refresh_token) == "rt"

    status = client.get("/google-calendar/status", headers=doctor_headers).json()
    assert status["connected"] is True
    assert status["auto_sync_enabled"] is True


def test_callback_without_refresh_token(client, doctor_headers, monkeypatch):
    monkeypatch.setattr(
        google_calendar_service, "exchange_code_for_token", AsyncMock(return_value={"access_token": "at"})
    )
    response = client.post("/google-calendar/callback", json={"code": "abc"}, headers=doctor_headers)
    assert response.status_code == 400


def test_disconnect(client, db, doctor, doctor_headers, monkeypatch):
    assert client.post("/google-calendar/disconnect", headers=doctor_headers).status_code == 404

    db.add(
        GoogleCalendarIntegration(
            user_id=doctor.id,
            access_token=encrypt_value("at"),
            refresh_token=encrypt_value("rt"),
            token_expires_at=datetime.utcnow() + timedelta(hours=1),
        )
    )
    db.commit()
    revoke = AsyncMock(side_effect=RuntimeError("network"))
    monkeypatch.setattr(google_calendar_service, "revoke", revoke)

    response = client.post("/google-calendar/disconnect", headers=doctor_headers)
    assert response.status_code == 200
    revoke.assert_awaited_once_with("at")
    assert db.query(GoogleCalendarIntegration).count() == 0


def test_patients_cannot_connect(client, patient_headers):
    assert client.get("/google-calendar/status", headers=patient_headers).status_code == 403


def test_build_event_includes_attendee():
    class Stub:
        title = "Follow-up"
        description = None
        location = "Room 1"
        start_time = datetime(2026, 5, 4, 10, 0)
        end_time = datetime(2026, 5, 4, 10, 30)
        patient = type("P", (), {"email": "pat@example.com"})()

    event = google_calendar_service.build_event(Stub())
    assert event["start"]["dateTime"] == "2026-05-04T10:00:00"
    assert event["location"] == "Room 1"
    assert event["attendees"] == [{"email": "pat@example.com"}]


def test_update_settings(client, db, doctor, doctor_headers):
    assert client.patch("/google-calendar/settings", json={"auto_sync_enabled": False}, headers=doctor_headers).status_code == 404

    db.add(
        GoogleCalendarIntegration(
            user_id=doctor.id,
            access_token=encrypt_value("at"),
            refresh_token=encrypt_value("rt"),
            token_expires_at=datetime.utcnow() + timedelta(hours=1),
        )
    )
    db.commit()
    response = client.patch("/google-calendar/settings", json={"auto_sync_enabled": False}, headers=doctor_headers)
    assert response.json() == {"success": True, "auto_sync_enabled": False}
