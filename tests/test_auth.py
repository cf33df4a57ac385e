from unittest.mock import patch

from carehub.models import ClinicSubscription, User
from carehub.security_utils import hash_password


def test_register_creates_doctor_with_clinic(client, db, default_plan):
    response = client.post(
        "/auth/register",
        json={"name": "Gregory House", "email": "House@Example.com", "password": "secret123"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "house@example.com"
    assert body["user"]["role"] == "DOCTOR"
    assert len(body["user"]["referral_code"]) == 6

    user = db.query(User).filter(User.email == "house@example.com").one()
    subscription = db.query(ClinicSubscription).one()
    assert subscription.clinic.owner_id == user.id
    assert subscription.status == "TRIAL"
    assert subscription.plan_id == default_plan.id


def test_register_rejects_duplicate_email(client, doctor):
    response = client.post(
        "/auth/register",
        json={"name": "Copy", "email": "doctor@example.com", "password": "secret123"},
    )
    assert response.status_code == 400


def test_register_validates_password(client, default_plan):
    response = client.post("/auth/register", json={"name": "Short", "email": "short@example.com", "password": "123"})
    assert response.status_code == 422


def test_register_without_default_plan_skips_clinic(client, db):
    response = client.post(
        "/auth/register",
        json={"name": "No Plan", "email": "noplan@example.com", "password": "secret123"},
    )
    assert response.status_code == 201
    assert db.query(ClinicSubscription).count() == 0


def test_login_and_me(client, db, make_user):
    make_user("login@example.com", password_hash=hash_password("secret123"))

    response = client.post("/auth/login", json={"email": "LOGIN@example.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "login@example.com"


def test_login_wrong_password(client, make_user):
    make_user("login@example.com", password_hash=hash_password("secret123"))
    response = client.post("/auth/login", json={"email": "login@example.com", "password": "wrong-password"})
    assert response.status_code == 401


def test_login_patient_without_password(client, patient):
    response = client.post("/auth/login", json={"email": patient.email, "password": "anything"})
    assert response.status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_forgot_password_unknown_email_same_answer(client, sent_emails):
    response = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
    assert response.status_code == 200
    assert "If this e-mail is registered" in response.json()["message"]
    sent_emails.assert_not_called()


def test_password_reset_flow(client, db, make_user):
    user = make_user("reset@example.com", password_hash=hash_password("old-password"))

    with patch("carehub.routes.auth.send_password_reset_email") as mock_send:
        response = client.post("/auth/forgot-password", json={"email": "reset@example.com"})
    assert response.status_code == 200
    raw_token = mock_send.call_args[0][2]

    db.refresh(user)
    assert user.reset_token and user.reset_token != raw_token

    response = client.post("/auth/reset-password", json={"token": raw_token, "password": "new-password"})
    assert response.status_code == 200

    db.refresh(user)
    assert user.reset_token is None
    login = client.post("/auth/login", json={"email": "reset@example.com", "password": "new-password"})
    assert login.status_code == 200

    reused = client.post("/auth/reset-password", json={"token": raw_token, "password": "another-one"})
    assert reused.status_code == 400


def test_role_guard(client, patient_headers):
    response = client.get("/doctor/protocols", headers=patient_headers)
    assert response.status_code == 403
