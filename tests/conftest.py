import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECURITY_HEADERS_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from carehub.auth import create_access_token  # noqa: E402
from carehub.database import Base, get_db  # noqa: E402
from carehub.domain.clinics.service import ensure_doctor_has_clinic  # noqa: E402
from carehub.main import app  # noqa: E402
from carehub.models import (  # noqa: E402
    ROLE_DOCTOR,
    ROLE_PATIENT,
    ROLE_SUPER_ADMIN,
    DoctorPatientRelationship,
    SubscriptionPlan,
    User,
)

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def sent_emails():
    """Capture outgoing e-mails instead of talking to Resend or SMTP"""
    with patch("carehub.email_service.send_email", return_value={"id": "test"}) as mock_send:
        yield mock_send


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def default_plan(db):
    plan = SubscriptionPlan(
        name="Basic",
        price=0,
        max_doctors=1,
        max_patients=None,
        max_protocols=None,
        max_courses=None,
        trial_days=30,
        is_default=True,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str = ROLE_PATIENT, name: str = None, **fields) -> User:
        user = User(email=email, name=name or email.split("@")[0].title(), role=role, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def doctor(db, make_user, default_plan):
    user = make_user("doctor@example.com", role=ROLE_DOCTOR, name="Dr. House")
    ensure_doctor_has_clinic(user, db)
    return user


@pytest.fixture
def other_doctor(db, make_user, default_plan):
    user = make_user("other.doctor@example.com", role=ROLE_DOCTOR, name="Dr. Wilson")
    ensure_doctor_has_clinic(user, db)
    return user


@pytest.fixture
def patient(db, make_user, doctor):
    user = make_user("patient@example.com", name="Pat Smith", doctor_id=doctor.id, referral_code="PAT001")
    db.add(DoctorPatientRelationship(doctor_id=doctor.id, patient_id=user.id, is_active=True))
    db.commit()
    return user


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role=ROLE_SUPER_ADMIN, name="Admin")


@pytest.fixture
def doctor_headers(doctor):
    return auth_headers(doctor)


@pytest.fixture
def patient_headers(patient):
    return auth_headers(patient)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


PROTOCOL_PAYLOAD = {
    "name": "Post-op recovery",
    "description": "Two day recovery routine",
    "days": [
        {
            "day_number": 1,
            "title": "Day 1",
            "sessions": [
                {
                    "title": "Morning",
                    "tasks": [
                        {"title": "Drink water"},
                        {"title": "Walk 10 minutes", "duration_minutes": 10},
                    ],
                }
            ],
        },
        {
            "day_number": 2,
            "title": "Day 2",
            "sessions": [{"title": "Morning", "tasks": [{"title": "Stretching"}]}],
        },
    ],
}


@pytest.fixture
def protocol(client, doctor_headers):
    response = client.post("/doctor/protocols", json=PROTOCOL_PAYLOAD, headers=doctor_headers)
    assert response.status_code == 201, response.text
    return response.json()


def task_ids(protocol_json: dict) -> dict:
    """{day_number: [task ids]} of a serialized protocol"""
    return {
        day["day_number"]: [task["id"] for session in day["sessions"] for task in session["tasks"]]
        for day in protocol_json["days"]
    }


@pytest.fixture
def prescription(client, doctor_headers, protocol, patient):
    response = client.post(
        "/doctor/prescriptions",
        json={
            "protocol_id": protocol["id"],
            "patient_id": patient.id,
            "planned_start_date": "2026-01-01T00:00:00",
        },
        headers=doctor_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["prescription"]


@pytest.fixture
def active_prescription(client, patient_headers, prescription):
    response = client.post(f"/patient/prescriptions/{prescription['id']}/start", headers=patient_headers)
    assert response.status_code == 200, response.text
    return response.json()["prescription"]
