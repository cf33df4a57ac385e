from datetime import datetime

from carehub.models import DoctorPatientRelationship, User

from conftest import auth_headers


def test_add_new_patient_sends_invitation(client, db, doctor, doctor_headers, sent_emails):
    response = client.post(
        "/doctor/patients",
        json={"name": "New Patient", "email": "New.Patient@example.com"},
        headers=doctor_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["created"] is True
    assert body["patient"]["email"] == "new.patient@example.com"
    assert body["patient"]["referral_code"]

    user = db.query(User).filter(User.email == "new.patient@example.com").one()
    assert user.doctor_id == doctor.id
    assert user.reset_token is not None
    assert sent_emails.call_count == 1


def test_add_existing_patient_links_without_creating(client, db, patient, other_doctor):
    response = client.post(
        "/doctor/patients",
        json={"name": "Ignored", "email": patient.email},
        headers=auth_headers(other_doctor),
    )
    assert response.status_code == 201
    assert response.json()["created"] is False
    assert response.json()["patient"]["id"] == patient.id
    assert (
        db.query(DoctorPatientRelationship)
        .filter_by(doctor_id=other_doctor.id, patient_id=patient.id, is_active=True)
        .count()
        == 1
    )


def test_add_patient_rejects_doctor_email(client, doctor_headers, other_doctor):
    response = client.post(
        "/doctor/patients", json={"name": "Doc", "email": other_doctor.email}, headers=doctor_headers
    )
    assert response.status_code == 400


def test_add_patient_invalid_email(client, doctor_headers):
    response = client.post("/doctor/patients", json={"name": "Bad", "email": "not-an-email"}, headers=doctor_headers)
    assert response.status_code == 422


def test_patient_limit(client, db, patient, doctor_headers, default_plan):
    default_plan.max_patients = 1
    db.commit()

    response = client.post(
        "/doctor/patients", json={"name": "One Too Many", "email": "extra@example.com"}, headers=doctor_headers
    )
    assert response.status_code == 403


def test_readding_linked_patient_at_limit(client, db, patient, doctor_headers, default_plan):
    default_plan.max_patients = 1
    db.commit()

    response = client.post(
        "/doctor/patients", json={"name": patient.name, "email": patient.email}, headers=doctor_headers
    )
    assert response.status_code == 201, response.text
    assert response.json()["created"] is False
    assert response.json()["patient"]["id"] == patient.id


def test_list_and_search_patients(client, patient, doctor_headers):
    response = client.get("/doctor/patients", headers=doctor_headers)
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["patients"]] == [patient.id]

    response = client.get("/doctor/patients", params={"search": "nobody"}, headers=doctor_headers)
    assert response.json()["patients"] == []


def test_patient_detail(client, patient, doctor_headers, prescription, other_doctor):
    response = client.get(f"/doctor/patients/{patient.id}", headers=doctor_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["patient"]["email"] == patient.email
    assert body["prescriptions"][0]["protocol_name"] == "Post-op recovery"

    hidden = client.get(f"/doctor/patients/{patient.id}", headers=auth_headers(other_doctor))
    assert hidden.status_code == 404


def test_remove_patient(client, patient, doctor_headers):
    response = client.delete(f"/doctor/patients/{patient.id}", headers=doctor_headers)
    assert response.status_code == 200

    assert client.get(f"/doctor/patients/{patient.id}", headers=doctor_headers).status_code == 404
    assert client.delete(f"/doctor/patients/{patient.id}", headers=doctor_headers).status_code == 404


def test_doctor_stats(client, doctor_headers, active_prescription):
    response = client.get("/doctor/stats", headers=doctor_headers)
    assert response.status_code == 200
    stats = response.json()
    assert stats["totalPatients"] == 1
    assert stats["totalProtocols"] == 1
    assert stats["activePrescriptions"] == 1
    assert stats["averageAdherence"] == 0
    assert stats["pendingReferrals"] == 0
    assert stats["recentPrescriptions"][0]["protocol"] == "Post-op recovery"


def test_profile(client, patient_headers, doctor):
    response = client.patch("/patient/profile", json={"name": "  Pat S.  ", "phone": "+1 555 123 4567"}, headers=patient_headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Pat S."

    me = client.get("/patient/profile", headers=patient_headers)
    assert me.json()["name"] == "Pat S."

    doctors = client.get("/patient/doctors", headers=patient_headers)
    assert [d["id"] for d in doctors.json()] == [doctor.id]


def test_send_password_reset(client, db, patient, doctor_headers, other_doctor, sent_emails):
    url = f"/doctor/patients/{patient.id}/send-password-reset"
    assert client.post(url, headers=auth_headers(other_doctor)).status_code == 404

    sent_emails.reset_mock()
    response = client.post(url, headers=doctor_headers)
    assert response.status_code == 200
    assert sent_emails.call_count == 1
    assert sent_emails.call_args.args[0] == patient.email

    db.refresh(patient)
    assert patient.reset_token is not None
    assert patient.reset_token_expiry > datetime.utcnow()


def test_send_password_reset_delivery_failure(client, patient, doctor_headers, sent_emails):
    sent_emails.side_effect = RuntimeError("smtp down")
    response = client.post(f"/doctor/patients/{patient.id}/send-password-reset", headers=doctor_headers)
    assert response.status_code == 502


def test_patient_stats(client, patient_headers, active_prescription):
    stats = client.get("/patient/stats", headers=patient_headers).json()
    assert stats["activeProtocols"] == 1
    assert stats["completedProtocols"] == 0
    assert stats["joinedDate"] is not None


def test_patient_stats_requires_patient(client, doctor_headers):
    assert client.get("/patient/stats", headers=doctor_headers).status_code == 403
