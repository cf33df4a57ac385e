import pytest

from carehub.models import ReferralCredit, ReferralLead

from conftest import auth_headers


@pytest.fixture
def referred_lead(client, patient_headers, prescription):
    response = client.post(
        "/patient/referrals",
        json={
            "prescription_id": prescription["id"],
            "notes": "My sister",
            "indicated_patient": {"name": "Ana Smith", "email": "Ana@Example.com"},
        },
        headers=patient_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_patient_refers_someone(referred_lead, patient, doctor, sent_emails):
    assert referred_lead["email"] == "ana@example.com"
    assert referred_lead["status"] == "PENDING"
    assert referred_lead["source"] == "PATIENT_REFERRAL"
    assert referred_lead["doctor_id"] == doctor.id
    assert referred_lead["referrer_id"] == patient.id
    assert len(referred_lead["referral_code"]) == 6
    # prescription e-mail + doctor notification
    assert sent_emails.call_args[0][0] == doctor.email


def test_duplicate_referral_rejected(client, patient_headers, prescription, referred_lead):
    response = client.post(
        "/patient/referrals",
        json={"prescription_id": prescription["id"], "indicated_patient": {"name": "Ana", "email": "ana@example.com"}},
        headers=patient_headers,
    )
    assert response.status_code == 400


def test_cannot_refer_existing_user(client, patient_headers, prescription, other_doctor):
    response = client.post(
        "/patient/referrals",
        json={
            "prescription_id": prescription["id"],
            "indicated_patient": {"name": "Doc", "email": other_doctor.email},
        },
        headers=patient_headers,
    )
    assert response.status_code == 400


def test_referral_needs_open_prescription(client, doctor_headers, patient_headers, prescription):
    client.patch(f"/doctor/prescriptions/{prescription['id']}", json={"status": "ABANDONED"}, headers=doctor_headers)
    response = client.post(
        "/patient/referrals",
        json={"prescription_id": prescription["id"], "indicated_patient": {"name": "Bo", "email": "bo@example.com"}},
        headers=patient_headers,
    )
    assert response.status_code == 403


def test_list_my_referrals_and_code(client, patient_headers, referred_lead, patient):
    listed = client.get("/patient/referrals", headers=patient_headers).json()
    assert [lead["id"] for lead in listed] == [referred_lead["id"]]

    code = client.get("/patient/referrals/code", headers=patient_headers).json()
    assert code == {"referral_code": patient.referral_code}


def test_code_generated_when_missing(client, make_user):
    user = make_user("nocode@example.com")
    code = client.get("/patient/referrals/code", headers=auth_headers(user)).json()["referral_code"]
    assert len(code) == 6


def test_public_doctor_card(client, doctor, patient):
    response = client.get(f"/referrals/doctor/{doctor.id}")
    assert response.status_code == 200
    assert response.json() == {"id": doctor.id, "name": "Dr. House", "image": None}

    assert client.get(f"/referrals/doctor/{patient.id}").status_code == 404


def test_public_submit_direct(client, doctor):
    response = client.post(
        "/referrals/submit", json={"name": "Walk In", "email": "walkin@example.com", "doctor_id": doctor.id}
    )
    assert response.status_code == 201
    assert response.json()["source"] == "DIRECT"
    assert response.json()["referrer_id"] is None

    again = client.post(
        "/referrals/submit", json={"name": "Walk In", "email": "walkin@example.com", "doctor_id": doctor.id}
    )
    assert again.status_code == 400


def test_public_submit_with_code(client, doctor, patient):
    response = client.post(
        "/referrals/submit",
        json={"name": "Friend", "email": "friend@example.com", "doctor_id": doctor.id, "referrer_code": "PAT001"},
    )
    assert response.status_code == 201
    assert response.json()["referrer_id"] == patient.id
    assert response.json()["source"] == "PATIENT_REFERRAL"


def test_public_submit_invalid_code(client, doctor):
    response = client.post(
        "/referrals/submit",
        json={"name": "Friend", "email": "friend@example.com", "doctor_id": doctor.id, "referrer_code": "NOPE99"},
    )
    assert response.status_code == 400


def test_public_submit_code_of_other_doctors_patient(client, patient, other_doctor):
    response = client.post(
        "/referrals/submit",
        json={"name": "Friend", "email": "friend@example.com", "doctor_id": other_doctor.id, "referrer_code": "PAT001"},
    )
    assert response.status_code == 400


def test_existing_patient_cannot_submit(client, doctor, patient):
    response = client.post(
        "/referrals/submit", json={"name": "Me", "email": patient.email, "doctor_id": doctor.id}
    )
    assert response.status_code == 400


def test_doctor_lists_leads(client, doctor_headers, referred_lead, doctor):
    client.post("/referrals/submit", json={"name": "Walk In", "email": "walkin@example.com", "doctor_id": doctor.id})

    response = client.get("/doctor/referrals", params={"limit": 1}, headers=doctor_headers)
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}
    assert body["stats"]["pending"] == 2
    assert len(body["leads"]) == 1

    filtered = client.get("/doctor/referrals", params={"status": "CONVERTED"}, headers=doctor_headers).json()
    assert filtered["leads"] == []


def test_converting_lead_grants_one_credit(client, db, doctor_headers, patient_headers, referred_lead, patient):
    url = f"/doctor/referrals/{referred_lead['id']}"

    converted = client.put(url, json={"status": "CONVERTED", "notes": "Booked"}, headers=doctor_headers)
    assert converted.status_code == 200
    assert converted.json()["referrer"]["id"] == patient.id
    assert converted.json()["last_contact_date"] is not None

    client.put(url, json={"status": "CONTACTED"}, headers=doctor_headers)
    client.put(url, json={"status": "CONVERTED"}, headers=doctor_headers)
    assert db.query(ReferralCredit).filter(ReferralCredit.referral_lead_id == referred_lead["id"]).count() == 1

    credits = client.get("/patient/referrals/credits", headers=patient_headers).json()
    assert credits["balance"] == 1
    assert credits["credits"][0]["type"] == "SUCCESSFUL_REFERRAL"


def test_other_doctor_cannot_update_lead(client, referred_lead, other_doctor):
    response = client.put(
        f"/doctor/referrals/{referred_lead['id']}", json={"status": "REJECTED"}, headers=auth_headers(other_doctor)
    )
    assert response.status_code == 404


def test_invalid_lead_status(client, db, doctor_headers, referred_lead):
    response = client.put(f"/doctor/referrals/{referred_lead['id']}", json={"status": "WON"}, headers=doctor_headers)
    assert response.status_code == 422
    assert db.query(ReferralLead).one().status == "PENDING"
