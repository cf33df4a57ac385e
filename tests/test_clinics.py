from carehub.domain.clinics.service import ensure_doctor_has_clinic, generate_unique_slug
from carehub.models import ClinicSubscription

from conftest import auth_headers


def test_doctor_gets_personal_clinic(client, doctor_headers, doctor):
    clinic = client.get("/clinic", headers=doctor_headers).json()
    assert clinic["name"] == "Dr. House Clinic"
    assert clinic["slug"] == "dr-house-clinic"
    assert clinic["owner_id"] == doctor.id
    assert clinic["subscription"]["status"] == "TRIAL"


def test_ensure_clinic_is_idempotent(db, doctor):
    first = ensure_doctor_has_clinic(doctor, db)
    assert ensure_doctor_has_clinic(doctor, db).id == first.id
    assert db.query(ClinicSubscription).count() == 1


def test_unique_slug(db, doctor):
    assert generate_unique_slug(db, "Dr. House Clinic") == "dr-house-clinic-1"
    assert generate_unique_slug(db, "!!!") == "clinic"


def test_update_clinic_regenerates_slug(client, doctor_headers):
    response = client.put("/clinic", json={"name": "  Princeton Plainsboro ", "phone": "555"}, headers=doctor_headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Princeton Plainsboro"
    assert response.json()["slug"] == "princeton-plainsboro"

    public = client.get("/clinic/slug/princeton-plainsboro")
    assert public.status_code == 200
    assert "owner_id" not in public.json()
    assert client.get("/clinic/slug/dr-house-clinic").status_code == 404


def test_blank_clinic_name(client, doctor_headers):
    assert client.put("/clinic", json={"name": "  "}, headers=doctor_headers).status_code == 422


def test_stats(client, doctor_headers, patient, protocol):
    stats = client.get("/clinic/stats", headers=doctor_headers).json()
    assert stats == {"totalDoctors": 1, "totalProtocols": 1, "totalPatients": 1, "totalCourses": 0}


def test_add_and_remove_member(client, doctor_headers, doctor, other_doctor):
    added = client.post("/clinic/members", json={"email": other_doctor.email}, headers=doctor_headers)
    assert added.status_code == 201
    assert added.json()["role"] == "DOCTOR"
    assert added.json()["user"]["id"] == other_doctor.id

    again = client.post("/clinic/members", json={"email": other_doctor.email}, headers=doctor_headers)
    assert again.status_code == 400

    members = client.get("/clinic/members", headers=doctor_headers).json()
    assert {m["user"]["id"] for m in members} == {doctor.id, other_doctor.id}

    removed = client.delete(f"/clinic/members/{other_doctor.id}", headers=doctor_headers)
    assert removed.status_code == 200
    assert client.delete(f"/clinic/members/{other_doctor.id}", headers=doctor_headers).status_code == 404


def test_member_limit(client, db, doctor_headers, other_doctor):
    db.query(ClinicSubscription).update({ClinicSubscription.max_doctors: 1})
    db.commit()
    response = client.post("/clinic/members", json={"email": other_doctor.email}, headers=doctor_headers)
    assert response.status_code == 403


def test_add_unknown_or_patient(client, doctor_headers, patient):
    assert client.post("/clinic/members", json={"email": "ghost@example.com"}, headers=doctor_headers).status_code == 404
    assert client.post("/clinic/members", json={"email": patient.email}, headers=doctor_headers).status_code == 404


def test_owner_cannot_be_removed(client, doctor_headers, doctor):
    assert client.delete(f"/clinic/members/{doctor.id}", headers=doctor_headers).status_code == 400


def test_only_admins_manage_members(client, db, make_user, doctor_headers, default_plan):
    member = make_user("member@example.com", role="DOCTOR")
    client.post("/clinic/members", json={"email": member.email}, headers=doctor_headers)

    response = client.put("/clinic", json={"name": "Taken over"}, headers=auth_headers(member))
    assert response.status_code == 403
