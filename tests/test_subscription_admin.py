import pytest

from carehub.models import Clinic, ClinicSubscription, SubscriptionPlan, User

from conftest import auth_headers

NEW_PLAN = {"name": "Professional", "price": 99, "max_doctors": 3, "max_patients": 300, "trial_days": 14}


# ============================================================================
# SUBSCRIPTION
# ============================================================================


def test_check_limit_invalid_type(client, doctor_headers):
    response = client.get("/subscription/check-limit", params={"type": "doctors"}, headers=doctor_headers)
    assert response.status_code == 400


def test_check_limit_unlimited(client, doctor_headers):
    body = client.get("/subscription/check-limit", params={"type": "protocols"}, headers=doctor_headers).json()
    assert body == {"allowed": True, "message": "", "type": "protocols"}


def test_check_limit_reached(client, db, doctor_headers, default_plan, patient):
    default_plan.max_patients = 1
    db.commit()
    body = client.get("/subscription/check-limit", params={"type": "patients"}, headers=doctor_headers).json()
    assert body["allowed"] is False
    assert "1 patients" in body["message"]


def test_inactive_subscription_blocks(client, db, doctor, doctor_headers):
    db.query(ClinicSubscription).update({ClinicSubscription.status: "EXPIRED"})
    db.commit()
    body = client.get("/subscription/check-limit", params={"type": "courses"}, headers=doctor_headers).json()
    assert body["allowed"] is False


def test_current_subscription(client, doctor_headers, patient, protocol):
    body = client.get("/subscription/current", headers=doctor_headers).json()
    assert body["subscription"]["status"] == "TRIAL"
    assert body["subscription"]["plan"]["name"] == "Basic"
    assert body["usage"]["patients"] == {"current": 1, "limit": None}
    assert body["usage"]["protocols"]["current"] == 1
    assert body["usage"]["doctors"]["current"] == 1


def test_current_without_clinic(client, db, make_user):
    lone = make_user("lone@example.com", role="DOCTOR")
    assert client.get("/subscription/current", headers=auth_headers(lone)).status_code == 404


# ============================================================================
# ADMIN
# ============================================================================


def test_admin_only(client, doctor_headers):
    assert client.get("/admin/plans", headers=doctor_headers).status_code == 403
    assert client.get("/admin/metrics", headers=doctor_headers).status_code == 403


def test_create_plan(client, admin_headers, default_plan):
    response = client.post("/admin/plans", json=NEW_PLAN, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["max_protocols"] is None
    assert response.json()["billing_cycle"] == "MONTHLY"

    names = [p["name"] for p in client.get("/admin/plans", headers=admin_headers).json()]
    assert names == ["Basic", "Professional"]

    duplicate = client.post("/admin/plans", json=NEW_PLAN, headers=admin_headers)
    assert duplicate.status_code == 400


def test_invalid_billing_cycle(client, admin_headers):
    response = client.post("/admin/plans", json={**NEW_PLAN, "billing_cycle": "WEEKLY"}, headers=admin_headers)
    assert response.status_code == 422


def test_single_default_plan(client, db, admin_headers, default_plan):
    created = client.post("/admin/plans", json={**NEW_PLAN, "is_default": True}, headers=admin_headers).json()
    db.expire_all()
    defaults = db.query(SubscriptionPlan).filter(SubscriptionPlan.is_default.is_(True)).all()
    assert [p.id for p in defaults] == [created["id"]]

    client.put(f"/admin/plans/{default_plan.id}", json={"is_default": True}, headers=admin_headers)
    db.expire_all()
    defaults = db.query(SubscriptionPlan).filter(SubscriptionPlan.is_default.is_(True)).all()
    assert [p.id for p in defaults] == [default_plan.id]


def test_update_plan(client, admin_headers, default_plan):
    response = client.put(f"/admin/plans/{default_plan.id}", json={"max_courses": 5}, headers=admin_headers)
    assert response.json()["max_courses"] == 5
    assert client.put("/admin/plans/999", json={"price": 1}, headers=admin_headers).status_code == 404


def test_delete_plan(client, admin_headers, default_plan, doctor):
    assert client.delete(f"/admin/plans/{default_plan.id}", headers=admin_headers).status_code == 409

    unused = client.post("/admin/plans", json=NEW_PLAN, headers=admin_headers).json()
    assert client.delete(f"/admin/plans/{unused['id']}", headers=admin_headers).status_code == 200


def test_list_clinics(client, admin_headers, doctor, other_doctor):
    body = client.get("/admin/clinics", params={"limit": 1}, headers=admin_headers).json()
    assert body["pagination"]["total"] == 2
    assert len(body["clinics"]) == 1
    assert body["clinics"][0]["subscription"]["status"] == "TRIAL"


@pytest.mark.parametrize("payload,expected", [({"status": "ACTIVE"}, 200), ({"status": "PAUSED"}, 422)])
def test_update_subscription(client, db, admin_headers, doctor, payload, expected):
    subscription = db.query(ClinicSubscription).one()
    response = client.patch(f"/admin/subscriptions/{subscription.id}", json=payload, headers=admin_headers)
    assert response.status_code == expected


def test_move_subscription_to_plan(client, db, admin_headers, doctor):
    subscription = db.query(ClinicSubscription).one()
    plan = client.post("/admin/plans", json=NEW_PLAN, headers=admin_headers).json()

    moved = client.patch(
        f"/admin/subscriptions/{subscription.id}", json={"plan_id": plan["id"], "max_doctors": 5}, headers=admin_headers
    )
    assert moved.json()["plan"]["name"] == "Professional"
    assert moved.json()["max_doctors"] == 5

    missing = client.patch(f"/admin/subscriptions/{subscription.id}", json={"plan_id": 999}, headers=admin_headers)
    assert missing.status_code == 404


def test_metrics(client, admin_headers, active_prescription):
    body = client.get("/admin/metrics", headers=admin_headers).json()
    assert body == {
        "doctors": 1,
        "patients": 1,
        "clinics": 1,
        "activeSubscriptions": 1,
        "protocols": 1,
        "prescriptions": 1,
        "activePrescriptions": 1,
    }


# ============================================================================
# ADMIN DOCTORS & CLINICS
# ============================================================================


def test_list_doctors(client, admin_headers, doctor, patient):
    body = client.get("/admin/doctors", headers=admin_headers).json()
    [listed] = body["doctors"]
    assert listed["email"] == doctor.email
    assert listed["patientCount"] == 1
    assert listed["clinic"]["slug"] == "dr-house-clinic"
    assert listed["subscription"]["status"] == "TRIAL"


def test_create_doctor_sends_invitation(client, db, admin_headers, default_plan, sent_emails):
    response = client.post(
        "/admin/doctors", json={"name": " Dr. Grey ", "email": "Grey@Example.com"}, headers=admin_headers
    )
    assert response.status_code == 201, response.text
    assert response.json()["doctor"]["email"] == "grey@example.com"

    doctor = db.query(User).filter(User.email == "grey@example.com").one()
    assert doctor.role == "DOCTOR"
    assert doctor.password_hash is None
    assert doctor.reset_token is not None
    assert doctor.referral_code

    subscription = db.query(ClinicSubscription).one()
    assert subscription.status == "TRIAL"
    assert subscription.trial_end_date is not None
    assert sent_emails.call_args.args[0] == "grey@example.com"


def test_create_active_doctor(client, db, admin_headers, default_plan):
    client.post(
        "/admin/doctors",
        json={"name": "Dr. Grey", "email": "grey@example.com", "subscription_type": "ACTIVE"},
        headers=admin_headers,
    )
    subscription = db.query(ClinicSubscription).one()
    assert subscription.status == "ACTIVE"
    assert subscription.trial_end_date is None
    assert subscription.end_date is not None


def test_create_doctor_validation(client, admin_headers, doctor):
    duplicate = client.post("/admin/doctors", json={"name": "Again", "email": doctor.email}, headers=admin_headers)
    assert duplicate.status_code == 400

    bad_type = client.post(
        "/admin/doctors",
        json={"name": "Dr. Grey", "email": "grey@example.com", "subscription_type": "FREE"},
        headers=admin_headers,
    )
    assert bad_type.status_code == 422


def test_create_doctor_without_default_plan(client, admin_headers):
    response = client.post("/admin/doctors", json={"name": "Dr. Grey", "email": "grey@example.com"}, headers=admin_headers)
    assert response.status_code == 400


def test_invitation_failure_keeps_doctor(client, db, admin_headers, default_plan, sent_emails):
    sent_emails.side_effect = RuntimeError("smtp down")
    response = client.post("/admin/doctors", json={"name": "Dr. Grey", "email": "grey@example.com"}, headers=admin_headers)
    assert response.status_code == 201
    assert db.query(User).filter(User.email == "grey@example.com").count() == 1


def test_clinic_detail_and_update(client, db, admin_headers, doctor):
    clinic = db.query(Clinic).one()
    url = f"/admin/clinics/{clinic.id}"

    detail = client.get(url, headers=admin_headers).json()
    assert detail["owner"]["id"] == doctor.id
    assert [m["user"]["id"] for m in detail["members"]] == [doctor.id]
    assert detail["subscription"]["plan"]["name"] == "Basic"

    updated = client.put(url, json={"name": "Princeton Clinic", "is_active": False}, headers=admin_headers).json()
    assert updated["slug"] == "princeton-clinic"
    assert updated["is_active"] is False

    assert client.get("/admin/clinics/999", headers=admin_headers).status_code == 404
    assert client.put(url, json={"name": "  "}, headers=admin_headers).status_code == 422
    assert client.get("/admin/doctors", headers=auth_headers(doctor)).status_code == 403
