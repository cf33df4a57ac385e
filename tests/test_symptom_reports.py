import logging

import pytest

from conftest import auth_headers


@pytest.fixture
def report(client, patient_headers, protocol, prescription):
    response = client.post(
        "/patient/symptom-reports",
        json={"protocol_id": protocol["id"], "day_number": 1, "symptoms": "  Mild swelling ", "severity": 3},
        headers=patient_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_report(report):
    assert report["symptoms"] == "Mild swelling"
    assert report["status"] == "PENDING"
    assert report["report_time"] is not None


def test_report_requires_prescription(client, patient_headers):
    other = {"protocol_id": 999, "day_number": 1, "symptoms": "Headache"}
    assert client.post("/patient/symptom-reports", json=other, headers=patient_headers).status_code == 404


@pytest.mark.parametrize("severity", [0, 11])
def test_severity_bounds(client, patient_headers, protocol, prescription, severity):
    response = client.post(
        "/patient/symptom-reports",
        json={"protocol_id": protocol["id"], "day_number": 1, "symptoms": "Pain", "severity": severity},
        headers=patient_headers,
    )
    assert response.status_code == 422


def test_severe_report_logs_warning(client, patient_headers, protocol, prescription, caplog):
    with caplog.at_level(logging.INFO, logger="carehub.domain.symptom_reports.service"):
        client.post(
            "/patient/symptom-reports",
            json={"protocol_id": protocol["id"], "day_number": 2, "symptoms": "Severe pain", "severity": 9},
            headers=patient_headers,
        )
    assert any(r.levelno == logging.WARNING and "severity 9" in r.getMessage() for r in caplog.records)


def test_patient_lists_reports(client, patient_headers, report, protocol):
    body = client.get("/patient/symptom-reports", headers=patient_headers).json()
    assert [r["id"] for r in body["reports"]] == [report["id"]]

    filtered = client.get("/patient/symptom-reports", params={"protocol_id": 999}, headers=patient_headers).json()
    assert filtered["reports"] == []


def test_doctor_reviews(client, doctor_headers, report, patient):
    listed = client.get("/doctor/symptom-reports", headers=doctor_headers).json()
    assert listed["reports"][0]["user"]["id"] == patient.id

    reviewed = client.patch(
        f"/doctor/symptom-reports/{report['id']}",
        json={"status": "REVIEWED", "doctor_notes": "Ice twice a day"},
        headers=doctor_headers,
    )
    assert reviewed.status_code == 200
    body = reviewed.json()
    assert body["status"] == "REVIEWED"
    assert body["doctor_notes"] == "Ice twice a day"
    assert body["reviewed_at"] is not None

    pending = client.get("/doctor/symptom-reports", params={"status": "PENDING"}, headers=doctor_headers).json()
    assert pending["reports"] == []


def test_other_doctor_cannot_review(client, report, other_doctor):
    response = client.patch(
        f"/doctor/symptom-reports/{report['id']}", json={"status": "RESOLVED"}, headers=auth_headers(other_doctor)
    )
    assert response.status_code == 404
