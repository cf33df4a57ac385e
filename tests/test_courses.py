import pytest

from conftest import auth_headers

COURSE_PAYLOAD = {
    "title": "Living with recovery",
    "is_published": True,
    "modules": [
        {
            "title": "Basics",
            "lessons": [
                {"title": "What to expect", "content": "..."},
                {"title": "Warning signs", "video_url": "https://example.com/v.mp4"},
            ],
        },
        {"title": "Nutrition", "lessons": [{"title": "Protein"}]},
    ],
}


@pytest.fixture
def course(client, doctor_headers):
    response = client.post("/doctor/courses", json=COURSE_PAYLOAD, headers=doctor_headers)
    assert response.status_code == 201, response.text
    return response.json()


def lesson_ids(course_json: dict) -> list[int]:
    return [lesson["id"] for module in course_json["modules"] for lesson in module["lessons"]]


def test_create_course_numbers_content(course):
    assert [m["order_index"] for m in course["modules"]] == [0, 1]
    assert [l["order_index"] for l in course["modules"][0]["lessons"]] == [0, 1]
    assert len(lesson_ids(course)) == 3


def test_update_replaces_modules(client, doctor_headers, course):
    response = client.put(
        f"/doctor/courses/{course['id']}",
        json={"modules": [{"title": "Only module", "lessons": [{"title": "Only lesson"}]}]},
        headers=doctor_headers,
    )
    assert response.status_code == 200
    assert [m["title"] for m in response.json()["modules"]] == ["Only module"]
    assert response.json()["title"] == COURSE_PAYLOAD["title"]


def test_course_limit(client, db, doctor_headers, default_plan, course):
    default_plan.max_courses = 1
    db.commit()
    response = client.post("/doctor/courses", json={"title": "Second"}, headers=doctor_headers)
    assert response.status_code == 403


def test_list_and_delete(client, doctor_headers, course, other_doctor):
    listed = client.get("/doctor/courses", headers=doctor_headers).json()
    assert listed["pagination"]["total"] == 1

    assert client.delete(f"/doctor/courses/{course['id']}", headers=auth_headers(other_doctor)).status_code == 404
    assert client.delete(f"/doctor/courses/{course['id']}", headers=doctor_headers).status_code == 200
    assert client.get(f"/doctor/courses/{course['id']}", headers=doctor_headers).status_code == 404


def test_patient_sees_nothing_until_assigned(client, patient_headers, course):
    assert client.get("/patient/courses", headers=patient_headers).json() == []
    assert client.get(f"/patient/courses/{course['id']}", headers=patient_headers).status_code == 404


def test_assign_is_idempotent(client, doctor_headers, course, patient):
    url = f"/doctor/courses/{course['id']}/assign"
    first = client.post(url, json={"patient_id": patient.id}, headers=doctor_headers)
    second = client.post(url, json={"patient_id": patient.id}, headers=doctor_headers)
    assert first.status_code == 201
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["status"] == "ENROLLED"


def test_assign_unrelated_patient(client, doctor_headers, course, make_user):
    stranger = make_user("stranger@example.com")
    response = client.post(
        f"/doctor/courses/{course['id']}/assign", json={"patient_id": stranger.id}, headers=doctor_headers
    )
    assert response.status_code == 404


def test_unpublished_course_hidden(client, doctor_headers, patient_headers, patient):
    draft = client.post("/doctor/courses", json={"title": "Draft"}, headers=doctor_headers).json()
    client.post(f"/doctor/courses/{draft['id']}/assign", json={"patient_id": patient.id}, headers=doctor_headers)
    assert client.get("/patient/courses", headers=patient_headers).json() == []


def test_publish_toggle(client, doctor_headers, patient_headers, patient, other_doctor):
    draft = client.post("/doctor/courses", json={"title": "Draft"}, headers=doctor_headers).json()
    client.post(f"/doctor/courses/{draft['id']}/assign", json={"patient_id": patient.id}, headers=doctor_headers)
    url = f"/doctor/courses/{draft['id']}/publish"

    assert client.put(url, json={"is_published": "yes"}, headers=doctor_headers).status_code == 422
    assert client.put(url, json={"is_published": True}, headers=auth_headers(other_doctor)).status_code == 404

    response = client.put(url, json={"is_published": True}, headers=doctor_headers)
    assert response.json() == {"success": True, "is_published": True}
    assert [c["id"] for c in client.get("/patient/courses", headers=patient_headers).json()] == [draft["id"]]

    client.put(url, json={"is_published": False}, headers=doctor_headers)
    assert client.get("/patient/courses", headers=patient_headers).json() == []


def test_access_through_active_prescription(client, doctor_headers, patient_headers, protocol, course, active_prescription):
    client.post(f"/doctor/protocols/{protocol['id']}/courses", json={"course_id": course["id"]}, headers=doctor_headers)

    listed = client.get("/patient/courses", headers=patient_headers).json()
    assert [c["id"] for c in listed] == [course["id"]]
    assert listed[0]["status"] == "NOT_STARTED"
    assert listed[0]["totalLessons"] == 3


def test_complete_lessons(client, doctor_headers, patient_headers, course, patient):
    client.post(f"/doctor/courses/{course['id']}/assign", json={"patient_id": patient.id}, headers=doctor_headers)
    lessons = lesson_ids(course)
    base = f"/patient/courses/{course['id']}/lessons"

    first = client.post(f"{base}/{lessons[0]}/complete", headers=patient_headers).json()
    assert first["progress"] == 33
    assert first["status"] == "IN_PROGRESS"

    # Completing the same lesson again does not change progress
    again = client.post(f"{base}/{lessons[0]}/complete", headers=patient_headers).json()
    assert again["progress"] == 33

    client.post(f"{base}/{lessons[1]}/complete", headers=patient_headers)
    last = client.post(f"{base}/{lessons[2]}/complete", headers=patient_headers).json()
    assert last["progress"] == 100
    assert last["status"] == "COMPLETED"
    assert last["completed_at"] is not None

    detail = client.get(f"/patient/courses/{course['id']}", headers=patient_headers).json()
    assert all(l["isCompleted"] for m in detail["modules"] for l in m["lessons"])


def test_complete_lesson_checks_prescription(client, doctor_headers, patient_headers, course, patient):
    client.post(f"/doctor/courses/{course['id']}/assign", json={"patient_id": patient.id}, headers=doctor_headers)
    response = client.post(
        f"/patient/courses/{course['id']}/lessons/{lesson_ids(course)[0]}/complete",
        json={"prescription_id": 9999},
        headers=patient_headers,
    )
    assert response.status_code == 404


def test_lesson_of_other_course(client, doctor_headers, patient_headers, course, patient):
    other = client.post("/doctor/courses", json={"title": "Other", "is_published": True}, headers=doctor_headers).json()
    client.post(f"/doctor/courses/{other['id']}/assign", json={"patient_id": patient.id}, headers=doctor_headers)
    response = client.post(
        f"/patient/courses/{other['id']}/lessons/{lesson_ids(course)[0]}/complete", headers=patient_headers
    )
    assert response.status_code == 404


def test_lesson_content_is_sanitized(client, doctor_headers):
    payload = {
        "title": "Rich text",
        "modules": [
            {"title": "M", "lessons": [{"title": "L", "content": "<p>Ice <strong>twice</strong></p><script>x()</script>"}]}
        ],
    }
    course = client.post("/doctor/courses", json=payload, headers=doctor_headers).json()
    content = course["modules"][0]["lessons"][0]["content"]
    assert "<script>" not in content
    assert "<strong>twice</strong>" in content
