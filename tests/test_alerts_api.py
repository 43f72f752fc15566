"""
Test: Alerts API — tutor and parent emails through the notifier.
"""
import pytest


@pytest.fixture
def group(store):
    return store.insert("groups", {"name": "1A", "grade": "1", "letter": "A", "tutor_id": "tutor-1"})


TUTOR_ALERT = {
    "student_id": "student-1",
    "criteria": ["Disruptive behaviour"],
    "description": "Talked during the exam",
}


class TestTutorAlert:
    def test_sends_to_group_tutor(self, client, login, notifier, group):
        login("teacher-1")
        response = client.post("/api/alerts/tutor", json={**TUTOR_ALERT, "group_id": group["id"]})

        assert response.status_code == 200
        assert response.json()["data"]["sent"] is True
        sent = notifier.sent[0]
        assert sent["to"] == "tutor@kenova.edu"
        assert sent["subject"] == "Behaviour alert: Juan - Group 1A"

    def test_group_without_tutor(self, client, login, store):
        group = store.insert("groups", {"name": "2B"})
        login("teacher-1")
        response = client.post("/api/alerts/tutor", json={**TUTOR_ALERT, "group_id": group["id"]})
        assert response.status_code == 422

    def test_unknown_student(self, client, login, group):
        login("teacher-1")
        body = {**TUTOR_ALERT, "group_id": group["id"], "student_id": "teacher-1"}
        assert client.post("/api/alerts/tutor", json=body).status_code == 404

    def test_delivery_failure(self, client, login, notifier, group):
        notifier.fail = True
        login("admin-1")
        response = client.post("/api/alerts/tutor", json={**TUTOR_ALERT, "group_id": group["id"]})
        assert response.status_code == 502
        assert response.json()["data"]["code"] == "notification_failure"

    def test_tutors_cannot_alert_themselves(self, client, login, group):
        login("tutor-1")
        assert client.post("/api/alerts/tutor", json={**TUTOR_ALERT, "group_id": group["id"]}).status_code == 403


class TestParentAlert:
    def test_tutor_notifies_parent(self, client, login, notifier, group):
        login("tutor-1")
        response = client.post("/api/alerts/parent", json={
            "student_id": "student-1",
            "group_id": group["id"],
            "parent_email": "parent@kenova.edu",
            "message": "Please call the school",
        })
        assert response.status_code == 200
        assert notifier.sent[0]["to"] == "parent@kenova.edu"

    def test_invalid_email(self, client, login, group):
        login("teacher-1")
        response = client.post("/api/alerts/parent", json={
            "student_id": "student-1",
            "group_id": group["id"],
            "parent_email": "not-an-email",
            "message": "Hello",
        })
        assert response.status_code == 422
