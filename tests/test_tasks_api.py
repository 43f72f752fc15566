"""
Test: Tasks API — CRUD, student submissions, AI grading and the status workflow.
"""
from app.core.errors import OracleFailure


def new_task(client, **overrides):
    body = {
        "title": "Landing page",
        "type": "individual",
        "rubric": [
            {"id": "a", "description": "Structure", "points": 60},
            {"id": "b", "description": "Style", "points": 40},
        ],
        "assigned_student_ids": ["student-1", "student-2"],
        "max_score": 50,
    }
    body.update(overrides)
    response = client.post("/api/tasks", json=body)
    assert response.status_code == 200, response.text
    return response.json()["data"]


class TestTaskCrud:
    def test_teacher_creates_task(self, client, login):
        login("teacher-1")
        task = new_task(client)
        assert task["status"] == "pending"
        assert task["created_by"] == "teacher-1"
        assert client.get(f"/api/tasks/{task['id']}").json()["data"]["title"] == "Landing page"

    def test_student_cannot_create(self, client, login):
        login("student-1")
        response = client.post("/api/tasks", json={"title": "Nope"})
        assert response.status_code == 403

    def test_students_see_only_assigned_tasks(self, client, login, make_task):
        mine = make_task(assigned_to=["student-1"])
        make_task(assigned_to=["student-2"])
        login("student-1")
        ids = [t["id"] for t in client.get("/api/tasks").json()["data"]]
        assert ids == [mine.id]

    def test_parents_see_their_childrens_tasks(self, client, login, make_task):
        child_task = make_task(assigned_to=["student-1"])
        make_task(assigned_to=["student-3"])
        login("parent-1")
        ids = [t["id"] for t in client.get("/api/tasks").json()["data"]]
        assert ids == [child_task.id]

    def test_unknown_task(self, client, login):
        login("teacher-1")
        response = client.get("/api/tasks/missing")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["data"]["code"] == "task_not_found"

    def test_only_admin_sets_status(self, client, login, make_task):
        task = make_task()
        login("teacher-1")
        assert client.patch(f"/api/tasks/{task.id}", json={"status": "graded"}).status_code == 403

        login("admin-1")
        response = client.patch(f"/api/tasks/{task.id}", json={"status": "graded", "title": "Renamed"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "graded"
        assert response.json()["data"]["title"] == "Renamed"

    def test_delete_task(self, client, login, make_task, store):
        task = make_task()
        login("teacher-1")
        assert client.delete(f"/api/tasks/{task.id}").status_code == 200
        assert store.get("tasks", task.id) is None


class TestSubmissions:
    def test_submit_moves_task_to_submitted(self, client, login, make_task):
        task = make_task()
        login("student-1")
        response = client.post(f"/api/tasks/{task.id}/submit", json={"content": "<p>mine</p>"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["task_status"] == "submitted"
        assert data["submission"]["student_id"] == "student-1"
        assert data["submission"]["content_hash"]

    def test_identical_submissions_flag_plagiarism(self, client, login, make_task):
        task = make_task()
        login("student-1")
        client.post(f"/api/tasks/{task.id}/submit", json={"content": "<p>copied</p>"})
        login("student-2")
        response = client.post(f"/api/tasks/{task.id}/submit", json={"content": "<p>copied</p>"})
        assert response.json()["data"]["task_status"] == "plagiarized"

    def test_unassigned_student(self, client, login, make_task):
        task = make_task(assigned_to=["student-2"])
        login("student-1")
        response = client.post(f"/api/tasks/{task.id}/submit", json={"content": "x"})
        assert response.status_code == 422
        assert response.json()["data"]["code"] == "invalid_assignment"

    def test_late_submission_rejected(self, client, login, make_task):
        task = make_task(due_date="2000-01-01T00:00:00+00:00", allow_late_submissions=False)
        login("student-1")
        response = client.post(f"/api/tasks/{task.id}/submit", json={"content": "x"})
        assert response.status_code == 403

    def test_late_submission_allowed(self, client, login, make_task):
        task = make_task(due_date="2000-01-01T00:00:00Z", allow_late_submissions=True)
        login("student-1")
        assert client.post(f"/api/tasks/{task.id}/submit", json={"content": "x"}).status_code == 200

    def test_students_list_only_their_submission(self, client, login, make_task):
        task = make_task()
        login("student-1")
        client.post(f"/api/tasks/{task.id}/submit", json={"content": "one"})
        login("student-2")
        client.post(f"/api/tasks/{task.id}/submit", json={"content": "two"})

        data = client.get(f"/api/tasks/{task.id}/submissions").json()["data"]
        assert [s["student_id"] for s in data] == ["student-2"]

        login("teacher-1")
        data = client.get(f"/api/tasks/{task.id}/submissions").json()["data"]
        assert sorted(s["student_id"] for s in data) == ["student-1", "student-2"]


class TestGrading:
    def test_grade_selected_students(self, client, login, oracle):
        login("teacher-1")
        task = new_task(client)
        login("student-1")
        client.post(f"/api/tasks/{task['id']}/submit", json={"content": "one"})
        login("student-2")
        client.post(f"/api/tasks/{task['id']}/submit", json={"content": "two"})

        oracle.script["two"] = OracleFailure("upstream error", transient=False)
        login("teacher-1")
        response = client.post(f"/api/tasks/{task['id']}/grade", json={"student_ids": ["student-1", "student-2"]})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Graded 1 of 2 selected students"
        report = body["data"]
        assert report["succeeded"] == 1
        assert report["failed"] == 1
        assert report["submissions"]["student-1"]["scaled_score"] == 50
        assert report["per_student_errors"]["student-2"]["code"] == "oracle_failure"

    def test_max_score_override(self, client, login, make_task):
        task = make_task()
        login("teacher-1")
        response = client.post(
            f"/api/tasks/{task.id}/grade",
            json={"student_ids": ["student-1"], "max_score": 10, "contents": {"student-1": "inline"}},
        )
        assert response.json()["data"]["submissions"]["student-1"]["scaled_score"] == 10

    def test_no_rubric(self, client, login, make_task, oracle):
        task = make_task(rubric_structured=[])
        login("teacher-1")
        response = client.post(f"/api/tasks/{task.id}/grade", json={"student_ids": ["student-1"]})
        assert response.status_code == 422
        assert response.json()["data"]["code"] == "no_rubric"
        assert oracle.calls == []

    def test_no_students_selected(self, client, login, make_task):
        task = make_task()
        login("teacher-1")
        response = client.post(f"/api/tasks/{task.id}/grade", json={"student_ids": []})
        assert response.status_code == 422
        assert response.json()["data"]["code"] == "no_students_selected"

    def test_students_cannot_grade(self, client, login, make_task):
        task = make_task()
        login("student-1")
        assert client.post(f"/api/tasks/{task.id}/grade", json={"student_ids": ["student-1"]}).status_code == 403


class TestStatusWorkflow:
    def test_start_then_submit_then_commit(self, client, login, make_task):
        task = make_task()
        login("student-1")
        assert client.post(f"/api/tasks/{task.id}/start").json()["data"]["status"] == "in-progress"
        client.post(f"/api/tasks/{task.id}/submit", json={"content": "done"})

        login("teacher-1")
        response = client.post(f"/api/tasks/{task.id}/grades/commit")
        assert response.json()["data"]["status"] == "graded"

    def test_commit_without_submissions_conflicts(self, client, login, make_task):
        task = make_task()
        login("teacher-1")
        response = client.post(f"/api/tasks/{task.id}/grades/commit")
        assert response.status_code == 409
        assert response.json()["data"]["code"] == "invalid_transition"

    def test_reset_is_admin_only(self, client, login, make_task):
        task = make_task(status="plagiarized")
        login("teacher-1")
        assert client.post(f"/api/tasks/{task.id}/reset").status_code == 403
        login("admin-1")
        assert client.post(f"/api/tasks/{task.id}/reset").json()["data"]["status"] == "pending"

    def test_progress(self, client, login, make_task):
        make_task(assigned_to=["student-1"], status="graded")
        make_task(assigned_to=["student-1"])
        login("student-1")
        data = client.get("/api/tasks/progress/student-1").json()["data"]
        assert (data["completed_tasks"], data["total_tasks"], data["grade"]) == (1, 2, 50.0)
        assert client.get("/api/tasks/progress/student-2").status_code == 403
