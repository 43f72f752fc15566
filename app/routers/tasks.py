"""
Tasks router — Task CRUD, student submissions, AI grading and status workflow.
Submissions and task status go through the SubmissionLedger.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from app.core.security import STAFF_ROLES, get_current_user, require_role
from app.core.services import get_ledger, get_orchestrator, get_store
from app.schemas.tasks import (
    GradeRequest,
    StudentProgress,
    SubmissionCreate,
    SubmissionFields,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
from app.services.ledger import SubmissionLedger
from app.services.orchestrator import GradingOrchestrator
from app.services.record_store import RecordStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

NULLABLE_TASK_FIELDS = {"description", "due_date"}


def _visible_to(task: Task, user: dict, children_ids: set[str]) -> bool:
    if user["role"] == "student":
        return task.is_assigned(user["user_id"])
    if user["role"] == "parent":
        return any(task.is_assigned(child) for child in children_ids)
    return True


# ===== TASKS =====

@router.post("")
async def create_task(
    body: TaskCreate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    task = Task(id=str(uuid.uuid4()), created_by=user["user_id"], **body.model_dump())
    row = store.insert("tasks", task.to_record())
    return success_response(data=Task.from_record(row).model_dump(mode="json"), message="Task created")


@router.get("")
async def list_tasks(
    group_id: Optional[str] = None,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    filters = {"group_id": group_id} if group_id else {}
    tasks = [Task.from_record(r) for r in store.list("tasks", order_by="due_date", **filters)]

    children_ids = set()
    if user["role"] == "parent":
        children_ids = {p["id"] for p in store.list("profiles", parent_id=user["user_id"])}

    visible = [t.model_dump(mode="json") for t in tasks if _visible_to(t, user, children_ids)]
    return success_response(data=visible)


@router.get("/progress/{student_id}")
async def get_student_progress(
    student_id: str,
    group_id: Optional[str] = None,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    """Graded tasks over assigned tasks for one student, optionally within a group."""
    if user["role"] == "student" and user["user_id"] != student_id:
        raise HTTPException(status_code=403, detail="Students can only view their own progress")
    if user["role"] == "parent":
        child = store.get("profiles", student_id)
        if not child or child.get("parent_id") != user["user_id"]:
            raise HTTPException(status_code=403, detail="Not linked to this student")

    filters = {"group_id": group_id} if group_id else {}
    tasks = [Task.from_record(r) for r in store.list("tasks", **filters)]
    assigned = [t for t in tasks if t.is_assigned(student_id)]
    completed = sum(1 for t in assigned if t.status == TaskStatus.GRADED)

    progress = StudentProgress(
        student_id=student_id,
        group_id=group_id,
        completed_tasks=completed,
        total_tasks=len(assigned),
        grade=round(completed / len(assigned) * 100, 2) if assigned else 0,
    )
    return success_response(data=progress.model_dump())


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    user: dict = Depends(get_current_user),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    task = await ledger.get_task(task_id)
    if user["role"] == "student" and not task.is_assigned(user["user_id"]):
        raise HTTPException(status_code=403, detail="Task not assigned to you")
    return success_response(data=task.model_dump(mode="json"))


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    changes = {
        k: v for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_TASK_FIELDS
    }
    if changes.get("status") is not None and user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Only administrators can set task status directly")
    task = await ledger.edit_task(task_id, changes)
    return success_response(data=task.model_dump(mode="json"), message="Task updated")


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    await ledger.delete_task(task_id)
    return success_response(message="Task deleted")


# ===== STATUS WORKFLOW =====

@router.post("/{task_id}/start")
async def start_task(
    task_id: str,
    user: dict = Depends(require_role(["student", "teacher", "admin"])),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    task = await ledger.get_task(task_id)
    if user["role"] == "student" and not task.is_assigned(user["user_id"]):
        raise HTTPException(status_code=403, detail="Task not assigned to you")
    task = await ledger.mark_in_progress(task_id)
    return success_response(data=task.model_dump(mode="json"), message="Task in progress")


@router.post("/{task_id}/grades/commit")
async def commit_grades(
    task_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    task = await ledger.commit_grades(task_id)
    return success_response(data=task.model_dump(mode="json"), message="Grades committed")


@router.post("/{task_id}/reset")
async def reset_task(
    task_id: str,
    user: dict = Depends(require_role(["admin"])),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    task = await ledger.reset_status(task_id)
    return success_response(data=task.model_dump(mode="json"), message="Task status reset")


# ===== SUBMISSIONS =====

@router.post("/{task_id}/submit")
async def submit_task(
    task_id: str,
    body: SubmissionCreate,
    user: dict = Depends(require_role(["student"])),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    task = await ledger.get_task(task_id)

    now = datetime.now(timezone.utc)
    if task.due_date and not task.allow_late_submissions:
        due_date = task.due_date
        if due_date.tzinfo is None:
            due_date = due_date.replace(tzinfo=timezone.utc)
        if now > due_date:
            raise HTTPException(status_code=403, detail="The due date has passed and late submissions are not allowed")

    submission = await ledger.upsert_submission(
        task_id, user["user_id"], SubmissionFields(content=body.content, submitted_at=now)
    )
    task = await ledger.get_task(task_id)
    return success_response(
        data={"submission": submission.model_dump(mode="json"), "task_status": task.status.value},
        message="Task submitted",
    )


@router.get("/{task_id}/submissions")
async def list_submissions(
    task_id: str,
    user: dict = Depends(get_current_user),
    ledger: SubmissionLedger = Depends(get_ledger),
):
    submissions = await ledger.list_submissions(task_id)
    if user["role"] == "student":
        submissions = [s for s in submissions if s.student_id == user["user_id"]]
    elif user["role"] not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Not authorized to view submissions")
    return success_response(data=[s.model_dump(mode="json") for s in submissions])


@router.post("/{task_id}/grade")
async def grade_task(
    task_id: str,
    body: GradeRequest,
    user: dict = Depends(require_role(STAFF_ROLES)),
    ledger: SubmissionLedger = Depends(get_ledger),
    orchestrator: GradingOrchestrator = Depends(get_orchestrator),
):
    """AI-grade the selected students. Per-student failures are itemized in the report."""
    task = await ledger.get_task(task_id)
    report = await orchestrator.grade_students(task, body.student_ids, body.max_score, body.contents)
    return success_response(data=report.model_dump(mode="json"), message=report.summary())
