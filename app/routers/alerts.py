"""
Alerts router — Behaviour alerts to a group's tutor and notices to parents.
Delivery failures come back as 502 via NotificationFailure.
"""

from fastapi import APIRouter, Depends, HTTPException
from app.core.email import EmailNotifier
from app.core.security import require_role
from app.core.services import get_notifier, get_store
from app.schemas.alerts import ParentAlert, TutorAlert
from app.services.record_store import RecordStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/alerts", tags=["Alerts"])


def _student_and_group(store: RecordStore, student_id: str, group_id: str) -> tuple[dict, dict]:
    student = store.get("profiles", student_id)
    if not student or student.get("role") != "student":
        raise HTTPException(status_code=404, detail="Student not found")
    group = store.get("groups", group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return student, group


@router.post("/tutor")
async def alert_tutor(
    body: TutorAlert,
    user: dict = Depends(require_role(["admin", "teacher"])),
    store: RecordStore = Depends(get_store),
    notifier: EmailNotifier = Depends(get_notifier),
):
    student, group = _student_and_group(store, body.student_id, body.group_id)

    tutor = store.get("profiles", group["tutor_id"]) if group.get("tutor_id") else None
    if not tutor or not tutor.get("email"):
        raise HTTPException(status_code=422, detail="This group has no tutor with an email address")

    result = await notifier.send_tutor_alert(
        tutor_email=tutor["email"],
        tutor_name=tutor.get("name", ""),
        student_name=student.get("name", ""),
        group_name=group.get("name", ""),
        criteria=body.criteria,
        description=body.description,
    )
    message = "Alert sent to the tutor" if result["sent"] else "Email delivery is not configured; alert not sent"
    return success_response(data=result, message=message)


@router.post("/parent")
async def alert_parent(
    body: ParentAlert,
    user: dict = Depends(require_role(["admin", "teacher", "tutor"])),
    store: RecordStore = Depends(get_store),
    notifier: EmailNotifier = Depends(get_notifier),
):
    student, group = _student_and_group(store, body.student_id, body.group_id)

    result = await notifier.send_parent_alert(
        parent_email=str(body.parent_email),
        student_name=student.get("name", ""),
        group_name=group.get("name", ""),
        message=body.message,
    )
    message = "Notice sent to the parent" if result["sent"] else "Email delivery is not configured; notice not sent"
    return success_response(data=result, message=message)
