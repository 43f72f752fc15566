"""
Groups router — Class groups, their students, and group chat.
"""

from fastapi import APIRouter, Depends, HTTPException
from app.core.security import STAFF_ROLES, get_current_user, require_role
from app.core.services import get_store
from app.schemas.groups import ChatMessageCreate, GroupCreate, GroupStudentsAdd, GroupUpdate
from app.services.record_store import RecordStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/groups", tags=["Groups"])


def _get_group(store: RecordStore, group_id: str) -> dict:
    group = store.get("groups", group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


def _member_ids(store: RecordStore, group_id: str) -> list[str]:
    return [m["student_id"] for m in store.list("group_members", group_id=group_id)]


def _check_access(store: RecordStore, group: dict, user: dict):
    if user["role"] in STAFF_ROLES:
        return
    if user["role"] == "tutor" and group.get("tutor_id") == user["user_id"]:
        return
    if user["role"] == "student" and user["user_id"] in _member_ids(store, group["id"]):
        return
    raise HTTPException(status_code=403, detail="You do not belong to this group")


# ===== GROUPS =====

@router.post("")
async def create_group(
    body: GroupCreate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    data = body.model_dump()
    if not data.get("teacher_id"):
        data["teacher_id"] = user["user_id"]
    data["status"] = "active"
    result = store.insert("groups", data)
    return success_response(data=result, message="Group created")


@router.get("")
async def list_groups(
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    if user["role"] in STAFF_ROLES:
        groups = store.list("groups", order_by="name")
    elif user["role"] == "tutor":
        groups = store.list("groups", order_by="name", tutor_id=user["user_id"])
    elif user["role"] == "student":
        group_ids = [m["group_id"] for m in store.list("group_members", student_id=user["user_id"])]
        groups = store.list("groups", order_by="name", id=group_ids) if group_ids else []
    else:
        groups = []
    return success_response(data=groups)


@router.get("/{group_id}")
async def get_group(
    group_id: str,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    group = _get_group(store, group_id)
    _check_access(store, group, user)

    student_ids = _member_ids(store, group_id)
    students = store.list("profiles", order_by="name", id=student_ids) if student_ids else []
    group["students"] = [
        {"id": s["id"], "name": s.get("name"), "email": s.get("email")} for s in students
    ]
    return success_response(data=group)


@router.patch("/{group_id}")
async def update_group(
    group_id: str,
    body: GroupUpdate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    _get_group(store, group_id)
    update_data = {k: v for k, v in body.model_dump().items() if v is not None}
    result = store.update("groups", group_id, update_data) if update_data else store.get("groups", group_id)
    return success_response(data=result, message="Group updated")


@router.delete("/{group_id}")
async def delete_group(
    group_id: str,
    user: dict = Depends(require_role(["admin"])),
    store: RecordStore = Depends(get_store),
):
    _get_group(store, group_id)
    for membership in store.list("group_members", group_id=group_id):
        store.delete("group_members", membership["id"])
    store.delete("groups", group_id)
    return success_response(message="Group deleted")


# ===== STUDENTS =====

@router.post("/{group_id}/students")
async def add_students(
    group_id: str,
    body: GroupStudentsAdd,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    _get_group(store, group_id)
    existing = set(_member_ids(store, group_id))

    added = []
    for student_id in dict.fromkeys(body.student_ids):
        if student_id in existing:
            continue
        profile = store.get("profiles", student_id)
        if not profile or profile.get("role") != "student":
            raise HTTPException(status_code=422, detail=f"User {student_id} is not a student")
        store.insert("group_members", {"group_id": group_id, "student_id": student_id})
        added.append(student_id)

    return success_response(
        data={"added": added},
        message=f"{len(added)} students added to the group",
    )


@router.delete("/{group_id}/students/{student_id}")
async def remove_student(
    group_id: str,
    student_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    membership = store.first("group_members", group_id=group_id, student_id=student_id)
    if not membership:
        raise HTTPException(status_code=404, detail="Student is not in this group")
    store.delete("group_members", membership["id"])
    return success_response(message="Student removed from the group")


# ===== CHAT =====

@router.get("/{group_id}/messages")
async def list_messages(
    group_id: str,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    group = _get_group(store, group_id)
    _check_access(store, group, user)
    messages = store.list("group_chat_messages", order_by="created_at", group_id=group_id)
    return success_response(data=messages)


@router.post("/{group_id}/messages")
async def post_message(
    group_id: str,
    body: ChatMessageCreate,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    group = _get_group(store, group_id)
    _check_access(store, group, user)
    result = store.insert("group_chat_messages", {
        "group_id": group_id,
        "user_id": user["user_id"],
        "author_name": user.get("name", ""),
        "content": body.content,
    })
    return success_response(data=result, message="Message sent")
