"""
Activities router — Numbered class activities per group, with their
extra materials and links.

Rules:
- Activities are numbered in creation order across the school (1, 2, 3, ...)
- Students only see the activities of groups they belong to
- Materials and links can be moved from one activity to another
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from app.core.security import STAFF_ROLES, get_current_user, require_role
from app.core.services import get_store
from app.schemas.activities import ActivityCreate, ActivityUpdate, MoveMaterials
from app.services.record_store import RecordStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/activities", tags=["Activities"])


def _get_activity(store: RecordStore, activity_id: str) -> dict:
    activity = store.get("activities", activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    return activity


def _next_activity_number(store: RecordStore) -> int:
    numbers = [a.get("activity_number") or 0 for a in store.list("activities")]
    return max(numbers, default=0) + 1


def _remove_items(current: list, items: list, label: str) -> list:
    missing = [item for item in items if item not in current]
    if missing:
        raise HTTPException(status_code=422, detail=f"Not in the source activity's {label}: {', '.join(missing)}")
    return [item for item in current if item not in items]


@router.get("")
async def list_activities(
    group_id: Optional[str] = None,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    filters = {"group_id": group_id} if group_id else {}
    if user["role"] == "student":
        member_of = [m["group_id"] for m in store.list("group_members", student_id=user["user_id"])]
        visible = [g for g in member_of if not group_id or g == group_id]
        if not visible:
            return success_response(data=[])
        filters["group_id"] = visible
    activities = store.list("activities", order_by="activity_number", **filters)
    return success_response(data=activities)


@router.get("/{activity_id}")
async def get_activity(
    activity_id: str,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    return success_response(data=_get_activity(store, activity_id))


@router.post("")
async def create_activity(
    body: ActivityCreate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    if not store.get("groups", body.group_id):
        raise HTTPException(status_code=404, detail="Group not found")

    now = datetime.now(timezone.utc).isoformat()
    data = {
        **body.model_dump(mode="json"),
        "activity_number": _next_activity_number(store),
        "created_by": user["user_id"],
        "created_at": now,
        "updated_at": now,
    }
    result = store.insert("activities", data)
    return success_response(data=result, message=f"Activity \"{result['name']}\" created")


@router.patch("/{activity_id}")
async def update_activity(
    activity_id: str,
    body: ActivityUpdate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    _get_activity(store, activity_id)
    update_data = {k: v for k, v in body.model_dump(mode="json").items() if v is not None}
    if "group_id" in update_data and not store.get("groups", update_data["group_id"]):
        raise HTTPException(status_code=404, detail="Group not found")
    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = store.update("activities", activity_id, update_data)
    return success_response(data=result, message="Activity updated")


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    _get_activity(store, activity_id)
    store.delete("activities", activity_id)
    return success_response(message="Activity deleted")


@router.post("/{activity_id}/move-materials")
async def move_materials(
    activity_id: str,
    body: MoveMaterials,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    if body.target_activity_id == activity_id:
        raise HTTPException(status_code=422, detail="Source and target activity must differ")
    if not body.extra_materials and not body.links:
        raise HTTPException(status_code=422, detail="Select at least one material or link to move")

    source = _get_activity(store, activity_id)
    target = _get_activity(store, body.target_activity_id)

    source_materials = _remove_items(source.get("extra_materials") or [], body.extra_materials, "materials")
    source_links = _remove_items(source.get("links") or [], body.links, "links")

    now = datetime.now(timezone.utc).isoformat()
    updated_target = store.update("activities", target["id"], {
        "extra_materials": (target.get("extra_materials") or []) + body.extra_materials,
        "links": (target.get("links") or []) + body.links,
        "updated_at": now,
    })
    updated_source = store.update("activities", activity_id, {
        "extra_materials": source_materials,
        "links": source_links,
        "updated_at": now,
    })

    moved = len(body.extra_materials) + len(body.links)
    return success_response(
        data={"source": updated_source, "target": updated_target},
        message=f"{moved} items moved",
    )
