"""
Announcements router — School-wide and per-group announcements.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from app.core.security import STAFF_ROLES, get_current_user, require_role
from app.core.services import get_store
from app.schemas.groups import AnnouncementCreate
from app.services.record_store import RecordStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/announcements", tags=["Announcements"])


@router.get("")
async def list_announcements(
    group_id: Optional[str] = None,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    """Announcements for a group include the ones addressed to every group."""
    announcements = store.list("announcements", order_by="created_at", desc=True)
    if group_id:
        announcements = [a for a in announcements if a.get("group_id") in (None, group_id)]
    return success_response(data=announcements)


@router.post("")
async def create_announcement(
    body: AnnouncementCreate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    if body.group_id and not store.get("groups", body.group_id):
        raise HTTPException(status_code=404, detail="Group not found")
    result = store.insert("announcements", {**body.model_dump(), "created_by": user["user_id"]})
    return success_response(data=result, message="Announcement published")


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    announcement = store.get("announcements", announcement_id)
    if not announcement:
        raise HTTPException(status_code=404, detail="Announcement not found")
    if user["role"] != "admin" and announcement.get("created_by") != user["user_id"]:
        raise HTTPException(status_code=403, detail="Only the author or an admin can delete this announcement")
    store.delete("announcements", announcement_id)
    return success_response(message="Announcement deleted")
