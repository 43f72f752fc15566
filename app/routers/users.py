"""
Users router — Admin user management.

Admin can:
- List users, filtered by role and account status
- Change roles, approve / deactivate accounts
- Approving a pending account sends the welcome email
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from app.core.email import EmailNotifier
from app.core.errors import NotificationFailure
from app.core.security import require_role
from app.core.services import get_notifier, get_store
from app.schemas.auth import UserUpdate
from app.services.record_store import RecordStore
from app.utils.response import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

PUBLIC_FIELDS = ("id", "email", "name", "role", "status", "parent_id", "ai_grading_enabled")


def _public(profile: dict) -> dict:
    return {k: profile.get(k) for k in PUBLIC_FIELDS}


@router.get("")
async def list_users(
    role: Optional[str] = None,
    account_status: Optional[str] = None,
    user: dict = Depends(require_role(["admin", "teacher", "tutor"])),
    store: RecordStore = Depends(get_store),
):
    filters = {}
    if role:
        filters["role"] = role
    if account_status:
        filters["status"] = account_status
    profiles = store.list("profiles", order_by="name", **filters)
    return success_response(data=[_public(p) for p in profiles])


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    user: dict = Depends(require_role(["admin"])),
    store: RecordStore = Depends(get_store),
    notifier: EmailNotifier = Depends(get_notifier),
):
    profile = store.get("profiles", user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    update_data = {k: v for k, v in body.model_dump().items() if v is not None}
    updated = store.update("profiles", user_id, update_data) if update_data else profile

    message = "User updated"
    if profile.get("status") == "pending" and updated.get("status") == "active":
        try:
            await notifier.send_welcome_email(updated["email"], updated.get("name", ""))
        except NotificationFailure as e:
            # The approval stands even when the email cannot be delivered
            logger.warning(f"Welcome email for {updated['email']} failed: {e.message}")
            message = "User approved, but the welcome email could not be sent"
        else:
            message = "User approved"

    return success_response(data=_public(updated), message=message)
