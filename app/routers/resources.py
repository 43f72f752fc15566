"""
Resources router — Library of files and links, optionally scoped to a group.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from app.core.security import STAFF_ROLES, get_current_user, require_role
from app.core.services import get_store
from app.schemas.groups import ResourceCreate, ResourceUpdate
from app.services.record_store import RecordStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/resources", tags=["Resources"])


def _get_resource(store: RecordStore, resource_id: str) -> dict:
    resource = store.get("resources", resource_id)
    if not resource:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


@router.get("")
async def list_resources(
    group_id: Optional[str] = None,
    type: Optional[str] = None,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    filters = {}
    if group_id:
        filters["group_id"] = group_id
    if type:
        filters["type"] = type
    result = store.list("resources", order_by="created_at", desc=True, **filters)
    return success_response(data=result)


@router.post("")
async def add_resource(
    body: ResourceCreate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    now = datetime.now(timezone.utc).isoformat()
    data = {**body.model_dump(), "uploaded_by": user["user_id"], "created_at": now, "updated_at": now}
    result = store.insert("resources", data)
    return success_response(data=result, message="Resource added")


@router.patch("/{resource_id}")
async def update_resource(
    resource_id: str,
    body: ResourceUpdate,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    _get_resource(store, resource_id)
    update_data = {k: v for k, v in body.model_dump().items() if v is not None}
    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = store.update("resources", resource_id, update_data)
    return success_response(data=result, message="Resource updated")


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: str,
    user: dict = Depends(require_role(STAFF_ROLES)),
    store: RecordStore = Depends(get_store),
):
    _get_resource(store, resource_id)
    store.delete("resources", resource_id)
    return success_response(message="Resource deleted")
