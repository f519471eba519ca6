"""Admin API endpoints for user management."""

import math
from typing import Any, Dict, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo import DESCENDING, ReturnDocument

from megajob.api.deps import get_db, require_admin
from megajob.config import settings
from megajob.db.mongo import serialize_user, to_object_id
from megajob.schemas.auth import UserStatusUpdate
from megajob.utils import helpers

logger = structlog.get_logger(__name__)

router = APIRouter()


# ==================== Users ====================

@router.get("/users")
async def list_users(
    role: Optional[str] = Query(None, description="Filter by role"),
    account_status: Optional[Literal["active", "inactive"]] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: Dict[str, Any] = Depends(require_admin),
    db=Depends(get_db),
):
    """Paginated user list, newest first."""
    query: Dict[str, Any] = {}
    if role:
        query["role"] = role
    if account_status:
        query["is_active"] = account_status == "active"

    cursor = (
        db.users.find(query, {"password_hash": 0})
        .sort("created_at", DESCENDING)
        .skip(helpers.paginate(page, limit))
        .limit(limit)
    )
    users = await cursor.to_list(length=limit)
    total = await db.users.count_documents(query)

    return {
        "success": True,
        "users": [serialize_user(u) for u in users],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: str,
    update: UserStatusUpdate,
    current_user: Dict[str, Any] = Depends(require_admin),
    db=Depends(get_db),
):
    """Activate or deactivate an account."""
    oid = to_object_id(user_id)
    user = None
    if oid:
        user = await db.users.find_one_and_update(
            {"_id": oid},
            {"$set": {"is_active": update.is_active, "updated_at": helpers.utcnow()}},
            projection={"password_hash": 0},
            return_document=ReturnDocument.AFTER,
        )
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info(
        "user_status_updated",
        user_id=user_id,
        is_active=update.is_active,
        admin_id=str(current_user["_id"]),
    )
    return {
        "success": True,
        "message": f"User {'activated' if update.is_active else 'deactivated'} successfully",
        "user": serialize_user(user),
    }


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    current_user: Dict[str, Any] = Depends(require_admin),
    db=Depends(get_db),
):
    oid = to_object_id(user_id)
    if oid is not None and oid == current_user["_id"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account")

    result = await db.users.delete_one({"_id": oid}) if oid else None
    if result is None or result.deleted_count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info("user_deleted", user_id=user_id, admin_id=str(current_user["_id"]))
    return {"success": True, "message": "User deleted successfully"}
