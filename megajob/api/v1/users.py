"""User profile endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pymongo import ReturnDocument

from megajob.api.deps import get_current_user, get_db
from megajob.db.mongo import serialize_user
from megajob.utils import helpers
from megajob.utils.constants import PROTECTED_USER_FIELDS

router = APIRouter()


@router.get("/profile")
async def get_profile(current_user: Dict[str, Any] = Depends(get_current_user)):
    """Current user's record without the password hash."""
    return serialize_user(current_user)


@router.put("/profile")
async def update_profile(
    updates: Dict[str, Any] = Body(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
):
    """Update profile fields. Credentials, role and account flags are not editable here."""
    sanitized = helpers.strip_operator_keys(updates, PROTECTED_USER_FIELDS)
    if not sanitized:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid fields to update")

    sanitized["updated_at"] = helpers.utcnow()
    if "first_name" in sanitized or "last_name" in sanitized:
        first = sanitized.get("first_name", current_user.get("first_name"))
        last = sanitized.get("last_name", current_user.get("last_name"))
        sanitized.setdefault("full_name", " ".join(p for p in (first, last) if p) or None)

    user = await db.users.find_one_and_update(
        {"_id": current_user["_id"]},
        {"$set": sanitized},
        return_document=ReturnDocument.AFTER,
    )
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return serialize_user(user)
