"""Dependency functions for FastAPI routes."""

from fastapi import Depends

from megajob.core.kv_store import KeyValueStore, get_kv_store
from megajob.core.security import authenticate_token, get_current_user, require_admin, require_roles
from megajob.db.mongo import get_db
from megajob.services.account_service import AccountService

__all__ = [
    "authenticate_token",
    "get_account_service",
    "get_current_user",
    "get_db",
    "require_admin",
    "require_roles",
]


async def get_account_service(
    db=Depends(get_db),
    kv: KeyValueStore = Depends(get_kv_store),
) -> AccountService:
    return AccountService(db, kv)
