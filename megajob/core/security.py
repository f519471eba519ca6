"""Security utilities: password hashing, JWT issuance and role gating."""

import re
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from megajob.config import settings
from megajob.core.kv_store import KeyValueStore, get_kv_store
from megajob.db.mongo import get_db, to_object_id

# auto_error=False so a missing header yields our own 401 body
security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


class Role(str, Enum):
    """User roles."""

    JOB_SEEKER = "job_seeker"
    EMPLOYER = "employer"
    ADMIN = "admin"
    HR = "hr"


_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_expires_in(value: str) -> timedelta:
    """Parse ``"7d"``, ``"12h"``, ``"30m"``, ``"45s"`` or plain seconds."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid token lifetime: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def create_access_token(user: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed token for a user document.

    Claims carry ``userId``, ``email``, ``userType`` and ``isVerified``
    alongside the standard ``sub``/``jti``/``iat``/``exp``.
    """
    now = datetime.utcnow()
    expire = now + (expires_delta or parse_expires_in(settings.JWT_EXPIRES_IN))
    user_id = str(user["_id"])
    to_encode = {
        "sub": user_id,
        "userId": user_id,
        "email": user["email"],
        "userType": user.get("role"),
        "isVerified": bool(user.get("is_verified", False)),
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a token. Raises JWTError when invalid or expired."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


async def revoke_token(claims: Dict[str, Any], kv: KeyValueStore) -> bool:
    """Remember a token's ``jti`` until the token would have expired anyway."""
    jti = claims.get("jti")
    if not jti:
        return False
    remaining = int(claims.get("exp", 0) - datetime.utcnow().timestamp())
    if remaining <= 0:
        return True
    return await kv.set(f"revoked:{jti}", True, ttl=remaining)


async def authenticate_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    kv: KeyValueStore = Depends(get_kv_store),
) -> Dict[str, Any]:
    """Validate the bearer token and return its claims."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    invalid = HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Invalid or expired token",
    )
    try:
        claims = decode_token(credentials.credentials)
    except JWTError:
        raise invalid

    if claims.get("jti") and await kv.get(f"revoked:{claims['jti']}"):
        raise invalid

    return claims


async def get_current_user(
    claims: Dict[str, Any] = Depends(authenticate_token),
    db=Depends(get_db),
) -> Dict[str, Any]:
    """Load the user record behind the token."""
    user_id = to_object_id(claims.get("userId") or claims.get("sub"))
    user = await db.users.find_one({"_id": user_id}) if user_id else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.get("is_active", True):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return user


def require_roles(*allowed_roles: Role, detail: str = "Access denied"):
    """Dependency factory: the stored role must be one of ``allowed_roles``."""
    allowed = {r.value for r in allowed_roles}

    async def role_checker(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user.get("role") not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return role_checker


# Role is read from the user record on every request, not from the token claim
require_admin = require_roles(Role.ADMIN, detail="Admin access required")
