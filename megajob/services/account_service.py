"""Account lifecycle: registration, OTP signup, login and password changes."""

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import structlog
from pymongo.errors import DuplicateKeyError

from megajob.config import settings
from megajob.core.exceptions import ServiceError
from megajob.core.kv_store import KeyValueStore
from megajob.core.security import Role, get_password_hash, verify_password
from megajob.db.mongo import to_object_id
from megajob.utils import helpers
from megajob.utils.constants import SELF_SERVICE_ROLES

logger = structlog.get_logger(__name__)

# A pending signup outlives its OTP so an expired code can still be resent
PENDING_SIGNUP_TTL_SECONDS = 24 * 3600
RESET_TOKEN_GRACE_SECONDS = 3600

ROLE_PROFILE_COLLECTIONS = {
    Role.JOB_SEEKER.value: "job_seekers",
    Role.EMPLOYER.value: "employers",
}


def new_user_document(
    email: str,
    password_hash: str,
    role: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
    is_verified: bool = False,
) -> Dict[str, Any]:
    now = helpers.utcnow()
    full_name = " ".join(part for part in (first_name, last_name) if part) or None
    return {
        "email": email,
        "password_hash": password_hash,
        "role": role,
        "first_name": first_name,
        "last_name": last_name,
        "full_name": full_name,
        "phone": phone,
        "profile_image": None,
        "is_verified": is_verified,
        "is_active": True,
        "last_login": None,
        "created_at": now,
        "updated_at": now,
        "profile": {},
    }


def _split_full_name(full_name: str):
    parts = full_name.strip().split(None, 1)
    first = parts[0] if parts else None
    last = parts[1] if len(parts) > 1 else None
    return first, last


class AccountService:
    """Operations on the ``users`` collection and the key-value auth state."""

    def __init__(self, db, kv: KeyValueStore):
        self.db = db
        self.kv = kv

    async def get_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return await self.db.users.find_one({"_id": oid})

    # ==================== Direct registration & login ====================

    async def register(
        self,
        email: str,
        password: str,
        full_name: str,
        user_type: str,
        phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an unverified account without the OTP step."""
        if await self.db.users.find_one({"email": email}):
            raise ServiceError("User already exists with this email")

        first_name, last_name = _split_full_name(full_name)
        user = new_user_document(
            email=email,
            password_hash=get_password_hash(password),
            role=user_type,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        user["full_name"] = full_name

        try:
            result = await self.db.users.insert_one(user)
        except DuplicateKeyError:
            raise ServiceError("User already exists with this email")

        user["_id"] = result.inserted_id
        logger.info("user_registered", user_id=str(result.inserted_id), role=user_type)
        return user

    async def authenticate(self, email: str, password: str, admin_only: bool = False) -> Dict[str, Any]:
        """Check credentials and stamp ``last_login``."""
        user = await self.db.users.find_one({"email": email})
        if not user or not verify_password(password, user.get("password_hash")):
            logger.info("login_failed", email=email)
            raise ServiceError("Invalid email or password", 401)

        if admin_only and user.get("role") != Role.ADMIN.value:
            raise ServiceError("Admin access denied", 403)

        if not user.get("is_active", True):
            message = "Admin account is deactivated" if admin_only else "Account is deactivated"
            raise ServiceError(message, 403)

        now = helpers.utcnow()
        await self.db.users.update_one({"_id": user["_id"]}, {"$set": {"last_login": now}})
        user["last_login"] = now
        return user

    # ==================== OTP signup ====================

    async def _store_pending_signup(self, temp_signup_id: str, data: Dict[str, Any]) -> None:
        if not await self.kv.set(f"signup:{temp_signup_id}", data, ttl=PENDING_SIGNUP_TTL_SECONDS):
            raise ServiceError("Verification service unavailable", 503)

    def _issue_otp(self, data: Dict[str, Any]) -> str:
        otp = helpers.generate_otp()
        data["otp"] = otp
        data["otp_expiry"] = (helpers.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)).isoformat()
        return otp

    async def start_signup(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str,
        phone: Optional[str] = None,
    ) -> Dict[str, str]:
        """Park the signup in the key-value store and issue an OTP."""
        if role not in SELF_SERVICE_ROLES:
            raise ServiceError("Invalid role")

        if await self.db.users.find_one({"email": email}, {"_id": 1}):
            raise ServiceError("User already exists", 409)

        temp_signup_id = str(uuid.uuid4())
        data = {
            "email": email,
            "password_hash": get_password_hash(password),
            "first_name": first_name,
            "last_name": last_name,
            "role": role,
            "phone": phone,
        }
        otp = self._issue_otp(data)
        await self._store_pending_signup(temp_signup_id, data)

        # TODO: deliver the OTP by email once an SMTP sender is configured
        logger.info("signup_otp_issued", email=email, temp_signup_id=temp_signup_id)
        return {"temp_signup_id": temp_signup_id, "otp": otp}

    async def resend_otp(self, temp_signup_id: str) -> str:
        data = await self.kv.get(f"signup:{temp_signup_id}")
        if not data:
            raise ServiceError("Invalid or expired signup session")

        otp = self._issue_otp(data)
        await self._store_pending_signup(temp_signup_id, data)
        logger.info("signup_otp_reissued", email=data.get("email"), temp_signup_id=temp_signup_id)
        return otp

    async def verify_otp(self, temp_signup_id: str, otp: str) -> Dict[str, Any]:
        """
        Finish an OTP signup.

        Expiry is checked before the code itself; an expired session is
        deleted so later attempts report an invalid session.
        """
        key = f"signup:{temp_signup_id}"
        data = await self.kv.get(key)
        if not data:
            raise ServiceError("Invalid or expired signup session")

        if helpers.utcnow() > datetime.fromisoformat(data["otp_expiry"]):
            await self.kv.delete(key)
            raise ServiceError("OTP expired")

        if str(otp).strip() != data["otp"]:
            raise ServiceError("Invalid OTP")

        user = new_user_document(
            email=data["email"],
            password_hash=data["password_hash"],
            role=data["role"],
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            phone=data.get("phone"),
            is_verified=True,
        )
        try:
            result = await self.db.users.insert_one(user)
        except DuplicateKeyError:
            await self.kv.delete(key)
            raise ServiceError("User already exists", 409)
        user["_id"] = result.inserted_id

        profile_collection = ROLE_PROFILE_COLLECTIONS.get(user["role"])
        if profile_collection:
            try:
                await self.db[profile_collection].insert_one(
                    {"user_id": str(user["_id"]), "created_at": helpers.utcnow()}
                )
            except Exception as e:
                logger.error("role_profile_creation_failed", user_id=str(user["_id"]), error=str(e))
                await self.db.users.delete_one({"_id": user["_id"]})
                raise ServiceError("Failed to create user profile", 500)

        await self.kv.delete(key)
        logger.info("signup_verified", user_id=str(user["_id"]), role=user["role"])
        return user

    # ==================== Passwords ====================

    def _check_password_length(self, password: str, label: str = "Password") -> None:
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise ServiceError(f"{label} must be at least {settings.MIN_PASSWORD_LENGTH} characters long")

    async def forgot_password(self, email: str) -> Optional[str]:
        """Issue a reset token when the account exists. Callers must not reveal which."""
        user = await self.db.users.find_one({"email": email}, {"_id": 1})
        if not user:
            logger.info("password_reset_unknown_email")
            return None

        reset_token = str(uuid.uuid4())
        expiry = helpers.utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
        stored = await self.kv.set(
            f"password_reset:{reset_token}",
            {"email": email, "expiry": expiry.isoformat()},
            ttl=settings.RESET_TOKEN_EXPIRE_MINUTES * 60 + RESET_TOKEN_GRACE_SECONDS,
        )
        if not stored:
            raise ServiceError("Password reset service unavailable", 503)

        # TODO: deliver the reset link by email once an SMTP sender is configured
        logger.info("password_reset_issued", user_id=str(user["_id"]))
        return reset_token

    async def reset_password(self, reset_token: str, new_password: str) -> None:
        self._check_password_length(new_password)

        key = f"password_reset:{reset_token}"
        data = await self.kv.get(key)
        if not data:
            raise ServiceError("Invalid or expired reset token")

        if helpers.utcnow() > datetime.fromisoformat(data["expiry"]):
            await self.kv.delete(key)
            raise ServiceError("Reset token expired")

        result = await self.db.users.update_one(
            {"email": data["email"]},
            {"$set": {"password_hash": get_password_hash(new_password), "updated_at": helpers.utcnow()}},
        )
        if result.matched_count == 0:
            raise ServiceError("User not found", 404)

        await self.kv.delete(key)
        logger.info("password_reset_completed", email=data["email"])

    async def change_password(self, user: Dict[str, Any], current_password: str, new_password: str) -> None:
        self._check_password_length(new_password, label="New password")

        if not verify_password(current_password, user.get("password_hash")):
            raise ServiceError("Current password is incorrect")

        await self.db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"password_hash": get_password_hash(new_password), "updated_at": helpers.utcnow()}},
        )
        logger.info("password_changed", user_id=str(user["_id"]))
