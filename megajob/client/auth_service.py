"""
Client-side authentication service.

Talks to the ``/api/auth`` endpoints when an ``APIClient`` is configured and
the backend answers. Without a backend (none configured, or unreachable) it
simulates the auth flow locally: the three demo accounts log in with canned
users, other credentials get a synthesized user, and signups are verified
against a static development OTP.

Simulated tokens look like ``demo-token-<user id>``. They carry no signature
and are only meaningful to this client.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from megajob.client.api_client import APIClient, APIError, BackendUnavailableError
from megajob.client.storage import ClientStorage
from megajob.config import settings
from megajob.utils import helpers
from megajob.utils.constants import DEMO_ACCOUNTS, DEMO_OTP, DEMO_TOKEN_PREFIX

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "access_token"
USER_KEY = "user"
PENDING_SIGNUPS_KEY = "megajobnepal_pending_signups"

# Server response keys that differ from the client's field names
_SERVER_FIELD_MAP = {
    "token": "access_token",
    "tempSignupId": "temp_signup_id",
    "resetToken": "reset_token",
}


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    email: str
    role: Literal["job_seeker", "employer", "admin", "hr"]
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    is_verified: bool = False
    is_active: bool = True
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AuthResponse(BaseModel):
    """Result of every auth operation. Failures are reported, not raised."""

    model_config = ConfigDict(extra="allow")

    success: bool
    user: Optional[User] = None
    access_token: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    temp_signup_id: Optional[str] = None
    otp: Optional[str] = None  # simulation and dev servers only
    reset_token: Optional[str] = None  # simulation and dev servers only


def _now_iso() -> str:
    return helpers.utcnow().isoformat()


def _millis() -> int:
    return int(time.time() * 1000)


def _match_demo_account(email: str, password: str, *roles: str) -> Optional[Dict[str, Any]]:
    for role in roles:
        account = DEMO_ACCOUNTS[role]
        if account["email"] == email and account["password"] == password:
            return {**account["user"], "updated_at": _now_iso()}
    return None


def _synthesized_user(email: str, role: str, **fields) -> Dict[str, Any]:
    now = _now_iso()
    user = {
        "id": f"demo-user-{_millis()}",
        "email": email,
        "role": role,
        "first_name": "Demo",
        "last_name": "User",
        "is_verified": True,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    user.update({k: v for k, v in fields.items() if v is not None})
    return user


class AuthService:
    """Login, signup and session state for a client."""

    def __init__(
        self,
        storage: Optional[ClientStorage] = None,
        api_client: Optional[APIClient] = None,
        latency: Optional[float] = None,
    ):
        self.storage = storage if storage is not None else ClientStorage.default()
        self.api_client = api_client
        self.latency = settings.DEMO_LATENCY_SECONDS if latency is None else latency
        self.access_token: Optional[str] = self.storage.get_item(ACCESS_TOKEN_KEY)

    # ==================== Request routing ====================

    async def _request(
        self,
        endpoint: str,
        method: str = "POST",
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> AuthResponse:
        if self.api_client is not None:
            try:
                data = await self.api_client.request(
                    endpoint,
                    method=method,
                    json=body,
                    params=params,
                    token=self.access_token,
                )
                return self._parse_server_response(endpoint, data)
            except BackendUnavailableError as e:
                logger.warning(f"Backend unreachable for {endpoint} ({e.message}), using local simulation")
            except APIError as e:
                return AuthResponse(success=False, error=e.message)

        return await self._simulate(endpoint, method, body or {})

    def _from_server(self, data: Any) -> AuthResponse:
        if not isinstance(data, dict):
            return AuthResponse(success=True, data=data)

        # Bare user documents (``GET /users/profile``)
        if "success" not in data and "id" in data and "email" in data:
            return AuthResponse(success=True, user=User(**data))

        fields = {_SERVER_FIELD_MAP.get(k, k): v for k, v in data.items()}
        fields.setdefault("success", "error" not in fields)
        return AuthResponse(**fields)

    def _parse_server_response(self, endpoint: str, data: Any) -> AuthResponse:
        try:
            return self._from_server(data)
        except ValidationError as e:
            logger.warning(f"Unexpected response shape from {endpoint}: {e.error_count()} invalid field(s)")
            return AuthResponse(success=False, error="Invalid response from server")

    async def _simulate(self, endpoint: str, method: str, body: Dict[str, Any]) -> AuthResponse:
        await asyncio.sleep(self.latency)

        handlers = {
            "/auth/signup": self._simulate_signup,
            "/auth/verify-otp": self._simulate_verify_otp,
            "/auth/resend-otp": self._simulate_resend_otp,
            "/auth/login": self._simulate_login,
            "/auth/admin-login": self._simulate_login,
            "/auth/logout": lambda e, b: AuthResponse(success=True, message="Logged out successfully"),
            "/auth/forgot-password": self._simulate_forgot_password,
            "/auth/reset-password": lambda e, b: AuthResponse(success=True, message="Password reset successfully"),
            "/auth/validate-session": self._simulate_validate_session,
            "/users/profile": self._simulate_profile if method == "GET" else self._simulate_update_profile,
        }
        handler = handlers.get(endpoint)
        if handler is None:
            return AuthResponse(success=True, message="Operation completed")
        return handler(endpoint, body)

    # ==================== Simulation ====================

    def _pending_signups(self) -> Dict[str, Dict[str, Any]]:
        pending = self.storage.get_json(PENDING_SIGNUPS_KEY, {})
        return pending if isinstance(pending, dict) else {}

    def _otp_expiry(self) -> str:
        return (helpers.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)).isoformat()

    def _simulate_signup(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        temp_signup_id = f"demo-signup-{_millis()}-{uuid.uuid4().hex[:6]}"
        pending = self._pending_signups()
        # The password is never kept; simulated signups are not real accounts
        pending[temp_signup_id] = {
            "email": body.get("email"),
            "first_name": body.get("firstName"),
            "last_name": body.get("lastName"),
            "role": body.get("role") or "job_seeker",
            "phone": body.get("phone"),
            "otp": DEMO_OTP,
            "otp_expiry": self._otp_expiry(),
        }
        self.storage.set_json(PENDING_SIGNUPS_KEY, pending)
        return AuthResponse(
            success=True,
            message="Account created successfully! Please verify your email.",
            temp_signup_id=temp_signup_id,
            otp=DEMO_OTP,
        )

    def _simulate_verify_otp(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        temp_signup_id = body.get("tempSignupId")
        pending = self._pending_signups()
        record = pending.get(temp_signup_id)
        if not record:
            return AuthResponse(success=False, error="Invalid or expired signup session")

        if helpers.utcnow() > datetime.fromisoformat(record["otp_expiry"]):
            del pending[temp_signup_id]
            self.storage.set_json(PENDING_SIGNUPS_KEY, pending)
            return AuthResponse(success=False, error="OTP expired")

        if str(body.get("otp", "")).strip() != record["otp"]:
            return AuthResponse(success=False, error="Invalid OTP")

        del pending[temp_signup_id]
        self.storage.set_json(PENDING_SIGNUPS_KEY, pending)

        role = record["role"] if record["role"] in ("job_seeker", "employer", "hr") else "job_seeker"
        user = _synthesized_user(
            record.get("email") or "demo@example.com",
            role,
            first_name=record.get("first_name"),
            last_name=record.get("last_name"),
            phone=record.get("phone"),
        )
        return AuthResponse(
            success=True,
            user=User(**user),
            access_token=f"{DEMO_TOKEN_PREFIX}{user['id']}",
            message="Email verified successfully!",
        )

    def _simulate_resend_otp(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        temp_signup_id = body.get("tempSignupId")
        pending = self._pending_signups()
        if temp_signup_id not in pending:
            return AuthResponse(success=False, error="Invalid or expired signup session")

        pending[temp_signup_id]["otp_expiry"] = self._otp_expiry()
        self.storage.set_json(PENDING_SIGNUPS_KEY, pending)
        return AuthResponse(success=True, message="New OTP sent to your email", otp=DEMO_OTP)

    def _simulate_login(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        """Any credentials succeed here; unknown ones get a generic user."""
        admin = endpoint == "/auth/admin-login"
        email = body.get("email") or ""
        if admin:
            user = _match_demo_account(email, body.get("password"), "admin")
        else:
            user = _match_demo_account(email, body.get("password"), "job_seeker", "employer")
        if user is None:
            user = _synthesized_user(email, "admin" if admin else "job_seeker")

        return AuthResponse(
            success=True,
            user=User(**user),
            access_token=f"{DEMO_TOKEN_PREFIX}{user['id']}",
            message="Login successful!",
        )

    def _simulate_forgot_password(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        return AuthResponse(
            success=True,
            message="Password reset instructions sent to your email",
            reset_token=f"demo-reset-{_millis()}",
        )

    def _simulate_validate_session(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        user = self.get_user()
        if user and self.access_token:
            return AuthResponse(success=True, user=user)
        return AuthResponse(success=False, error="Session invalid")

    def _simulate_profile(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        user = self.get_user()
        if user is None:
            return AuthResponse(success=False, error="Access token required")
        return AuthResponse(success=True, user=user)

    def _simulate_update_profile(self, endpoint: str, body: Dict[str, Any]) -> AuthResponse:
        user = self.get_user()
        if user is None:
            return AuthResponse(success=False, error="Access token required")

        protected = {"id", "email", "role", "is_active", "is_verified", "created_at"}
        data = user.model_dump()
        data.update({k: v for k, v in body.items() if k not in protected})
        data["updated_at"] = _now_iso()
        try:
            updated = User(**data)
        except ValidationError as e:
            field = ".".join(str(p) for p in e.errors()[0]["loc"])
            return AuthResponse(success=False, error=f"Invalid value for {field}")
        self.set_user(updated)
        return AuthResponse(success=True, user=updated, message="Profile updated successfully")

    def _remember_session(self, response: AuthResponse) -> AuthResponse:
        if response.success and response.access_token:
            self.set_access_token(response.access_token)
            if response.user is not None:
                self.set_user(response.user)
        return response

    # ==================== Signup ====================

    async def signup(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str = "job_seeker",
        phone: Optional[str] = None,
    ) -> AuthResponse:
        body = {
            "email": email,
            "password": password,
            "firstName": first_name,
            "lastName": last_name,
            "role": role,
        }
        if phone:
            body["phone"] = phone
        return await self._request("/auth/signup", body=body)

    async def verify_otp(self, temp_signup_id: str, otp: str) -> AuthResponse:
        response = await self._request("/auth/verify-otp", body={"tempSignupId": temp_signup_id, "otp": otp})
        return self._remember_session(response)

    async def resend_otp(self, temp_signup_id: str) -> AuthResponse:
        return await self._request("/auth/resend-otp", body={"tempSignupId": temp_signup_id})

    # ==================== Login / logout ====================

    async def login(self, email: str, password: str) -> AuthResponse:
        """Demo credentials are answered locally, even with a backend configured."""
        demo_user = _match_demo_account(email, password, "job_seeker", "employer", "admin")
        if demo_user is not None:
            logger.info("Using demo credentials for login")
            response = AuthResponse(
                success=True,
                user=User(**demo_user),
                access_token=f"{DEMO_TOKEN_PREFIX}{demo_user['id']}",
                message="Login successful!",
            )
        else:
            response = await self._request("/auth/login", body={"email": email, "password": password})
        return self._remember_session(response)

    async def admin_login(self, email: str, password: str) -> AuthResponse:
        demo_user = _match_demo_account(email, password, "admin")
        if demo_user is not None:
            logger.info("Using demo admin credentials")
            response = AuthResponse(
                success=True,
                user=User(**demo_user),
                access_token=f"{DEMO_TOKEN_PREFIX}{demo_user['id']}",
                message="Admin login successful!",
            )
        else:
            response = await self._request("/auth/admin-login", body={"email": email, "password": password})
        return self._remember_session(response)

    async def logout(self) -> AuthResponse:
        """Clear the local session first; telling the server is best-effort."""
        token = self.access_token
        self.clear_access_token()

        if self.api_client is not None and token and not token.startswith(DEMO_TOKEN_PREFIX):
            try:
                await self.api_client.request("/auth/logout", method="POST", token=token)
            except APIError as e:
                logger.info(f"Server logout failed (local session already cleared): {e.message}")

        return AuthResponse(success=True, message="Logged out successfully")

    # ==================== Passwords ====================

    async def forgot_password(self, email: str) -> AuthResponse:
        return await self._request("/auth/forgot-password", body={"email": email})

    async def reset_password(self, reset_token: str, new_password: str) -> AuthResponse:
        return await self._request(
            "/auth/reset-password",
            body={"resetToken": reset_token, "newPassword": new_password},
        )

    async def change_password(self, current_password: str, new_password: str) -> AuthResponse:
        return await self._request(
            "/auth/change-password",
            body={"currentPassword": current_password, "newPassword": new_password},
        )

    # ==================== Profile & session ====================

    async def get_profile(self) -> AuthResponse:
        return await self._request("/users/profile", method="GET")

    async def update_profile(self, updates: Dict[str, Any]) -> AuthResponse:
        response = await self._request("/users/profile", method="PUT", body=updates)
        if response.success and response.user is not None:
            self.set_user(response.user)
        return response

    async def validate_session(self) -> AuthResponse:
        """Demo sessions are trusted on the strength of client storage alone."""
        token = self.get_access_token()
        user = self.get_user()
        if token and token.startswith(DEMO_TOKEN_PREFIX) and user:
            logger.info(f"Validating demo session for user: {user.email}")
            return AuthResponse(success=True, user=user)

        return await self._request("/auth/validate-session", method="GET")

    # ==================== Admin ====================

    async def get_users(
        self,
        role: Optional[str] = None,
        status: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> AuthResponse:
        params = {"role": role, "status": status, "page": page, "limit": limit}
        return await self._request("/admin/users", method="GET", params=params)

    async def update_user_status(self, user_id: str, is_active: bool) -> AuthResponse:
        return await self._request(f"/admin/users/{user_id}/status", method="PUT", body={"is_active": is_active})

    async def delete_user(self, user_id: str) -> AuthResponse:
        return await self._request(f"/admin/users/{user_id}", method="DELETE")

    # ==================== Token & user persistence ====================

    def set_access_token(self, token: str):
        self.access_token = token
        self.storage.set_item(ACCESS_TOKEN_KEY, token)

    def clear_access_token(self):
        """Forget the token and the stored user."""
        self.access_token = None
        try:
            self.storage.remove_item(ACCESS_TOKEN_KEY)
            self.storage.remove_item(USER_KEY)
        except OSError as e:
            logger.error(f"Could not clear stored session: {e}")

    def get_access_token(self) -> Optional[str]:
        return self.access_token

    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def set_user(self, user: User):
        self.storage.set_json(USER_KEY, user.model_dump(exclude_none=True))

    def get_user(self) -> Optional[User]:
        data = self.storage.get_json(USER_KEY)
        if not isinstance(data, dict):
            return None
        try:
            return User(**data)
        except ValidationError:
            logger.warning("Discarding malformed stored user")
            return None
