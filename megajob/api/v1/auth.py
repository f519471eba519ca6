"""Authentication endpoints."""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, status

from megajob.api.deps import authenticate_token, get_account_service, get_current_user
from megajob.config import settings
from megajob.core.exceptions import ServiceError
from megajob.core.kv_store import KeyValueStore, get_kv_store
from megajob.core.security import create_access_token, revoke_token
from megajob.db.mongo import serialize_user
from megajob.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendOTPRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyOTPRequest,
)
from megajob.services.account_service import AccountService

logger = structlog.get_logger(__name__)

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If the email exists, you will receive a password reset link"


def _session_response(user: Dict[str, Any], message: str) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "token": create_access_token(user),
        "user": serialize_user(user),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, accounts: AccountService = Depends(get_account_service)):
    """Register without email verification and return a token."""
    user = await accounts.register(
        email=request.email,
        password=request.password,
        full_name=request.full_name,
        user_type=request.user_type,
        phone=request.phone,
    )
    return _session_response(user, "User registered successfully")


@router.post("/login")
async def login(request: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    """Login with email and password."""
    user = await accounts.authenticate(request.email, request.password)
    return _session_response(user, "Login successful")


@router.post("/admin-login")
async def admin_login(request: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    """Login restricted to admin accounts."""
    user = await accounts.authenticate(request.email, request.password, admin_only=True)
    return _session_response(user, "Admin login successful")


@router.post("/signup")
async def signup(request: SignupRequest, accounts: AccountService = Depends(get_account_service)):
    """Start an OTP-verified signup."""
    pending = await accounts.start_signup(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role.value,
        phone=request.phone,
    )
    body = {
        "success": True,
        "tempSignupId": pending["temp_signup_id"],
        "message": "OTP sent to your email address",
    }
    if settings.EXPOSE_DEV_SECRETS:
        body["otp"] = pending["otp"]
    return body


@router.post("/verify-otp")
async def verify_otp(request: VerifyOTPRequest, accounts: AccountService = Depends(get_account_service)):
    user = await accounts.verify_otp(request.temp_signup_id, request.otp)
    return _session_response(user, "Account created successfully")


@router.post("/resend-otp")
async def resend_otp(request: ResendOTPRequest, accounts: AccountService = Depends(get_account_service)):
    otp = await accounts.resend_otp(request.temp_signup_id)
    body = {"success": True, "message": "New OTP sent to your email"}
    if settings.EXPOSE_DEV_SECRETS:
        body["otp"] = otp
    return body


@router.post("/logout")
async def logout(
    claims: Dict[str, Any] = Depends(authenticate_token),
    kv: KeyValueStore = Depends(get_kv_store),
):
    """Revoke the presented token."""
    if not await revoke_token(claims, kv):
        logger.warning("token_revocation_skipped", user_id=claims.get("userId"))
    return {"success": True, "message": "Logged out successfully"}


@router.post("/forgot-password")
async def forgot_password(
    request: ForgotPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
):
    """Same response whether or not the account exists."""
    reset_token = await accounts.forgot_password(request.email)
    body = {"success": True, "message": FORGOT_PASSWORD_MESSAGE}
    if settings.EXPOSE_DEV_SECRETS and reset_token:
        body["resetToken"] = reset_token
    return body


@router.post("/reset-password")
async def reset_password(
    request: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.reset_password(request.reset_token, request.new_password)
    return {"success": True, "message": "Password updated successfully"}


@router.post("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.change_password(current_user, request.current_password, request.new_password)
    return {"success": True, "message": "Password changed successfully"}


@router.get("/validate-session")
async def validate_session(
    claims: Dict[str, Any] = Depends(authenticate_token),
    accounts: AccountService = Depends(get_account_service),
):
    """Confirm the token still maps to an active account."""
    user = await accounts.get_user(claims.get("userId"))
    if not user or not user.get("is_active", True):
        raise ServiceError("Invalid session", 401)
    return {"success": True, "user": serialize_user(user)}
