"""Authentication request schemas.

Field aliases follow the camelCase bodies the web client sends.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool

from megajob.core.security import Role


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_CamelModel):
    """Direct registration (no OTP step)."""

    email: EmailStr
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, alias="fullName")
    user_type: Literal["job_seeker", "employer"] = Field(..., alias="userType")
    phone: Optional[str] = None


class LoginRequest(_CamelModel):
    """Login request schema."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SignupRequest(_CamelModel):
    """First step of the OTP signup flow."""

    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, alias="firstName")
    last_name: str = Field(..., min_length=1, alias="lastName")
    role: Role
    phone: Optional[str] = None


class VerifyOTPRequest(_CamelModel):
    temp_signup_id: str = Field(..., min_length=1, alias="tempSignupId")
    otp: str = Field(..., min_length=1)


class ResendOTPRequest(_CamelModel):
    temp_signup_id: str = Field(..., min_length=1, alias="tempSignupId")


class ForgotPasswordRequest(_CamelModel):
    email: str = Field(..., min_length=1)


class ResetPasswordRequest(_CamelModel):
    reset_token: str = Field(..., min_length=1, alias="resetToken")
    new_password: str = Field(..., min_length=1, alias="newPassword")


class ChangePasswordRequest(_CamelModel):
    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=1, alias="newPassword")


class UserStatusUpdate(BaseModel):
    """Admin toggle for account activation."""

    is_active: StrictBool
