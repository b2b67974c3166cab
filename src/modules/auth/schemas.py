"""Pydantic schemas for the authentication API.

Request bodies use the camelCase field names of the public API; Python
code uses the snake_case attribute names.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.modules.auth.models import Role
from src.modules.auth.password import MAX_PASSWORD_BYTES, password_fits


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_RequestModel):
    """Schema for registering a new account."""

    email: EmailStr
    password: str = Field(min_length=1)
    confirm_password: str = Field(alias="confirmPassword")
    name: str | None = Field(default=None, max_length=200)
    role: Role | None = None

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        if not password_fits(value):
            raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class VerifyRequest(_RequestModel):
    """Schema for confirming an email address with an OTP."""

    email: EmailStr
    otp: str = Field(min_length=1, max_length=32)


class PasswordResetRequest(_RequestModel):
    """Schema for requesting a password reset code."""

    email: EmailStr


class ResetPasswordRequest(_RequestModel):
    """Schema for setting a new password with an OTP."""

    email: EmailStr
    otp: str = Field(min_length=1, max_length=32)
    new_password: str = Field(alias="newPassword", min_length=1)
    confirm_new_password: str = Field(alias="confirmNewPassword")

    @field_validator("new_password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        if not password_fits(value):
            raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class SignInRequest(_RequestModel):
    """Schema for signing in."""

    email: EmailStr
    password: str


class MessageResponse(BaseModel):
    """Outcome of a flow step. email is set when the caller needs it next."""

    msg: str
    email: str | None = None


class SessionUser(BaseModel):
    """Identity claims embedded in a session token."""

    id: str
    email: str
    role: Role


class SignInResponse(BaseModel):
    """Body returned after a successful sign-in."""

    user: SessionUser


class SignInResult(BaseModel):
    """Signed token plus the claim it carries."""

    token: str
    expires_in: int  # Seconds until expiration
    user: SessionUser


class TokenPayload(BaseModel):
    """Schema for JWT token payload."""

    sub: str  # Subject (user ID)
    email: str
    role: Role
    exp: datetime  # Expiration time
    iat: datetime  # Issued at time
