"""Authentication module: registration, email OTP verification, password reset, sign-in."""

from src.modules.auth.exceptions import (
    AuthenticationError,
    AuthFlowError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ServerError,
    ServiceUnavailableError,
    ValidationError,
)
from src.modules.auth.models import Role, User
from src.modules.auth.otp import EmailOTPService, OTPService
from src.modules.auth.password import hash_password, verify_password
from src.modules.auth.repository import UserRepository
from src.modules.auth.service import AuthFlow
from src.modules.auth.tokens import TokenIssuer

__all__ = [
    "AuthFlow",
    "AuthFlowError",
    "AuthenticationError",
    "ConflictError",
    "DependencyError",
    "EmailOTPService",
    "NotFoundError",
    "OTPService",
    "Role",
    "ServerError",
    "ServiceUnavailableError",
    "TokenIssuer",
    "User",
    "UserRepository",
    "ValidationError",
    "hash_password",
    "verify_password",
]
