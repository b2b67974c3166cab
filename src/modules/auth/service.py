"""Authentication flow: registration, OTP verification, password reset, sign-in."""

import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

import structlog

from src.infrastructure.observability import add_span_attributes, traced
from src.modules.auth.exceptions import (
    AuthenticationError,
    AuthFlowError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ServerError,
    TokenSigningError,
    UserAlreadyExistsError,
    ValidationError,
)
from src.modules.auth.models import Role, User
from src.modules.auth.otp import OTPService
from src.modules.auth.password import hash_password, verify_password
from src.modules.auth.repository import UserRepository
from src.modules.auth.schemas import (
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionUser,
    SignInResult,
)
from src.modules.auth.tokens import TokenIssuer

logger = structlog.get_logger()

PASSWORD_MISMATCH = "Passwords do not match"
USER_EXISTS = "User already exists"
USER_MISSING = "User does not exist"
INVALID_OTP = "Invalid OTP"
INVALID_CREDENTIALS = "Invalid credentials"
UNVERIFIED_EMAIL = "Email address not verified"
OTP_DISPATCH_FAILED = "Error sending OTP, please try again."
SESSION_FAILED = "Could not create session, please try again."
SERVER_ERROR = "Server error"


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """Hash checked for unknown emails so sign-in cost does not reveal them."""
    return hash_password(secrets.token_urlsafe(16))


@contextmanager
def _operation(name: str, email: str) -> Iterator[None]:
    """Log every failure of an operation and map unclassified ones to ServerError."""
    try:
        yield
    except AuthFlowError as e:
        logger.warning(
            "auth_operation_failed",
            operation=name,
            email=email,
            error=e.message,
            error_type=type(e).__name__,
        )
        raise
    except Exception as e:
        logger.error(
            "auth_operation_error",
            operation=name,
            email=email,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise ServerError(SERVER_ERROR) from e


class AuthFlow:
    """Orchestrates the credential store, OTP service, hasher and token issuer.

    Every operation either completes or raises an AuthFlowError subclass;
    collaborator exceptions never escape raw.
    """

    def __init__(
        self,
        repository: UserRepository,
        otp_service: OTPService,
        token_issuer: TokenIssuer,
        *,
        require_verified_signin: bool = False,
        default_role: Role = Role.USER,
    ) -> None:
        """Initialize the flow.

        Args:
            repository: User repository for database operations.
            otp_service: Issues and checks one-time passwords.
            token_issuer: Signs session tokens.
            require_verified_signin: Refuse sign-in until the email is verified.
            default_role: Role given to users who register without one.
        """
        self._repo = repository
        self._otp = otp_service
        self._tokens = token_issuer
        self._require_verified_signin = require_verified_signin
        self._default_role = default_role

    @traced("auth.register", attributes={"auth.operation": "register"})
    async def register(self, data: RegisterRequest) -> MessageResponse:
        """Create an unverified account and send it a verification code.

        If the code cannot be sent the account is deleted again, so no
        account exists without an outstanding code.

        Raises:
            ValidationError: If the passwords differ.
            ConflictError: If the email is already registered.
            DependencyError: If the code could not be sent.
        """
        email = data.email.lower()

        with _operation("register", email):
            if data.password != data.confirm_password:
                raise ValidationError(PASSWORD_MISMATCH)

            if await self._repo.get_by_email(email) is not None:
                raise ConflictError(USER_EXISTS)

            try:
                user = await self._repo.create(
                    email,
                    hash_password(data.password),
                    name=data.name,
                    role=data.role or self._default_role,
                )
            except UserAlreadyExistsError as e:
                # Lost a race with a concurrent registration
                raise ConflictError(USER_EXISTS) from e

            try:
                await self._otp.issue(user.email)
            except Exception as e:
                logger.error(
                    "otp_dispatch_failed",
                    operation="register",
                    email=user.email,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                await self._discard_user(user)
                raise DependencyError(OTP_DISPATCH_FAILED) from e

            logger.info("user_registered", user_id=str(user.id), email=user.email)
            return MessageResponse(msg="Registered, pending verification", email=user.email)

    async def _discard_user(self, user: User) -> None:
        """Compensating delete. Its own failure is logged, never raised."""
        try:
            await self._repo.delete(user.id)
        except Exception as e:
            logger.error(
                "compensating_delete_failed",
                operation="register",
                user_id=str(user.id),
                email=user.email,
                error=str(e),
                error_type=type(e).__name__,
            )
        else:
            logger.info("registration_rolled_back", user_id=str(user.id), email=user.email)

    @traced("auth.verify", attributes={"auth.operation": "verify"})
    async def verify(self, email: str, otp: str) -> MessageResponse:
        """Mark an account verified after checking its code.

        Raises:
            ValidationError: If the code is wrong, expired or already used.
            NotFoundError: If the code was right but no account has the email.
        """
        email = email.lower()

        with _operation("verify", email):
            if not await self._otp.verify(email, otp):
                raise ValidationError(INVALID_OTP)

            if not await self._repo.mark_verified(email):
                raise NotFoundError(USER_MISSING)

            return MessageResponse(msg="Email verified successfully")

    @traced(
        "auth.request_password_reset",
        attributes={"auth.operation": "request_password_reset"},
    )
    async def request_password_reset(self, email: str) -> MessageResponse:
        """Send a reset code to an existing account.

        Raises:
            NotFoundError: If no account has the email.
            DependencyError: If the code could not be sent.
        """
        email = email.lower()

        with _operation("request_password_reset", email):
            if await self._repo.get_by_email(email) is None:
                raise NotFoundError(USER_MISSING)

            try:
                await self._otp.issue(email)
            except Exception as e:
                logger.error(
                    "otp_dispatch_failed",
                    operation="request_password_reset",
                    email=email,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise DependencyError(OTP_DISPATCH_FAILED) from e

            return MessageResponse(msg="OTP sent", email=email)

    @traced("auth.reset_password", attributes={"auth.operation": "reset_password"})
    async def reset_password(self, data: ResetPasswordRequest) -> MessageResponse:
        """Replace a password after checking the reset code.

        Raises:
            ValidationError: If the passwords differ or the code is invalid.
        """
        email = data.email.lower()

        with _operation("reset_password", email):
            if data.new_password != data.confirm_new_password:
                raise ValidationError(PASSWORD_MISMATCH)

            if not await self._otp.verify(email, data.otp):
                raise ValidationError(INVALID_OTP)

            if not await self._repo.update_password(email, hash_password(data.new_password)):
                raise NotFoundError(USER_MISSING)

            logger.info("password_reset", email=email)
            return MessageResponse(msg="Password reset successfully")

    @traced("auth.signin", attributes={"auth.operation": "signin"})
    async def sign_in(self, email: str, password: str) -> SignInResult:
        """Check credentials and sign a session token.

        Unknown email and wrong password fail identically.

        Raises:
            AuthenticationError: If the credentials are rejected.
            DependencyError: If the token could not be signed.
        """
        email = email.lower()

        with _operation("signin", email):
            user = await self._repo.get_by_email(email)

            if user is None:
                verify_password(password, _dummy_hash())
                logger.info("signin_rejected", email=email, reason="unknown_email")
                raise AuthenticationError(INVALID_CREDENTIALS)

            if not verify_password(password, user.hashed_password):
                logger.info("signin_rejected", email=email, reason="wrong_password")
                raise AuthenticationError(INVALID_CREDENTIALS)

            if self._require_verified_signin and not user.is_verified:
                raise AuthenticationError(UNVERIFIED_EMAIL)

            try:
                token = self._tokens.issue(user)
            except TokenSigningError as e:
                logger.error("token_signing_failed", email=email, error=str(e))
                raise DependencyError(SESSION_FAILED) from e

            add_span_attributes({"auth.user_id": str(user.id)})
            logger.info("user_signed_in", user_id=str(user.id), email=email)

            return SignInResult(
                token=token,
                expires_in=self._tokens.expires_in,
                user=SessionUser(id=str(user.id), email=user.email, role=user.role),
            )

    def current_user(self, token: str | None) -> SessionUser | None:
        """Session claim of a token, or None when absent or invalid."""
        if not token:
            return None
        return self._tokens.session_user(token)

