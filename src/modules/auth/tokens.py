"""Session token signing with PyJWT."""

from datetime import UTC, datetime, timedelta

import jwt
import structlog

from src.infrastructure.observability import traced
from src.modules.auth.exceptions import TokenSigningError
from src.modules.auth.models import Role, User
from src.modules.auth.schemas import SessionUser, TokenPayload

logger = structlog.get_logger()


class TokenIssuer:
    """Signs session claims into bearer tokens and reads them back."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        expire_hours: int = 1,
    ) -> None:
        """Initialize the issuer.

        Args:
            secret: Secret key for JWT signing.
            algorithm: Algorithm for JWT signing.
            expire_hours: Hours until token expiration.
        """
        self._secret = secret
        self._algorithm = algorithm
        self._expire_hours = expire_hours

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return self._expire_hours * 3600

    @traced("auth.token.issue")
    def issue(self, user: User) -> str:
        """Sign a session token for a user.

        Args:
            user: The user the claim describes.

        Returns:
            The encoded token.

        Raises:
            TokenSigningError: If the claim cannot be signed.
        """
        now = datetime.now(UTC)
        expires = now + timedelta(hours=self._expire_hours)

        # JWT requires integer timestamps for exp and iat
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "exp": int(expires.timestamp()),
            "iat": int(now.timestamp()),
        }

        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            raise TokenSigningError(f"Could not sign session token: {e}") from e

    def decode(self, token: str) -> TokenPayload | None:
        """Verify and decode a token.

        Returns:
            The payload, or None if the token is invalid or expired.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            return TokenPayload(
                sub=payload["sub"],
                email=payload["email"],
                role=Role(payload["role"]),
                exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
                iat=datetime.fromtimestamp(payload["iat"], tz=UTC),
            )

        except jwt.ExpiredSignatureError:
            logger.info("token_expired")
            return None

        except (jwt.InvalidTokenError, KeyError, ValueError) as e:
            logger.warning("token_invalid", error=str(e))
            return None

    def session_user(self, token: str) -> SessionUser | None:
        """Session claim carried by a valid token, or None."""
        payload = self.decode(token)
        if payload is None:
            return None
        return SessionUser(id=payload.sub, email=payload.email, role=payload.role)
