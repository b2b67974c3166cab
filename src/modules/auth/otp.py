"""One-time password issuance and verification.

Challenges live in a time-bounded in-memory mapping keyed by email. Only
a SHA-256 digest of each code is kept; the cleartext code exists just long
enough to be mailed. Issuing a new code for an address replaces the
previous challenge, so only the latest code verifies. A successful
verification consumes the challenge.
"""

import asyncio
import hashlib
import hmac
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

import structlog

from src.infrastructure.mail import MailSender

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_code(length: int) -> str:
    """Generate a numeric code with a cryptographically secure RNG."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


@dataclass
class OTPChallenge:
    """An outstanding code for one email address."""

    email: str
    code_hash: str
    issued_at: datetime
    expires_at: datetime
    failed_attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def matches(self, code: str) -> bool:
        return hmac.compare_digest(self.code_hash, hash_code(code))


class OTPService(Protocol):
    """Issue codes to an address and check submitted codes."""

    async def issue(self, email: str) -> str:
        """Create a code for the address and deliver it.

        Returns:
            The issued code.
        """
        ...

    async def verify(self, email: str, code: str) -> bool:
        """Check a submitted code. True consumes the challenge."""
        ...


class EmailOTPService:
    """OTP service that mails codes and keeps challenges in memory.

    Owned by the application's composition root; nothing here is global.
    Mutations happen between awaits, so the mapping needs no lock under
    a single event loop.
    """

    def __init__(
        self,
        mail_sender: MailSender,
        *,
        length: int = 6,
        ttl_minutes: int = 10,
        max_attempts: int = 5,
        clock: Clock = _utcnow,
        code_factory: Callable[[int], str] = generate_code,
    ) -> None:
        """Initialize the service.

        Args:
            mail_sender: Transport for the codes.
            length: Number of digits per code.
            ttl_minutes: Minutes a code stays valid.
            max_attempts: Wrong submissions before the challenge is dropped.
            clock: Source of the current UTC time.
            code_factory: Produces a code of the given length.
        """
        self._mail = mail_sender
        self._length = length
        self._ttl = timedelta(minutes=ttl_minutes)
        self._ttl_minutes = ttl_minutes
        self._max_attempts = max_attempts
        self._clock = clock
        self._code_factory = code_factory
        self._challenges: dict[str, OTPChallenge] = {}

    @property
    def pending(self) -> int:
        """Number of outstanding challenges, expired or not."""
        return len(self._challenges)

    async def issue(self, email: str) -> str:
        """Create a code, replacing any outstanding one, and mail it.

        Raises:
            MailDeliveryError: If the code could not be sent. The new
                challenge is withdrawn before the error propagates.
        """
        email = email.lower()
        code = self._code_factory(self._length)
        now = self._clock()
        challenge = OTPChallenge(
            email=email,
            code_hash=hash_code(code),
            issued_at=now,
            expires_at=now + self._ttl,
        )
        self._challenges[email] = challenge

        try:
            await self._mail.send_otp(email, code, ttl_minutes=self._ttl_minutes)
        except Exception:
            # A newer issue() may have replaced it while we awaited
            if self._challenges.get(email) is challenge:
                del self._challenges[email]
            raise

        logger.info("otp_issued", email=email, expires_at=challenge.expires_at.isoformat())
        return code

    async def verify(self, email: str, code: str) -> bool:
        """Check a code against the latest challenge for the address."""
        email = email.lower()
        challenge = self._challenges.get(email)

        if challenge is None:
            logger.info("otp_rejected", email=email, reason="no_challenge")
            return False

        if challenge.is_expired(self._clock()):
            del self._challenges[email]
            logger.info("otp_rejected", email=email, reason="expired")
            return False

        if not challenge.matches(code):
            challenge.failed_attempts += 1
            if challenge.failed_attempts >= self._max_attempts:
                del self._challenges[email]
                logger.warning("otp_attempts_exhausted", email=email)
            else:
                logger.info(
                    "otp_rejected",
                    email=email,
                    reason="mismatch",
                    failed_attempts=challenge.failed_attempts,
                )
            return False

        del self._challenges[email]
        logger.info("otp_verified", email=email)
        return True

    def sweep_expired(self) -> int:
        """Drop expired challenges.

        Returns:
            Number of challenges removed.
        """
        now = self._clock()
        expired = [
            email
            for email, challenge in self._challenges.items()
            if challenge.is_expired(now)
        ]
        for email in expired:
            del self._challenges[email]

        if expired:
            logger.debug("otp_challenges_swept", removed=len(expired))
        return len(expired)


async def sweep_periodically(service: EmailOTPService, interval_seconds: float) -> None:
    """Sweep expired challenges forever. Run as a task and cancel to stop."""
    while True:
        await asyncio.sleep(interval_seconds)
        service.sweep_expired()
