"""Shared test configuration and collaborators."""

import os
import tempfile
from pathlib import Path

# Settings are cached on first use, so the environment is fixed before any src import
_TMP = tempfile.mkdtemp(prefix="otp-auth-tests-")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_PATH", str(Path(_TMP) / "app.db"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.pop("SMTP_HOST", None)

import pytest  # noqa: E402

from src.infrastructure.database import Database  # noqa: E402
from src.infrastructure.mail import MailDeliveryError  # noqa: E402


class CapturingMailSender:
    """Mail sender that records codes instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_otp(self, recipient: str, code: str, *, ttl_minutes: int) -> None:
        if self.fail:
            raise MailDeliveryError(recipient, "connection refused")
        self.sent.append((recipient, code))

    def codes_for(self, email: str) -> list[str]:
        return [code for recipient, code in self.sent if recipient == email]

    def last_code(self, email: str) -> str:
        return self.codes_for(email)[-1]


@pytest.fixture
async def database() -> Database:
    """Create a temporary test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db = Database(Path(tmpdir) / "test.db")
        await db.connect()
        yield db
        await db.disconnect()


@pytest.fixture
def mail_sender() -> CapturingMailSender:
    return CapturingMailSender()
