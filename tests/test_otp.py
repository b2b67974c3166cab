"""Tests for one-time password issuance and verification."""

from datetime import UTC, datetime, timedelta

import pytest

from src.infrastructure.mail import MailDeliveryError
from src.modules.auth.otp import EmailOTPService, generate_code, hash_code


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def otp_service(mail_sender, clock: FakeClock) -> EmailOTPService:
    return EmailOTPService(mail_sender, ttl_minutes=10, max_attempts=3, clock=clock)


class TestGenerateCode:
    """Tests for code generation helpers."""

    def test_code_is_numeric_with_requested_length(self) -> None:
        code = generate_code(8)
        assert len(code) == 8
        assert code.isdigit()

    def test_hash_code_is_stable_and_opaque(self) -> None:
        assert hash_code("123456") == hash_code("123456")
        assert "123456" not in hash_code("123456")


class TestIssue:
    """Tests for EmailOTPService.issue."""

    async def test_issue_mails_the_code(self, otp_service: EmailOTPService, mail_sender) -> None:
        """The returned code should be the one mailed to the address."""
        code = await otp_service.issue("User@Example.com")

        assert mail_sender.sent == [("user@example.com", code)]
        assert len(code) == 6
        assert otp_service.pending == 1

    async def test_failed_delivery_withdraws_challenge(
        self, otp_service: EmailOTPService, mail_sender
    ) -> None:
        """A code that was never delivered must not stay verifiable."""
        mail_sender.fail = True

        with pytest.raises(MailDeliveryError):
            await otp_service.issue("user@example.com")

        assert otp_service.pending == 0

    async def test_reissue_replaces_previous_code(
        self, mail_sender, clock: FakeClock
    ) -> None:
        """Only the most recently issued code should verify."""
        codes = iter(["111111", "222222"])
        service = EmailOTPService(mail_sender, clock=clock, code_factory=lambda _n: next(codes))

        first = await service.issue("user@example.com")
        second = await service.issue("user@example.com")

        assert not await service.verify("user@example.com", first)
        assert await service.verify("user@example.com", second)


class TestVerify:
    """Tests for EmailOTPService.verify."""

    async def test_correct_code_verifies_once(self, otp_service: EmailOTPService) -> None:
        """A code is consumed by its first successful use."""
        code = await otp_service.issue("user@example.com")

        assert await otp_service.verify("user@example.com", code)
        assert not await otp_service.verify("user@example.com", code)

    async def test_email_is_case_insensitive(self, otp_service: EmailOTPService) -> None:
        code = await otp_service.issue("user@example.com")

        assert await otp_service.verify("USER@example.com", code)

    async def test_wrong_code_is_rejected(self, otp_service: EmailOTPService) -> None:
        code = await otp_service.issue("user@example.com")
        wrong = "000000" if code != "000000" else "111111"

        assert not await otp_service.verify("user@example.com", wrong)
        assert await otp_service.verify("user@example.com", code)

    async def test_no_challenge_is_rejected(self, otp_service: EmailOTPService) -> None:
        assert not await otp_service.verify("nobody@example.com", "123456")

    async def test_expired_code_is_rejected(
        self, otp_service: EmailOTPService, clock: FakeClock
    ) -> None:
        code = await otp_service.issue("user@example.com")

        clock.advance(minutes=10)

        assert not await otp_service.verify("user@example.com", code)
        assert otp_service.pending == 0

    async def test_code_valid_just_before_expiry(
        self, otp_service: EmailOTPService, clock: FakeClock
    ) -> None:
        code = await otp_service.issue("user@example.com")

        clock.advance(minutes=9, seconds=59)

        assert await otp_service.verify("user@example.com", code)

    async def test_attempts_exhausted_drops_challenge(self, mail_sender, clock: FakeClock) -> None:
        """After max_attempts wrong guesses even the right code fails."""
        service = EmailOTPService(
            mail_sender, max_attempts=3, clock=clock, code_factory=lambda _n: "123456"
        )
        await service.issue("user@example.com")

        for _ in range(3):
            assert not await service.verify("user@example.com", "999999")

        assert not await service.verify("user@example.com", "123456")


class TestSweepExpired:
    """Tests for EmailOTPService.sweep_expired."""

    async def test_sweep_removes_only_expired(
        self, otp_service: EmailOTPService, clock: FakeClock
    ) -> None:
        await otp_service.issue("old@example.com")
        clock.advance(minutes=6)
        fresh = await otp_service.issue("new@example.com")
        clock.advance(minutes=5)

        assert otp_service.sweep_expired() == 1
        assert otp_service.pending == 1
        assert await otp_service.verify("new@example.com", fresh)

    def test_sweep_empty(self, otp_service: EmailOTPService) -> None:
        assert otp_service.sweep_expired() == 0
