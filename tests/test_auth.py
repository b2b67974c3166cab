"""Tests for the auth building blocks: model, repository, hashing, tokens."""

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import patch
from uuid import uuid4

import jwt
import pytest
from pydantic import ValidationError as SchemaValidationError

from src.infrastructure.database import Database
from src.modules.auth import Role, TokenIssuer, hash_password, verify_password
from src.modules.auth.exceptions import TokenSigningError, UserAlreadyExistsError
from src.modules.auth.models import User
from src.modules.auth.password import MAX_PASSWORD_BYTES
from src.modules.auth.repository import UserRepository
from src.modules.auth.schemas import RegisterRequest, ResetPasswordRequest

SECRET = "test-secret-key-for-testing-only"


@pytest.fixture
async def repository(database: Database) -> UserRepository:
    """Create a user repository with test database."""
    return UserRepository(database)


def make_user(**overrides: object) -> User:
    now = datetime.now(timezone.utc)
    fields: dict[str, object] = {
        "id": uuid4(),
        "email": "test@example.com",
        "hashed_password": "hashed",
        "name": None,
        "role": Role.USER,
        "is_verified": False,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return User(**fields)  # type: ignore[arg-type]


class TestUserModel:
    """Tests for User model."""

    def test_user_from_row(self) -> None:
        """Should create user from database row."""
        now = datetime.now(timezone.utc).isoformat()
        row = {
            "id": str(uuid4()),
            "email": "test@example.com",
            "hashed_password": "hashed",
            "name": "Ada",
            "role": "admin",
            "is_verified": 1,
            "created_at": now,
            "updated_at": now,
        }
        user = User.from_row(row)
        assert user.email == "test@example.com"
        assert user.name == "Ada"
        assert user.role is Role.ADMIN
        assert user.is_verified

    def test_user_from_row_without_name(self) -> None:
        """Empty name column should map to None."""
        now = datetime.now(timezone.utc).isoformat()
        row = {
            "id": str(uuid4()),
            "email": "test@example.com",
            "hashed_password": "hashed",
            "name": None,
            "role": "user",
            "is_verified": 0,
            "created_at": now,
            "updated_at": now,
        }
        user = User.from_row(row)
        assert user.name is None
        assert not user.is_verified


class TestUserRepository:
    """Tests for UserRepository."""

    async def test_create_user_defaults(self, repository: UserRepository) -> None:
        """New users are unverified with the user role."""
        user = await repository.create("Test@Example.com", "hashed_password")

        assert user.email == "test@example.com"
        assert user.role is Role.USER
        assert not user.is_verified

    async def test_create_duplicate_email_fails(self, repository: UserRepository) -> None:
        """The UNIQUE constraint should surface as UserAlreadyExistsError."""
        await repository.create("test@example.com", "hashed_password")

        with pytest.raises(UserAlreadyExistsError, match="already exists"):
            await repository.create("TEST@example.com", "another_password")

    async def test_get_by_email_is_case_insensitive(self, repository: UserRepository) -> None:
        """Lookups should lower-case the email."""
        created = await repository.create("test@example.com", "hashed_password")

        found = await repository.get_by_email("Test@Example.COM")

        assert found is not None
        assert found.id == created.id

    async def test_get_by_email_not_found(self, repository: UserRepository) -> None:
        """Should return None for non-existent email."""
        assert await repository.get_by_email("nobody@example.com") is None

    async def test_mark_verified(self, repository: UserRepository) -> None:
        """Should set the verified flag for an existing email."""
        await repository.create("test@example.com", "hashed_password")

        assert await repository.mark_verified("test@example.com")

        user = await repository.get_by_email("test@example.com")
        assert user is not None
        assert user.is_verified

    async def test_mark_verified_unknown_email(self, repository: UserRepository) -> None:
        """Should report no match for an unknown email."""
        assert not await repository.mark_verified("nobody@example.com")

    async def test_update_password(self, repository: UserRepository) -> None:
        """Should replace the stored hash."""
        await repository.create("test@example.com", "old_hash")

        assert await repository.update_password("test@example.com", "new_hash")

        user = await repository.get_by_email("test@example.com")
        assert user is not None
        assert user.hashed_password == "new_hash"

    async def test_delete_user(self, repository: UserRepository) -> None:
        """Deleted users should no longer be retrievable."""
        user = await repository.create("test@example.com", "hashed_password")

        assert await repository.delete(user.id)
        assert await repository.get_by_email("test@example.com") is None

    async def test_delete_nonexistent_user(self, repository: UserRepository) -> None:
        """Should return False when deleting non-existent user."""
        assert not await repository.delete(uuid4())


class TestPasswordHashing:
    """Tests for password hashing utilities."""

    def test_hash_password(self) -> None:
        """Should hash password."""
        hashed = hash_password("secure_password123")

        assert hashed != "secure_password123"
        assert hashed.startswith("$2")  # bcrypt prefix

    def test_verify_password(self) -> None:
        """Should accept the right password and reject a wrong one."""
        hashed = hash_password("correct_password")

        assert verify_password("correct_password", hashed)
        assert not verify_password("wrong_password", hashed)

    def test_different_hashes_for_same_password(self) -> None:
        """Should generate different hashes due to salt."""
        assert hash_password("same_password") != hash_password("same_password")

    def test_malformed_hash_is_a_mismatch(self) -> None:
        """A corrupt stored hash should not raise."""
        assert not verify_password("password", "not-a-bcrypt-hash")

    def test_overlong_password_is_rejected(self) -> None:
        """Passwords past the bcrypt limit should not be silently truncated."""
        with pytest.raises(ValueError, match="72 bytes"):
            hash_password("a" * (MAX_PASSWORD_BYTES + 1))

    def test_shared_prefix_does_not_match(self) -> None:
        """A longer password sharing the first 72 bytes should not verify."""
        hashed = hash_password("a" * MAX_PASSWORD_BYTES)

        assert verify_password("a" * MAX_PASSWORD_BYTES, hashed)
        assert not verify_password("a" * MAX_PASSWORD_BYTES + "b", hashed)


class TestPasswordSchemas:
    """Byte-length limits on password fields."""

    def test_register_accepts_limit(self) -> None:
        password = "a" * MAX_PASSWORD_BYTES
        data = RegisterRequest(email="a@x.com", password=password, confirmPassword=password)

        assert data.password == password

    def test_register_rejects_multibyte_overflow(self) -> None:
        # 37 two-byte characters is 74 bytes
        password = "\u00e9" * 37

        with pytest.raises(SchemaValidationError, match="at most 72 bytes"):
            RegisterRequest(email="a@x.com", password=password, confirmPassword=password)

    def test_reset_rejects_overlong_password(self) -> None:
        password = "a" * (MAX_PASSWORD_BYTES + 1)

        with pytest.raises(SchemaValidationError, match="at most 72 bytes"):
            ResetPasswordRequest(
                email="a@x.com",
                otp="123456",
                newPassword=password,
                confirmNewPassword=password,
            )


class TestTokenIssuer:
    """Tests for TokenIssuer."""

    def test_issue_and_decode(self) -> None:
        """Issued tokens should carry the session claim."""
        issuer = TokenIssuer(SECRET, expire_hours=1)
        user = make_user(role=Role.ADMIN)

        token = issuer.issue(user)
        payload = issuer.decode(token)

        assert payload is not None
        assert payload.sub == str(user.id)
        assert payload.email == user.email
        assert payload.role is Role.ADMIN
        assert payload.exp - payload.iat == timedelta(hours=1)

    def test_expires_in(self) -> None:
        """Lifetime should be reported in seconds."""
        assert TokenIssuer(SECRET, expire_hours=1).expires_in == 3600

    def test_session_user(self) -> None:
        """session_user should return id, email and role."""
        issuer = TokenIssuer(SECRET)
        user = make_user()

        session = issuer.session_user(issuer.issue(user))

        assert session is not None
        assert session.id == str(user.id)
        assert session.role is Role.USER

    def test_decode_rejects_foreign_signature(self) -> None:
        """Tokens signed with another key should be rejected."""
        token = TokenIssuer("another-secret-key-of-enough-length").issue(make_user())

        assert TokenIssuer(SECRET).decode(token) is None

    def test_decode_rejects_expired_token(self) -> None:
        """Expired tokens should be rejected."""
        past = datetime.now(UTC) - timedelta(hours=2)
        token = jwt.encode(
            {
                "sub": str(uuid4()),
                "email": "test@example.com",
                "role": "user",
                "iat": int(past.timestamp()),
                "exp": int((past + timedelta(hours=1)).timestamp()),
            },
            SECRET,
            algorithm="HS256",
        )

        assert TokenIssuer(SECRET).decode(token) is None

    def test_decode_rejects_garbage(self) -> None:
        """Should reject invalid token."""
        assert TokenIssuer(SECRET).decode("invalid.token.here") is None

    def test_signing_failure_raises(self) -> None:
        """Library errors during signing should become TokenSigningError."""
        issuer = TokenIssuer(SECRET)

        with (
            patch("src.modules.auth.tokens.jwt.encode", side_effect=jwt.PyJWTError("boom")),
            pytest.raises(TokenSigningError),
        ):
            issuer.issue(make_user())

    def test_unknown_algorithm_raises(self) -> None:
        """An unsupported algorithm should fail at signing time."""
        issuer = TokenIssuer(SECRET, algorithm="NOPE256")

        with pytest.raises(TokenSigningError):
            issuer.issue(make_user())
