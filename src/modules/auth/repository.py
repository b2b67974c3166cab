"""User repository for database operations."""

import sqlite3
from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog

from src.infrastructure.database import Database
from src.modules.auth.exceptions import UserAlreadyExistsError
from src.modules.auth.models import Role, User

logger = structlog.get_logger()


class UserRepository:
    """Repository for User records keyed by email.

    Emails are stored and looked up lower-cased.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the repository.

        Args:
            database: Database connection.
        """
        self._db = database

    async def create(
        self,
        email: str,
        hashed_password: str,
        *,
        name: str | None = None,
        role: Role = Role.USER,
        is_verified: bool = False,
    ) -> User:
        """Create a new user.

        Args:
            email: User's email address.
            hashed_password: Bcrypt-hashed password.
            name: Optional display name.
            role: Account role.
            is_verified: Initial verification state.

        Returns:
            The created User.

        Raises:
            UserAlreadyExistsError: If email already exists.
        """
        user_id = uuid4()
        email = email.lower()
        now = datetime.now(timezone.utc).isoformat()

        try:
            await self._db.execute(
                """
                INSERT INTO users (id, email, hashed_password, name, role,
                                   is_verified, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(user_id),
                    email,
                    hashed_password,
                    name,
                    role.value,
                    int(is_verified),
                    now,
                    now,
                ),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE constraint failed" in str(e):
                raise UserAlreadyExistsError(email) from e
            raise

        logger.info("user_created", user_id=str(user_id), email=email)

        return User(
            id=user_id,
            email=email,
            hashed_password=hashed_password,
            name=name,
            role=role,
            is_verified=is_verified,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email, or None if not found."""
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE email = ?",
            (email.lower(),),
        )

        if row is None:
            return None

        return User.from_row(dict(row))

    async def mark_verified(self, email: str) -> bool:
        """Set the verified flag for the user with this email.

        The flag is only ever set, never cleared.

        Returns:
            True if a user matched, False otherwise.
        """
        cursor = await self._db.execute(
            "UPDATE users SET is_verified = 1, updated_at = ? WHERE email = ?",
            (datetime.now(timezone.utc).isoformat(), email.lower()),
        )

        updated = cursor.rowcount > 0
        if updated:
            logger.info("user_verified", email=email.lower())
        return updated

    async def update_password(self, email: str, hashed_password: str) -> bool:
        """Replace the password hash of the user with this email.

        Returns:
            True if a user matched, False otherwise.
        """
        cursor = await self._db.execute(
            "UPDATE users SET hashed_password = ?, updated_at = ? WHERE email = ?",
            (hashed_password, datetime.now(timezone.utc).isoformat(), email.lower()),
        )

        updated = cursor.rowcount > 0
        if updated:
            logger.info("user_password_updated", email=email.lower())
        return updated

    async def delete(self, user_id: UUID) -> bool:
        """Delete a user.

        Returns:
            True if deleted, False if not found.
        """
        cursor = await self._db.execute(
            "DELETE FROM users WHERE id = ?",
            (str(user_id),),
        )

        deleted = cursor.rowcount > 0

        if deleted:
            logger.info("user_deleted", user_id=str(user_id))

        return deleted
