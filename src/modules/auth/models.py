"""User domain model."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class Role(StrEnum):
    """Account roles. Stored by value."""

    USER = "user"
    ADMIN = "admin"


@dataclass
class User:
    """User domain model.

    Attributes:
        id: Unique user identifier.
        email: Lower-cased email address, the identity key.
        hashed_password: Bcrypt-hashed password.
        name: Optional display name.
        role: Account role.
        is_verified: Whether the email address has been confirmed by OTP.
        created_at: When the user was created.
        updated_at: When the user was last updated.
    """

    id: UUID
    email: str
    hashed_password: str
    name: str | None
    role: Role
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: dict[str, object]) -> "User":
        """Create a User from a database row."""
        return cls(
            id=UUID(str(row["id"])),
            email=str(row["email"]),
            hashed_password=str(row["hashed_password"]),
            name=str(row["name"]) if row["name"] else None,
            role=Role(str(row["role"])),
            is_verified=bool(row["is_verified"]),
            created_at=datetime.fromisoformat(str(row["created_at"])),
            updated_at=datetime.fromisoformat(str(row["updated_at"])),
        )
