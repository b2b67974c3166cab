#!/usr/bin/env python3
"""CLI script to seed user accounts without the OTP round-trip.

Usage:
    python scripts/create_user.py user@example.com password123
    python scripts/create_user.py admin@example.com password123 --role admin --name Ops
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the project root to path so `src` imports resolve
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import Settings
from src.infrastructure.database import close_database, init_database
from src.modules.auth.exceptions import UserAlreadyExistsError
from src.modules.auth.models import Role
from src.modules.auth.password import hash_password
from src.modules.auth.repository import UserRepository


async def create_user(
    email: str,
    password: str,
    *,
    name: str | None = None,
    role: Role = Role.USER,
    verified: bool = True,
) -> None:
    """Create a user in the database.

    Args:
        email: User's email address.
        password: User's password (will be hashed).
        name: Optional display name.
        role: Account role.
        verified: Whether the email counts as already confirmed.
    """
    settings = Settings()
    db = await init_database(settings.database_path)

    try:
        repo = UserRepository(db)
        user = await repo.create(
            email,
            hash_password(password),
            name=name,
            role=role,
            is_verified=verified,
        )

        print("✓ User created successfully")
        print(f"  ID:       {user.id}")
        print(f"  Email:    {user.email}")
        print(f"  Role:     {user.role.value}")
        print(f"  Verified: {user.is_verified}")

    except (UserAlreadyExistsError, ValueError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    finally:
        await close_database()


def main() -> None:
    """Parse arguments and create user."""
    parser = argparse.ArgumentParser(
        description="Create a user account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/create_user.py user@example.com password123
  python scripts/create_user.py admin@example.com password123 --role admin
        """,
    )

    parser.add_argument("email", help="User email address")
    parser.add_argument("password", help="User password")
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.USER.value,
        help="Account role (default: user)",
    )
    parser.add_argument(
        "--unverified",
        action="store_true",
        help="Leave the account pending email verification",
    )

    args = parser.parse_args()

    asyncio.run(
        create_user(
            args.email,
            args.password,
            name=args.name,
            role=Role(args.role),
            verified=not args.unverified,
        )
    )


if __name__ == "__main__":
    main()
