"""Create tables and seed the accounts and settings the chat needs.

Usage:
    python -m scripts.seed_data --admin-email admin@test.com --admin-password Admin1234
    python -m scripts.seed_data --admin-email admin@test.com --admin-password Admin1234 \
        --sample-users 3

Running it again only fills in what is missing.
"""

import argparse
import asyncio
import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Base, async_session_factory, engine
from app.core.security import hash_password
from app.models.enums import Role
from app.models.user import User
from app.repositories.settings_repo import SettingsRepository
from app.repositories.user_repo import UserRepository
from app.services.settings_service import ChatSettingsService

SYSTEM_EMAIL = "system@livechat.local"
SYSTEM_USERNAME = "system"
SAMPLE_PASSWORD = "User1234"


async def _ensure_user(
    session: AsyncSession,
    email: str,
    username: str,
    password: str,
    role: Role,
) -> User:
    repo = UserRepository(session)
    existing = await repo.find_by_login(email) or await repo.find_by_login(username)
    if existing:
        print(f"{role} '{existing.email}' already exists (id={existing.id}).")
        return existing

    user = await repo.create(
        email=email,
        hashed_password=await hash_password(password),
        username=username,
        role=role,
    )
    await session.commit()
    print(f"{role} created: {email} (id={user.id})")
    return user


async def seed(
    admin_email: str,
    admin_password: str,
    admin_username: str,
    sample_users: int,
) -> None:
    """Seed an admin, the System sender, sample users and the settings row."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        await _ensure_user(
            session, admin_email, admin_username, admin_password, Role.ADMIN
        )
        # Never logs in; the password only has to be unguessable.
        await _ensure_user(
            session,
            SYSTEM_EMAIL,
            SYSTEM_USERNAME,
            secrets.token_urlsafe(32),
            Role.SYSTEM,
        )
        for i in range(1, sample_users + 1):
            await _ensure_user(
                session,
                f"user{i}@livechat.local",
                f"user{i}",
                SAMPLE_PASSWORD,
                Role.USER,
            )

        row = await ChatSettingsService(SettingsRepository(session), session).get()
        print(
            "Chat settings: "
            f"max_user_message_length={row.max_user_message_length}, "
            f"max_session_duration_minutes={row.max_session_duration_minutes}"
        )

    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed live chat data")
    parser.add_argument("--admin-email", required=True, help="Admin email")
    parser.add_argument("--admin-password", required=True, help="Admin password")
    parser.add_argument("--admin-username", default="admin", help="Admin username")
    parser.add_argument(
        "--sample-users",
        type=int,
        default=0,
        help=f"Number of sample end users (password '{SAMPLE_PASSWORD}')",
    )
    args = parser.parse_args()

    asyncio.run(
        seed(
            args.admin_email,
            args.admin_password,
            args.admin_username,
            args.sample_users,
        )
    )


if __name__ == "__main__":
    main()
