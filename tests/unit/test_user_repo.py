"""Tests for UserRepository."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import mysql
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import ensure_utc
from app.models.enums import Role
from app.repositories.user_repo import UserRepository
from tests.conftest import BASE_TIME, insert_user


@pytest.fixture
def repo(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


class TestUserRepository:
    """Tests for user CRUD operations."""

    async def test_create_user(self, repo: UserRepository) -> None:
        user = await repo.create(
            email="new@test.com",
            hashed_password="hashed",
            username="newuser",
        )
        assert user.id is not None
        assert user.email == "new@test.com"
        assert user.role == Role.USER
        assert user.is_online is False

    async def test_find_by_email(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        await repo.create(email="find@test.com", hashed_password="h", username="u")
        await db_session.commit()
        found = await repo.find_by_email("find@test.com")
        assert found is not None
        assert found.email == "find@test.com"

    async def test_find_by_email_not_found(self, repo: UserRepository) -> None:
        assert await repo.find_by_email("nonexistent@test.com") is None

    async def test_find_by_login_matches_username(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        await insert_user(db_session, "alice@test.com", username="alice")
        found = await repo.find_by_login("alice")
        assert found is not None
        assert found.email == "alice@test.com"

    async def test_exists(self, repo: UserRepository, db_session: AsyncSession) -> None:
        user = await insert_user(db_session, "exists@test.com")
        assert await repo.exists(user.id) is True
        assert await repo.exists(user.id + 100) is False

    async def test_exists_by_email_or_username(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        await insert_user(db_session, "taken@test.com", username="taken")
        assert await repo.exists_by_email_or_username("other@test.com", "taken")
        assert await repo.exists_by_email_or_username("taken@test.com", "fresh")
        assert not await repo.exists_by_email_or_username("x@test.com", "x")

    async def test_lock(self, repo: UserRepository, db_session: AsyncSession) -> None:
        user = await insert_user(db_session, "lock@test.com")
        assert await repo.lock(user.id) is True
        assert await repo.lock(user.id + 100) is False

    async def test_lock_selects_for_update(self) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = 3
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        assert await UserRepository(session).lock(3) is True

        statement = session.execute.await_args.args[0]
        compiled = str(statement.compile(dialect=mysql.dialect()))
        assert compiled.endswith("FOR UPDATE")


class TestRoleQueries:
    """Listing by role and locating the system sender."""

    async def test_find_by_role_orders_and_limits(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        first = await insert_user(db_session, "u1@test.com")
        second = await insert_user(db_session, "u2@test.com")
        await insert_user(db_session, "u3@test.com")
        await insert_user(db_session, "admin@test.com", role=Role.ADMIN)

        users = await repo.find_by_role(Role.USER, limit=2)

        assert [u.id for u in users] == [first.id, second.id]

    async def test_find_system_sender(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        assert await repo.find_system_sender() is None
        system = await insert_user(db_session, "system@test.com", role=Role.SYSTEM)
        found = await repo.find_system_sender()
        assert found is not None
        assert found.id == system.id

    async def test_inactive_system_sender_ignored(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        system = await insert_user(db_session, "system@test.com", role=Role.SYSTEM)
        system.is_active = False
        await db_session.commit()
        assert await repo.find_system_sender() is None


class TestPresenceFields:
    """Heartbeat and offline bookkeeping."""

    async def test_record_heartbeat(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        user = await insert_user(db_session, "hb@test.com")
        await repo.record_heartbeat(user, BASE_TIME)
        await db_session.commit()
        await db_session.refresh(user)
        assert user.is_online is True
        assert ensure_utc(user.last_seen) == BASE_TIME

    async def test_record_heartbeat_resyncs_role(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        user = await insert_user(db_session, "drift@test.com")
        await repo.record_heartbeat(user, BASE_TIME, Role.ADMIN)
        assert user.role == Role.ADMIN

    async def test_mark_offline(
        self, repo: UserRepository, db_session: AsyncSession
    ) -> None:
        a = await insert_user(db_session, "a@test.com", is_online=True)
        b = await insert_user(db_session, "b@test.com", is_online=True)

        await repo.mark_offline([a.id])
        await db_session.commit()
        await db_session.refresh(a)
        await db_session.refresh(b)

        assert a.is_online is False
        assert b.is_online is True

    async def test_mark_offline_empty_is_noop(self, repo: UserRepository) -> None:
        await repo.mark_offline([])
