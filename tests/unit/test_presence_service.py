"""Tests for PresenceService."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import ensure_utc
from app.core.settings import PresenceConfig
from app.models.enums import PresenceStatus, Role
from app.repositories.user_repo import UserRepository
from app.services.presence_service import PresenceService
from app.services.presence_tracker import PresenceTracker
from tests.conftest import BASE_TIME, FrozenClock, insert_user

CONFIG = PresenceConfig(idle_seconds=30, offline_seconds=120, sweep_interval_seconds=10)


@pytest.fixture
def tracker(clock: FrozenClock) -> PresenceTracker:
    return PresenceTracker(CONFIG, clock)


@pytest.fixture
def service(
    db_session: AsyncSession, tracker: PresenceTracker, clock: FrozenClock
) -> PresenceService:
    return PresenceService(UserRepository(db_session), tracker, db_session, clock)


class TestHeartbeat:
    """Heartbeats persist last_seen and the online flag."""

    async def test_update_heartbeat(
        self,
        service: PresenceService,
        db_session: AsyncSession,
        clock: FrozenClock,
    ) -> None:
        user = await insert_user(db_session, "hb@test.com", last_seen=BASE_TIME)
        clock.advance(seconds=20)

        await service.update_heartbeat(user.id, Role.USER)

        await db_session.refresh(user)
        assert user.is_online is True
        assert ensure_utc(user.last_seen) == clock()

    async def test_unknown_user_ignored(self, service: PresenceService) -> None:
        await service.update_heartbeat(404, Role.USER)


class TestPresenceList:
    """Admin dashboard listing."""

    async def test_lists_only_end_users(
        self,
        service: PresenceService,
        db_session: AsyncSession,
        tracker: PresenceTracker,
    ) -> None:
        online = await insert_user(db_session, "on@test.com", last_seen=BASE_TIME)
        offline = await insert_user(db_session, "off@test.com", last_seen=BASE_TIME)
        await insert_user(
            db_session, "admin@test.com", role=Role.ADMIN, last_seen=BASE_TIME
        )
        tracker.connection_opened(online.id)

        rows = await service.get_user_presence_list()

        assert {r.user_id: r.status for r in rows} == {
            online.id: PresenceStatus.ONLINE,
            offline.id: PresenceStatus.OFFLINE,
        }
        assert rows[0].user_name_or_email == "on@test.com"


class TestDetectChanges:
    """Sweeps report transitions and clear the persisted flag."""

    async def test_offline_transition_clears_flag(
        self,
        service: PresenceService,
        db_session: AsyncSession,
        tracker: PresenceTracker,
        clock: FrozenClock,
    ) -> None:
        user = await insert_user(
            db_session, "u@test.com", last_seen=BASE_TIME, is_online=True
        )
        tracker.connection_opened(user.id)

        first = await service.detect_presence_changes()
        assert [(c.user_id, c.status) for c in first] == [
            (user.id, PresenceStatus.ONLINE)
        ]

        clock.advance(seconds=121)
        second = await service.detect_presence_changes()

        assert [(c.user_id, c.status) for c in second] == [
            (user.id, PresenceStatus.OFFLINE)
        ]
        await db_session.refresh(user)
        assert user.is_online is False

    async def test_no_changes_second_time(
        self, service: PresenceService, db_session: AsyncSession
    ) -> None:
        await insert_user(db_session, "u@test.com", last_seen=BASE_TIME)
        await service.detect_presence_changes()
        assert await service.detect_presence_changes() == []

    async def test_heartbeat_then_idle(
        self,
        service: PresenceService,
        db_session: AsyncSession,
        tracker: PresenceTracker,
        clock: FrozenClock,
    ) -> None:
        user = await insert_user(db_session, "u@test.com", last_seen=BASE_TIME)
        tracker.connection_opened(user.id)
        await service.detect_presence_changes()

        clock.advance(seconds=45)
        changes = await service.detect_presence_changes()

        assert [c.status for c in changes] == [PresenceStatus.IDLE]
