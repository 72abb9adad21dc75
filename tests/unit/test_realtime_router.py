"""Tests for WebSocket frame handling and token checks."""

from unittest.mock import AsyncMock, MagicMock

import fakeredis.aioredis
import pytest

from app.api.v1.realtime_router import _authenticate, _handle_frame
from app.models.enums import Role
from app.models.user import User
from app.realtime.connection_hub import Connection, ConnectionHub
from app.realtime.events import ADMINS_GROUP, ERROR, JOINED, LEFT
from app.repositories.chat_repo import ChatRepository
from app.services.presence_tracker import PresenceTracker
from app.services.token_service import TokenService
from tests.conftest import BASE_TIME, FrozenClock, insert_user
from tests.conftest import test_session_factory as session_factory


@pytest.fixture
def hub() -> ConnectionHub:
    return ConnectionHub(PresenceTracker())


async def _connect(hub: ConnectionHub, user_id: int, role: Role) -> Connection:
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    return await hub.connect(ws, user_id, role)


def _last(connection: Connection) -> dict:
    return connection.websocket.send_json.await_args.args[0]


@pytest.fixture
async def owner() -> User:
    async with session_factory() as session:
        user = await insert_user(session, "owner@test.com")
        await ChatRepository(session).create_session(
            user_id=user.id,
            session_key="room",
            started_at=BASE_TIME,
            max_duration_minutes=0,
        )
        await session.commit()
        return user


class TestAuthenticate:
    """Query-string token validation."""

    async def test_valid_access_token(
        self, fake_redis: fakeredis.aioredis.FakeRedis
    ) -> None:
        token = TokenService(fake_redis).create_access_token(1, "a@b.com", Role.USER)
        payload = await _authenticate(token)
        assert payload is not None
        assert payload.user_id == 1

    async def test_missing_or_garbage(self) -> None:
        assert await _authenticate(None) is None
        assert await _authenticate("garbage") is None

    async def test_refresh_token_rejected(
        self, fake_redis: fakeredis.aioredis.FakeRedis
    ) -> None:
        token = TokenService(fake_redis).create_refresh_token(1, "a@b.com", Role.USER)
        assert await _authenticate(token) is None

    async def test_blacklisted_rejected(
        self, fake_redis: fakeredis.aioredis.FakeRedis
    ) -> None:
        ts = TokenService(fake_redis)
        token = ts.create_access_token(1, "a@b.com", Role.USER)
        payload = ts.decode_token(token)
        await ts.blacklist_token(payload.jti, payload.exp)
        assert await _authenticate(token) is None


class TestHandleFrame:
    """join/leave actions."""

    async def test_owner_joins_room(
        self, hub: ConnectionHub, owner: User, clock: FrozenClock
    ) -> None:
        conn = await _connect(hub, owner.id, Role.USER)

        await _handle_frame(
            hub,
            conn,
            {"action": "join_chat", "chat_session_id": "room"},
            session_factory,
            clock,
        )

        assert _last(conn) == {"event": JOINED, "data": {"chat_session_id": "room"}}
        assert hub.group_size("room") == 1

    async def test_stranger_cannot_join(
        self, hub: ConnectionHub, owner: User, clock: FrozenClock
    ) -> None:
        async with session_factory() as session:
            stranger = await insert_user(session, "stranger@test.com")
        conn = await _connect(hub, stranger.id, Role.USER)

        await _handle_frame(
            hub,
            conn,
            {"action": "join_chat", "chat_session_id": "room"},
            session_factory,
            clock,
        )

        assert _last(conn)["event"] == ERROR
        assert hub.group_size("room") == 0

    async def test_admin_join_does_not_claim(
        self, hub: ConnectionHub, owner: User, clock: FrozenClock
    ) -> None:
        async with session_factory() as session:
            admin = await insert_user(session, "support@test.com", role=Role.ADMIN)
        conn = await _connect(hub, admin.id, Role.ADMIN)

        await _handle_frame(
            hub,
            conn,
            {"action": "join_chat", "chat_session_id": "room"},
            session_factory,
            clock,
        )

        assert _last(conn)["event"] == JOINED
        async with session_factory() as session:
            chat = await ChatRepository(session).find_active_session_by_key("room")
        assert chat is not None
        assert chat.admin_id is None

    async def test_leave(self, hub: ConnectionHub, owner: User, clock: FrozenClock) -> None:
        conn = await _connect(hub, owner.id, Role.USER)
        hub.join(conn, "room")

        await _handle_frame(
            hub,
            conn,
            {"action": "leave_chat", "chat_session_id": "room"},
            session_factory,
            clock,
        )

        assert _last(conn)["event"] == LEFT
        assert hub.group_size("room") == 0

    async def test_admin_presence_group(
        self, hub: ConnectionHub, clock: FrozenClock
    ) -> None:
        admin = await _connect(hub, 1, Role.ADMIN)
        user = await _connect(hub, 2, Role.USER)

        await _handle_frame(
            hub, admin, {"action": "join_admin_presence"}, session_factory, clock
        )
        await _handle_frame(
            hub, user, {"action": "join_admin_presence"}, session_factory, clock
        )

        assert _last(admin) == {"event": JOINED, "data": {"group": ADMINS_GROUP}}
        assert _last(user)["event"] == ERROR
        assert hub.group_size(ADMINS_GROUP) == 1

    async def test_unknown_action(self, hub: ConnectionHub, clock: FrozenClock) -> None:
        conn = await _connect(hub, 1, Role.USER)
        await _handle_frame(hub, conn, {"action": "dance"}, session_factory, clock)
        assert _last(conn) == {"event": ERROR, "data": {"message": "Unknown action"}}
