"""Integration tests for the presence router."""

import fakeredis.aioredis
from httpx import AsyncClient

from app.models.enums import Role
from tests.conftest import FrozenClock, headers_for, insert_user
from tests.conftest import test_session_factory as session_factory


class TestPresence:
    """Heartbeats and the admin presence list."""

    async def test_heartbeat_then_list(
        self,
        async_client: AsyncClient,
        fake_redis: fakeredis.aioredis.FakeRedis,
        app_clock: FrozenClock,
    ) -> None:
        from app.main import app

        async with session_factory() as session:
            user = await insert_user(session, "user@test.com")
            admin = await insert_user(session, "admin@test.com", role=Role.ADMIN)

        resp = await async_client.post(
            "/api/v1/presence/heartbeat", headers=headers_for(fake_redis, user)
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {"ok": True}

        app.state.presence_tracker.connection_opened(user.id)
        listing = await async_client.get(
            "/api/v1/presence/users", headers=headers_for(fake_redis, admin)
        )

        assert listing.status_code == 200
        rows = listing.json()["data"]
        assert [(r["user_id"], r["status"]) for r in rows] == [(user.id, "Online")]

    async def test_without_connection_user_is_offline(
        self,
        async_client: AsyncClient,
        fake_redis: fakeredis.aioredis.FakeRedis,
        app_clock: FrozenClock,
    ) -> None:
        async with session_factory() as session:
            user = await insert_user(session, "user@test.com")
            admin = await insert_user(session, "admin@test.com", role=Role.ADMIN)

        await async_client.post(
            "/api/v1/presence/heartbeat", headers=headers_for(fake_redis, user)
        )
        listing = await async_client.get(
            "/api/v1/presence/users", headers=headers_for(fake_redis, admin)
        )

        assert listing.json()["data"][0]["status"] == "Offline"

    async def test_list_is_admin_only(
        self,
        async_client: AsyncClient,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        async with session_factory() as session:
            user = await insert_user(session, "user@test.com")
        resp = await async_client.get(
            "/api/v1/presence/users", headers=headers_for(fake_redis, user)
        )
        assert resp.status_code == 403
