"""Periodic presence sweep that announces status changes to admins."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, utc_now
from app.realtime.broadcaster import Broadcaster
from app.realtime.events import USER_PRESENCE_CHANGED, presence_payload
from app.repositories.user_repo import UserRepository
from app.services.periodic_worker import PeriodicWorker
from app.services.presence_service import PresenceService
from app.services.presence_tracker import PresenceTracker

logger = structlog.get_logger()


class PresenceMonitor(PeriodicWorker):
    """Sole driver of ``PresenceService.detect_presence_changes``."""

    name = "presence-monitor"

    def __init__(
        self,
        tracker: PresenceTracker,
        broadcaster: Broadcaster,
        interval_seconds: float,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(interval_seconds, session_factory)
        self._tracker = tracker
        self._broadcaster = broadcaster
        self._clock = clock

    async def tick(self, session: AsyncSession) -> None:
        service = PresenceService(
            UserRepository(session), self._tracker, session, self._clock
        )
        changes = await service.detect_presence_changes()
        for change in changes:
            await self._broadcaster.broadcast_to_admins(
                USER_PRESENCE_CHANGED, presence_payload(change)
            )
