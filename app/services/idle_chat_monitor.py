"""Periodic sweep that closes chat sessions abandoned by their user."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, utc_now
from app.core.settings import ChatConfig
from app.realtime.broadcaster import Broadcaster
from app.realtime.events import (
    REASON_IDLE_TERMINATED,
    RECEIVE_MESSAGE,
    SESSION_ENDED,
    idle_notice_payload,
    session_ended_payload,
)
from app.repositories.chat_repo import ChatRepository
from app.repositories.settings_repo import SettingsRepository
from app.repositories.user_repo import UserRepository
from app.services.chat_service import ChatService
from app.services.periodic_worker import PeriodicWorker
from app.services.settings_service import ChatSettingsService

logger = structlog.get_logger()


class IdleChatMonitor(PeriodicWorker):
    """Posts the idle notice and ends each idle session, one at a time."""

    name = "idle-chat-monitor"

    def __init__(
        self,
        broadcaster: Broadcaster,
        interval_seconds: float,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock = utc_now,
        config: ChatConfig | None = None,
    ) -> None:
        super().__init__(interval_seconds, session_factory)
        self._broadcaster = broadcaster
        self._clock = clock
        self._config = config

    def _chat_service(self, session: AsyncSession) -> ChatService:
        return ChatService(
            chat_repo=ChatRepository(session),
            user_repo=UserRepository(session),
            settings_service=ChatSettingsService(
                SettingsRepository(session), session, self._clock
            ),
            session=session,
            clock=self._clock,
            config=self._config,
        )

    async def tick(self, session: AsyncSession) -> None:
        service = self._chat_service(session)
        session_keys = await service.get_session_keys_for_idle_termination()
        if session_keys:
            logger.info("Idle sessions found", count=len(session_keys))

        for session_key in session_keys:
            if self.stopping:
                break
            try:
                result = await service.send_idle_termination_if_needed(session_key)
            except Exception:
                logger.exception("Idle termination failed", session_key=session_key)
                await session.rollback()
                continue
            if result is None:
                continue

            await self._broadcaster.broadcast_to_session(
                session_key, RECEIVE_MESSAGE, idle_notice_payload(result)
            )
            await self._broadcaster.broadcast_to_session(
                session_key,
                SESSION_ENDED,
                session_ended_payload(
                    session_key, REASON_IDLE_TERMINATED, result.created_at
                ),
            )
