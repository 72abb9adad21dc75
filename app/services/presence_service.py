"""Presence persistence: heartbeats, the admin presence list, change sweeps."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, ensure_utc, utc_now
from app.models.enums import PresenceStatus, Role
from app.repositories.user_repo import UserRepository
from app.schemas.presence_schema import PresenceChange, UserPresence
from app.services.presence_tracker import PresenceTracker

logger = structlog.get_logger()


class PresenceService:
    """Writes heartbeat fields and derives statuses through the tracker."""

    def __init__(
        self,
        user_repo: UserRepository,
        tracker: PresenceTracker,
        session: AsyncSession,
        clock: Clock = utc_now,
    ) -> None:
        self._user_repo = user_repo
        self._tracker = tracker
        self._session = session
        self._clock = clock

    async def update_heartbeat(self, user_id: int, role: Role | str | None) -> None:
        """Mark the caller online now; unknown users are ignored."""
        user = await self._user_repo.find_by_id(user_id)
        if user is None:
            logger.warning("Heartbeat for unknown user", user_id=user_id)
            return

        parsed = Role.parse(role) if role else None
        await self._user_repo.record_heartbeat(user, self._clock(), parsed)
        await self._session.commit()

    async def get_user_presence_list(self) -> list[UserPresence]:
        """Derived status of every end user."""
        users = await self._user_repo.find_by_role(Role.USER)
        now = self._clock()
        return [
            UserPresence(
                user_id=u.id,
                user_name_or_email=u.name_or_email,
                status=self._tracker.compute_status(u.id, u.last_seen, now),
                last_seen=ensure_utc(u.last_seen),
            )
            for u in users
        ]

    async def detect_presence_changes(self) -> list[PresenceChange]:
        """Statuses that changed since the last sweep.

        Users that dropped to Offline also get their persisted online flag
        cleared so inbox listings agree with the dashboard.
        """
        users = await self._user_repo.find_by_role(Role.USER)
        changes = self._tracker.detect_changes((u.id, u.last_seen) for u in users)

        gone_offline = [c.user_id for c in changes if c.status == PresenceStatus.OFFLINE]
        if gone_offline:
            await self._user_repo.mark_offline(gone_offline)
            await self._session.commit()

        for change in changes:
            logger.info(
                "Presence changed",
                user_id=change.user_id,
                status=change.status,
            )
        return changes
