"""Process-local presence state: open connections and last broadcast status.

One instance is owned by the application and shared by the WebSocket hub,
the presence service and the presence monitor. Nothing here survives a
restart; the worst case afterwards is one redundant status broadcast.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

import structlog

from app.core.clock import Clock, ensure_utc, utc_now
from app.core.config import settings
from app.core.settings import PresenceConfig
from app.models.enums import PresenceStatus
from app.schemas.presence_schema import PresenceChange

logger = structlog.get_logger()


class PresenceTracker:
    """Counts open connections per user and derives Online/Idle/Offline."""

    def __init__(
        self, config: PresenceConfig | None = None, clock: Clock = utc_now
    ) -> None:
        self._config = config or settings.presence
        self._clock = clock
        self._connections: dict[int, int] = {}
        self._last_known: dict[int, PresenceStatus] = {}

    def connection_opened(self, user_id: int | None) -> None:
        if not user_id:
            return
        self._connections[user_id] = self._connections.get(user_id, 0) + 1

    def connection_closed(self, user_id: int | None) -> None:
        if not user_id:
            return
        current = self._connections.get(user_id)
        if current is None:
            return
        if current <= 1:
            del self._connections[user_id]
        else:
            self._connections[user_id] = current - 1

    def connection_count(self, user_id: int) -> int:
        return self._connections.get(user_id, 0)

    def compute_status(
        self, user_id: int, last_seen: datetime, now: datetime | None = None
    ) -> PresenceStatus:
        """Classify a user from heartbeat age and open connections.

        A heartbeat older than the offline cutoff wins over any connection
        count, and the stale count is dropped. Without an open connection
        the user is Offline even when the heartbeat is recent.
        """
        now = now or self._clock()
        last_seen = ensure_utc(last_seen)
        offline_cutoff = now - timedelta(seconds=self._config.offline_seconds)
        idle_cutoff = now - timedelta(seconds=self._config.idle_seconds)

        if last_seen < offline_cutoff:
            self._connections.pop(user_id, None)
            return PresenceStatus.OFFLINE

        if self._connections.get(user_id, 0) > 0:
            if last_seen < idle_cutoff:
                return PresenceStatus.IDLE
            return PresenceStatus.ONLINE

        return PresenceStatus.OFFLINE

    def detect_changes(
        self, users: Iterable[tuple[int, datetime]]
    ) -> list[PresenceChange]:
        """Recompute every status and keep only those that differ from the cache.

        Must be driven by a single periodic caller; concurrent callers would
        race on the last-known cache.
        """
        now = self._clock()
        changes: list[PresenceChange] = []
        for user_id, last_seen in users:
            status = self.compute_status(user_id, last_seen, now)
            if self._last_known.get(user_id) != status:
                self._last_known[user_id] = status
                changes.append(
                    PresenceChange(
                        user_id=user_id, status=status, last_seen=ensure_utc(last_seen)
                    )
                )
        if changes:
            logger.debug("Presence changes detected", count=len(changes))
        return changes

    def reset(self) -> None:
        """Forget all connections and cached statuses."""
        self._connections.clear()
        self._last_known.clear()
