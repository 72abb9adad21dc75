"""In-process WebSocket hub: connections, groups and fan-out."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import WebSocket

from app.models.enums import Role
from app.realtime.events import ADMINS_GROUP, frame
from app.services.presence_tracker import PresenceTracker

logger = structlog.get_logger()


@dataclass(eq=False)
class Connection:
    """One open socket and the identity that opened it."""

    websocket: WebSocket
    user_id: int
    role: Role
    groups: set[str] = field(default_factory=set)


class ConnectionHub:
    """Tracks sockets per group and implements the broadcaster capability.

    Connect and disconnect are reported to the presence tracker. A target
    whose send fails is dropped; broadcasting never raises into the caller.
    """

    def __init__(self, tracker: PresenceTracker) -> None:
        self._tracker = tracker
        self._connections: set[Connection] = set()
        self._groups: dict[str, set[Connection]] = defaultdict(set)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def group_size(self, group: str) -> int:
        return len(self._groups.get(group, ()))

    async def connect(self, websocket: WebSocket, user_id: int, role: Role) -> Connection:
        await websocket.accept()
        connection = Connection(websocket=websocket, user_id=user_id, role=role)
        self._connections.add(connection)
        self._tracker.connection_opened(user_id)
        logger.info("WebSocket connected", user_id=user_id, role=role)
        return connection

    def disconnect(self, connection: Connection) -> None:
        if connection not in self._connections:
            return
        self._connections.discard(connection)
        for group in list(connection.groups):
            self._remove_from_group(connection, group)
        self._tracker.connection_closed(connection.user_id)
        logger.info("WebSocket disconnected", user_id=connection.user_id)

    def join(self, connection: Connection, group: str) -> None:
        self._groups[group].add(connection)
        connection.groups.add(group)

    def leave(self, connection: Connection, group: str) -> None:
        self._remove_from_group(connection, group)

    def join_admins(self, connection: Connection) -> bool:
        """Subscribe an admin socket to inbox and presence events."""
        if connection.role != Role.ADMIN:
            return False
        self.join(connection, ADMINS_GROUP)
        return True

    async def broadcast_to_session(
        self, session_key: str, event: str, data: dict[str, Any]
    ) -> None:
        await self._send_group(session_key, event, data)

    async def broadcast_to_admins(self, event: str, data: dict[str, Any]) -> None:
        await self._send_group(ADMINS_GROUP, event, data)

    async def send_to(
        self, connection: Connection, event: str, data: dict[str, Any]
    ) -> bool:
        """Send one frame; a failing socket is disconnected."""
        try:
            await connection.websocket.send_json(frame(event, data))
        except Exception:  # noqa: BLE001
            logger.warning(
                "Dropping unreachable connection",
                user_id=connection.user_id,
                event_name=event,
            )
            self.disconnect(connection)
            return False
        return True

    async def _send_group(self, group: str, event: str, data: dict[str, Any]) -> None:
        targets = list(self._groups.get(group, ()))
        if not targets:
            return
        for connection in targets:
            await self.send_to(connection, event, data)
        logger.debug(
            "Broadcast sent", group=group, event_name=event, targets=len(targets)
        )

    def _remove_from_group(self, connection: Connection, group: str) -> None:
        members = self._groups.get(group)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._groups[group]
        connection.groups.discard(group)
