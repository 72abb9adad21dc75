"""Broadcast capability the services and workers publish through."""

from typing import Any, Protocol


class Broadcaster(Protocol):
    """Fire-and-forget fan-out; delivery is never confirmed to the caller."""

    async def broadcast_to_session(
        self, session_key: str, event: str, data: dict[str, Any]
    ) -> None: ...

    async def broadcast_to_admins(self, event: str, data: dict[str, Any]) -> None: ...
