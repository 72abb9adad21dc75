"""Presence tracking configuration."""

from pydantic import BaseModel


class PresenceConfig(BaseModel, frozen=True):
    """Heartbeat thresholds and presence sweep interval."""

    idle_seconds: int
    offline_seconds: int
    sweep_interval_seconds: int
