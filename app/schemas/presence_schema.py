"""Presence API schemas."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.enums import PresenceStatus


@dataclass(frozen=True)
class PresenceChange:
    """A user whose derived status differs from the last broadcast one."""

    user_id: int
    status: PresenceStatus
    last_seen: datetime


class UserPresence(BaseModel):
    """Presence row shown on the admin dashboard."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    user_name_or_email: str
    status: PresenceStatus
    last_seen: datetime


class HeartbeatResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool = True
