"""Chat settings API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ChatSettingsResponse(BaseModel):
    """Current admin-configurable limits."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    max_user_message_length: int
    max_session_duration_minutes: int
    updated_at: datetime


class UpdateChatSettingsRequest(BaseModel):
    """Partial update; each provided field is validated by the settings service."""

    max_user_message_length: int | None = None
    max_session_duration_minutes: int | None = None
