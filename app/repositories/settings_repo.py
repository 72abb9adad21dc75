"""Chat settings repository (single-row table)."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat_settings import ChatSettings


class SettingsRepository:
    """Reads and writes the singleton chat settings row."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find(self) -> ChatSettings | None:
        """Return the settings row if it exists."""
        result = await self._session.execute(
            select(ChatSettings).order_by(ChatSettings.id.asc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        max_user_message_length: int,
        max_session_duration_minutes: int,
        updated_at: datetime,
    ) -> ChatSettings:
        """Insert the settings row."""
        row = ChatSettings(
            max_user_message_length=max_user_message_length,
            max_session_duration_minutes=max_session_duration_minutes,
            updated_at=updated_at,
        )
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def save(
        self,
        row: ChatSettings,
        updated_at: datetime,
        admin_id: int,
        *,
        max_user_message_length: int | None = None,
        max_session_duration_minutes: int | None = None,
    ) -> ChatSettings:
        """Apply changed limits and stamp who changed them."""
        if max_user_message_length is not None:
            row.max_user_message_length = max_user_message_length
        if max_session_duration_minutes is not None:
            row.max_session_duration_minutes = max_session_duration_minutes
        row.updated_at = updated_at
        row.updated_by_admin_id = admin_id
        await self._session.flush()
        return row
