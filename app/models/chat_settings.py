"""Admin-configurable chat limits (single row)."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class ChatSettings(Base):
    __tablename__ = "chat_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    max_user_message_length: Mapped[int] = mapped_column(
        Integer, nullable=False, default=500
    )
    max_session_duration_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=60
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_by_admin_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
