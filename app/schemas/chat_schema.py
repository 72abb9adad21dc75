"""Chat request/response schemas and service-level command objects."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from app.core.clock import ensure_utc
from app.models.chat_message import ChatMessage
from app.models.chat_session import ChatSession
from app.models.enums import MessageType, Role

# --- Service commands and results ---


@dataclass(frozen=True)
class SendMessageCommand:
    """Unvalidated send request; the chat service checks every field."""

    chat_session_id: str | None
    sender_id: int | None
    role: Role | str | None
    content: str | None
    message_type: MessageType = MessageType.TEXT


@dataclass(frozen=True)
class SendMessageResult:
    """Persisted message plus what the broadcaster needs to fan it out.

    ``session_user_id`` and ``unread_count_for_admin`` are only set for
    user-authored messages.
    """

    message: ChatMessage
    session_key: str
    role: Role
    session_user_id: int | None = None
    unread_count_for_admin: int | None = None


@dataclass(frozen=True)
class IdleTerminationResult:
    """System notice appended when a silent session was closed."""

    session_key: str
    message_id: int
    sender_id: int
    content: str
    created_at: datetime


# --- API requests ---


class SendMessageRequest(BaseModel):
    """Body for POST /chat/send. Emptiness and length are checked by the service."""

    chat_session_id: str = ""
    text: str = ""
    message_type: str = Field(default="Text", max_length=20)


class OpenChatRequest(BaseModel):
    """Admin request to open (or create) a user's session."""

    user_id: int = Field(..., ge=1)


class MarkSeenRequest(BaseModel):
    """Body for POST /chat/mark-seen."""

    chat_session_id: str = Field(..., min_length=1)


# --- API responses ---


class SendMessageResponse(BaseModel):
    """Acknowledgement for a stored message."""

    model_config = ConfigDict(frozen=True)

    message_id: int
    chat_session_id: str
    sent_at: datetime
    status: str = "Sent"


class OpenChatResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    chat_session_id: str
    user_id: int


class MySessionResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    chat_session_id: str


class MarkSeenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message_ids: list[int]


class ChatHistoryItem(BaseModel):
    """Single message in a session history."""

    model_config = ConfigDict(frozen=True)

    id: int
    content: str
    role: Role
    sender_id: int
    is_seen: bool
    created_at: datetime
    message_type: MessageType


class ChatSessionSummary(BaseModel):
    """Admin inbox row for one end user."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    user_name_or_email: str
    chat_session_id: str | None = None
    unread_count: int = 0
    is_online: bool = False
    last_seen: datetime | None = None


class ChatSessionInfoResponse(BaseModel):
    """Countdown data for the session timer shown in the client."""

    model_config = ConfigDict(frozen=True)

    chat_session_id: str
    started_at: datetime | None
    max_duration_minutes: int
    remaining_minutes: float | None = None
    is_expired: bool = False

    @classmethod
    def from_session(cls, session: ChatSession, now: datetime) -> "ChatSessionInfoResponse":
        """Build the countdown view; unlimited sessions have no remaining time."""
        started_at = ensure_utc(session.started_at) if session.started_at else None
        limit = session.max_duration_minutes
        if limit <= 0 or started_at is None:
            return cls(
                chat_session_id=session.session_key,
                started_at=started_at,
                max_duration_minutes=limit,
            )
        remaining = (started_at + timedelta(minutes=limit)) - now
        remaining_minutes = max(remaining.total_seconds() / 60, 0.0)
        return cls(
            chat_session_id=session.session_key,
            started_at=started_at,
            max_duration_minutes=limit,
            remaining_minutes=round(remaining_minutes, 2),
            is_expired=remaining_minutes <= 0,
        )
