"""Real-time event names and payload builders."""

from datetime import datetime
from typing import Any

from fastapi.encoders import jsonable_encoder

from app.core.clock import ensure_utc
from app.models.chat_message import ChatMessage
from app.models.enums import PresenceStatus, Role
from app.schemas.chat_schema import IdleTerminationResult
from app.schemas.presence_schema import PresenceChange

RECEIVE_MESSAGE = "ReceiveMessage"
UNREAD_COUNT_CHANGED = "UnreadCountChanged"
SESSION_ENDED = "SessionEnded"
MESSAGE_STATUS_CHANGED = "MessageStatusChanged"
USER_PRESENCE_CHANGED = "UserPresenceChanged"
JOINED = "Joined"
LEFT = "Left"
ERROR = "Error"

ADMINS_GROUP = "admins"

REASON_DURATION_EXPIRED = "DurationExpired"
REASON_IDLE_TERMINATED = "IdleTerminated"


def frame(event: str, data: dict[str, Any]) -> dict[str, Any]:
    """Outbound WebSocket frame."""
    return {"event": event, "data": jsonable_encoder(data)}


def message_payload(message: ChatMessage, session_key: str, role: Role) -> dict[str, Any]:
    return {
        "id": message.id,
        "chat_session_id": session_key,
        "sender_id": message.sender_id,
        "role": role,
        "content": message.content,
        "message_type": message.type,
        "is_seen": message.is_seen,
        "created_at": ensure_utc(message.created_at),
    }


def idle_notice_payload(result: IdleTerminationResult) -> dict[str, Any]:
    return {
        "id": result.message_id,
        "chat_session_id": result.session_key,
        "sender_id": result.sender_id,
        "role": Role.SYSTEM,
        "content": result.content,
        "message_type": "System",
        "is_seen": False,
        "created_at": result.created_at,
    }


def unread_payload(user_id: int, session_key: str, unread_count: int) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "chat_session_id": session_key,
        "unread_count": unread_count,
    }


def session_ended_payload(
    session_key: str, reason: str, ended_at: datetime
) -> dict[str, Any]:
    return {"chat_session_id": session_key, "reason": reason, "ended_at": ended_at}


def seen_payload(session_key: str, message_ids: list[int]) -> dict[str, Any]:
    return {"chat_session_id": session_key, "message_ids": message_ids, "status": "Seen"}


def presence_payload(change: PresenceChange) -> dict[str, Any]:
    return {
        "user_id": change.user_id,
        "status": PresenceStatus(change.status),
        "last_seen": change.last_seen,
    }
