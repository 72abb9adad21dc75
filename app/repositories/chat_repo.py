"""Chat repository for session and message database operations."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat_message import ChatMessage
from app.models.chat_session import ChatSession
from app.models.enums import MessageType, Role
from app.models.user import User


@dataclass(frozen=True)
class MessageWithRole:
    """Immutable history row: a message plus its sender's role."""

    message: ChatMessage
    sender_role: Role


@dataclass(frozen=True)
class InboxSession:
    """Active session visible to an admin's inbox."""

    id: int
    user_id: int
    session_key: str


class ChatRepository:
    """Encapsulates chat session and message database queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ==================== Sessions ====================

    async def find_active_session_by_key(self, session_key: str) -> ChatSession | None:
        """Find an active chat session by its public key."""
        result = await self._session.execute(
            select(ChatSession).where(
                ChatSession.session_key == session_key,
                ChatSession.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def find_session_by_key(self, session_key: str) -> ChatSession | None:
        """Find a chat session by key regardless of state."""
        result = await self._session.execute(
            select(ChatSession).where(ChatSession.session_key == session_key)
        )
        return result.scalar_one_or_none()

    async def find_active_session_for_user(self, user_id: int) -> ChatSession | None:
        """Find the user's active session, whoever the admin is."""
        result = await self._session.execute(
            select(ChatSession)
            .where(ChatSession.user_id == user_id, ChatSession.is_active.is_(True))
            .order_by(ChatSession.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_session(
        self,
        user_id: int,
        session_key: str,
        started_at: datetime,
        max_duration_minutes: int,
        admin_id: int | None = None,
    ) -> ChatSession:
        """Create a new active chat session."""
        session = ChatSession(
            session_key=session_key,
            user_id=user_id,
            admin_id=admin_id,
            is_active=True,
            created_at=started_at,
            started_at=started_at,
            max_duration_minutes=max_duration_minutes,
            last_user_message_at=started_at,
        )
        self._session.add(session)
        await self._session.flush()
        await self._session.refresh(session)
        return session

    async def claim_session(self, session_id: int, admin_id: int) -> bool:
        """Assign ``admin_id`` only if the session is still unassigned.

        Returns True when this call performed the assignment.
        """
        result = await self._session.execute(
            update(ChatSession)
            .where(ChatSession.id == session_id, ChatSession.admin_id.is_(None))
            .values(admin_id=admin_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def reload(self, session: ChatSession) -> ChatSession:
        """Re-read a session row after a conditional update."""
        await self._session.refresh(session)
        return session

    async def apply_duration_policy(
        self,
        session: ChatSession,
        max_duration_minutes: int,
        started_at: datetime,
    ) -> None:
        """Snapshot the current duration setting and backfill the timer epoch."""
        session.max_duration_minutes = max_duration_minutes
        if session.started_at is None:
            session.started_at = started_at
        await self._session.flush()

    async def close_session(self, session: ChatSession) -> None:
        """Deactivate a session; closed sessions are never reopened."""
        session.is_active = False
        await self._session.flush()

    async def touch_last_user_message(
        self, session: ChatSession, sent_at: datetime
    ) -> None:
        """Record the time of the latest user-authored message."""
        session.last_user_message_at = sent_at
        await self._session.flush()

    async def find_inbox_sessions(self, admin_id: int) -> list[InboxSession]:
        """Active sessions assigned to ``admin_id`` or still unassigned."""
        result = await self._session.execute(
            select(ChatSession.id, ChatSession.user_id, ChatSession.session_key)
            .where(
                ChatSession.is_active.is_(True),
                or_(ChatSession.admin_id == admin_id, ChatSession.admin_id.is_(None)),
            )
            .order_by(ChatSession.id.asc())
        )
        return [
            InboxSession(id=row.id, user_id=row.user_id, session_key=row.session_key)
            for row in result
        ]

    async def find_idle_session_keys(
        self, cutoff: datetime, limit: int
    ) -> list[str]:
        """Keys of active sessions silent since before ``cutoff``, oldest first."""
        result = await self._session.execute(
            select(ChatSession.session_key)
            .where(
                ChatSession.is_active.is_(True),
                ChatSession.idle_termination_sent_at.is_(None),
                ChatSession.last_user_message_at < cutoff,
            )
            .order_by(ChatSession.last_user_message_at.asc(), ChatSession.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def terminate_idle_session(
        self, session_id: int, terminated_at: datetime, cutoff: datetime
    ) -> bool:
        """Close the session if it is still idle and not yet terminated.

        Returns True when the row was updated by this call.
        """
        result = await self._session.execute(
            update(ChatSession)
            .where(
                ChatSession.id == session_id,
                ChatSession.is_active.is_(True),
                ChatSession.idle_termination_sent_at.is_(None),
                ChatSession.last_user_message_at < cutoff,
            )
            .values(idle_termination_sent_at=terminated_at, is_active=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ==================== Messages ====================

    async def create_message(
        self,
        session_id: int,
        sender_id: int,
        content: str,
        message_type: MessageType,
        created_at: datetime,
    ) -> ChatMessage:
        """Append a message to a session."""
        message = ChatMessage(
            session_id=session_id,
            sender_id=sender_id,
            content=content,
            type=message_type,
            is_seen=False,
            created_at=created_at,
        )
        self._session.add(message)
        await self._session.flush()
        await self._session.refresh(message)
        return message

    async def find_messages_with_roles(
        self, session_id: int, limit: int
    ) -> list[MessageWithRole]:
        """Oldest ``limit`` messages of a session, id breaking timestamp ties."""
        result = await self._session.execute(
            select(ChatMessage, User.role)
            .join(User, User.id == ChatMessage.sender_id)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .limit(limit)
        )
        return [MessageWithRole(message=msg, sender_role=role) for msg, role in result]

    async def count_unseen_from_sender(self, session_id: int, sender_id: int) -> int:
        """Count unseen messages in a session authored by ``sender_id``."""
        result = await self._session.execute(
            select(func.count(ChatMessage.id)).where(
                ChatMessage.session_id == session_id,
                ChatMessage.sender_id == sender_id,
                ChatMessage.is_seen.is_(False),
            )
        )
        return int(result.scalar_one())

    async def count_unseen_for_admin(
        self, session_ids: Sequence[int], admin_id: int
    ) -> dict[int, int]:
        """Unseen messages not written by ``admin_id``, keyed by session owner."""
        if not session_ids:
            return {}
        result = await self._session.execute(
            select(ChatSession.user_id, func.count(ChatMessage.id))
            .select_from(ChatMessage)
            .join(ChatSession, ChatSession.id == ChatMessage.session_id)
            .where(
                and_(
                    ChatMessage.session_id.in_(session_ids),
                    ChatMessage.is_seen.is_(False),
                    ChatMessage.sender_id != admin_id,
                )
            )
            .group_by(ChatSession.user_id)
        )
        return {user_id: int(count) for user_id, count in result}

    async def mark_seen_from_sender(self, session_id: int, sender_id: int) -> list[int]:
        """Flip unseen messages from ``sender_id`` to seen; return their ids."""
        result = await self._session.execute(
            select(ChatMessage.id)
            .where(
                ChatMessage.session_id == session_id,
                ChatMessage.sender_id == sender_id,
                ChatMessage.is_seen.is_(False),
            )
            .order_by(ChatMessage.id.asc())
        )
        message_ids = list(result.scalars().all())
        if not message_ids:
            return []
        await self._session.execute(
            update(ChatMessage)
            .where(ChatMessage.id.in_(message_ids), ChatMessage.is_seen.is_(False))
            .values(is_seen=True)
            .execution_options(synchronize_session="fetch")
        )
        return message_ids
