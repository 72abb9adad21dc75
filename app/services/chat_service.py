"""Chat session and message business logic."""

import uuid
from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, ensure_utc, utc_now
from app.core.config import settings
from app.core.exceptions import (
    AuthorizationError,
    InternalServiceError,
    InvalidInputError,
    SessionExpiredError,
    UserNotFoundError,
)
from app.core.settings import ChatConfig
from app.models.chat_session import ChatSession
from app.models.enums import MessageType, Role
from app.repositories.chat_repo import ChatRepository, MessageWithRole
from app.repositories.user_repo import UserRepository
from app.schemas.chat_schema import (
    ChatSessionInfoResponse,
    ChatSessionSummary,
    IdleTerminationResult,
    SendMessageCommand,
    SendMessageResult,
)
from app.services.settings_service import ChatSettingsService

logger = structlog.get_logger()

SESSION_NOT_FOUND = "Chat session not found."


def new_session_key() -> str:
    """Opaque public session id, also used as the broadcast group name."""
    return uuid.uuid4().hex


def is_duration_expired(
    started_at: datetime | None, max_duration_minutes: int, now: datetime
) -> bool:
    """True once a capped session has run for its full duration."""
    if max_duration_minutes <= 0 or started_at is None:
        return False
    return now - ensure_utc(started_at) >= timedelta(minutes=max_duration_minutes)


class ChatService:
    """Owns session lifecycle, message validation, receipts and idle sweeps.

    Each mutating operation commits once, after all validation, so callers
    may broadcast the returned result without announcing uncommitted state.
    """

    def __init__(
        self,
        chat_repo: ChatRepository,
        user_repo: UserRepository,
        settings_service: ChatSettingsService,
        session: AsyncSession,
        clock: Clock = utc_now,
        config: ChatConfig | None = None,
    ) -> None:
        self._chat_repo = chat_repo
        self._user_repo = user_repo
        self._settings = settings_service
        self._session = session
        self._clock = clock
        self._config = config or settings.chat

    # ==================== Sessions ====================

    async def get_or_create_session(self, user_id: int, admin_id: int) -> ChatSession:
        """Open the user's session for an admin, claiming it if unassigned.

        The user's active session is reused whoever owns it, so a user never
        has two. When another admin already owns it the session is still
        returned; send, history and mark-seen then reject this admin.
        """
        now = self._clock()
        max_duration = await self._settings.get_max_session_duration_minutes()
        if not await self._user_repo.lock(user_id):
            raise UserNotFoundError

        chat = await self._chat_repo.find_active_session_for_user(user_id)

        if chat is None:
            chat = await self._chat_repo.create_session(
                user_id=user_id,
                session_key=new_session_key(),
                started_at=now,
                max_duration_minutes=max_duration,
                admin_id=admin_id,
            )
            await self._session.commit()
            logger.info(
                "Chat session created",
                session_key=chat.session_key,
                user_id=user_id,
                admin_id=admin_id,
            )
            return chat

        if chat.admin_id is None:
            claimed = await self._chat_repo.claim_session(chat.id, admin_id)
            chat = await self._chat_repo.reload(chat)
            if claimed:
                logger.info(
                    "Chat session claimed",
                    session_key=chat.session_key,
                    admin_id=admin_id,
                )
            else:
                logger.warning(
                    "Chat session claim lost",
                    session_key=chat.session_key,
                    admin_id=admin_id,
                    owner_admin_id=chat.admin_id,
                )
        elif chat.admin_id != admin_id:
            logger.info(
                "Chat session owned by another admin",
                session_key=chat.session_key,
                admin_id=admin_id,
                owner_admin_id=chat.admin_id,
            )

        await self._chat_repo.apply_duration_policy(chat, max_duration, now)
        await self._session.commit()
        return chat

    async def get_or_create_user_session(self, user_id: int) -> ChatSession:
        """Return the user's active session, replacing it if its time ran out."""
        now = self._clock()
        max_duration = await self._settings.get_max_session_duration_minutes()
        if not await self._user_repo.lock(user_id):
            raise UserNotFoundError

        chat = await self._chat_repo.find_active_session_for_user(user_id)

        if chat is not None and is_duration_expired(chat.started_at, max_duration, now):
            await self._chat_repo.close_session(chat)
            logger.info(
                "Expired chat session closed",
                session_key=chat.session_key,
                user_id=user_id,
            )
            chat = None

        if chat is None:
            chat = await self._chat_repo.create_session(
                user_id=user_id,
                session_key=new_session_key(),
                started_at=now,
                max_duration_minutes=max_duration,
            )
            logger.info(
                "Chat session created", session_key=chat.session_key, user_id=user_id
            )
        else:
            await self._chat_repo.apply_duration_policy(chat, max_duration, now)

        await self._session.commit()
        return chat

    async def get_admin_sessions(self, admin_id: int) -> list[ChatSessionSummary]:
        """Inbox rows for every end user, at most ``admin_sessions_limit``."""
        users = await self._user_repo.find_by_role(
            Role.USER, limit=self._config.admin_sessions_limit
        )
        inbox = {
            s.user_id: s for s in await self._chat_repo.find_inbox_sessions(admin_id)
        }
        unread = await self._chat_repo.count_unseen_for_admin(
            [s.id for s in inbox.values()], admin_id
        )

        summaries = []
        for user in users:
            entry = inbox.get(user.id)
            summaries.append(
                ChatSessionSummary(
                    user_id=user.id,
                    user_name_or_email=user.name_or_email,
                    chat_session_id=entry.session_key if entry else None,
                    unread_count=unread.get(user.id, 0) if entry else 0,
                    is_online=user.is_online,
                    last_seen=ensure_utc(user.last_seen) if user.last_seen else None,
                )
            )
        return summaries

    # ==================== Messages ====================

    async def send_message(
        self, command: SendMessageCommand, max_message_length: int
    ) -> SendMessageResult:
        """Validate, authorize and store one message.

        Checks run in a fixed order and the first failure wins; nothing is
        written unless every check passes.
        """
        content = command.content or ""
        if not content.strip():
            raise InvalidInputError("Message content is required.")
        if len(content) > max_message_length:
            raise InvalidInputError(
                f"Message exceeds maximum length of {max_message_length} characters.",
                details={"max_length": max_message_length},
            )
        if not command.chat_session_id:
            raise InvalidInputError("Chat session id is required.")
        if not command.sender_id:
            raise InternalServiceError("sender_id missing from send command")

        role = Role.parse(command.role)
        if role not in (Role.ADMIN, Role.USER):
            raise InvalidInputError("Invalid sender role.")
        if command.message_type == MessageType.SYSTEM:
            raise InvalidInputError("System messages cannot be sent by participants.")

        if not await self._user_repo.exists(command.sender_id):
            raise UserNotFoundError

        chat = await self._chat_repo.find_active_session_by_key(command.chat_session_id)
        if chat is None:
            raise InvalidInputError(SESSION_NOT_FOUND)

        chat = await self._authorize(chat, command.sender_id, role)

        now = self._clock()
        if role == Role.USER:
            max_duration = await self._settings.get_max_session_duration_minutes()
            if is_duration_expired(chat.started_at, max_duration, now):
                # the session stays active; only a new user session closes it
                logger.info(
                    "Send rejected for expired session",
                    session_key=chat.session_key,
                    user_id=command.sender_id,
                )
                raise SessionExpiredError(chat.session_key, max_duration)
            chat.max_duration_minutes = max_duration

        message = await self._chat_repo.create_message(
            session_id=chat.id,
            sender_id=command.sender_id,
            content=content,
            message_type=command.message_type,
            created_at=now,
        )

        unread = None
        if role == Role.USER:
            await self._chat_repo.touch_last_user_message(chat, now)
            unread = await self._chat_repo.count_unseen_from_sender(
                chat.id, chat.user_id
            )

        await self._session.commit()
        logger.info(
            "Message sent",
            session_key=chat.session_key,
            message_id=message.id,
            sender_id=command.sender_id,
            role=role,
        )
        return SendMessageResult(
            message=message,
            session_key=chat.session_key,
            role=role,
            session_user_id=chat.user_id if role == Role.USER else None,
            unread_count_for_admin=unread,
        )

    async def get_history(
        self, requester_id: int, requester_role: Role | str, session_key: str | None
    ) -> list[MessageWithRole]:
        """Oldest-first messages of an active session, capped at ``history_limit``."""
        if not session_key or not session_key.strip():
            return []
        chat = await self._chat_repo.find_active_session_by_key(session_key)
        if chat is None:
            return []

        self._check_access(chat, requester_id, Role.parse(requester_role))
        return await self._chat_repo.find_messages_with_roles(
            chat.id, self._config.history_limit
        )

    async def mark_messages_as_seen(
        self, session_key: str | None, viewer_id: int, viewer_role: Role | str
    ) -> list[int]:
        """Flip the counterpart's unseen messages to seen; return their ids."""
        if not session_key or not session_key.strip():
            return []
        chat = await self._chat_repo.find_active_session_by_key(session_key)
        if chat is None:
            return []

        role = Role.parse(viewer_role)
        self._check_access(chat, viewer_id, role)

        other_party = chat.admin_id if role == Role.USER else chat.user_id
        if other_party is None:
            return []

        message_ids = await self._chat_repo.mark_seen_from_sender(chat.id, other_party)
        await self._session.commit()
        if message_ids:
            logger.info(
                "Messages marked seen",
                session_key=chat.session_key,
                viewer_id=viewer_id,
                count=len(message_ids),
            )
        return message_ids

    async def get_session_info(
        self, session_key: str | None, requester_id: int, requester_role: Role | str
    ) -> ChatSessionInfoResponse | None:
        """Countdown view of a session, or None when it cannot be shown."""
        if not session_key:
            return None
        chat = await self._chat_repo.find_active_session_by_key(session_key)
        if chat is None:
            return None

        try:
            self._check_access(chat, requester_id, Role.parse(requester_role))
        except (AuthorizationError, InvalidInputError):
            return None

        max_duration = await self._settings.get_max_session_duration_minutes()
        await self._chat_repo.apply_duration_policy(chat, max_duration, self._clock())
        await self._session.commit()
        return ChatSessionInfoResponse.from_session(chat, self._clock())

    # ==================== Idle termination ====================

    def _idle_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(seconds=self._config.idle_termination_seconds)

    async def get_session_keys_for_idle_termination(self) -> list[str]:
        """Keys of sessions silent past the idle threshold, oldest first."""
        return await self._chat_repo.find_idle_session_keys(
            self._idle_cutoff(self._clock()), self._config.idle_sweep_batch_size
        )

    async def send_idle_termination_if_needed(
        self, session_key: str
    ) -> IdleTerminationResult | None:
        """Post the idle notice and close the session, at most once.

        The notice insert and the conditional close share one transaction;
        if another sweep or a fresh user message got there first, the insert
        is rolled back and None is returned.
        """
        now = self._clock()
        cutoff = self._idle_cutoff(now)

        chat = await self._chat_repo.find_active_session_by_key(session_key)
        if (
            chat is None
            or chat.idle_termination_sent_at is not None
            or ensure_utc(chat.last_user_message_at) >= cutoff
        ):
            return None

        system_user = await self._user_repo.find_system_sender()
        if system_user is None:
            logger.warning(
                "No system sender configured; idle termination skipped",
                session_key=session_key,
            )
            return None

        message = await self._chat_repo.create_message(
            session_id=chat.id,
            sender_id=system_user.id,
            content=self._config.idle_termination_notice,
            message_type=MessageType.SYSTEM,
            created_at=now,
        )
        if not await self._chat_repo.terminate_idle_session(chat.id, now, cutoff):
            await self._session.rollback()
            logger.info("Idle termination already handled", session_key=session_key)
            return None

        await self._session.commit()
        logger.info(
            "Idle chat session terminated",
            session_key=session_key,
            message_id=message.id,
        )
        return IdleTerminationResult(
            session_key=session_key,
            message_id=message.id,
            sender_id=system_user.id,
            content=message.content,
            created_at=ensure_utc(message.created_at),
        )

    # ==================== Authorization ====================

    @staticmethod
    def _check_access(chat: ChatSession, actor_id: int, role: Role | None) -> None:
        """Read access: the owning user, or an admin if unassigned or matching."""
        if role == Role.USER:
            if chat.user_id != actor_id:
                raise AuthorizationError("You do not have access to this chat session.")
            return
        if role == Role.ADMIN:
            if chat.admin_id is not None and chat.admin_id != actor_id:
                raise AuthorizationError("This chat session belongs to another admin.")
            return
        raise InvalidInputError("Invalid role.")

    async def _authorize(
        self, chat: ChatSession, actor_id: int, role: Role | None
    ) -> ChatSession:
        """Write access; an admin acting on an unassigned session claims it."""
        self._check_access(chat, actor_id, role)
        if role == Role.ADMIN and chat.admin_id is None:
            if await self._chat_repo.claim_session(chat.id, actor_id):
                logger.info(
                    "Chat session claimed",
                    session_key=chat.session_key,
                    admin_id=actor_id,
                )
            chat = await self._chat_repo.reload(chat)
            if chat.admin_id != actor_id:
                raise AuthorizationError("This chat session belongs to another admin.")
        return chat
