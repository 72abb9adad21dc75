"""Admin-configurable chat limits."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.core.exceptions import InternalServiceError, InvalidInputError
from app.core.settings import ChatConfig
from app.models.chat_settings import ChatSettings
from app.repositories.settings_repo import SettingsRepository
from app.schemas.settings_schema import UpdateChatSettingsRequest

logger = structlog.get_logger()

MIN_USER_MESSAGE_LENGTH = 10
MAX_USER_MESSAGE_LENGTH = 5000
MIN_SESSION_DURATION_MINUTES = 0
MAX_SESSION_DURATION_MINUTES = 24 * 60


def validate_max_user_message_length(value: int) -> None:
    if not MIN_USER_MESSAGE_LENGTH <= value <= MAX_USER_MESSAGE_LENGTH:
        raise InvalidInputError(
            f"max_user_message_length must be between "
            f"{MIN_USER_MESSAGE_LENGTH} and {MAX_USER_MESSAGE_LENGTH}."
        )


def validate_max_session_duration_minutes(value: int) -> None:
    if not MIN_SESSION_DURATION_MINUTES <= value <= MAX_SESSION_DURATION_MINUTES:
        raise InvalidInputError(
            f"max_session_duration_minutes must be between "
            f"{MIN_SESSION_DURATION_MINUTES} and {MAX_SESSION_DURATION_MINUTES}."
        )


class ChatSettingsService:
    """Reads and updates the singleton settings row, creating it on demand."""

    def __init__(
        self,
        settings_repo: SettingsRepository,
        session: AsyncSession,
        clock: Clock = utc_now,
        config: ChatConfig | None = None,
    ) -> None:
        self._repo = settings_repo
        self._session = session
        self._clock = clock
        self._config = config or settings.chat

    async def get(self) -> ChatSettings:
        """Return the settings row, inserting defaults if it is missing."""
        row = await self._repo.find()
        if row is not None:
            return row

        row = await self._repo.create(
            max_user_message_length=self._config.default_max_user_message_length,
            max_session_duration_minutes=(
                self._config.default_max_session_duration_minutes
            ),
            updated_at=self._clock(),
        )
        await self._session.commit()
        logger.info("Default chat settings created", settings_id=row.id)
        return row

    async def get_max_user_message_length(self) -> int:
        return (await self.get()).max_user_message_length

    async def get_max_session_duration_minutes(self) -> int:
        return (await self.get()).max_session_duration_minutes

    async def update_max_user_message_length(
        self, value: int, admin_id: int | None
    ) -> ChatSettings:
        """Set the user message limit (10..5000 inclusive)."""
        return await self.update(
            UpdateChatSettingsRequest(max_user_message_length=value), admin_id
        )

    async def update_max_session_duration_minutes(
        self, value: int, admin_id: int | None
    ) -> ChatSettings:
        """Set the session duration cap in minutes (0 = unlimited, max one day)."""
        return await self.update(
            UpdateChatSettingsRequest(max_session_duration_minutes=value), admin_id
        )

    async def update(
        self, request: UpdateChatSettingsRequest, admin_id: int | None
    ) -> ChatSettings:
        """Validate every provided field, then write them together."""
        if request.max_user_message_length is not None:
            validate_max_user_message_length(request.max_user_message_length)
        if request.max_session_duration_minutes is not None:
            validate_max_session_duration_minutes(
                request.max_session_duration_minutes
            )
        if not admin_id:
            raise InternalServiceError("admin_id is required to change chat settings")

        row = await self.get()
        if (
            request.max_user_message_length is None
            and request.max_session_duration_minutes is None
        ):
            return row

        row = await self._repo.save(
            row,
            self._clock(),
            admin_id,
            max_user_message_length=request.max_user_message_length,
            max_session_duration_minutes=request.max_session_duration_minutes,
        )
        await self._session.commit()
        logger.info(
            "Chat settings updated",
            admin_id=admin_id,
            max_user_message_length=row.max_user_message_length,
            max_session_duration_minutes=row.max_session_duration_minutes,
        )
        return row
