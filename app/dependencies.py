"""Global dependencies for the application."""

from collections.abc import Callable

from fastapi import Depends, Request
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.database import get_async_session
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.redis import get_redis
from app.models.enums import Role
from app.realtime.connection_hub import ConnectionHub
from app.repositories.chat_repo import ChatRepository
from app.repositories.settings_repo import SettingsRepository
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService
from app.services.chat_service import ChatService
from app.services.presence_service import PresenceService
from app.services.presence_tracker import PresenceTracker
from app.services.settings_service import ChatSettingsService
from app.services.token_service import TokenService

# --- Auth dependencies ---


class CurrentUser(BaseModel):
    """Authenticated user extracted from request state."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: Role


def get_clock() -> Clock:
    """Time source for services; overridden in tests."""
    return utc_now


def get_token_service() -> TokenService:
    """Get TokenService backed by the active Redis client."""
    return TokenService(get_redis())


def get_user_repository(
    session: AsyncSession = Depends(get_async_session),
) -> UserRepository:
    """Get UserRepository bound to the current session."""
    return UserRepository(session)


def get_chat_repository(
    session: AsyncSession = Depends(get_async_session),
) -> ChatRepository:
    """Get ChatRepository bound to the current session."""
    return ChatRepository(session)


def get_settings_repository(
    session: AsyncSession = Depends(get_async_session),
) -> SettingsRepository:
    """Get SettingsRepository bound to the current session."""
    return SettingsRepository(session)


def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    token_service: TokenService = Depends(get_token_service),
    session: AsyncSession = Depends(get_async_session),
) -> AuthService:
    """Get AuthService with all dependencies."""
    return AuthService(
        user_repo=user_repo,
        token_service=token_service,
        session=session,
    )


def get_current_user(request: Request) -> CurrentUser:
    """Extract the authenticated user from middleware-populated state."""
    state = getattr(request, "state", None)
    user_id = getattr(state, "user_id", None) if state else None
    if user_id is None:
        raise AuthenticationError(message="Not authenticated")
    return CurrentUser(
        id=state.user_id,
        email=state.email,
        role=state.role,
    )


def require_role(*allowed_roles: Role) -> Callable[..., CurrentUser]:
    """Dependency factory that enforces role-based access control."""

    def _check(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                message=f"Role '{current_user.role}' is not permitted"
            )
        return current_user

    return _check


# --- Real-time state owned by the application ---


def get_connection_hub(request: Request) -> ConnectionHub:
    return request.app.state.connection_hub


def get_presence_tracker(request: Request) -> PresenceTracker:
    return request.app.state.presence_tracker


# --- Chat dependencies ---


def get_settings_service(
    settings_repo: SettingsRepository = Depends(get_settings_repository),
    session: AsyncSession = Depends(get_async_session),
    clock: Clock = Depends(get_clock),
) -> ChatSettingsService:
    """Get ChatSettingsService bound to the current session."""
    return ChatSettingsService(settings_repo, session, clock)


def get_chat_service(
    chat_repo: ChatRepository = Depends(get_chat_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    settings_service: ChatSettingsService = Depends(get_settings_service),
    session: AsyncSession = Depends(get_async_session),
    clock: Clock = Depends(get_clock),
) -> ChatService:
    """Get ChatService with repositories and settings."""
    return ChatService(
        chat_repo=chat_repo,
        user_repo=user_repo,
        settings_service=settings_service,
        session=session,
        clock=clock,
    )


def get_presence_service(
    user_repo: UserRepository = Depends(get_user_repository),
    tracker: PresenceTracker = Depends(get_presence_tracker),
    session: AsyncSession = Depends(get_async_session),
    clock: Clock = Depends(get_clock),
) -> PresenceService:
    """Get PresenceService sharing the application's tracker."""
    return PresenceService(user_repo, tracker, session, clock)
