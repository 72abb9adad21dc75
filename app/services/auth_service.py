"""Authentication business logic for chat participants."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AppException,
    AuthenticationError,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenBlacklistedError,
    UserAlreadyExistsError,
)
from app.core.security import DUMMY_HASH, hash_password, verify_password
from app.models.enums import Role
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.auth_schema import (
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenPayload,
    TokenResponse,
    UserResponse,
)
from app.services.token_service import TokenService

logger = structlog.get_logger()


class AuthService:
    """Registration, login, logout and token rotation."""

    def __init__(
        self,
        user_repo: UserRepository,
        token_service: TokenService,
        session: AsyncSession,
    ) -> None:
        self._user_repo = user_repo
        self._token_service = token_service
        self._session = session

    async def register(self, request: RegisterRequest) -> RegisterResponse:
        """Create a User-role account and sign it in."""
        if await self._user_repo.exists_by_email_or_username(
            request.email, request.username
        ):
            raise UserAlreadyExistsError

        hashed = await hash_password(request.password)
        user = await self._user_repo.create(
            email=request.email,
            hashed_password=hashed,
            username=request.username,
            role=Role.USER,
        )
        await self._session.commit()
        logger.info("User registered", user_id=user.id, email=user.email)

        return RegisterResponse(
            user=UserResponse.model_validate(user),
            tokens=self._issue_tokens(user),
        )

    async def login(self, request: LoginRequest) -> TokenResponse:
        """Authenticate by email or username."""
        user = await self._user_repo.find_by_login(request.login)

        if user is None:
            await verify_password(request.password, DUMMY_HASH)
            raise InvalidCredentialsError

        if not await verify_password(request.password, user.hashed_password):
            raise InvalidCredentialsError

        if not user.is_active or user.role == Role.SYSTEM:
            raise AuthenticationError(message="Account is disabled")

        logger.info("User logged in", user_id=user.id, role=user.role)
        return self._issue_tokens(user)

    async def logout(
        self, access_payload: TokenPayload, request: LogoutRequest
    ) -> MessageResponse:
        """Revoke the access token and, if supplied and valid, the refresh token."""
        await self._token_service.blacklist_token(
            access_payload.jti, access_payload.exp
        )

        if request.refresh_token:
            try:
                refresh_payload = self._token_service.decode_token(
                    request.refresh_token
                )
            except AppException:
                logger.info("Ignoring unusable refresh token on logout")
            else:
                if refresh_payload.type == "refresh":
                    await self._token_service.blacklist_token(
                        refresh_payload.jti, refresh_payload.exp
                    )

        logger.info("User logged out", user_id=access_payload.user_id)
        return MessageResponse(message="Logged out")

    async def refresh(self, request: RefreshRequest) -> TokenResponse:
        """Rotate a refresh token into a new pair."""
        payload = self._token_service.decode_token(request.refresh_token)

        if payload.type != "refresh":
            raise InvalidTokenError

        if await self._token_service.is_blacklisted(payload.jti):
            raise TokenBlacklistedError

        if not await self._token_service.acquire_refresh_lock(payload.jti):
            raise InvalidTokenError

        try:
            await self._token_service.blacklist_token(payload.jti, payload.exp)

            user = await self._user_repo.find_by_id(payload.user_id)
            if user is None or not user.is_active:
                raise AuthenticationError(message="Account is disabled")

            return self._issue_tokens(user)
        finally:
            await self._token_service.release_refresh_lock(payload.jti)

    def _issue_tokens(self, user: User) -> TokenResponse:
        """Create an access/refresh token pair."""
        return TokenResponse(
            access_token=self._token_service.create_access_token(
                user.id, user.email, user.role
            ),
            refresh_token=self._token_service.create_refresh_token(
                user.id, user.email, user.role
            ),
            expires_in=settings.auth.access_token_ttl_seconds,
            role=user.role,
        )
