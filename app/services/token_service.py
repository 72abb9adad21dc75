"""JWT token creation, validation, and revocation."""

import uuid
from datetime import UTC, datetime, timedelta
from typing import Literal

import jwt
import redis.asyncio as redis
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import InvalidTokenError, TokenExpiredError
from app.models.enums import Role
from app.schemas.auth_schema import TokenPayload

TokenType = Literal["access", "refresh"]

REFRESH_LOCK_SECONDS = 10


def blacklist_key(jti: str) -> str:
    """Redis key marking a revoked token id."""
    return settings.redis.key("token_blacklist", jti)


def decode_token(token: str) -> TokenPayload:
    """Decode and validate a JWT without touching Redis."""
    secret = settings.auth.secret_key.get_secret_value()
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.auth.algorithm])
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError from e

    try:
        return TokenPayload.model_validate(payload)
    except ValidationError as e:
        raise InvalidTokenError from e


class TokenService:
    """Issue JWTs and track revoked ones in Redis."""

    def __init__(self, redis_client: redis.Redis) -> None:  # type: ignore[type-arg]
        self._redis = redis_client
        self._secret = settings.auth.secret_key.get_secret_value()
        self._algorithm = settings.auth.algorithm

    def _create_token(
        self,
        token_type: TokenType,
        user_id: int,
        email: str,
        role: Role | str,
        lifetime: timedelta,
    ) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": str(role),
            "type": token_type,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def create_access_token(self, user_id: int, email: str, role: Role | str) -> str:
        """Create a signed access token."""
        return self._create_token(
            "access",
            user_id,
            email,
            role,
            timedelta(minutes=settings.auth.access_token_expire_minutes),
        )

    def create_refresh_token(self, user_id: int, email: str, role: Role | str) -> str:
        """Create a signed refresh token."""
        return self._create_token(
            "refresh",
            user_id,
            email,
            role,
            timedelta(days=settings.auth.refresh_token_expire_days),
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a JWT token."""
        return decode_token(token)

    # --- Blacklist ---

    async def blacklist_token(self, jti: str, exp: int) -> None:
        """Revoke a token until its natural expiry."""
        ttl = exp - int(datetime.now(UTC).timestamp())
        if ttl > 0:
            await self._redis.setex(blacklist_key(jti), ttl, "1")

    async def is_blacklisted(self, jti: str) -> bool:
        """Check if a token is revoked."""
        return await self._redis.get(blacklist_key(jti)) is not None

    # --- Refresh lock (one rotation per refresh token) ---

    async def acquire_refresh_lock(self, jti: str) -> bool:
        """Take the rotation lock for a refresh token."""
        key = settings.redis.key("refresh_lock", jti)
        return bool(await self._redis.set(key, "1", ex=REFRESH_LOCK_SECONDS, nx=True))

    async def release_refresh_lock(self, jti: str) -> None:
        """Release the rotation lock."""
        await self._redis.delete(settings.redis.key("refresh_lock", jti))
