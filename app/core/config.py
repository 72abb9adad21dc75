"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.settings import (
    AppConfig,
    AuthConfig,
    ChatConfig,
    DatabaseConfig,
    PresenceConfig,
    RedisConfig,
    ServerConfig,
)

DEFAULT_IDLE_TERMINATION_NOTICE = (
    "This chat was closed automatically because there was no activity "
    "for a while. Start a new chat if you still need help."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.chat.history_limit).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = Field(
        default="live-chat",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=8004,
        ge=1,
        le=65535,
        description="Server port",
    )
    cors_origins: str = Field(
        default="",
        description="Comma-separated allowed origins outside development",
    )

    # JWT Auth
    jwt_secret_key: SecretStr = Field(
        description="JWT secret key for token signing",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    jwt_access_token_expire_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Access token expiration in minutes",
    )
    jwt_refresh_token_expire_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="Refresh token expiration in days",
    )
    login_rate_limit: str = Field(
        default="5/minute",
        description="Login endpoint rate limit",
    )
    register_rate_limit: str = Field(
        default="3/minute",
        description="Register endpoint rate limit",
    )

    # Database
    database_url: SecretStr = Field(
        description="Async database URL (mysql+aiomysql://...)",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_key_prefix: str = Field(
        default="livechat",
        description="Namespace prepended to every Redis key",
    )

    # Chat policy
    chat_default_max_user_message_length: int = Field(
        default=500,
        ge=10,
        le=5000,
        description="Initial user message limit when no settings row exists",
    )
    chat_default_max_session_duration_minutes: int = Field(
        default=60,
        ge=0,
        le=1440,
        description="Initial session duration when no settings row exists (0 = unlimited)",
    )
    chat_admin_max_message_length: int = Field(
        default=5000,
        ge=10,
        le=20000,
        description="Message limit applied to admin-authored messages",
    )
    chat_history_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Maximum messages returned by a history query",
    )
    chat_admin_sessions_limit: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Maximum users listed in the admin inbox",
    )
    chat_idle_termination_seconds: int = Field(
        default=60,
        ge=10,
        description="User silence after which a session is auto-terminated",
    )
    chat_idle_sweep_batch_size: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Sessions examined per idle sweep",
    )
    chat_idle_sweep_interval_seconds: int = Field(
        default=30,
        ge=1,
        description="Seconds between idle sweeps",
    )
    chat_idle_termination_notice: str = Field(
        default=DEFAULT_IDLE_TERMINATION_NOTICE,
        min_length=1,
        description="System message appended when a session is idle-terminated",
    )

    # Presence
    presence_idle_seconds: int = Field(
        default=300,
        ge=1,
        description="Heartbeat age after which a connected user is Idle",
    )
    presence_offline_seconds: int = Field(
        default=45,
        ge=1,
        description="Heartbeat age after which a user is Offline",
    )
    presence_sweep_interval_seconds: int = Field(
        default=10,
        ge=1,
        description="Seconds between presence change sweeps",
    )

    # --- Domain properties ---

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            version=self.app_version,
            env=self.app_env,
            debug=self.debug,
        )

    @cached_property
    def server(self) -> ServerConfig:
        """Server configuration."""
        return ServerConfig(
            host=self.host,
            port=self.port,
            cors_origins=self.cors_origins,
        )

    @cached_property
    def auth(self) -> AuthConfig:
        """JWT authentication configuration."""
        return AuthConfig(
            secret_key=self.jwt_secret_key,
            algorithm=self.jwt_algorithm,
            access_token_expire_minutes=self.jwt_access_token_expire_minutes,
            refresh_token_expire_days=self.jwt_refresh_token_expire_days,
            login_rate_limit=self.login_rate_limit,
            register_rate_limit=self.register_rate_limit,
        )

    @cached_property
    def database(self) -> DatabaseConfig:
        """Database connection configuration."""
        return DatabaseConfig(url=self.database_url)

    @cached_property
    def redis(self) -> RedisConfig:
        """Redis connection configuration."""
        return RedisConfig(url=self.redis_url, key_prefix=self.redis_key_prefix)

    @cached_property
    def chat(self) -> ChatConfig:
        """Chat session and message policy."""
        return ChatConfig(
            default_max_user_message_length=self.chat_default_max_user_message_length,
            default_max_session_duration_minutes=(
                self.chat_default_max_session_duration_minutes
            ),
            admin_max_message_length=self.chat_admin_max_message_length,
            history_limit=self.chat_history_limit,
            admin_sessions_limit=self.chat_admin_sessions_limit,
            idle_termination_seconds=self.chat_idle_termination_seconds,
            idle_sweep_batch_size=self.chat_idle_sweep_batch_size,
            idle_sweep_interval_seconds=self.chat_idle_sweep_interval_seconds,
            idle_termination_notice=self.chat_idle_termination_notice,
        )

    @cached_property
    def presence(self) -> PresenceConfig:
        """Presence thresholds."""
        return PresenceConfig(
            idle_seconds=self.presence_idle_seconds,
            offline_seconds=self.presence_offline_seconds,
            sweep_interval_seconds=self.presence_sweep_interval_seconds,
        )

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
