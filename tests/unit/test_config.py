"""Tests for domain-specific configuration."""

import pytest
from pydantic import ValidationError

from app.core.config import DEFAULT_IDLE_TERMINATION_NOTICE, Settings
from app.core.settings import AppConfig, ChatConfig, PresenceConfig, ServerConfig


class TestAppConfig:
    """AppConfig frozen immutability and property tests."""

    def test_frozen_immutability(self) -> None:
        config = AppConfig(name="test", version="1.0", env="development", debug=True)
        with pytest.raises(ValidationError):
            config.name = "changed"  # type: ignore[misc]

    def test_is_development(self) -> None:
        config = AppConfig(name="app", version="1.0", env="development", debug=True)
        assert config.is_development is True
        assert config.is_production is False

    def test_is_production(self) -> None:
        config = AppConfig(name="app", version="1.0", env="production", debug=False)
        assert config.is_production is True
        assert config.is_development is False


class TestServerConfig:
    """ServerConfig frozen immutability tests."""

    def test_frozen_immutability(self) -> None:
        config = ServerConfig(host="0.0.0.0", port=8000, cors_origins="")
        with pytest.raises(ValidationError):
            config.port = 9000  # type: ignore[misc]

    def test_cors_origins_list(self) -> None:
        config = ServerConfig(
            host="127.0.0.1", port=3000, cors_origins="https://a.io, https://b.io,"
        )
        assert config.cors_origins_list == ["https://a.io", "https://b.io"]

    def test_empty_cors_origins(self) -> None:
        config = ServerConfig(host="127.0.0.1", port=3000, cors_origins="")
        assert config.cors_origins_list == []


class TestSettingsDomainProperties:
    """Settings domain property access tests."""

    def test_app_property(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_NAME", "my-app")
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("DEBUG", "false")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.app.name == "my-app"
        assert s.app.env == "production"
        assert s.app.debug is False
        assert s.app.is_production is True

    def test_chat_defaults(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        chat = s.chat
        assert isinstance(chat, ChatConfig)
        assert chat.default_max_user_message_length == 500
        assert chat.default_max_session_duration_minutes == 60
        assert chat.admin_max_message_length == 5000
        assert chat.history_limit == 100
        assert chat.idle_termination_seconds == 60
        assert chat.idle_sweep_batch_size == 20
        assert chat.idle_sweep_interval_seconds == 30
        assert chat.idle_termination_notice == DEFAULT_IDLE_TERMINATION_NOTICE

    def test_presence_defaults(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.presence == PresenceConfig(
            idle_seconds=300, offline_seconds=45, sweep_interval_seconds=10
        )

    def test_chat_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAT_HISTORY_LIMIT", "50")
        monkeypatch.setenv("CHAT_IDLE_TERMINATION_SECONDS", "120")
        monkeypatch.setenv("PRESENCE_OFFLINE_SECONDS", "90")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.chat.history_limit == 50
        assert s.chat.idle_termination_seconds == 120
        assert s.presence.offline_seconds == 90

    def test_out_of_range_default_length_rejected(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHAT_DEFAULT_MAX_USER_MESSAGE_LENGTH", "5")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_out_of_range_duration_rejected(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHAT_DEFAULT_MAX_SESSION_DURATION_MINUTES", "2000")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_server_property(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "9000")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.server.host == "127.0.0.1"
        assert s.server.port == 9000

    def test_flat_access_still_works(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.app_name == "live-chat"
        assert s.chat_history_limit == 100
        assert s.is_development is True
