"""Tests for custom exception classes and handlers."""

import json
from unittest.mock import MagicMock

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    InternalServiceError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidTokenError,
    SessionExpiredError,
    TokenBlacklistedError,
    TokenExpiredError,
    UserAlreadyExistsError,
    UserNotFoundError,
    app_exception_handler,
)


class TestExceptions:
    """Verify exception status codes and messages."""

    def test_app_exception_defaults(self) -> None:
        exc = AppException(message="err", code="ERR")
        assert exc.status_code == 400
        assert exc.code == "ERR"
        assert exc.details is None

    def test_invalid_input_error(self) -> None:
        exc = InvalidInputError("too long", details={"max_length": 500})
        assert exc.status_code == 400
        assert exc.code == "VALIDATION_ERROR"
        assert exc.details == {"max_length": 500}

    def test_authentication_error(self) -> None:
        assert AuthenticationError().status_code == 401

    def test_token_expired_error(self) -> None:
        exc = TokenExpiredError()
        assert exc.status_code == 401
        assert exc.code == "TOKEN_EXPIRED"

    def test_token_blacklisted_error(self) -> None:
        assert TokenBlacklistedError().status_code == 401

    def test_invalid_token_error(self) -> None:
        assert InvalidTokenError().status_code == 401

    def test_invalid_credentials_error(self) -> None:
        assert InvalidCredentialsError().status_code == 401

    def test_authorization_error(self) -> None:
        assert AuthorizationError().status_code == 403

    def test_user_not_found_error(self) -> None:
        assert UserNotFoundError().status_code == 404

    def test_user_already_exists_error(self) -> None:
        assert UserAlreadyExistsError().status_code == 409

    def test_session_expired_error(self) -> None:
        exc = SessionExpiredError("abc", 30)
        assert exc.status_code == 410
        assert exc.code == "SESSION_EXPIRED"
        assert exc.session_key == "abc"
        assert exc.details == {"chat_session_id": "abc", "max_duration_minutes": 30}

    def test_internal_error_hides_reason(self) -> None:
        exc = InternalServiceError("sender_id missing")
        assert exc.status_code == 500
        assert exc.message == "Internal error"
        assert exc.reason == "sender_id missing"


class TestAppExceptionHandler:
    """Rendering of the error envelope."""

    async def test_details_included(self) -> None:
        request = MagicMock()
        request.url.path = "/api/v1/chat/send"
        resp = await app_exception_handler(
            request, InvalidInputError("too long", details={"max_length": 10})
        )
        body = json.loads(resp.body)
        assert resp.status_code == 400
        assert body == {
            "status": 400,
            "message": "too long",
            "code": "VALIDATION_ERROR",
            "details": {"max_length": 10},
        }

    async def test_details_omitted_when_absent(self) -> None:
        request = MagicMock()
        request.url.path = "/x"
        resp = await app_exception_handler(request, AuthorizationError())
        assert "details" not in json.loads(resp.body)

    async def test_internal_reason_not_leaked(self) -> None:
        request = MagicMock()
        request.url.path = "/x"
        resp = await app_exception_handler(request, InternalServiceError("secret"))
        body = json.loads(resp.body)
        assert resp.status_code == 500
        assert "secret" not in json.dumps(body)
