"""Application exception classes and handlers."""

from typing import Any

import structlog
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.schemas.response_schema import error_response

logger = structlog.get_logger()


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


# --- Validation (400) ---


class InvalidInputError(AppException):
    """Rejected input: empty content, over-length text, bad role, bad setting."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=details,
        )


# --- Authentication (401) ---


class AuthenticationError(AppException):
    """Base authentication error."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401)


class TokenExpiredError(AppException):
    """Token has expired."""

    def __init__(self) -> None:
        super().__init__(
            message="Token has expired",
            code="TOKEN_EXPIRED",
            status_code=401,
        )


class TokenBlacklistedError(AppException):
    """Token has been revoked."""

    def __init__(self) -> None:
        super().__init__(
            message="Token has been revoked",
            code="TOKEN_BLACKLISTED",
            status_code=401,
        )


class InvalidTokenError(AppException):
    """Token is invalid."""

    def __init__(self) -> None:
        super().__init__(
            message="Invalid token",
            code="INVALID_TOKEN",
            status_code=401,
        )


class InvalidCredentialsError(AppException):
    """Unknown login or wrong password."""

    def __init__(self) -> None:
        super().__init__(
            message="Invalid login attempt",
            code="INVALID_CREDENTIALS",
            status_code=401,
        )


# --- Authorization (403) ---


class AuthorizationError(AppException):
    """Caller may not act on this resource (wrong owner or wrong admin)."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message=message, code="AUTHORIZATION_ERROR", status_code=403)


# --- Not Found (404) ---


class UserNotFoundError(AppException):
    """User not found."""

    def __init__(self) -> None:
        super().__init__(
            message="User not found",
            code="USER_NOT_FOUND",
            status_code=404,
        )


# --- Conflict (409) ---


class UserAlreadyExistsError(AppException):
    """User with this email or username already exists."""

    def __init__(self) -> None:
        super().__init__(
            message="User with this email or username already exists",
            code="USER_ALREADY_EXISTS",
            status_code=409,
        )


# --- Gone (410) ---


class SessionExpiredError(AppException):
    """Chat session ran past its maximum duration."""

    def __init__(self, session_key: str, max_duration_minutes: int) -> None:
        self.session_key = session_key
        super().__init__(
            message="Chat session has expired. Please start a new session.",
            code="SESSION_EXPIRED",
            status_code=410,
            details={
                "chat_session_id": session_key,
                "max_duration_minutes": max_duration_minutes,
            },
        )


# --- Internal (500) ---


class InternalServiceError(AppException):
    """Server-side precondition failed; the reason is logged, not returned."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            message="Internal error",
            code="INTERNAL_ERROR",
            status_code=500,
        )


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    if isinstance(exc, InternalServiceError):
        logger.error(
            "Internal service error",
            path=request.url.path,
            reason=exc.reason,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.status_code, exc.message, exc.code, exc.details),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body/query validation failures in the error envelope."""
    return JSONResponse(
        status_code=422,
        content=error_response(
            422,
            "Request validation failed",
            "VALIDATION_ERROR",
            jsonable_encoder(exc.errors()),
        ),
    )
