"""Response envelopes shared by every HTTP endpoint.

Success bodies carry ``data``; error bodies carry a machine-readable
``code`` and, for validation failures, ``details``.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Error envelope; ``details`` is omitted when there is nothing to add."""

    status: int
    message: str
    code: str
    details: Any | None = None


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope. ``data`` may be null, e.g. for unknown chat sessions."""

    status: int = 200
    message: str = "Success"
    data: T | None = None


def success_response(data: T, status: int = 200, message: str = "Success") -> dict:
    """Build a success envelope for returning from endpoints."""
    return {"status": status, "message": message, "data": data}


def error_response(
    status: int, message: str, code: str, details: Any | None = None
) -> dict[str, Any]:
    """Build an error envelope, leaving out empty details."""
    body: dict[str, Any] = {"status": status, "message": message, "code": code}
    if details is not None:
        body["details"] = details
    return body
