"""Normalized error types raised by the request layer.

Every failed call made through `showroom.net.http.RequestService` surfaces as
exactly one `ApiError`. Cancellation that the caller asked for is reported
separately (`RequestAborted` or `asyncio.CancelledError`) so it is never
confused with the internal timeout.
"""

from __future__ import annotations

from typing import Any

__all__ = ["ApiError", "RequestAborted", "DEFAULT_ERROR_MESSAGE", "TIMEOUT_MESSAGE"]

DEFAULT_ERROR_MESSAGE = "Request failed"
TIMEOUT_MESSAGE = "Request timed out"


class ApiError(RuntimeError):
    """Raised when a request fails or returns a non-success response.

    Attributes:
        status: HTTP status code, or ``0`` when no response was received.
        message: Human-readable description.
        details: Raw parsed response body (JSON value or text), if any.
        url: The request URL.
        method: The request method.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int = 0,
        details: Any = None,
        url: str | None = None,
        method: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = str(message)
        self.status = int(status)
        self.details = details
        self.url = url
        self.method = method

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.status == 0:
            return self.message
        return f"{self.message} (status={self.status})"

    def __repr__(self) -> str:
        return (
            f"ApiError(status={self.status!r}, message={self.message!r}, "
            f"method={self.method!r}, url={self.url!r})"
        )

    @property
    def is_timeout(self) -> bool:
        return self.status == 0 and self.message == TIMEOUT_MESSAGE

    @classmethod
    def timeout(cls, *, url: str | None = None, method: str | None = None) -> "ApiError":
        """Return the error used when the internal timeout fires."""
        return cls(TIMEOUT_MESSAGE, status=0, url=url, method=method)

    @classmethod
    def from_response(
        cls,
        *,
        status: int,
        reason: str | None,
        parsed: Any,
        url: str | None = None,
        method: str | None = None,
    ) -> "ApiError":
        """Build an error for a non-2xx response.

        The message prefers a string ``message`` field from the parsed body,
        then the status reason phrase, then a generic fallback.
        """
        message: str | None = None
        if isinstance(parsed, dict):
            candidate = parsed.get("message")
            if isinstance(candidate, str) and candidate:
                message = candidate
        if not message:
            message = (reason or "").strip() or DEFAULT_ERROR_MESSAGE
        return cls(message, status=status, details=parsed, url=url, method=method)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation for logs and CLI output."""
        payload: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        if self.url is not None:
            payload["url"] = self.url
        if self.method is not None:
            payload["method"] = self.method
        return payload


class RequestAborted(RuntimeError):
    """Raised when a caller-supplied abort signal fires before a response arrives."""

    def __init__(self, *, url: str | None = None, method: str | None = None) -> None:
        super().__init__("Request aborted")
        self.url = url
        self.method = method
