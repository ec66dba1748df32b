"""Exception types shared by the collectors, storage and notifiers."""

from __future__ import annotations

from typing import Any


class OsekaiError(Exception):
    """Base error carrying the failed operation and its identifying context."""

    def __init__(self, operation: str, message: str = "", **context: Any) -> None:
        self.operation = operation
        self.context = {key: value for key, value in context.items() if value is not None}
        super().__init__(message or operation)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.context:
            return base
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{base} ({details})"


class ApiError(OsekaiError):
    """A request to the osu! API or website failed."""

    def __init__(self, operation: str, message: str = "", status: int | None = None, **context: Any) -> None:
        self.status = status
        super().__init__(operation, message, status=status, **context)


class UserNotFound(ApiError):
    """The API answered 404 for a user lookup (restricted or deleted account)."""


class TransientRequestError(ApiError):
    """The HTTP/2 connection was dropped mid-request.

    osu!'s load balancer closes idle HTTP/2 connections without a GOAWAY
    frame every now and then; the request itself was fine.
    """


class ScrapeError(ApiError):
    """The medal catalog could not be extracted from a profile page."""


class StoreError(OsekaiError):
    """A database read or write failed."""


class NotifyError(OsekaiError):
    """A progress or finish notification could not be delivered."""


def is_retryable(error: BaseException) -> bool:
    """Whether a failed user request is worth exactly one more attempt."""
    return isinstance(error, TransientRequestError)
