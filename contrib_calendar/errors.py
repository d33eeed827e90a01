from collections.abc import Sequence
from datetime import datetime
from typing import Any


class CalendarError(Exception):
    """Base error for the contributions proxy and calendar widget."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(CalendarError):
    """Raised when a proxy request is missing or has invalid parameters."""


class InvalidWindowError(BadRequestError):
    """Raised when a date window would end before it starts."""


class UnconfiguredError(CalendarError):
    """Raised when no GitHub token is available to the proxy."""


class UpstreamHTTPError(CalendarError):
    """Raised when GitHub answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int, body: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UpstreamGraphQLError(CalendarError):
    """Raised when GitHub GraphQL answers 200 with an error payload."""

    def __init__(self, message: str, details: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.details = list(details)


class RateLimitedError(CalendarError):
    """Raised when the REST quota is exhausted."""

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class NotFoundError(CalendarError):
    """Raised when GitHub does not know the requested user."""


class ForbiddenError(CalendarError):
    """Raised when GitHub denies access to the events feed."""


class MalformedResponseError(CalendarError):
    """Raised when the proxy answers without a usable `days` list."""
