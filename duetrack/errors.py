"""
Error taxonomy shared by the store, the feed generator, the API and the client.
"""

from __future__ import annotations

from typing import Optional


class DuetrackError(Exception):
    """Base class for all errors raised on purpose by duetrack."""


class ValidationError(DuetrackError):
    """Bad user input, e.g. a due date in the past or a too-short title."""


class NotFoundError(DuetrackError):
    """An assignment, course or session id that the store does not know."""


class FeedBuildError(DuetrackError):
    """The calendar feed could not be built. No partial document is returned."""

    def __init__(self, message: str = "feed could not be built") -> None:
        super().__init__(message)


class ApiError(DuetrackError):
    """Non-2xx answer from the HTTP service that has no more specific mapping."""

    def __init__(self, status_code: int, detail: Optional[str] = None) -> None:
        self.status_code = status_code
        self.detail = detail or ""
        super().__init__(f"HTTP {status_code}: {self.detail}" if self.detail else f"HTTP {status_code}")
