"""Errors raised by chat clients.

They sit under KiwiError, so a transport layer can catch every Kiwi
failure with one except clause and still tell provider trouble apart
from storage or validation errors.
"""

from __future__ import annotations

from kiwibranch.exceptions import KiwiError


class LLMClientError(KiwiError):
    """A chat provider call failed."""


class LLMConfigError(LLMClientError):
    """The client cannot be built, e.g. no API key is configured."""


class LLMAuthError(LLMClientError):
    """The provider rejected the credentials (HTTP 401/403). Never retried."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        msg = f"Authentication failed: HTTP {status_code}"
        if detail:
            msg += f" - {detail}"
        super().__init__(msg)


class LLMRateLimitError(LLMClientError):
    """HTTP 429.  ``retry_after`` holds the Retry-After seconds, if sent."""

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMResponseError(LLMClientError):
    """The provider answered, but not in the expected shape."""
