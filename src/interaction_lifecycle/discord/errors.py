from __future__ import annotations

from typing import Optional

from ..core.exceptions import PermanentError, TransientError


class DiscordError(Exception):
    """Base Discord integration error."""

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class ProtocolStateError(DiscordError, PermanentError):
    """Response operation is not legal in the interaction's current state."""


class MissingDataError(DiscordError, PermanentError):
    """A sub-record the caller relied on is absent from the interaction."""


class FormatError(DiscordError, PermanentError, ValueError):
    """A field expected to hold a numeric literal could not be parsed."""


class IdentityResolutionError(DiscordError):
    """The application id could not be resolved."""


class DiscordAPIError(DiscordError):
    """Discord API request error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        user_message: Optional[str] = None,
    ) -> None:
        if user_message is None:
            user_message = "Discord API error."
        super().__init__(message, user_message=user_message)
        self.status_code = status_code
        self.retry_after = retry_after


class DiscordTransientError(DiscordAPIError, TransientError):
    """Retryable Discord API error (rate limits, server and network issues)."""


class DiscordPermanentError(DiscordAPIError, PermanentError):
    """Non-retryable Discord API error (auth failures, invalid requests)."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity
