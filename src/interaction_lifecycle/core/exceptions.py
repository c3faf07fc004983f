from __future__ import annotations


class InteractionLifecycleError(Exception):
    """Base error for the package."""

    recoverable = False
    severity = "error"


class TransientError(InteractionLifecycleError):
    """Failure that may succeed when the same operation is retried."""

    recoverable = True
    severity = "warning"


class PermanentError(InteractionLifecycleError):
    """Failure that will not go away by retrying."""

    recoverable = False
    severity = "error"
