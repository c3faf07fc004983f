from __future__ import annotations

import logging
from typing import Any


def _format_value(value: Any) -> str:
    if isinstance(value, BaseException):
        message = str(value)
        name = type(value).__name__
        return repr(f"{name}: {message}" if message else name)
    if isinstance(value, str):
        return value if value and " " not in value else repr(value)
    return repr(value)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Emit a single structured ``event key=value`` line.

    Fields whose value is None are dropped. Exceptions passed as values are
    rendered as ``'TypeName: message'``.
    """
    if not logger.isEnabledFor(level):
        return
    parts = [event]
    for key, value in fields.items():
        if value is None:
            continue
        parts.append(f"{key}={_format_value(value)}")
    logger.log(level, " ".join(parts))
