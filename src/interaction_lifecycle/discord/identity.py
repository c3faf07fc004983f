from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..core.logging_utils import log_event
from .errors import IdentityResolutionError
from .interactions import parse_snowflake

logger = logging.getLogger(__name__)

ApplicationIdSupplier = Callable[[], Awaitable[int]]


class ApplicationIdResolver:
    """Resolves the application id once and shares the result.

    The first caller starts the lookup; concurrent callers await the same
    in-flight task. A successful result is cached for the resolver's lifetime.
    A failed lookup is not cached, so the next caller starts a fresh one.
    """

    def __init__(self, supplier: ApplicationIdSupplier) -> None:
        self._supplier = supplier
        self._application_id: Optional[int] = None
        self._pending: Optional[asyncio.Task[int]] = None

    @classmethod
    def static(cls, application_id: int) -> "ApplicationIdResolver":
        resolved = parse_snowflake(application_id, field_name="application id")

        async def _supply() -> int:
            return resolved

        resolver = cls(_supply)
        resolver._application_id = resolved
        return resolver

    @property
    def cached(self) -> Optional[int]:
        return self._application_id

    async def resolve(self) -> int:
        if self._application_id is not None:
            return self._application_id
        pending = self._pending
        if pending is None:
            pending = asyncio.ensure_future(self._lookup())
            pending.add_done_callback(_consume_exception)
            self._pending = pending
        # Shielded so one caller's cancellation does not abort the shared lookup.
        return await asyncio.shield(pending)

    async def _lookup(self) -> int:
        try:
            raw = await self._supplier()
            application_id = parse_snowflake(raw, field_name="application id")
        except IdentityResolutionError:
            raise
        except Exception as exc:
            raise IdentityResolutionError(
                f"failed to resolve application id: {exc}"
            ) from exc
        finally:
            self._pending = None
        self._application_id = application_id
        log_event(
            logger,
            logging.DEBUG,
            "discord.application_id.resolved",
            application_id=application_id,
        )
        return application_id


def _consume_exception(task: "asyncio.Future[int]") -> None:
    # Every awaiter may have been cancelled before the lookup failed.
    if not task.cancelled():
        task.exception()
