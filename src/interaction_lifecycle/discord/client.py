from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from ..core.logging_utils import log_event
from .config import DiscordWebhookConfig
from .errors import ProtocolStateError
from .identity import ApplicationIdResolver
from .interactions import InteractionSnapshot, parse_snowflake
from .responses import CompletionHook, FollowupHandle, InteractionOperations
from .rest import DiscordWebhookClient

logger = logging.getLogger(__name__)


class DiscordInteractionClient:
    """Shares one transport and one application id across interactions."""

    def __init__(
        self,
        rest: DiscordWebhookClient,
        application_id: ApplicationIdResolver,
    ) -> None:
        self._rest = rest
        self._application_id = application_id

    @classmethod
    def from_config(
        cls,
        config: DiscordWebhookConfig,
        *,
        rest: Optional[DiscordWebhookClient] = None,
    ) -> "DiscordInteractionClient":
        rest_client = (
            rest if rest is not None else DiscordWebhookClient.from_config(config)
        )
        if config.application_id is not None:
            resolver = ApplicationIdResolver.static(config.application_id)
        else:
            resolver = ApplicationIdResolver(
                lambda: _fetch_application_id(rest_client)
            )
        return cls(rest_client, resolver)

    @property
    def rest(self) -> DiscordWebhookClient:
        return self._rest

    @property
    def application_id(self) -> ApplicationIdResolver:
        return self._application_id

    async def close(self) -> None:
        await self._rest.close()

    async def __aenter__(self) -> "DiscordInteractionClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    def for_interaction(
        self,
        interaction: Union[InteractionSnapshot, Mapping[str, Any]],
        *,
        on_sent: Optional[CompletionHook] = None,
    ) -> InteractionOperations:
        snapshot = (
            interaction
            if isinstance(interaction, InteractionSnapshot)
            else InteractionSnapshot.from_payload(interaction)
        )
        if on_sent is None:
            return InteractionOperations(self._rest, snapshot, self._application_id)
        return InteractionOperations(
            self._rest, snapshot, self._application_id, on_sent=on_sent
        )

    async def deliver_initial_response(
        self, operations: InteractionOperations, handle: FollowupHandle
    ) -> None:
        """Post the initial response to the interaction callback endpoint.

        The handle must be the one issued by ``operations``; each handle is
        delivered at most once.
        """
        if handle is not operations.followup_handle:
            raise ProtocolStateError(
                "follow-up handle was not issued for interaction "
                f"{operations.interaction_id}"
            )
        async with handle.delivery() as payload:
            await self._rest.create_interaction_response(
                interaction_id=operations.interaction_id,
                interaction_token=operations.snapshot.token,
                payload=payload,
            )
        log_event(
            logger,
            logging.INFO,
            "discord.interaction.initial_response.delivered",
            interaction_id=operations.interaction_id,
            response_type=handle.response.response_type.name,
        )


async def _fetch_application_id(rest: DiscordWebhookClient) -> int:
    application = await rest.get_current_application()
    return parse_snowflake(application.get("id"), field_name="application id")
