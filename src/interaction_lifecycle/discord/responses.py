"""Response lifecycle for a single interaction.

An interaction is answered exactly once through its initial response
(``acknowledge`` or ``reply``). That call only builds the response; the
host delivers it as the reply to the inbound event. Every later call
(editing or deleting the initial response, follow-up messages) goes through
the webhook API, addressed by the application id and the interaction token.
"""

from __future__ import annotations

import contextlib
import logging
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Protocol,
    Union,
)

from ..core.logging_utils import log_event
from .constants import ORIGINAL_MESSAGE_REF
from .errors import ProtocolStateError
from .identity import ApplicationIdResolver
from .interactions import InteractionSnapshot
from .member import InteractionMember
from .payloads import (
    CallbackData,
    InteractionResponseType,
    JsonObject,
    MessageId,
    ResponseDescriptor,
    WebhookExecuteRequest,
    WebhookMessageEditRequest,
    WebhookMultipartRequest,
    message_ref_for,
)

logger = logging.getLogger(__name__)

CompletionHook = Callable[[], Awaitable[None]]


class WebhookTransport(Protocol):
    async def execute_webhook(
        self,
        *,
        application_id: int,
        token: str,
        request: WebhookMultipartRequest,
        wait: bool,
    ) -> JsonObject: ...

    async def modify_webhook_message(
        self,
        *,
        application_id: int,
        token: str,
        message_ref: str,
        request: WebhookMessageEditRequest,
    ) -> JsonObject: ...

    async def delete_webhook_message(
        self,
        *,
        application_id: int,
        token: str,
        message_ref: str,
    ) -> None: ...


async def _completed() -> None:
    return None


class FollowupHandle:
    """Issued by the initial response; carries it and the follow-up operations.

    The initial response is delivered and completed at most once.
    """

    def __init__(
        self,
        response: ResponseDescriptor,
        operations: "InteractionOperations",
        *,
        on_sent: CompletionHook = _completed,
    ) -> None:
        self._response = response
        self._operations = operations
        self._on_sent = on_sent
        self._delivering = False
        self._completed = False

    @property
    def response(self) -> ResponseDescriptor:
        return self._response

    @property
    def operations(self) -> "InteractionOperations":
        return self._operations

    @property
    def completed(self) -> bool:
        return self._completed

    def response_payload(self) -> JsonObject:
        return self._response.to_payload()

    @contextlib.asynccontextmanager
    async def delivery(self) -> AsyncIterator[JsonObject]:
        """Claim the one-shot delivery of the initial response.

        Yields the payload to send. The claim is released if the body raises,
        so a failed send may be attempted again; on success the completion
        hook runs.
        """
        if self._completed or self._delivering:
            raise ProtocolStateError(
                f"initial response to interaction {self._operations.interaction_id} "
                "was already delivered"
            )
        self._delivering = True
        try:
            yield self.response_payload()
        except BaseException:
            self._delivering = False
            raise
        await self.complete()

    async def complete(self) -> None:
        """Called by the host once the initial response has been delivered."""
        if self._completed:
            raise ProtocolStateError(
                f"initial response to interaction {self._operations.interaction_id} "
                "was already completed"
            )
        self._completed = True
        await self._on_sent()

    async def edit_initial_response(
        self, request: WebhookMessageEditRequest
    ) -> JsonObject:
        return await self._operations.edit_initial_response(request)

    async def delete_initial_response(self) -> None:
        await self._operations.delete_initial_response()

    async def create_followup_message(
        self,
        message: Union[str, WebhookMultipartRequest],
        *,
        wait: bool = True,
    ) -> JsonObject:
        return await self._operations.create_followup_message(message, wait=wait)

    async def edit_followup_message(
        self,
        message_id: MessageId,
        request: WebhookMessageEditRequest,
        *,
        wait: bool = True,
    ) -> JsonObject:
        return await self._operations.edit_followup_message(
            message_id, request, wait=wait
        )


class InteractionOperations:
    """Guards and executes the response protocol of one interaction.

    Not safe for concurrent initial-response calls from multiple threads;
    hosts driving one interaction from several threads must serialize them.
    """

    def __init__(
        self,
        transport: WebhookTransport,
        snapshot: InteractionSnapshot,
        application_id: ApplicationIdResolver,
        *,
        on_sent: CompletionHook = _completed,
    ) -> None:
        self._transport = transport
        self._snapshot = snapshot
        self._application_id = application_id
        self._on_sent = on_sent
        self._handle: Optional[FollowupHandle] = None

    @property
    def snapshot(self) -> InteractionSnapshot:
        return self._snapshot

    @property
    def interaction_id(self) -> int:
        return self._snapshot.id

    @property
    def guild_id(self) -> int:
        return self._snapshot.require_guild_id()

    @property
    def channel_id(self) -> int:
        return self._snapshot.require_channel_id()

    @property
    def member_data(self) -> Mapping[str, Any]:
        return self._snapshot.require_member()

    @property
    def command_data(self) -> Mapping[str, Any]:
        return self._snapshot.require_command_payload()

    @property
    def member(self) -> InteractionMember:
        return InteractionMember(self._snapshot)

    @property
    def responded(self) -> bool:
        return self._handle is not None

    @property
    def followup_handle(self) -> Optional[FollowupHandle]:
        return self._handle

    def acknowledge(self, with_source: bool = False) -> FollowupHandle:
        response_type = (
            InteractionResponseType.ACKNOWLEDGE_WITH_SOURCE
            if with_source
            else InteractionResponseType.ACKNOWLEDGE
        )
        return self._respond(ResponseDescriptor(response_type, CallbackData()))

    def reply(
        self,
        message: Union[str, CallbackData],
        with_source: bool,
    ) -> FollowupHandle:
        data = (
            message if isinstance(message, CallbackData) else CallbackData(content=message)
        )
        response_type = (
            InteractionResponseType.CHANNEL_MESSAGE_WITH_SOURCE
            if with_source
            else InteractionResponseType.CHANNEL_MESSAGE
        )
        return self._respond(ResponseDescriptor(response_type, data))

    def _respond(self, response: ResponseDescriptor) -> FollowupHandle:
        if self._handle is not None:
            raise ProtocolStateError(
                f"interaction {self._snapshot.id} already has an initial response "
                f"({self._handle.response.response_type.name})"
            )
        handle = FollowupHandle(response, self, on_sent=self._on_sent)
        self._handle = handle
        log_event(
            logger,
            logging.DEBUG,
            "discord.interaction.responded",
            interaction_id=self._snapshot.id,
            response_type=response.response_type.name,
        )
        return handle

    def _require_responded(self, operation: str) -> None:
        if self._handle is None:
            raise ProtocolStateError(
                f"{operation} requires an initial response to interaction "
                f"{self._snapshot.id}"
            )

    async def edit_initial_response(
        self, request: WebhookMessageEditRequest
    ) -> JsonObject:
        self._require_responded("edit_initial_response")
        application_id = await self._application_id.resolve()
        return await self._transport.modify_webhook_message(
            application_id=application_id,
            token=self._snapshot.token,
            message_ref=ORIGINAL_MESSAGE_REF,
            request=request,
        )

    async def delete_initial_response(self) -> None:
        self._require_responded("delete_initial_response")
        application_id = await self._application_id.resolve()
        await self._transport.delete_webhook_message(
            application_id=application_id,
            token=self._snapshot.token,
            message_ref=ORIGINAL_MESSAGE_REF,
        )

    async def create_followup_message(
        self,
        message: Union[str, WebhookMultipartRequest],
        *,
        wait: bool = True,
    ) -> JsonObject:
        """Send a follow-up message.

        A plain string becomes a content-only body. With ``wait=False`` the
        platform does not return the created message and the result is empty.
        """
        self._require_responded("create_followup_message")
        request = (
            message
            if isinstance(message, WebhookMultipartRequest)
            else WebhookMultipartRequest(WebhookExecuteRequest(content=message))
        )
        application_id = await self._application_id.resolve()
        return await self._transport.execute_webhook(
            application_id=application_id,
            token=self._snapshot.token,
            request=request,
            wait=wait,
        )

    async def edit_followup_message(
        self,
        message_id: MessageId,
        request: WebhookMessageEditRequest,
        *,
        wait: bool = True,
    ) -> JsonObject:
        # Message edits always return the updated message; ``wait`` mirrors
        # create_followup_message and has no effect on the request.
        _ = wait
        self._require_responded("edit_followup_message")
        message_ref = message_ref_for(message_id)
        application_id = await self._application_id.resolve()
        return await self._transport.modify_webhook_message(
            application_id=application_id,
            token=self._snapshot.token,
            message_ref=message_ref,
            request=request,
        )
