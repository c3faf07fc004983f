"""Request and response records exchanged with the webhook API.

All records are immutable and know how to render themselves as the JSON
object the platform expects, omitting fields that were not set.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .constants import ORIGINAL_MESSAGE_REF
from .errors import FormatError
from .interactions import parse_snowflake

JsonObject = dict[str, Any]


class InteractionResponseType(enum.IntEnum):
    PONG = 1
    ACKNOWLEDGE = 2
    CHANNEL_MESSAGE = 3
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    ACKNOWLEDGE_WITH_SOURCE = 5


def _compact(values: Mapping[str, Any]) -> JsonObject:
    payload: JsonObject = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, tuple):
            value = [dict(item) if isinstance(item, Mapping) else item for item in value]
        elif isinstance(value, Mapping):
            value = dict(value)
        payload[key] = value
    return payload


@dataclass(frozen=True)
class CallbackData:
    """Body of an initial response carrying a visible message."""

    content: Optional[str] = None
    tts: Optional[bool] = None
    embeds: Optional[tuple[Mapping[str, Any], ...]] = None
    allowed_mentions: Optional[Mapping[str, Any]] = None
    flags: Optional[int] = None

    def to_payload(self) -> JsonObject:
        return _compact(
            {
                "tts": self.tts,
                "content": self.content,
                "embeds": self.embeds,
                "allowed_mentions": self.allowed_mentions,
                "flags": self.flags,
            }
        )


@dataclass(frozen=True)
class ResponseDescriptor:
    response_type: InteractionResponseType
    data: CallbackData = field(default_factory=CallbackData)

    def to_payload(self) -> JsonObject:
        return {"type": int(self.response_type), "data": self.data.to_payload()}


@dataclass(frozen=True)
class WebhookExecuteRequest:
    content: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    tts: Optional[bool] = None
    embeds: Optional[tuple[Mapping[str, Any], ...]] = None
    allowed_mentions: Optional[Mapping[str, Any]] = None
    flags: Optional[int] = None

    def to_payload(self) -> JsonObject:
        return _compact(
            {
                "content": self.content,
                "username": self.username,
                "avatar_url": self.avatar_url,
                "tts": self.tts,
                "embeds": self.embeds,
                "allowed_mentions": self.allowed_mentions,
                "flags": self.flags,
            }
        )


@dataclass(frozen=True)
class WebhookMessageEditRequest:
    content: Optional[str] = None
    embeds: Optional[tuple[Mapping[str, Any], ...]] = None
    allowed_mentions: Optional[Mapping[str, Any]] = None

    def to_payload(self) -> JsonObject:
        return _compact(
            {
                "content": self.content,
                "embeds": self.embeds,
                "allowed_mentions": self.allowed_mentions,
            }
        )


@dataclass(frozen=True)
class AttachmentFile:
    filename: str
    data: bytes
    content_type: Optional[str] = None


@dataclass(frozen=True)
class WebhookMultipartRequest:
    """JSON body plus optional binary attachments for a webhook execution."""

    body: WebhookExecuteRequest
    files: tuple[AttachmentFile, ...] = ()

    @property
    def has_files(self) -> bool:
        return bool(self.files)


MessageId = Union[int, str]


def message_ref_for(message_id: MessageId) -> str:
    """Decimal message reference addressing a follow-up message."""
    if isinstance(message_id, str) and message_id.strip() == ORIGINAL_MESSAGE_REF:
        raise FormatError(
            f"{ORIGINAL_MESSAGE_REF} addresses the initial response, not a follow-up"
        )
    return str(parse_snowflake(message_id, field_name="message id"))
