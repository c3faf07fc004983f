"""Discord interaction response lifecycle."""

from .client import DiscordInteractionClient
from .config import (
    DiscordWebhookConfig,
    DiscordWebhookConfigError,
    load_webhook_config,
)
from .constants import DISCORD_API_BASE_URL, ORIGINAL_MESSAGE_REF
from .errors import (
    DiscordAPIError,
    DiscordError,
    DiscordPermanentError,
    DiscordTransientError,
    FormatError,
    IdentityResolutionError,
    MissingDataError,
    ProtocolStateError,
)
from .identity import ApplicationIdResolver
from .interactions import InteractionSnapshot, parse_snowflake
from .member import InteractionMember, MemberRef, PermissionSet, RoleRef
from .payloads import (
    AttachmentFile,
    CallbackData,
    InteractionResponseType,
    ResponseDescriptor,
    WebhookExecuteRequest,
    WebhookMessageEditRequest,
    WebhookMultipartRequest,
)
from .responses import FollowupHandle, InteractionOperations, WebhookTransport
from .rest import DiscordWebhookClient

__all__ = [
    "DISCORD_API_BASE_URL",
    "ORIGINAL_MESSAGE_REF",
    "DiscordWebhookConfig",
    "DiscordWebhookConfigError",
    "load_webhook_config",
    "DiscordError",
    "DiscordAPIError",
    "DiscordTransientError",
    "DiscordPermanentError",
    "ProtocolStateError",
    "MissingDataError",
    "FormatError",
    "IdentityResolutionError",
    "ApplicationIdResolver",
    "InteractionSnapshot",
    "parse_snowflake",
    "InteractionMember",
    "PermissionSet",
    "RoleRef",
    "MemberRef",
    "InteractionResponseType",
    "CallbackData",
    "ResponseDescriptor",
    "WebhookExecuteRequest",
    "WebhookMessageEditRequest",
    "WebhookMultipartRequest",
    "AttachmentFile",
    "WebhookTransport",
    "FollowupHandle",
    "InteractionOperations",
    "DiscordWebhookClient",
    "DiscordInteractionClient",
]
