from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .errors import FormatError, MissingDataError

SNOWFLAKE_MAX = (1 << 64) - 1


def _is_decimal(text: str) -> bool:
    # str.isdigit also accepts non-ASCII digits such as superscripts.
    return text.isascii() and text.isdigit()


def parse_snowflake(value: object, *, field_name: str) -> int:
    """Parse a Discord id given as an int or a decimal string."""
    if value is None:
        raise MissingDataError(f"{field_name} is missing")
    if isinstance(value, bool):
        raise FormatError(f"{field_name} must be an integer id, got {value!r}")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and _is_decimal(value.strip()):
        parsed = int(value.strip())
    else:
        raise FormatError(f"{field_name} must be an integer id, got {value!r}")
    if parsed < 0 or parsed > SNOWFLAKE_MAX:
        raise FormatError(f"{field_name} is out of range: {parsed}")
    return parsed


def _optional_snowflake(value: object, *, field_name: str) -> Optional[int]:
    if value is None:
        return None
    return parse_snowflake(value, field_name=field_name)


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class InteractionSnapshot:
    """One inbound interaction as delivered by the platform."""

    id: int
    token: str
    guild_id: Optional[int] = None
    channel_id: Optional[int] = None
    member: Optional[Mapping[str, Any]] = None
    command_payload: Optional[Mapping[str, Any]] = None
    raw: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not self.token:
            raise MissingDataError("interaction token is missing")
        if self.member is not None and not isinstance(self.member, MappingProxyType):
            object.__setattr__(self, "member", _freeze(dict(self.member)))
        if self.command_payload is not None and not isinstance(
            self.command_payload, MappingProxyType
        ):
            object.__setattr__(
                self, "command_payload", _freeze(dict(self.command_payload))
            )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InteractionSnapshot":
        if not isinstance(payload, Mapping):
            raise FormatError("interaction payload must be a JSON object")
        token = payload.get("token")
        if not isinstance(token, str) or not token.strip():
            raise MissingDataError("interaction token is missing")
        member = payload.get("member")
        data = payload.get("data")
        return cls(
            id=parse_snowflake(payload.get("id"), field_name="interaction id"),
            token=token.strip(),
            guild_id=_optional_snowflake(
                payload.get("guild_id"), field_name="guild_id"
            ),
            channel_id=_optional_snowflake(
                payload.get("channel_id"), field_name="channel_id"
            ),
            member=member if isinstance(member, Mapping) else None,
            command_payload=data if isinstance(data, Mapping) else None,
            raw=_freeze(dict(payload)),
        )

    def require_guild_id(self) -> int:
        if self.guild_id is None:
            raise MissingDataError(
                f"interaction {self.id} was not invoked in a guild"
            )
        return self.guild_id

    def require_channel_id(self) -> int:
        if self.channel_id is None:
            raise MissingDataError(f"interaction {self.id} has no channel")
        return self.channel_id

    def require_member(self) -> Mapping[str, Any]:
        if self.member is None:
            raise MissingDataError(
                f"interaction {self.id} has no member context"
            )
        return self.member

    def require_command_payload(self) -> Mapping[str, Any]:
        if self.command_payload is None:
            raise MissingDataError(
                f"interaction {self.id} carries no command payload"
            )
        return self.command_payload

    def command_path_and_options(self) -> tuple[tuple[str, ...], dict[str, Any]]:
        return extract_command_path_and_options(self.require_command_payload())


def extract_command_path_and_options(
    command_payload: Mapping[str, Any],
) -> tuple[tuple[str, ...], dict[str, Any]]:
    root_name = command_payload.get("name")
    if not isinstance(root_name, str) or not root_name:
        return (), {}

    path: list[str] = [root_name]
    options = command_payload.get("options")
    current_options: Any = options if isinstance(options, (list, tuple)) else ()

    # Sub-command (1) and sub-command group (2) options extend the path.
    while current_options:
        first = current_options[0]
        if not isinstance(first, Mapping):
            break
        if first.get("type") not in (1, 2):
            break
        name = first.get("name")
        if isinstance(name, str) and name:
            path.append(name)
        nested = first.get("options")
        current_options = nested if isinstance(nested, (list, tuple)) else ()

    parsed_options: dict[str, Any] = {}
    for item in current_options:
        if not isinstance(item, Mapping):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name:
            continue
        parsed_options[name] = item.get("value")

    return tuple(path), parsed_options
