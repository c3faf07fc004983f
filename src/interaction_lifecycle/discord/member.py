from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .constants import PERMISSION_BITS
from .errors import FormatError, MissingDataError
from .interactions import InteractionSnapshot, parse_snowflake


@dataclass(frozen=True)
class PermissionSet:
    """Opaque 64-bit permission bitmask."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0 or self.value >> PERMISSION_BITS:
            raise FormatError(f"permission bitmask out of range: {self.value}")

    @classmethod
    def parse(cls, raw: object) -> "PermissionSet":
        if raw is None:
            raise FormatError("member permissions field is missing")
        if isinstance(raw, bool) or not isinstance(raw, (str, int)):
            raise FormatError(f"member permissions must be a decimal string, got {raw!r}")
        text = str(raw).strip()
        if not (text.isascii() and text.isdigit()):
            raise FormatError(f"member permissions is not an integer literal: {raw!r}")
        return cls(int(text))

    def has(self, bits: int) -> bool:
        return self.value & bits == bits

    def __contains__(self, bits: int) -> bool:
        return self.has(bits)

    def __int__(self) -> int:
        return self.value


@dataclass(frozen=True)
class RoleRef:
    guild_id: int
    role_id: int


@dataclass(frozen=True)
class MemberRef:
    guild_id: int
    user_id: int


class InteractionMember:
    """Read-only projection of the invoking member of an interaction."""

    def __init__(self, snapshot: InteractionSnapshot) -> None:
        self._snapshot = snapshot

    @property
    def data(self) -> Mapping[str, Any]:
        return self._snapshot.require_member()

    @property
    def user_id(self) -> int:
        user = self.data.get("user")
        if not isinstance(user, Mapping):
            raise MissingDataError(
                f"interaction {self._snapshot.id} member has no user record"
            )
        return parse_snowflake(user.get("id"), field_name="member user id")

    @property
    def roles(self) -> frozenset[RoleRef]:
        guild_id = self._snapshot.require_guild_id()
        role_ids = self.data.get("roles") or ()
        if isinstance(role_ids, (str, bytes)) or not hasattr(role_ids, "__iter__"):
            raise FormatError("member roles must be a list of ids")
        return frozenset(
            RoleRef(guild_id=guild_id, role_id=parse_snowflake(item, field_name="role id"))
            for item in role_ids
        )

    @property
    def permissions(self) -> PermissionSet:
        return PermissionSet.parse(self.data.get("permissions"))

    def as_member_ref(self) -> MemberRef:
        return MemberRef(
            guild_id=self._snapshot.require_guild_id(), user_id=self.user_id
        )
