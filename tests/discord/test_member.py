from __future__ import annotations

import pytest

from interaction_lifecycle.discord.errors import FormatError, MissingDataError
from interaction_lifecycle.discord.interactions import InteractionSnapshot
from interaction_lifecycle.discord.member import (
    InteractionMember,
    MemberRef,
    PermissionSet,
    RoleRef,
)


def _member(member: dict | None, *, guild_id: str | None = "50") -> InteractionMember:
    payload: dict = {"id": "1", "token": "t"}
    if guild_id is not None:
        payload["guild_id"] = guild_id
    if member is not None:
        payload["member"] = member
    return InteractionMember(InteractionSnapshot.from_payload(payload))


def test_roles_collapse_duplicates_and_scope_to_guild() -> None:
    member = _member({"user": {"id": "7"}, "roles": [1, 2, 2, 3]})
    roles = member.roles
    assert len(roles) == 3
    assert roles == {
        RoleRef(guild_id=50, role_id=1),
        RoleRef(guild_id=50, role_id=2),
        RoleRef(guild_id=50, role_id=3),
    }


def test_roles_default_to_empty_set() -> None:
    assert _member({"user": {"id": "7"}}).roles == frozenset()


def test_permissions_parse_decimal_bitmask() -> None:
    permissions = _member({"user": {"id": "7"}, "permissions": "8"}).permissions
    assert permissions == PermissionSet(8)
    assert permissions.value == 8
    assert permissions.has(8)
    assert 4 not in permissions


@pytest.mark.parametrize(
    "raw", [None, "", "admin", "-8", "8.0", "\u00b2", "1\u00b2", str(1 << 64)]
)
def test_permissions_reject_invalid_field(raw) -> None:
    member_record: dict = {"user": {"id": "7"}}
    if raw is not None:
        member_record["permissions"] = raw
    with pytest.raises(FormatError):
        _ = _member(member_record).permissions


def test_user_id_and_member_ref() -> None:
    member = _member({"user": {"id": "7"}})
    assert member.user_id == 7
    assert member.as_member_ref() == MemberRef(guild_id=50, user_id=7)


def test_direct_message_has_no_member() -> None:
    member = _member(None, guild_id=None)
    with pytest.raises(MissingDataError):
        _ = member.user_id
    with pytest.raises(MissingDataError):
        _ = member.permissions


def test_member_without_user_record() -> None:
    with pytest.raises(MissingDataError):
        _ = _member({"roles": []}).user_id


def test_permission_set_bounds() -> None:
    assert int(PermissionSet((1 << 64) - 1)) == (1 << 64) - 1
    with pytest.raises(FormatError):
        PermissionSet(1 << 64)
