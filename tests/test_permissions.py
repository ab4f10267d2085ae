from types import SimpleNamespace

import pytest

from bulwark.datatypes.permission_level import PermLevel
from bulwark.permissions.permission_resolver import member_perm_level, resolve_perm_level

RANKS = {"admins": ["500"], "mods": ["600", "7"], "immune": ["700"]}
MASTERS = ["900"]


@pytest.mark.parametrize(
    "member_id, role_ids, platform_admin, expected",
    [
        (900, [], False, PermLevel.BOT_MASTER),
        (1, [], True, PermLevel.ADMIN),
        (1, [500], False, PermLevel.ADMIN),
        (1, [600], False, PermLevel.MOD),
        (7, [], False, PermLevel.MOD),
        (1, [700], False, PermLevel.IMMUNE),
        (1, [700, 500], False, PermLevel.ADMIN),
        (1, [], False, PermLevel.MEMBER),
    ],
)
def test_resolve_perm_level(member_id, role_ids, platform_admin, expected):
    assert resolve_perm_level(member_id, role_ids, platform_admin, RANKS, MASTERS) == expected


def test_missing_ranks_resolve_to_member():
    assert resolve_perm_level(1, [500], False, None, ()) == PermLevel.MEMBER


def test_direct_message_users_only_use_the_allowlist():
    assert member_perm_level(SimpleNamespace(id=900), RANKS, MASTERS) == PermLevel.BOT_MASTER
    assert member_perm_level(SimpleNamespace(id=7), RANKS, MASTERS) == PermLevel.MEMBER


def test_guild_member():
    member = SimpleNamespace(
        id=1,
        roles=[SimpleNamespace(id=600)],
        guild_permissions=SimpleNamespace(administrator=False),
    )
    assert member_perm_level(member, RANKS, MASTERS) == PermLevel.MOD
