"""Ordered permission levels a requester can hold."""

from __future__ import annotations

from enum import IntEnum


class PermLevel(IntEnum):
    """Permission tiers, compared with the usual integer operators."""

    MEMBER = 0
    IMMUNE = 1
    MOD = 2
    ADMIN = 3
    BOT_MASTER = 4


PERM_LEVEL_NAMES = {
    PermLevel.MEMBER: "Member",
    PermLevel.IMMUNE: "Immune",
    PermLevel.MOD: "Mod",
    PermLevel.ADMIN: "Admin",
    PermLevel.BOT_MASTER: "Bot master",
}


def perm_to_string(level: PermLevel | int) -> str:
    """Return the display name of a permission level."""
    return PERM_LEVEL_NAMES[PermLevel(level)]
