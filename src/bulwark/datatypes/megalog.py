"""Megalog functions (audit-log event types) and the groups they can be set by."""

from __future__ import annotations

from typing import Iterable

MEGALOG_FUNCTIONS: tuple[str, ...] = (
    "channelCreate",
    "channelDelete",
    "channelUpdate",
    "ban",
    "unban",
    "memberJoin",
    "memberLeave",
    "nicknameChange",
    "memberRolesChange",
    "guildNameChange",
    "messageDelete",
    "attachmentCache",
    "messageEdit",
    "reactionAdd",
    "reactionRemove",
    "roleCreate",
    "roleDelete",
    "roleUpdate",
    "voiceTransfer",
    "voiceMute",
    "voiceDeaf",
)

MEGALOG_GROUPS: dict[str, tuple[str, ...]] = {
    "all": MEGALOG_FUNCTIONS,
    "channels": ("channelCreate", "channelDelete", "channelUpdate"),
    "members": ("memberJoin", "memberLeave", "memberRolesChange"),
    "roles": ("roleCreate", "roleDelete", "roleUpdate"),
    "voice": ("voiceTransfer", "voiceMute", "voiceDeaf"),
    "messages": ("messageDelete", "attachmentCache", "messageEdit"),
    "reactions": ("reactionAdd", "reactionRemove"),
}

IGNORE_CHANNELS_KEY = "ignore_channels"

_FUNCTIONS_BY_LOWER = {name.lower(): name for name in MEGALOG_FUNCTIONS}


def resolve_megalog_functions(names: str | Iterable[str]) -> list[str]:
    """
    Expand function and group names (case-insensitive) into function names.

    Raises:
        ValueError: For a name that is neither a function nor a group.
    """
    if isinstance(names, str):
        names = [names]

    resolved: list[str] = []
    for name in names:
        key = name.strip().lower()
        if key in MEGALOG_GROUPS:
            expanded = MEGALOG_GROUPS[key]
        elif key in _FUNCTIONS_BY_LOWER:
            expanded = (_FUNCTIONS_BY_LOWER[key],)
        else:
            raise ValueError(f"Unknown megalog function or group '{name}'")
        for function in expanded:
            if function not in resolved:
                resolved.append(function)
    return resolved
