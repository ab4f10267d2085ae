"""
Permission level resolution.

The level of a requester is derived on every request, highest tier first:

1. bot-master allowlist
2. Discord's administrator permission
3. the guild's ``admins`` rank
4. the guild's ``mods`` rank
5. the guild's ``immune`` rank
6. member

Rank lists hold user ids and role ids alike, stored as strings. In direct
messages there are no guild ranks, so only the allowlist applies.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from bulwark.datatypes.permission_level import PermLevel

RANK_LEVELS: tuple[tuple[str, PermLevel], ...] = (
    ("admins", PermLevel.ADMIN),
    ("mods", PermLevel.MOD),
    ("immune", PermLevel.IMMUNE),
)

RANK_NAMES = tuple(rank for rank, _ in RANK_LEVELS)


def resolve_perm_level(
    member_id: int | str,
    role_ids: Iterable[int | str],
    is_platform_admin: bool,
    ranks: Mapping[str, Iterable[str]] | None,
    bot_masters: Iterable[int | str],
) -> PermLevel:
    """
    Compute the permission level of a requester.

    Args:
        member_id: Id of the requesting user.
        role_ids: Ids of the roles the user holds in the guild.
        is_platform_admin: Whether the user has Discord's administrator permission.
        ranks: The guild's rank lists (``admins``, ``mods``, ``immune``).
        bot_masters: Allowlisted user ids.

    Returns:
        The highest matching level.
    """
    member_key = str(member_id)
    if member_key in {str(master) for master in bot_masters}:
        return PermLevel.BOT_MASTER
    if is_platform_admin:
        return PermLevel.ADMIN

    identities = {member_key, *(str(role_id) for role_id in role_ids)}
    ranks = ranks or {}
    for rank, level in RANK_LEVELS:
        if identities.intersection(str(entry) for entry in ranks.get(rank) or ()):
            return level
    return PermLevel.MEMBER


def member_perm_level(
    member: Any,
    ranks: Mapping[str, Iterable[str]] | None,
    bot_masters: Iterable[int | str],
) -> PermLevel:
    """
    Resolve the level of a discord ``Member`` (guild) or ``User`` (direct message).

    A ``User`` has neither roles nor guild permissions, so only the
    bot-master allowlist can lift it above member level.
    """
    guild_permissions = getattr(member, "guild_permissions", None)
    roles = getattr(member, "roles", None)
    if guild_permissions is None or roles is None:
        return resolve_perm_level(member.id, (), False, None, bot_masters)

    return resolve_perm_level(
        member.id,
        (role.id for role in roles),
        bool(guild_permissions.administrator),
        ranks,
        bot_masters,
    )
