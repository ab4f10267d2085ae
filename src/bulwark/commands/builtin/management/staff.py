"""
Staff rank management.

``staff`` edits any rank; ``admin``, ``mod`` and ``immune`` are shortcuts
bound to one rank each.
"""

from __future__ import annotations

from bulwark.datatypes.command_datatypes import Command, CommandHelp
from bulwark.datatypes.permission_level import PermLevel
from bulwark.permissions.permission_resolver import RANK_NAMES
from bulwark.util.format_utils import extract_snowflake

RANK_ALIASES = {
    "admin": "admins",
    "admins": "admins",
    "mod": "mods",
    "mods": "mods",
    "immune": "immune",
}


async def edit_rank(message, guild, rank: str, args: str) -> bool:
    """Run a ``list``, ``add`` or ``rem`` action on one rank and report the outcome."""
    parts = args.split()
    action = parts[0].lower() if parts else "list"

    if action == "list":
        await guild.load("ranks")
        entries = guild.get_rank_ids(rank)
        listing = ", ".join(f"`{entry}`" for entry in entries) if entries else "nobody"
        await message.channel.send(f"**{rank}**: {listing}")
        return True

    if action not in ("add", "rem", "remove") or len(parts) != 2:
        await message.channel.send("Please specify `add` or `rem` and a role or user")
        return False

    snowflake = extract_snowflake(parts[1])
    if snowflake is None:
        await message.channel.send("Please mention a role or user, or give their id")
        return False

    if action == "add":
        changed = await guild.add_to_rank(rank, snowflake)
        verb = "added to"
    else:
        changed = await guild.remove_from_rank(rank, snowflake)
        verb = "removed from"

    if changed is None:
        await message.channel.send(f"`{snowflake}` was already {'in' if action == 'add' else 'not in'} {rank}")
        return False
    await message.channel.send(f"`{snowflake}` was {verb} {rank}")
    return True


class StaffCommand(Command):
    name = "staff"
    perm_level = PermLevel.ADMIN
    togglable = False
    help = CommandHelp(
        short_description="Manages the admin, mod and immune ranks",
        long_description="Ranks hold roles and users. Admins can manage the bot, mods can moderate and immune members are ignored by filters.",
        usages=("{command} [rank] list", "{command} [rank] add [@role/@user/id]", "{command} [rank] rem [@role/@user/id]"),
        examples=("{command} mods add @Moderators", "{command} immune list"),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        rank_name, _, rest = args.strip().partition(" ")
        rank = RANK_ALIASES.get(rank_name.lower())
        if rank not in RANK_NAMES:
            await message.channel.send("Please specify a rank: admins, mods or immune")
            return False
        return await edit_rank(message, guild, rank, rest)


class _RankShortcut(Command):
    perm_level = PermLevel.ADMIN
    togglable = False
    rank: str = ""

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        return await edit_rank(message, guild, self.rank, args)


class AdminCommand(_RankShortcut):
    name = "admin"
    rank = "admins"
    help = CommandHelp(
        short_description="Manages the admin rank",
        usages=("{command} list", "{command} add [@role/@user/id]", "{command} rem [@role/@user/id]"),
        examples=("{command} add @Admins",),
    )


class ModCommand(_RankShortcut):
    name = "mod"
    rank = "mods"
    help = CommandHelp(
        short_description="Manages the mod rank",
        usages=("{command} list", "{command} add [@role/@user/id]", "{command} rem [@role/@user/id]"),
        examples=("{command} add @Moderators",),
    )


class ImmuneCommand(_RankShortcut):
    name = "immune"
    rank = "immune"
    help = CommandHelp(
        short_description="Manages the immune rank",
        usages=("{command} list", "{command} add [@role/@user/id]", "{command} rem [@role/@user/id]"),
        examples=("{command} add @Trusted",),
    )
