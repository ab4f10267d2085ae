from __future__ import annotations

from bulwark.datatypes.command_datatypes import Command, CommandHelp
from bulwark.datatypes.permission_level import PermLevel

MAX_PREFIX_LENGTH = 10


class PrefixCommand(Command):
    name = "prefix"
    perm_level = PermLevel.ADMIN
    togglable = False
    help = CommandHelp(
        short_description="Shows or changes the command prefix",
        long_description=f"Shows, sets or resets the prefix of this server. A prefix is at most {MAX_PREFIX_LENGTH} characters.",
        usages=("{command}", "{command} [new prefix]", "{command} reset"),
        examples=("{command}", "{command} !", "{command} reset"),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        new_prefix = args.strip()

        if not new_prefix:
            await message.channel.send(f"The current prefix is `{guild.get_prefix()}`")
            return True

        if new_prefix.lower() == "reset":
            prefix = await guild.set_prefix(None)
            await message.channel.send(f"The prefix was reset to `{prefix}`")
            return True

        if len(new_prefix) > MAX_PREFIX_LENGTH:
            await message.channel.send(f"The prefix can't be longer than {MAX_PREFIX_LENGTH} characters")
            return False

        await guild.set_prefix(new_prefix)
        await message.channel.send(f"The prefix is now `{new_prefix}`")
        return True
