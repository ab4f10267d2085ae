"""Routes megalog functions to channels and manages ignored channels."""

from __future__ import annotations

from bulwark.datatypes.command_datatypes import Command, CommandHelp
from bulwark.datatypes.megalog import MEGALOG_FUNCTIONS, MEGALOG_GROUPS, resolve_megalog_functions
from bulwark.datatypes.permission_level import PermLevel
from bulwark.util.format_utils import extract_snowflake


class MegalogCommand(Command):
    name = "megalog"
    perm_level = PermLevel.ADMIN
    togglable = False
    help = CommandHelp(
        short_description="Sets up audit logging channels",
        long_description="Each megalog function (or a group of them) can be sent to its own channel. Ignored channels are never logged.",
        usages=(
            "{command} list",
            "{command} enable [function/group] [#channel]",
            "{command} disable [function/group]",
            "{command} ignore [#channel]",
            "{command} unignore [#channel]",
        ),
        examples=("{command} enable messages #message-log", "{command} disable all", "{command} ignore #staff"),
        additional_fields=(("Groups", ", ".join(MEGALOG_GROUPS)),),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        parts = args.split()
        action = parts[0].lower() if parts else "list"
        await guild.load("megalog")

        if action == "list":
            lines = [
                f"`{function}`: <#{guild.get_megalog_channel_id(function)}>"
                for function in MEGALOG_FUNCTIONS
                if guild.megalog_is_enabled(function)
            ]
            ignored = guild.get_megalog_ignore_channel_ids()
            if ignored:
                lines.append("Ignored: " + ", ".join(f"<#{channel}>" for channel in ignored))
            await message.channel.send("\n".join(lines) or "No megalog functions are enabled")
            return True

        if action in ("ignore", "unignore"):
            channel = extract_snowflake(parts[1]) if len(parts) == 2 else None
            if channel is None:
                await message.channel.send("Please mention a channel")
                return False
            if action == "ignore":
                changed = await guild.add_megalog_ignore_channel(channel)
                outcome = "is now ignored" if changed is not None else "was already ignored"
            else:
                changed = await guild.remove_megalog_ignore_channel(channel)
                outcome = "is no longer ignored" if changed is not None else "wasn't ignored"
            await message.channel.send(f"<#{channel}> {outcome}")
            return changed is not None

        if action not in ("enable", "disable") or len(parts) < 2:
            await message.channel.send("Please specify an action and a megalog function or group")
            return False

        try:
            functions = resolve_megalog_functions(parts[1])
        except ValueError:
            await message.channel.send(f"There is no megalog function or group called `{parts[1]}`")
            return False

        if action == "disable":
            disabled = await guild.disable_megalog_function(functions)
            await message.channel.send(f"Disabled {len(disabled)} megalog function(s)")
            return True

        channel = extract_snowflake(parts[2]) if len(parts) == 3 else message.channel.id
        if channel is None:
            await message.channel.send("Please mention a channel")
            return False
        changed = await guild.set_megalog_channel(functions, channel)
        await message.channel.send(f"Sending {len(changed)} megalog function(s) to <#{channel}>")
        return True
