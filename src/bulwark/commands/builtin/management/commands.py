"""Enables and disables togglable commands per server."""

from __future__ import annotations

from bulwark.datatypes.command_datatypes import Command, CommandHelp
from bulwark.datatypes.permission_level import PermLevel
from bulwark.settings.guild_handle import ToggleResult

_ACTIONS = {"enable": True, "disable": False, "toggle": None}


class CommandsCommand(Command):
    name = "commands"
    perm_level = PermLevel.ADMIN
    togglable = False
    help = CommandHelp(
        short_description="Enables or disables commands on this server",
        usages=("{command} enable [command]", "{command} disable [command]", "{command} toggle [command]", "{command} status [command]"),
        examples=("{command} disable abc", "{command} status lmgtfy"),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        parts = args.split()
        if len(parts) != 2:
            await message.channel.send("Please specify an action and a command")
            return False

        action, command_name = parts[0].lower(), parts[1].lower()
        command = self.context.registry.lookup(command_name)
        if command is None:
            await message.channel.send(f"There is no command called `{command_name}`")
            return False

        await guild.load("command_settings")

        if action == "status":
            state = "enabled" if guild.command_is_enabled(command.name) else "disabled"
            await message.channel.send(f"`{command.name}` is {state}")
            return True

        if action not in _ACTIONS:
            await message.channel.send(f"Unknown action `{action}`")
            return False

        result = await guild.toggle_command(command.name, _ACTIONS[action])
        if result is ToggleResult.NOT_APPLICABLE:
            await message.channel.send(f"`{command.name}` can't be toggled")
            return False

        await message.channel.send(f"`{command.name}` is now {result.value}")
        return True
