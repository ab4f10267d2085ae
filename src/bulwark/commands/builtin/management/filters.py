from __future__ import annotations

from bulwark.datatypes.command_datatypes import Command, CommandHelp
from bulwark.datatypes.permission_level import PermLevel


class FiltersCommand(Command):
    name = "filters"
    perm_level = PermLevel.ADMIN
    togglable = False
    help = CommandHelp(
        short_description="Enables or disables message filters",
        long_description="Filters check messages from members without a staff rank. Every filter starts disabled.",
        usages=("{command} list", "{command} enable [filter]", "{command} disable [filter]"),
        examples=("{command} enable invite_links",),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        module = self.context.filters
        parts = args.split()
        action = parts[0].lower() if parts else "list"
        await guild.load("filters")

        if action == "list":
            lines = [
                f"`{item.name}` ({'on' if item.is_active(guild) else 'off'}): {item.short_help}"
                for item in module.filters
            ]
            await message.channel.send("\n".join(lines) or "There are no filters")
            return True

        if action not in ("enable", "disable") or len(parts) != 2:
            await message.channel.send("Please specify `enable` or `disable` and a filter")
            return False

        item = module.get(parts[1].lower())
        if item is None:
            await message.channel.send(f"There is no filter called `{parts[1]}`")
            return False

        settings = guild.get_filter_settings(item.name) or {}
        settings["_enabled"] = action == "enable"
        await guild.set_filter_settings(item.name, settings)
        await message.channel.send(f"`{item.name}` is now {action}d")
        return True
