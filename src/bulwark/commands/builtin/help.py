"""Help listing of categories and commands."""

from __future__ import annotations

import discord

from bulwark.datatypes.command_datatypes import Command, CommandHelp
from bulwark.datatypes.permission_level import PermLevel
from bulwark.ui.help_embed import create_category_embed, create_command_help_embed

NOT_FOUND_MESSAGE = "Couldn't find specified category/command"


class HelpCommand(Command):
    name = "help"
    dm = True
    togglable = False
    help = CommandHelp(
        short_description="Lists categories and commands, or explains one",
        long_description=(
            "Without arguments, lists the top-level categories and commands. "
            "With a command name, shows how to use it. With a category path, lists that category."
        ),
        usages=("{command}", "{command} [command name]", "{command} [category]", "{command} [category/subcategory]"),
        examples=("{command}", "{command} ping", "{command} management"),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        settings = self.context.global_settings
        registry = self.context.registry
        prefix = guild.get_prefix() if guild is not None else settings.prefix
        color = settings.embed_color("help")

        query = args.strip().lower()
        embed: discord.Embed | None = None
        if not query:
            embed = create_category_embed(registry.root, prefix, color)
        else:
            command = registry.lookup(query)
            if command is not None and (command.perm_level < PermLevel.BOT_MASTER or perm_level >= command.perm_level):
                embed = create_command_help_embed(command, prefix, color)
            else:
                category = registry.resolve_category(query)
                if category is not None:
                    embed = create_category_embed(category, prefix, color)

        if embed is None:
            await message.channel.send(NOT_FOUND_MESSAGE)
            return False

        await message.channel.send(embed=embed)
        return True
