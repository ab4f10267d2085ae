"""
Embed creation utilities for command help.

Two embeds are produced: the detail card of a single command and the listing
of a category (its subcategories and commands).
"""

import discord

from bulwark.commands.command_registry import CommandCategory
from bulwark.datatypes.command_datatypes import Command
from bulwark.datatypes.permission_level import PermLevel, perm_to_string
from bulwark.util.format_utils import duration_to_string, render_usage


def create_command_help_embed(command: Command, prefix: str, color: int) -> discord.Embed:
    """
    Create the help card of a command.

    Args:
        command: The command to describe.
        prefix: Prefix shown in usages and examples.
        color: Embed colour.

    Returns:
        discord.Embed: Description, requirements, cooldowns, usage and examples.
    """
    help_info = command.help
    embed = discord.Embed(title=f"Help for {command.name}", color=color)

    embed.add_field(
        name="Description",
        value=help_info.long_description or help_info.short_description or "No description",
        inline=False,
    )
    embed.add_field(name="Need to be", value=perm_to_string(command.perm_level), inline=True)
    embed.add_field(name="DM capable", value="Yes" if command.dm else "No", inline=True)
    embed.add_field(name="Togglable", value="Yes" if command.togglable else "No", inline=True)

    if command.cooldown_local:
        embed.add_field(name="Local Cooldown", value=duration_to_string(command.cooldown_local), inline=True)
    if command.cooldown_global:
        embed.add_field(name="Global Cooldown", value=duration_to_string(command.cooldown_global), inline=True)

    if help_info.usages:
        embed.add_field(
            name="Usage",
            value="\n".join(render_usage(usage, prefix, command.name) for usage in help_info.usages),
            inline=False,
        )
    if help_info.examples:
        embed.add_field(
            name="Example",
            value="\n".join(render_usage(example, prefix, command.name) for example in help_info.examples),
            inline=False,
        )
    for name, value in help_info.additional_fields:
        embed.add_field(name=name, value=render_usage(value, prefix, command.name), inline=False)

    return embed


def create_category_embed(category: CommandCategory, prefix: str, color: int) -> discord.Embed:
    """
    Create the listing of a category.

    Bot-master commands are never listed.
    """
    title = "Help" if category.is_root else f"Help for {category.name}"
    embed = discord.Embed(title=title, color=color, description=category.description or None)

    if category.subcategories:
        embed.add_field(
            name="Subcategories",
            value="\n".join(
                f"**{child.name}** `{prefix}help {child.path}`" for child in category.subcategories.values()
            ),
            inline=False,
        )

    listed = [
        command for command in category.commands.values()
        if command.perm_level < PermLevel.BOT_MASTER
    ]
    if listed:
        embed.add_field(
            name="Commands",
            value="\n".join(
                f"**{command.name}** {command.help.short_description}" for command in listed
            ),
            inline=False,
        )

    embed.set_footer(text=f"Use {prefix}help <command> for details about a command")
    return embed
