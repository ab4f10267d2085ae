"""
Filter subsystem.

Plain guild messages from member-level users are passed through the active
filters in registration order. The first filter that matches wins: its
actions are executed in order and no further filter runs.
"""

from __future__ import annotations

import importlib
import inspect
import pkgutil
from typing import TYPE_CHECKING, Iterable, List

import discord

from bulwark.datatypes.filter_datatypes import Filter, FilterAction, FilterActionType, FilterOutput
from bulwark.util.logger import get_logger

if TYPE_CHECKING:
    from bulwark.app_context import AppContext
    from bulwark.settings.guild_handle import GuildHandle

logger = get_logger("filter_module")

BUILTIN_FILTER_PACKAGE = "bulwark.filters.builtin"


class FilterModule:
    """Runs filters against messages and executes the winning filter's actions."""

    def __init__(self, filters: Iterable[Filter] = ()) -> None:
        self._filters: List[Filter] = list(filters)

    @property
    def filters(self) -> List[Filter]:
        return list(self._filters)

    def get(self, name: str) -> Filter | None:
        return next((f for f in self._filters if f.name == name), None)

    async def filter_message(self, message: discord.Message, guild: GuildHandle) -> FilterOutput | None:
        """
        Run the active filters of ``guild`` against ``message``.

        Returns:
            The output of the matching filter, or None when nothing matched.
        """
        await guild.load("filters")
        for message_filter in self._filters:
            if not message_filter.is_active(guild):
                continue

            output = await message_filter.run(message)
            if output is None:
                continue

            logger.info(
                "[FILTER MODULE] Filter '%s' matched message %s in guild %s: %s",
                message_filter.name, message.id, guild.id, output.report,
            )
            await self.execute_actions(message, output.actions)
            return output
        return None

    async def execute_actions(self, message: discord.Message, actions: Iterable[FilterAction]) -> None:
        """Execute filter actions in order. A failing action does not stop the rest."""
        for action in actions:
            try:
                if action.type is FilterActionType.SEND and action.message:
                    await message.reply(action.message)
                elif action.type is FilterActionType.DELETE:
                    await message.delete(delay=action.delay)
            except discord.HTTPException as exc:
                logger.warning(
                    "[FILTER MODULE] Could not %s message %s: %s", action.type.value, message.id, exc
                )


def load_filters(context: AppContext | None = None, package_name: str = BUILTIN_FILTER_PACKAGE) -> FilterModule:
    """Instantiate every concrete :class:`Filter` defined below ``package_name``."""
    package = importlib.import_module(package_name)
    filters: List[Filter] = []
    for module_info in pkgutil.walk_packages(package.__path__, prefix=package_name + "."):
        module = importlib.import_module(module_info.name)
        for obj in vars(module).values():
            if (
                inspect.isclass(obj)
                and issubclass(obj, Filter)
                and not inspect.isabstract(obj)
                and obj.__module__ == module.__name__
            ):
                filters.append(obj(context))

    logger.info("[FILTER MODULE] Loaded %d filter(s): %s", len(filters), ", ".join(f.name for f in filters))
    return FilterModule(filters)
