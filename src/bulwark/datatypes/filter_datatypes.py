"""
Filter definitions.

Filters inspect plain (non-command) guild messages from member-level users.
A filter that matches returns a :class:`FilterOutput`; its actions are then
executed in order by :class:`bulwark.filters.filter_module.FilterModule`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    import discord

    from bulwark.app_context import AppContext
    from bulwark.settings.guild_handle import GuildHandle


class FilterActionType(Enum):
    """Side effects a filter can request."""

    NOTHING = "nothing"
    DELETE = "delete"
    SEND = "send"


@dataclass(slots=True, frozen=True)
class FilterAction:
    """One side effect of a matching filter.

    Attributes:
        type: What to do.
        message: Reply text for ``SEND``.
        delay: Seconds to wait before a ``DELETE``.
    """

    type: FilterActionType
    message: str | None = None
    delay: float | None = None


@dataclass(slots=True)
class FilterOutput:
    """Result of a matching filter: a short report plus the actions to run."""

    report: str
    actions: list[FilterAction] = field(default_factory=list)


class Filter(ABC):
    """Base class of message filters."""

    name: ClassVar[str]
    short_help: ClassVar[str] = ""

    def __init__(self, context: AppContext | None = None) -> None:
        self.context = context

    def is_active(self, guild: GuildHandle) -> bool:
        """Whether this filter is enabled for ``guild``.

        The guild's filter settings must already be loaded.
        """
        settings = guild.get_filter_settings(self.name)
        return bool(settings and settings.get("_enabled"))

    @abstractmethod
    async def run(self, message: discord.Message) -> FilterOutput | None:
        """Inspect ``message`` and return an output when the filter matches."""
