"""
Lazily loaded handle on one guild's configuration record.

Every mutator loads the field it touches, sends a field-level update to the
``guilds`` collection and then applies the same delta to the resident copy,
so the cached record always equals what was persisted.
"""

from __future__ import annotations

import copy
import sqlite3
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List

from bulwark.database.document_store import DocumentStore
from bulwark.datatypes.discord_datatypes import ChannelID, GuildID, Snowflake
from bulwark.datatypes.loadable_record import LoadableRecord
from bulwark.datatypes.megalog import IGNORE_CHANNELS_KEY, resolve_megalog_functions
from bulwark.datatypes.permission_level import PermLevel
from bulwark.datatypes.usage_limits import CommandUsageLimits
from bulwark.permissions.permission_resolver import RANK_NAMES, member_perm_level
from bulwark.settings.global_settings import GlobalSettings
from bulwark.util.logger import get_logger

if TYPE_CHECKING:
    from bulwark.commands.command_registry import CommandRegistry

logger = get_logger("guild_handle")

CHANNEL_FIELDS = ("log_channel", "case_channel", "modmail_channel")


class ToggleResult(Enum):
    """Outcome of :meth:`GuildHandle.toggle_command`."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    NOT_APPLICABLE = "not_applicable"


def default_guild_document(guild_id: GuildID) -> Dict[str, Any]:
    """Record written for a guild the first time it is seen."""
    return {
        "id": str(guild_id),
        "ranks": {rank: [] for rank in RANK_NAMES},
        "command_settings": {},
        "usage_limits": {"commands": {}},
        "megalog": {IGNORE_CHANNELS_KEY: []},
    }


def _snowflake_key(value: Any) -> str:
    return str(Snowflake(value))


class GuildHandle(LoadableRecord):
    """Field-granular cache of a guild record.

    Args:
        guild_id: The guild this handle belongs to.
        store: Document store holding the ``guilds`` and ``filters`` collections.
        global_settings: Source of the default prefix, usage limits and bot masters.
        registry: Command registry, used to refuse toggling non-togglable commands.
    """

    FIELDS = (
        "prefix",
        "ranks",
        "command_settings",
        "usage_limits",
        "megalog",
        "log_channel",
        "case_channel",
        "modmail_channel",
        "filters",
    )

    def __init__(
        self,
        guild_id: GuildID,
        store: DocumentStore,
        global_settings: GlobalSettings,
        registry: CommandRegistry | None = None,
    ) -> None:
        super().__init__()
        self.guild_id = guild_id
        self._store = store
        self._global_settings = global_settings
        self._registry = registry

    @property
    def id(self) -> str:
        return str(self.guild_id)

    @property
    def record_name(self) -> str:
        return f"GuildHandle({self.id})"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _fetch(self, fields: list[str]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        guild_fields = [field for field in fields if field != "filters"]

        if guild_fields:
            document = await self._store.guilds.find_one({"id": self.id}, guild_fields)
            if document is None:
                document = await self._create_default_record()
                document = {field: document.get(field) for field in guild_fields if field in document}
            result.update(document)

        if "filters" in fields:
            filter_document = await self._store.collection("filters").find_one({"guild": self.id}, ["filters"])
            result["filters"] = (filter_document or {}).get("filters") or {}

        return result

    async def _create_default_record(self) -> Dict[str, Any]:
        document = default_guild_document(self.guild_id)
        try:
            await self._store.guilds.insert_one(document)
            logger.info("[GUILD HANDLE] Created default record for guild %s", self.id)
        except sqlite3.IntegrityError:
            # Created concurrently by another load or by add_guild
            existing = await self._store.guilds.find_one({"id": self.id})
            if existing is not None:
                return existing
        return document

    async def _update(self, update: Dict[str, Dict[str, Any]]) -> None:
        await self._store.guilds.update_one({"id": self.id}, update, upsert=True)

    # ------------------------------------------------------------------
    # Prefix
    # ------------------------------------------------------------------

    def get_prefix(self) -> str:
        """The guild prefix, or the global default when none is set."""
        return self._get("prefix") or self._global_settings.prefix

    async def set_prefix(self, prefix: str | None) -> str:
        """Set the guild prefix; ``None`` removes it so the global default applies.

        Returns:
            The prefix now in effect.
        """
        await self.load("prefix")
        if prefix is None:
            await self._update({"$unset": {"prefix": ""}})
        else:
            await self._update({"$set": {"prefix": prefix}})
        self._set_local("prefix", prefix)
        return self.get_prefix()

    # ------------------------------------------------------------------
    # Ranks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_rank(rank: str) -> None:
        if rank not in RANK_NAMES:
            raise ValueError(f"Unknown rank '{rank}', expected one of {RANK_NAMES}")

    def get_rank_ids(self, rank: str) -> List[str]:
        self._check_rank(rank)
        ranks = self._get("ranks") or {}
        return list(ranks.get(rank) or [])

    def get_ranks(self) -> Dict[str, List[str]]:
        return {rank: self.get_rank_ids(rank) for rank in RANK_NAMES}

    async def add_to_rank(self, rank: str, snowflake: Any) -> List[str] | None:
        """Add a role or user id to a rank.

        Returns:
            The rank list after the change, or None if the id was already in it.
        """
        self._check_rank(rank)
        await self.load("ranks")
        key = _snowflake_key(snowflake)
        current = self.get_rank_ids(rank)
        if key in current:
            return None

        await self._update({"$addToSet": {f"ranks.{rank}": key}})
        ranks = copy.deepcopy(self._get("ranks") or {})
        ranks[rank] = current + [key]
        self._set_local("ranks", ranks)
        return ranks[rank]

    async def remove_from_rank(self, rank: str, snowflake: Any) -> List[str] | None:
        """Remove a role or user id from a rank.

        Returns:
            The rank list after the change, or None if the id was not in it.
        """
        self._check_rank(rank)
        await self.load("ranks")
        key = _snowflake_key(snowflake)
        current = self.get_rank_ids(rank)
        if key not in current:
            return None

        await self._update({"$pull": {f"ranks.{rank}": key}})
        ranks = copy.deepcopy(self._get("ranks") or {})
        ranks[rank] = [entry for entry in current if entry != key]
        self._set_local("ranks", ranks)
        return ranks[rank]

    async def get_perm_level(self, member: Any) -> PermLevel:
        """Permission level of ``member`` in this guild."""
        await self.load("ranks")
        return member_perm_level(member, self._get("ranks"), self._global_settings.bot_masters)

    # ------------------------------------------------------------------
    # Command settings
    # ------------------------------------------------------------------

    def get_command_settings(self, command_name: str) -> Dict[str, Any] | None:
        settings = self._get("command_settings") or {}
        value = settings.get(command_name)
        return copy.deepcopy(value) if value is not None else None

    async def set_command_settings(self, command_name: str, settings: Dict[str, Any] | None) -> None:
        """Replace (or with None, drop) the stored settings of one command."""
        await self.load("command_settings")
        path = f"command_settings.{command_name}"
        if settings is None:
            await self._update({"$unset": {path: ""}})
        else:
            await self._update({"$set": {path: settings}})

        all_settings = copy.deepcopy(self._get("command_settings") or {})
        if settings is None:
            all_settings.pop(command_name, None)
        else:
            all_settings[command_name] = copy.deepcopy(settings)
        self._set_local("command_settings", all_settings)

    def command_is_enabled(self, command_name: str) -> bool:
        """A command is disabled only when explicitly toggled off."""
        settings = self.get_command_settings(command_name)
        return not (settings is not None and settings.get("_enabled") is False)

    async def toggle_command(self, command_name: str, value: bool | None = None) -> ToggleResult:
        """Enable, disable or flip (``value=None``) a togglable command.

        Returns:
            ``NOT_APPLICABLE`` for unknown or non-togglable commands, in which
            case nothing is persisted.
        """
        command = self._registry.lookup(command_name) if self._registry is not None else None
        if command is None or not command.togglable:
            return ToggleResult.NOT_APPLICABLE

        await self.load("command_settings")
        enabled = (not self.command_is_enabled(command_name)) if value is None else bool(value)
        await self._update({"$set": {f"command_settings.{command_name}._enabled": enabled}})

        all_settings = copy.deepcopy(self._get("command_settings") or {})
        all_settings.setdefault(command_name, {})["_enabled"] = enabled
        self._set_local("command_settings", all_settings)
        return ToggleResult.ENABLED if enabled else ToggleResult.DISABLED

    # ------------------------------------------------------------------
    # Usage limits
    # ------------------------------------------------------------------

    def get_command_usage_limits(self, command_name: str) -> CommandUsageLimits:
        """Guild override of a command's limits merged over the global override."""
        guild_limits = CommandUsageLimits.from_settings(self._get("usage_limits"), command_name)
        return guild_limits.merged_over(self._global_settings.get_usage_limits(command_name))

    async def set_command_usage_limits(self, command_name: str, limits: CommandUsageLimits | None) -> None:
        """Store (or with None, drop) the guild override of a command's limits."""
        await self.load("usage_limits")
        path = f"usage_limits.commands.{command_name}"
        stored = copy.deepcopy(self._get("usage_limits") or {"commands": {}})
        commands = stored.setdefault("commands", {})

        if limits is None or not limits.to_dict():
            await self._update({"$unset": {path: ""}})
            commands.pop(command_name, None)
        else:
            await self._update({"$set": {path: limits.to_dict()}})
            commands[command_name] = limits.to_dict()
        self._set_local("usage_limits", stored)

    # ------------------------------------------------------------------
    # Megalog
    # ------------------------------------------------------------------

    def _megalog(self) -> Dict[str, Any]:
        return self._get("megalog") or {}

    def get_megalog_channel_id(self, function: str) -> str | None:
        (function,) = resolve_megalog_functions(function)
        return self._megalog().get(function)

    def megalog_is_enabled(self, function: str) -> bool:
        return self.get_megalog_channel_id(function) is not None

    async def set_megalog_channel(self, functions: str | Iterable[str], channel: Any) -> List[str]:
        """Route megalog functions (or groups) to a channel.

        Returns:
            The functions whose channel actually changed.
        """
        resolved = resolve_megalog_functions(functions)
        await self.load("megalog")
        channel_key = str(ChannelID(channel))
        changed = [function for function in resolved if self._megalog().get(function) != channel_key]
        if not changed:
            return []

        await self._update({"$set": {f"megalog.{function}": channel_key for function in changed}})
        megalog = copy.deepcopy(self._megalog())
        for function in changed:
            megalog[function] = channel_key
        self._set_local("megalog", megalog)
        return changed

    async def disable_megalog_function(self, functions: str | Iterable[str]) -> List[str]:
        """Stop logging megalog functions (or groups).

        Returns:
            The functions that were enabled and are now disabled.
        """
        resolved = resolve_megalog_functions(functions)
        await self.load("megalog")
        disabled = [function for function in resolved if self._megalog().get(function) is not None]
        if not disabled:
            return []

        await self._update({"$unset": {f"megalog.{function}": "" for function in disabled}})
        megalog = copy.deepcopy(self._megalog())
        for function in disabled:
            megalog.pop(function, None)
        self._set_local("megalog", megalog)
        return disabled

    def get_megalog_ignore_channel_ids(self) -> List[str]:
        return list(self._megalog().get(IGNORE_CHANNELS_KEY) or [])

    def megalog_is_ignored(self, channel: Any) -> bool:
        return str(ChannelID(channel)) in self.get_megalog_ignore_channel_ids()

    async def add_megalog_ignore_channel(self, channel: Any) -> List[str] | None:
        """Returns the ignore list after the change, or None if already ignored."""
        await self.load("megalog")
        channel_key = str(ChannelID(channel))
        current = self.get_megalog_ignore_channel_ids()
        if channel_key in current:
            return None

        await self._update({"$addToSet": {f"megalog.{IGNORE_CHANNELS_KEY}": channel_key}})
        megalog = copy.deepcopy(self._megalog())
        megalog[IGNORE_CHANNELS_KEY] = current + [channel_key]
        self._set_local("megalog", megalog)
        return megalog[IGNORE_CHANNELS_KEY]

    async def remove_megalog_ignore_channel(self, channel: Any) -> List[str] | None:
        """Returns the ignore list after the change, or None if it was not ignored."""
        await self.load("megalog")
        channel_key = str(ChannelID(channel))
        current = self.get_megalog_ignore_channel_ids()
        if channel_key not in current:
            return None

        await self._update({"$pull": {f"megalog.{IGNORE_CHANNELS_KEY}": channel_key}})
        megalog = copy.deepcopy(self._megalog())
        megalog[IGNORE_CHANNELS_KEY] = [entry for entry in current if entry != channel_key]
        self._set_local("megalog", megalog)
        return megalog[IGNORE_CHANNELS_KEY]

    # ------------------------------------------------------------------
    # Log / case / modmail channels
    # ------------------------------------------------------------------

    def _get_channel(self, field: str) -> str | None:
        return self._get(field)

    async def _set_channel(self, field: str, channel: Any | None) -> None:
        await self.load(field)
        if channel is None:
            await self._update({"$unset": {field: ""}})
            self._set_local(field, None)
        else:
            channel_key = str(ChannelID(channel))
            await self._update({"$set": {field: channel_key}})
            self._set_local(field, channel_key)

    def get_log_channel_id(self) -> str | None:
        return self._get_channel("log_channel")

    async def set_log_channel(self, channel: Any | None) -> None:
        await self._set_channel("log_channel", channel)

    def get_case_channel_id(self) -> str | None:
        return self._get_channel("case_channel")

    async def set_case_channel(self, channel: Any | None) -> None:
        await self._set_channel("case_channel", channel)

    def get_modmail_channel_id(self) -> str | None:
        return self._get_channel("modmail_channel")

    async def set_modmail_channel(self, channel: Any | None) -> None:
        await self._set_channel("modmail_channel", channel)

    # ------------------------------------------------------------------
    # Filter settings (``filters`` collection)
    # ------------------------------------------------------------------

    def get_filter_settings(self, filter_name: str) -> Dict[str, Any] | None:
        value = (self._get("filters") or {}).get(filter_name)
        return copy.deepcopy(value) if value is not None else None

    async def set_filter_settings(self, filter_name: str, settings: Dict[str, Any] | None) -> None:
        """Replace (or with None, drop) the settings of one filter for this guild."""
        await self.load("filters")
        path = f"filters.{filter_name}"
        filters = self._store.collection("filters")
        if settings is None:
            await filters.update_one({"guild": self.id}, {"$unset": {path: ""}})
        else:
            await filters.update_one({"guild": self.id}, {"$set": {path: settings}}, upsert=True)

        all_settings = copy.deepcopy(self._get("filters") or {})
        if settings is None:
            all_settings.pop(filter_name, None)
        else:
            all_settings[filter_name] = copy.deepcopy(settings)
        self._set_local("filters", all_settings)
