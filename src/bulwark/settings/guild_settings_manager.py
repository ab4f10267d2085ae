"""
Per-guild configuration store.

Provides the guild-facing API of the bot:
- get(guild_id) -> GuildHandle: cached handle, nothing loaded yet
- get_guild_wrapper(guild, fields): handle with ``fields`` loaded
- add_guild(guild) / remove_guild(guild): join and leave notifications
- clean_guilds(active_ids): drop records of guilds the bot has left

Handles keep their resident fields for the life of the process; removing a
guild evicts its handle, so the next lookup starts from an empty record.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Any, Dict, Iterable, List

from bulwark.database.document_store import DocumentStore
from bulwark.datatypes.discord_datatypes import GuildID
from bulwark.settings.global_settings import GlobalSettings
from bulwark.settings.guild_handle import GuildHandle, default_guild_document
from bulwark.util.logger import get_logger

if TYPE_CHECKING:
    from bulwark.commands.command_registry import CommandRegistry

logger = get_logger("guild_settings_manager")

# (description, collection, query key) of every record owned by a guild
GUILD_CASCADE: tuple[tuple[str, str, str], ...] = (
    ("guild record", "guilds", "id"),
    ("filter settings", "filters", "guild"),
    ("logs", "logs", "guild"),
    ("cases", "cases", "guild"),
    ("pending timed actions", "pactions", "info.guild"),
    ("webhook subscriptions", "webhooks", "guild"),
)


class GuildSettingsManager:
    """
    Owner of the guild handle cache.

    Args:
        store: Document store with the guild collections.
        global_settings: Global defaults handed to every handle.
        registry: Command registry handed to every handle.
    """

    def __init__(
        self,
        store: DocumentStore,
        global_settings: GlobalSettings,
        registry: CommandRegistry | None = None,
    ) -> None:
        self._store = store
        self._global_settings = global_settings
        self._registry = registry
        self._guilds: Dict[GuildID, GuildHandle] = {}

        logger.info("[GUILD SETTINGS MANAGER] Initialized")

    # ========== Core API ==========

    def get(self, guild_id: Any) -> GuildHandle:
        """
        Return the cached handle of a guild, creating an empty one if needed.

        Args:
            guild_id: Guild id, ``GuildID`` or discord guild.

        Returns:
            The handle; no field is loaded by this call.
        """
        if not isinstance(guild_id, GuildID):
            guild_id = GuildID(guild_id)

        handle = self._guilds.get(guild_id)
        if handle is None:
            handle = GuildHandle(guild_id, self._store, self._global_settings, self._registry)
            self._guilds[guild_id] = handle
        return handle

    async def get_guild_wrapper(self, guild: Any, fields: str | Iterable[str] | None = None) -> GuildHandle:
        """
        Return the handle of ``guild`` with ``fields`` loaded.

        Args:
            guild: Guild id, ``GuildID`` or discord guild.
            fields: Field or fields to make resident. None loads nothing.
        """
        handle = self.get(guild)
        if fields is not None:
            await handle.load(fields)
        return handle

    def is_cached(self, guild_id: Any) -> bool:
        return GuildID(guild_id) in self._guilds

    async def add_guild(self, guild: Any) -> bool:
        """
        Create the default record of a guild the bot just joined.

        Returns:
            True if a record was created, False if it already existed.
        """
        guild_id = GuildID(guild)
        if await self._store.guilds.find_one({"id": str(guild_id)}, ["id"]) is not None:
            return False
        try:
            await self._store.guilds.insert_one(default_guild_document(guild_id))
        except sqlite3.IntegrityError:
            return False
        logger.info("[GUILD SETTINGS MANAGER] Added guild %s", guild_id)
        return True

    async def remove_guild(self, guild: Any) -> List[str]:
        """
        Delete a guild's record and every record it owns.

        Each cascade step runs independently; a failing step is logged and
        the remaining steps still run.

        Returns:
            Descriptions of the steps that failed (empty when all succeeded).
        """
        guild_id = GuildID(guild)
        self._guilds.pop(guild_id, None)

        failures: List[str] = []
        for description, collection, key in GUILD_CASCADE:
            try:
                deleted = await self._store.collection(collection).delete_many({key: str(guild_id)})
                logger.debug("[GUILD SETTINGS MANAGER] Deleted %d %s of guild %s", deleted, description, guild_id)
            except Exception:
                logger.exception("[GUILD SETTINGS MANAGER] Failed to delete %s of guild %s", description, guild_id)
                failures.append(description)

        if failures:
            logger.warning("[GUILD SETTINGS MANAGER] Guild %s removed with failures: %s", guild_id, ", ".join(failures))
        else:
            logger.info("[GUILD SETTINGS MANAGER] Removed guild %s", guild_id)
        return failures

    async def clean_guilds(self, active_guild_ids: Iterable[Any]) -> int:
        """
        Remove the records of guilds the bot is no longer a member of.

        Returns:
            Number of guilds removed.
        """
        active = {str(GuildID(guild_id)) for guild_id in active_guild_ids}
        stored = await self._store.guilds.find({}, ["id"])
        removed = 0
        for document in stored:
            stored_id = document.get("id")
            if stored_id is None or stored_id in active:
                continue
            await self.remove_guild(stored_id)
            removed += 1

        if removed:
            logger.info("[GUILD SETTINGS MANAGER] Cleaned %d stale guild record(s)", removed)
        return removed
