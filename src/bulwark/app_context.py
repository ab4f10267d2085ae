"""
Application context.

One :class:`AppContext` is built at startup and owns every long-lived
component: configuration, the document store, the guild, session and user
stores, the command registry, the filters, the dispatcher and the periodic
background jobs. Commands and cogs receive the context instead of reaching
for module-level singletons.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable

import discord

from bulwark.commands.command_registry import BUILTIN_PACKAGE, build_registry
from bulwark.commands.dispatcher import Dispatcher
from bulwark.commands.usage_limits import UsageLimitEngine
from bulwark.configuration.app_configuration import AppConfig
from bulwark.database.document_store import DocumentStore
from bulwark.datatypes.command_datatypes import SessionPayload
from bulwark.datatypes.permission_level import PermLevel
from bulwark.filters.filter_module import BUILTIN_FILTER_PACKAGE, load_filters
from bulwark.scheduler.periodic_scheduler import PeriodicScheduler
from bulwark.sessions.command_cache import CommandCache
from bulwark.sessions.command_cache_manager import CommandCacheManager
from bulwark.settings.global_settings import GlobalSettings
from bulwark.settings.guild_handle import GuildHandle
from bulwark.settings.guild_settings_manager import GuildSettingsManager
from bulwark.users.user_manager import UserManager
from bulwark.util.benchmark import epoch_ms
from bulwark.util.logger import get_logger

logger = get_logger("app_context")


class AppContext:
    """
    Container of the bot's components.

    Args:
        app_config: Loaded YAML configuration.
        clock: Epoch-milliseconds clock shared by every time-dependent component.
        command_package: Package the commands are discovered in.
        filter_package: Package the filters are discovered in.
    """

    def __init__(
        self,
        app_config: AppConfig,
        clock: Callable[[], int] = epoch_ms,
        command_package: str = BUILTIN_PACKAGE,
        filter_package: str = BUILTIN_FILTER_PACKAGE,
    ) -> None:
        self.app_config = app_config
        self.clock = clock
        self.bot: discord.Bot | None = None

        self.global_settings = GlobalSettings(app_config)
        self.store = DocumentStore()
        self.registry = build_registry(self, command_package)
        self.guilds = GuildSettingsManager(self.store, self.global_settings, self.registry)
        self.sessions = CommandCacheManager(self.store, clock)
        self.users = UserManager(self.store)
        self.usage_limits = UsageLimitEngine(self.global_settings, self.users, clock)
        self.filters = load_filters(self, filter_package)
        self.dispatcher = Dispatcher(
            self.registry,
            self.guilds,
            self.sessions,
            self.usage_limits,
            self.global_settings,
            self.filters,
            clock,
        )

        self._schedulers = [
            PeriodicScheduler("MAINTENANCE", self.run_maintenance, lambda: self.app_config.clean_interval),
            PeriodicScheduler(
                "SETTINGS REFRESH", self.refresh_settings, lambda: self.app_config.settings_refresh_interval
            ),
        ]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, database_path: Path | None = None) -> None:
        """Open the store and hydrate the session index."""
        await self.store.initialize(database_path or self.app_config.database_path)
        await self.sessions.initialize()
        logger.info("[APP CONTEXT] Initialized with %d commands", len(self.registry))

    def start_background_tasks(self) -> None:
        for scheduler in self._schedulers:
            scheduler.start()

    async def shutdown(self) -> None:
        for scheduler in self._schedulers:
            try:
                await scheduler.shutdown()
            except Exception:
                logger.exception("[APP CONTEXT] Error while stopping a scheduler")
        await self.store.close()
        logger.info("[APP CONTEXT] Shutdown complete")

    # ------------------------------------------------------------------
    # Periodic jobs
    # ------------------------------------------------------------------

    async def run_maintenance(self) -> None:
        """Sweep expired sessions, empty user records and records of departed guilds."""
        try:
            await self.sessions.clean()
        except Exception:
            logger.exception("[APP CONTEXT] Command cache sweep failed")

        try:
            await self.users.clean_users()
        except Exception:
            logger.exception("[APP CONTEXT] User record purge failed")

        if self.bot is not None and self.bot.is_ready():
            try:
                await self.guilds.clean_guilds(guild.id for guild in self.bot.guilds)
            except Exception:
                logger.exception("[APP CONTEXT] Guild cleanup failed")

    async def refresh_settings(self) -> None:
        self.global_settings.refresh()

    # ------------------------------------------------------------------
    # Boundary shortcuts
    # ------------------------------------------------------------------

    def expiration_from_now(self, milliseconds: int | None = None) -> int:
        """Epoch milliseconds of a session expiring ``milliseconds`` from now."""
        if milliseconds is None:
            milliseconds = self.app_config.default_session_expiration_ms
        return self.clock() + int(milliseconds)

    async def create_command_cache(
        self,
        channel: Any,
        user: Any,
        command: str,
        perm_level: PermLevel,
        expiration_timestamp: int,
        payload: SessionPayload | Dict[str, Any] | None = None,
        overwrite: bool = False,
    ) -> CommandCache:
        return await self.sessions.create(
            channel, user, command, perm_level, expiration_timestamp, payload, overwrite
        )

    async def find_command_cache(
        self, channel: Any, user: Any, fields: str | Iterable[str] | None = None
    ) -> CommandCache | None:
        return await self.sessions.find(channel, user, fields)

    async def clean_command_caches(self) -> int:
        return await self.sessions.clean()

    async def get_guild_wrapper(self, guild: Any, fields: str | Iterable[str] | None = None) -> GuildHandle:
        return await self.guilds.get_guild_wrapper(guild, fields)
