"""
Message dispatcher.

Every message the bot can see goes through :meth:`Dispatcher.dispatch`. Per
(channel, user) the dispatcher is in one of two states:

* **session active** - a live command cache exists for the pair. The whole
  message is handed back to the command that owns the cache, together with
  the cache itself.
* **no session** - the message is either a bare mention of the bot (answered
  with help), plain text (passed to the filters) or a prefixed command.

A prefixed command passes these gates in order; failing one ends the
request without a reply unless noted:

1. the command exists
2. the command may run in direct messages (otherwise its help is sent)
3. the requester's permission level is high enough
4. the command is not disabled and no cooldown is running
5. the command is not toggled off in the guild

The handler's cooldown is only charged when it does not return ``False``.
Exceptions raised by handlers or by the store never leave ``dispatch``; they
are logged with the command name and answered with a generic notice.
"""

from __future__ import annotations

import re
from typing import Any, Callable

import discord

from bulwark.commands.command_registry import CommandRegistry
from bulwark.commands.usage_limits import UsageLimitEngine, usage_scope
from bulwark.datatypes.command_datatypes import Command
from bulwark.datatypes.permission_level import PermLevel
from bulwark.errors import InvalidSessionPayloadError
from bulwark.filters.filter_module import FilterModule
from bulwark.permissions.permission_resolver import member_perm_level
from bulwark.sessions.command_cache import CommandCache
from bulwark.sessions.command_cache_manager import CommandCacheManager
from bulwark.settings.global_settings import GlobalSettings
from bulwark.settings.guild_handle import GuildHandle
from bulwark.settings.guild_settings_manager import GuildSettingsManager
from bulwark.ui.help_embed import create_command_help_embed
from bulwark.util.benchmark import BenchmarkTimestamp, epoch_ms
from bulwark.util.logger import get_logger

logger = get_logger("dispatcher")

GENERIC_ERROR_NOTICE = "Oops, something went wrong while running that command."
SESSION_CANCELLED_NOTICE = "The action was cancelled."
DM_SESSION_CANCELLED_NOTICE = "This command can't be used in direct messages. The action was cancelled."

SESSION_FIELDS = ["command", "perm_level", "cache"]
GUILD_FIELDS = ["prefix", "ranks"]

_WHITESPACE = re.compile(r"\s+")


def parse_command(content: str, prefix: str) -> tuple[str, str]:
    """
    Split a prefixed message into command name and arguments.

    The command is the first whitespace-separated token without the prefix,
    so a space between prefix and name leaves the name empty.

    Returns:
        The lowercased command name (may be empty) and the remaining text.
    """
    parts = _WHITESPACE.split(content, maxsplit=1)
    command_name = parts[0][len(prefix):].lower()
    args = parts[1].strip() if len(parts) > 1 else ""
    return command_name, args


class Dispatcher:
    """
    Routes messages to commands, sessions and filters.

    Args:
        registry: Registered commands.
        guilds: Guild configuration store.
        sessions: Command cache store.
        usage_limits: Cooldown engine.
        global_settings: Default prefix, bot masters and embed colours.
        filters: Filters for plain member messages.
        clock: Returns the current epoch time in milliseconds.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        guilds: GuildSettingsManager,
        sessions: CommandCacheManager,
        usage_limits: UsageLimitEngine,
        global_settings: GlobalSettings,
        filters: FilterModule | None = None,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._registry = registry
        self._guilds = guilds
        self._sessions = sessions
        self._usage_limits = usage_limits
        self._global_settings = global_settings
        self._filters = filters
        self._clock = clock
        self.bot_user_id: int | None = None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def dispatch(self, message: discord.Message) -> None:
        """Handle one inbound message. Never raises."""
        if message.author.bot:
            return

        request_time = BenchmarkTimestamp.now(self._clock())
        dm = message.guild is None

        try:
            await self._dispatch(message, dm, request_time)
        except Exception:
            logger.exception("[DISPATCHER] Failed to process message %s", message.id)
            await self._send_notice(message.channel, GENERIC_ERROR_NOTICE)

    async def _dispatch(self, message: discord.Message, dm: bool, request_time: BenchmarkTimestamp) -> None:
        session = await self._sessions.find(message.channel.id, message.author.id, SESSION_FIELDS)

        guild: GuildHandle | None = None
        if not dm:
            guild = await self._guilds.get_guild_wrapper(message.guild, GUILD_FIELDS)

        if session is not None:
            await self._continue_session(message, session, dm, guild, request_time)
            return

        if dm:
            perm_level = member_perm_level(message.author, None, self._global_settings.bot_masters)
            prefix = self._global_settings.prefix
        else:
            perm_level = await guild.get_perm_level(message.author)
            prefix = guild.get_prefix()

        content = message.content or ""

        if self._is_bare_mention(content):
            help_command = self._registry.lookup("help")
            if help_command is not None:
                await self._run(help_command, message, "", perm_level, True, guild, request_time)
            return

        if not content.startswith(prefix):
            if perm_level == PermLevel.MEMBER and not dm and self._filters is not None:
                await self._filters.filter_message(message, guild)
            return

        command_name, args = parse_command(content, prefix)
        await self._run_command(message, command_name, args, perm_level, dm, guild, prefix, request_time)

    def _is_bare_mention(self, content: str) -> bool:
        if self.bot_user_id is None:
            return False
        return content.strip() in (f"<@{self.bot_user_id}>", f"<@!{self.bot_user_id}>")

    # ------------------------------------------------------------------
    # Fresh invocations
    # ------------------------------------------------------------------

    async def _run_command(
        self,
        message: discord.Message,
        command_name: str,
        args: str,
        perm_level: PermLevel,
        dm: bool,
        guild: GuildHandle | None,
        prefix: str,
        request_time: BenchmarkTimestamp,
    ) -> None:
        command = self._registry.lookup(command_name) if command_name else None
        if command is None:
            return

        if dm and not command.dm:
            embed = create_command_help_embed(command, prefix, self._global_settings.embed_color("help"))
            await message.channel.send(embed=embed)
            return

        if perm_level < command.perm_level:
            return

        scope = usage_scope(message.guild)
        limits = await self._usage_limits.get_effective_limits(guild, command)
        user = None
        if limits.has_cooldown or limits.enabled is False:
            user = await self._usage_limits.get_user(message.author.id)
            if not self._usage_limits.can_use(user, scope, command.name, limits, now=request_time.wall_ms):
                return

        if command.togglable and guild is not None:
            await guild.load("command_settings")
            if not guild.command_is_enabled(command.name):
                return

        result = await self._run(command, message, args, perm_level, dm, guild, request_time)

        if result is not False and user is not None and limits.has_cooldown:
            try:
                await self._usage_limits.record_use(user, scope, command.name, request_time.wall_ms)
            except Exception:
                logger.exception("[DISPATCHER] Failed to record use of '%s'", command.name)
                await self._send_notice(message.channel, GENERIC_ERROR_NOTICE)

    # ------------------------------------------------------------------
    # Session continuations
    # ------------------------------------------------------------------

    async def _continue_session(
        self,
        message: discord.Message,
        session: CommandCache,
        dm: bool,
        guild: GuildHandle | None,
        request_time: BenchmarkTimestamp,
    ) -> None:
        command = self._registry.lookup(session.command or "")
        if command is None:
            logger.warning("[DISPATCHER] Discarding cache %s of unknown command '%s'", session.key, session.command)
            await session.remove()
            await self._send_notice(message.channel, SESSION_CANCELLED_NOTICE)
            return

        if dm and not command.dm:
            await session.remove()
            await self._send_notice(message.channel, DM_SESSION_CANCELLED_NOTICE)
            return

        if command.payload_type is not None:
            try:
                session.payload = command.payload_type.from_dict(session.cache)
            except InvalidSessionPayloadError as exc:
                logger.warning("[DISPATCHER] Discarding cache %s with invalid payload: %s", session.key, exc)
                await session.remove()
                await self._send_notice(message.channel, SESSION_CANCELLED_NOTICE)
                return
        else:
            session.payload = session.cache

        await self._run(
            command, message, message.content or "", session.perm_level, dm, guild, request_time, session
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        command: Command,
        message: discord.Message,
        args: str,
        perm_level: PermLevel,
        dm: bool,
        guild: GuildHandle | None,
        request_time: BenchmarkTimestamp,
        session: CommandCache | None = None,
    ) -> bool | None:
        """Invoke a handler. A raised exception counts as an unsuccessful run."""
        try:
            result = await command.run(message, args, perm_level, dm, guild, request_time, session)
        except Exception:
            logger.exception("[DISPATCHER] Command '%s' raised while handling message %s", command.name, message.id)
            await self._send_notice(message.channel, GENERIC_ERROR_NOTICE)
            return False

        logger.debug(
            "[DISPATCHER] '%s' handled in %.2f ms (result=%r)", command.name, request_time.elapsed_ms(), result
        )
        return result

    @staticmethod
    async def _send_notice(channel: Any, text: str) -> None:
        try:
            await channel.send(text)
        except discord.HTTPException as exc:
            logger.warning("[DISPATCHER] Could not send notice to channel %s: %s", getattr(channel, "id", "?"), exc)
