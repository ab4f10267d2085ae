"""
Cooldown and availability checks.

The limits of a command are merged field by field from three layers, the
first layer that sets a field wins:

1. the guild's ``usage_limits`` override
2. the global ``usage_limits`` setting
3. the cooldowns declared on the command itself

A local cooldown is tracked per scope (guild id or ``"dm"``); a global
cooldown is tracked across every scope.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from bulwark.datatypes.usage_limits import CommandUsageLimits
from bulwark.settings.global_settings import GlobalSettings
from bulwark.users.user_manager import DM_SCOPE, GLOBAL_SCOPE, UserHandle, UserManager
from bulwark.util.benchmark import epoch_ms
from bulwark.util.logger import get_logger

if TYPE_CHECKING:
    from bulwark.datatypes.command_datatypes import Command
    from bulwark.settings.guild_handle import GuildHandle

logger = get_logger("usage_limits")


def usage_scope(guild: Any | None) -> str:
    """Cooldown scope of a request: the guild id, or ``"dm"`` outside guilds."""
    if guild is None:
        return DM_SCOPE
    return str(getattr(guild, "id", guild))


class UsageLimitEngine:
    """
    Args:
        global_settings: Source of the global usage-limit overrides.
        users: Manager of the per-user usage records.
        clock: Returns the current epoch time in milliseconds.
    """

    def __init__(
        self,
        global_settings: GlobalSettings,
        users: UserManager,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._global_settings = global_settings
        self._users = users
        self.clock = clock

    async def get_effective_limits(self, guild: GuildHandle | None, command: Command) -> CommandUsageLimits:
        """Merged limits of ``command`` for a request in ``guild`` (None in direct messages)."""
        declared = CommandUsageLimits(
            global_cooldown=command.cooldown_global,
            local_cooldown=command.cooldown_local,
        )
        if guild is None:
            override = self._global_settings.get_usage_limits(command.name)
        else:
            # already merged over the global layer
            await guild.load("usage_limits")
            override = guild.get_command_usage_limits(command.name)
        return override.merged_over(declared)

    def can_use(
        self,
        user: UserHandle,
        scope: str,
        command_name: str,
        limits: CommandUsageLimits,
        now: int | None = None,
    ) -> bool:
        """
        Whether ``user`` may run ``command_name`` in ``scope`` right now.

        False when the command is explicitly disabled, or while the local
        (scope) or global cooldown since the last recorded use is running.
        """
        if limits.enabled is False:
            return False

        if now is None:
            now = self.clock()

        if limits.local_cooldown and now < user.get_command_last_used(scope, command_name) + limits.local_cooldown:
            return False
        if limits.global_cooldown and now < user.get_command_last_used(GLOBAL_SCOPE, command_name) + limits.global_cooldown:
            return False
        return True

    async def record_use(self, user: UserHandle, scope: str, command_name: str, timestamp: int) -> None:
        """Record a use in ``scope`` (and in the global scope) at ``timestamp``."""
        await user.set_command_last_used(scope, command_name, timestamp)
        logger.debug("[USAGE LIMITS] Recorded use of '%s' by %s in %s", command_name, user.id, scope)

    async def get_user(self, user: Any) -> UserHandle:
        return await self._users.get(user, "command_last_used")
