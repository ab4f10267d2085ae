"""
Usage-limit values for a single command.

Usage limits live in two places with the same shape: the ``usage_limits``
section of the global settings and the ``usage_limits`` field of a guild
record::

    {"commands": {"<command>": {"global_cooldown": ms, "local_cooldown": ms, "enabled": bool}}}

Every field is optional. A field that is missing from a layer inherits from
the layer below it; a field missing everywhere stays ``None`` (absent), which
is not the same as zero.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

from bulwark.util.logger import get_logger

logger = get_logger("usage_limits")


@dataclass(slots=True, frozen=True)
class CommandUsageLimits:
    """Cooldowns (milliseconds) and availability of one command."""

    global_cooldown: int | None = None
    local_cooldown: int | None = None
    enabled: bool | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> CommandUsageLimits:
        """Build limits from a stored mapping. Unknown keys and malformed values are logged and skipped."""
        if not isinstance(data, Mapping):
            return cls()

        unknown = sorted(str(key) for key in data if key not in _FIELD_NAMES)
        if unknown:
            logger.warning("[USAGE LIMITS] Ignoring unknown usage-limit key(s): %s", ", ".join(unknown))

        global_cooldown = _milliseconds(data, "global_cooldown")
        local_cooldown = _milliseconds(data, "local_cooldown")
        enabled = data.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            logger.warning("[USAGE LIMITS] Ignoring non-boolean 'enabled' value: %r", enabled)
            enabled = None
        return cls(global_cooldown=global_cooldown, local_cooldown=local_cooldown, enabled=enabled)

    @classmethod
    def from_settings(cls, usage_limits: Mapping[str, Any] | None, command_name: str) -> CommandUsageLimits:
        """Pick the entry for ``command_name`` out of a whole ``usage_limits`` mapping."""
        if not isinstance(usage_limits, Mapping):
            return cls()
        commands = usage_limits.get("commands")
        if not isinstance(commands, Mapping):
            return cls()
        return cls.from_dict(commands.get(command_name))

    def merged_over(self, base: CommandUsageLimits) -> CommandUsageLimits:
        """Return these limits with every absent field inherited from ``base``."""
        return CommandUsageLimits(
            **{
                f.name: getattr(self, f.name) if getattr(self, f.name) is not None else getattr(base, f.name)
                for f in fields(self)
            }
        )

    @property
    def has_cooldown(self) -> bool:
        return bool(self.global_cooldown) or bool(self.local_cooldown)

    def to_dict(self) -> dict[str, Any]:
        """Mapping with only the present fields, in the stored shape."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


_FIELD_NAMES = frozenset(f.name for f in fields(CommandUsageLimits))


def _milliseconds(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("[USAGE LIMITS] Ignoring non-numeric '%s' value: %r", key, value)
        return None
    return int(value)
