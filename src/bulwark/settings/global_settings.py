"""
Process-wide settings every guild falls back to.

The values come from the ``bot`` section of the YAML application config and
are re-read by :meth:`GlobalSettings.refresh` on a fixed interval.
"""

from __future__ import annotations

from typing import Any, Dict

from bulwark.configuration.app_configuration import AppConfig
from bulwark.datatypes.usage_limits import CommandUsageLimits
from bulwark.util.logger import get_logger

logger = get_logger("global_settings")

DEFAULT_PREFIX = "?!"

DEFAULT_EMBED_COLORS: Dict[str, int] = {
    "default": 0x5865F2,
    "help": 0x3498DB,
    "neutral": 0x95A5A6,
    "negative": 0xE74C3C,
    "warn": 0xF1C40F,
    "positive": 0x2ECC71,
}


class GlobalSettings:
    """Cached view of the global bot settings."""

    def __init__(self, app_config: AppConfig) -> None:
        self._app_config = app_config
        self.prefix: str = DEFAULT_PREFIX
        self.bot_masters: frozenset[str] = frozenset()
        self.embed_colors: Dict[str, int] = dict(DEFAULT_EMBED_COLORS)
        self.usage_limits: Dict[str, Any] = {"commands": {}}
        self._apply(app_config.bot_settings)

    def _apply(self, settings: Dict[str, Any]) -> None:
        prefix = settings.get("prefix")
        self.prefix = str(prefix) if prefix else DEFAULT_PREFIX

        self.bot_masters = frozenset(str(master) for master in settings.get("bot_masters") or ())

        colors = dict(DEFAULT_EMBED_COLORS)
        configured_colors = settings.get("embed_colors")
        if isinstance(configured_colors, dict):
            for name, value in configured_colors.items():
                try:
                    colors[str(name)] = int(value)
                except (TypeError, ValueError):
                    logger.warning("[GLOBAL SETTINGS] Ignoring invalid embed colour %s=%r", name, value)
        self.embed_colors = colors

        usage_limits = settings.get("usage_limits")
        self.usage_limits = usage_limits if isinstance(usage_limits, dict) else {"commands": {}}

    def refresh(self) -> None:
        """Reload the configuration file and re-apply the ``bot`` section."""
        self._app_config.reload()
        self._apply(self._app_config.bot_settings)
        logger.debug("[GLOBAL SETTINGS] Refreshed (prefix=%r, %d bot masters)", self.prefix, len(self.bot_masters))

    def is_bot_master(self, user_id: int | str) -> bool:
        return str(user_id) in self.bot_masters

    def get_usage_limits(self, command_name: str) -> CommandUsageLimits:
        """Global override of one command's usage limits."""
        return CommandUsageLimits.from_settings(self.usage_limits, command_name)

    def embed_color(self, name: str) -> int:
        return self.embed_colors.get(name, self.embed_colors["default"])
