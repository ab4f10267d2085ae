from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from bulwark.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    Caches the contents of ``./config/app_config.yml`` and exposes typed
    shortcuts for the sections Bulwark reads. A shared fcntl lock is held
    while reading so a concurrent editor never hands us a half-written file.
    """

    def __init__(self, config_path: Path = CONFIG_PATH) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the cache and return the new mapping.

        A missing or unreadable file yields an empty mapping, so every
        property below falls back to its default.
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached configuration mapping. Callers must not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Lookup of a top-level key, returning ``default`` when absent."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def bot_settings(self) -> Dict[str, Any]:
        """The raw ``bot`` section consumed by :class:`GlobalSettings`."""
        return self._section("bot")

    @property
    def database_path(self) -> Path:
        """Path of the SQLite document store. Default is ``./data/bulwark.db``."""
        value = self._section("database").get("path") or "./data/bulwark.db"
        return Path(str(value)).resolve()

    @property
    def clean_interval(self) -> float:
        """Seconds between maintenance sweeps. Default is 60 seconds."""
        value = self._section("maintenance").get("clean_interval_seconds", 60)
        try:
            return max(1.0, float(value))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid clean_interval_seconds %r, using 60", value)
            return 60.0

    @property
    def settings_refresh_interval(self) -> float:
        """Seconds between reloads of the global settings. Default is 300 seconds."""
        value = self._section("maintenance").get("settings_refresh_interval_seconds", 300)
        try:
            return max(1.0, float(value))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid settings_refresh_interval_seconds %r, using 300", value)
            return 300.0

    @property
    def default_session_expiration_ms(self) -> int:
        """Default lifetime of a command cache, in milliseconds."""
        value = self._section("sessions").get("default_expiration_seconds", 60)
        try:
            return int(float(value) * 1000)
        except (TypeError, ValueError):
            return 60_000
