"""
Handle on one command cache (an in-flight multi-message command session).

A command cache is keyed by (channel, user). It remembers which command is
talking to the user, the permission level the user had when the session
started, the command's payload and when the session expires.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Dict

from bulwark.datatypes.command_datatypes import SessionPayload
from bulwark.datatypes.discord_datatypes import ChannelID, UserID
from bulwark.datatypes.loadable_record import LoadableRecord
from bulwark.datatypes.permission_level import PermLevel
from bulwark.util.logger import get_logger

if TYPE_CHECKING:
    from bulwark.sessions.command_cache_manager import CommandCacheManager

logger = get_logger("command_cache")


def cache_key(channel_id: Any, user_id: Any) -> str:
    """Index key of a (channel, user) pair."""
    return f"{ChannelID(channel_id)} {UserID(user_id)}"


class CommandCache(LoadableRecord):
    """
    Lazily loaded command cache record.

    ``payload`` holds the typed payload once the dispatcher has validated the
    stored ``cache`` mapping against the command's ``payload_type``.
    """

    FIELDS = ("command", "perm_level", "cache", "expiration_timestamp")

    def __init__(
        self,
        manager: CommandCacheManager,
        channel_id: ChannelID,
        user_id: UserID,
        expiration_timestamp: int,
    ) -> None:
        super().__init__()
        self._manager = manager
        self.channel_id = channel_id
        self.user_id = user_id
        self.removed = False
        self.payload: SessionPayload | Dict[str, Any] | None = None
        self._set_local("expiration_timestamp", int(expiration_timestamp))

    @property
    def key(self) -> str:
        return cache_key(self.channel_id, self.user_id)

    @property
    def record_name(self) -> str:
        return f"CommandCache({self.key})"

    @property
    def _query(self) -> Dict[str, str]:
        return {"channel": str(self.channel_id), "user": str(self.user_id)}

    async def _fetch(self, fields: list[str]) -> dict[str, Any]:
        document = await self._manager.collection.find_one(self._query, fields)
        return document or {}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def command(self) -> str:
        return self._get("command")

    @property
    def perm_level(self) -> PermLevel:
        return PermLevel(self._get("perm_level") or 0)

    @property
    def cache(self) -> Dict[str, Any]:
        return copy.deepcopy(self._get("cache") or {})

    @property
    def expiration_timestamp(self) -> int:
        return self._get("expiration_timestamp")

    def is_expired(self, now: int | None = None) -> bool:
        """True once the clock has passed the stored expiration."""
        if now is None:
            now = self._manager.clock()
        return now > self.expiration_timestamp

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _serialize_payload(self, payload: SessionPayload | Dict[str, Any] | None) -> Dict[str, Any]:
        if isinstance(payload, SessionPayload):
            return payload.to_dict()
        return copy.deepcopy(dict(payload or {}))

    async def _update(self, changes: Dict[str, Any]) -> bool:
        if self.removed:
            logger.warning("[COMMAND CACHE] Ignoring update of removed cache %s", self.key)
            return False
        await self._manager.collection.update_one(self._query, {"$set": changes})
        for field, value in changes.items():
            self._set_local(field, value)
        return True

    async def save(
        self,
        payload: SessionPayload | Dict[str, Any] | None = None,
        expires_in_ms: int | None = None,
    ) -> bool:
        """
        Persist the payload and optionally move the expiration.

        Args:
            payload: New payload. When None, ``self.payload`` (or the resident
                cache) is written back.
            expires_in_ms: When given, the session now expires this many
                milliseconds from now.

        Returns:
            False if the cache was already removed.
        """
        if payload is not None:
            self.payload = payload
        if self.payload is not None:
            serialized = self._serialize_payload(self.payload)
        else:
            await self.load("cache")
            serialized = self.cache

        changes: Dict[str, Any] = {"cache": serialized}
        if expires_in_ms is not None:
            changes["expiration_timestamp"] = self._manager.clock() + int(expires_in_ms)
        return await self._update(changes)

    async def set_cache(self, payload: SessionPayload | Dict[str, Any]) -> bool:
        self.payload = payload
        return await self._update({"cache": self._serialize_payload(payload)})

    async def set_expiration_timestamp(self, timestamp: int) -> bool:
        return await self._update({"expiration_timestamp": int(timestamp)})

    async def extend_expiration(self, milliseconds: int) -> bool:
        """Push the expiration back by ``milliseconds``."""
        return await self._update({"expiration_timestamp": self.expiration_timestamp + int(milliseconds)})

    async def remove(self) -> None:
        """Delete the record and mark the handle removed.

        Removing an already removed cache is a no-op.
        """
        if self.removed:
            return
        self.removed = True
        await self._manager.collection.delete_one(self._query)
        self._manager.forget(self)
        logger.debug("[COMMAND CACHE] Removed cache %s", self.key)
