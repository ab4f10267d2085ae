"""
Store of command caches (multi-message command sessions).

Lookups on the hot path never query the database: every live cache is kept
in an in-memory index keyed by ``"{channel_id} {user_id}"``. The index is
hydrated once at startup with the key fields of unexpired records, and
kept current by ``create``, ``CommandCache.remove`` and the periodic
``clean`` sweep.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable

from bulwark.database.document_store import DocumentCollection, DocumentStore
from bulwark.datatypes.command_datatypes import SessionPayload
from bulwark.datatypes.discord_datatypes import ChannelID, UserID
from bulwark.datatypes.permission_level import PermLevel
from bulwark.errors import CommandCacheExistsError
from bulwark.sessions.command_cache import CommandCache, cache_key
from bulwark.util.benchmark import epoch_ms
from bulwark.util.logger import get_logger

logger = get_logger("command_cache_manager")

INDEX_FIELDS = ["channel", "user", "expiration_timestamp"]


class CommandCacheManager:
    """
    Owner of the command cache index.

    Args:
        store: Document store with the ``command_caches`` collection.
        clock: Returns the current epoch time in milliseconds.
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], int] = epoch_ms) -> None:
        self._store = store
        self.clock = clock
        self._index: Dict[str, CommandCache] = {}

    @property
    def collection(self) -> DocumentCollection:
        return self._store.command_caches

    def __len__(self) -> int:
        return len(self._index)

    async def initialize(self) -> int:
        """Load the key fields of every unexpired record into the index.

        Returns:
            Number of caches indexed.
        """
        documents = await self.collection.find({"expiration_timestamp": {"$gte": self.clock()}}, INDEX_FIELDS)
        for document in documents:
            try:
                handle = CommandCache(
                    self,
                    ChannelID(document["channel"]),
                    UserID(document["user"]),
                    int(document["expiration_timestamp"]),
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("[COMMAND CACHE MANAGER] Skipping malformed cache record %r", document)
                continue
            self._index[handle.key] = handle

        logger.info("[COMMAND CACHE MANAGER] Indexed %d live command cache(s)", len(self._index))
        return len(self._index)

    async def create(
        self,
        channel: Any,
        user: Any,
        command: str,
        perm_level: PermLevel,
        expiration_timestamp: int,
        payload: SessionPayload | Dict[str, Any] | None = None,
        overwrite: bool = False,
    ) -> CommandCache:
        """
        Start a command cache for (channel, user).

        Args:
            channel: Channel id or channel.
            user: User id or user.
            command: Name of the command that owns the session.
            perm_level: Permission level of the user at creation time.
            expiration_timestamp: Epoch milliseconds at which the session expires.
            payload: Initial payload.
            overwrite: Replace a live session instead of failing.

        Raises:
            CommandCacheExistsError: A live session exists and ``overwrite`` is False.
        """
        channel_id, user_id = ChannelID(channel), UserID(user)
        key = cache_key(channel_id, user_id)

        existing = self._index.get(key)
        if existing is not None and not existing.removed and not existing.is_expired():
            if not overwrite:
                raise CommandCacheExistsError(channel_id.to_int(), user_id.to_int())
            logger.debug("[COMMAND CACHE MANAGER] Overwriting live cache %s", key)

        # Drops an expired or overwritten record so the (channel, user) key stays unique
        await self.collection.delete_many({"channel": str(channel_id), "user": str(user_id)})
        if existing is not None:
            existing.removed = True

        handle = CommandCache(self, channel_id, user_id, expiration_timestamp)
        serialized = handle._serialize_payload(payload)
        await self.collection.insert_one(
            {
                "channel": str(channel_id),
                "user": str(user_id),
                "command": command,
                "perm_level": int(perm_level),
                "cache": serialized,
                "expiration_timestamp": int(expiration_timestamp),
            }
        )
        handle._set_local("command", command)
        handle._set_local("perm_level", int(perm_level))
        handle._set_local("cache", serialized)
        handle.payload = payload

        self._index[key] = handle
        logger.debug("[COMMAND CACHE MANAGER] Created cache %s for command '%s'", key, command)
        return handle

    async def find(self, channel: Any, user: Any, fields: str | Iterable[str] | None = None) -> CommandCache | None:
        """
        Return the live cache of (channel, user), or None.

        Removed and expired entries are dropped from the index on the way.

        Args:
            fields: Fields to load on the returned handle.
        """
        key = cache_key(channel, user)
        handle = self._index.get(key)
        if handle is None:
            return None

        if handle.removed or handle.is_expired():
            # The expired record itself is left for the sweep
            handle.removed = True
            self._index.pop(key, None)
            return None

        if fields is not None:
            await handle.load(fields)
        return handle

    def forget(self, handle: CommandCache) -> None:
        """Drop ``handle`` from the index if it is still the indexed one."""
        if self._index.get(handle.key) is handle:
            del self._index[handle.key]

    async def clean(self) -> int:
        """
        Sweep expired caches from the index and from the store.

        Safe to call at any time and any number of times.

        Returns:
            Number of persisted records deleted.
        """
        now = self.clock()
        stale = [key for key, handle in self._index.items() if handle.removed or handle.is_expired(now)]
        for key in stale:
            self._index.pop(key).removed = True

        deleted = await self.collection.delete_many({"expiration_timestamp": {"$lt": now}})
        if stale or deleted:
            logger.debug(
                "[COMMAND CACHE MANAGER] Swept %d index entries and %d records", len(stale), deleted
            )
        return deleted

    clean_command_caches = clean
