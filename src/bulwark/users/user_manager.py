"""
Per-user usage records.

A user record only stores when each command was last used, per scope::

    {"id": "<user>", "command_last_used": {"<scope>": {"<command>": <epoch ms>}}}

A scope is a guild id, ``"dm"`` or ``"global"``. Records are created on the
first cooldown-relevant use and purged by ``clean_users`` once empty.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, Iterable

from bulwark.database.document_store import DocumentStore
from bulwark.datatypes.discord_datatypes import UserID
from bulwark.datatypes.loadable_record import LoadableRecord
from bulwark.util.logger import get_logger

logger = get_logger("user_manager")

GLOBAL_SCOPE = "global"
DM_SCOPE = "dm"

_GUILD_SCOPE = re.compile(r"^\d+$")


def validate_scope(scope: str) -> str:
    """
    Raises:
        ValueError: If ``scope`` is not ``"dm"``, ``"global"`` or a guild id.
    """
    scope = str(scope)
    if scope in (GLOBAL_SCOPE, DM_SCOPE) or _GUILD_SCOPE.match(scope):
        return scope
    raise ValueError(f"Invalid cooldown scope '{scope}'")


class UserHandle(LoadableRecord):
    """Lazily loaded usage record of one user."""

    FIELDS = ("command_last_used",)

    def __init__(self, user_id: UserID, store: DocumentStore) -> None:
        super().__init__()
        self.user_id = user_id
        self._store = store

    @property
    def id(self) -> str:
        return str(self.user_id)

    @property
    def record_name(self) -> str:
        return f"UserHandle({self.id})"

    async def _fetch(self, fields: list[str]) -> dict[str, Any]:
        return await self._store.users.find_one({"id": self.id}, fields) or {}

    def get_command_last_used(self, scope: str, command_name: str) -> int:
        """Last use of a command in a scope, 0 if it was never used there."""
        last_used = self._get("command_last_used") or {}
        return int((last_used.get(validate_scope(scope)) or {}).get(command_name, 0))

    async def set_command_last_used(self, scope: str, command_name: str, timestamp: int) -> None:
        """
        Record a use of a command.

        Setting a guild or dm scope also sets the global scope to the same
        timestamp; both values are overwritten unconditionally.
        """
        scope = validate_scope(scope)
        await self.load("command_last_used")

        scopes = [scope] if scope == GLOBAL_SCOPE else [scope, GLOBAL_SCOPE]
        await self._store.users.update_one(
            {"id": self.id},
            {"$set": {f"command_last_used.{entry}.{command_name}": int(timestamp) for entry in scopes}},
            upsert=True,
        )

        last_used = copy.deepcopy(self._get("command_last_used") or {})
        for entry in scopes:
            last_used.setdefault(entry, {})[command_name] = int(timestamp)
        self._set_local("command_last_used", last_used)

    async def reset_command_last_used(self, scope: str, command_name: str) -> None:
        """Forget the last use of a command in one scope."""
        scope = validate_scope(scope)
        await self.load("command_last_used")
        await self._store.users.update_one(
            {"id": self.id},
            {"$unset": {f"command_last_used.{scope}.{command_name}": ""}},
        )

        last_used = copy.deepcopy(self._get("command_last_used") or {})
        (last_used.get(scope) or {}).pop(command_name, None)
        self._set_local("command_last_used", last_used)

    def is_empty(self) -> bool:
        return not any((self._data.get("command_last_used") or {}).values())


class UserManager:
    """Cache of user handles."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._users: Dict[UserID, UserHandle] = {}

    def get_cached(self, user: Any) -> UserHandle:
        user_id = UserID(user)
        handle = self._users.get(user_id)
        if handle is None:
            handle = UserHandle(user_id, self._store)
            self._users[user_id] = handle
        return handle

    async def get(self, user: Any, fields: str | Iterable[str] | None = None) -> UserHandle:
        """Return the handle of ``user`` with ``fields`` (default: all) loaded."""
        handle = self.get_cached(user)
        await handle.load(fields)
        return handle

    async def clean_users(self) -> int:
        """
        Delete user records that hold no usage data.

        Returns:
            Number of records deleted.
        """
        deleted = await self._store.users.delete_many(
            {"$or": [{"command_last_used": None}, {"command_last_used": {}}]}
        )
        for user_id in [user_id for user_id, handle in self._users.items() if handle.is_empty()]:
            del self._users[user_id]
        if deleted:
            logger.debug("[USER MANAGER] Purged %d empty user record(s)", deleted)
        return deleted
