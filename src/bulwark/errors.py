"""
Exception types raised by the Bulwark core.

Lookup misses (unknown command, category or session) are not errors and are
reported as ``None``; the classes below cover programming errors and failures
that the dispatcher or the scheduler catch at their boundaries.
"""

from __future__ import annotations


class BulwarkError(Exception):
    """Base class for every error raised by Bulwark itself."""


class FieldNotLoadedError(BulwarkError):
    """A record field was read before it was loaded from the store."""

    def __init__(self, record: str, field: str) -> None:
        super().__init__(f"{record}: field '{field}' was accessed before being loaded")
        self.record = record
        self.field = field


class DuplicateCommandError(BulwarkError):
    """Two command definitions share the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Command '{name}' is registered more than once")
        self.name = name


class CommandCacheExistsError(BulwarkError):
    """A live command cache already exists for a (channel, user) key."""

    def __init__(self, channel_id: int, user_id: int) -> None:
        super().__init__(f"A command cache already exists for channel {channel_id} and user {user_id}")
        self.channel_id = channel_id
        self.user_id = user_id


class InvalidSessionPayloadError(BulwarkError):
    """A stored command cache payload does not match the command's schema."""


class StoreUnavailableError(BulwarkError):
    """The document store is not open or could not complete an operation."""
