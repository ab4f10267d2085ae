"""
Type-safe wrappers for Discord snowflake identifiers.

Discord ids are 64-bit integers, but Bulwark stores them as strings inside
its documents (JSON has no 64-bit integer type). The wrappers below accept
an int, a numeric string, another wrapper or any discord object exposing an
``id`` attribute, and convert in both directions.
"""

from __future__ import annotations

from typing import Any


class Snowflake:
    """
    Base class for the typed snowflake wrappers.

    Two wrappers compare equal only when they are of the same type and hold
    the same id, so a ``GuildID`` never collides with a ``UserID`` as a
    dictionary key.

    Example:
        >>> GuildID(123).to_int()
        123
        >>> str(GuildID("123"))
        '123'
        >>> GuildID(123) == UserID(123)
        False
    """

    __slots__ = ("_value",)

    def __init__(self, value: Any) -> None:
        """
        Args:
            value: An int, a numeric string, a wrapper, or an object with an ``id``.

        Raises:
            ValueError: If the value cannot be read as a snowflake.
        """
        if isinstance(value, Snowflake):
            self._value = value._value
            return
        if isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        if isinstance(value, int):
            self._value = value
        elif isinstance(value, str):
            self._value = int(value.strip())
        elif hasattr(value, "id"):
            self._value = int(value.id)
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value!r}")
        if self._value < 0:
            raise ValueError(f"Snowflake ids are never negative: {self._value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value})"

    def __eq__(self, other: object) -> bool:
        if type(other) is type(self):
            return self._value == other._value  # type: ignore[attr-defined]
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value))


class UserID(Snowflake):
    """Snowflake of a Discord user or member."""

    __slots__ = ()


class GuildID(Snowflake):
    """Snowflake of a Discord guild."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake of a Discord text or voice channel."""

    __slots__ = ()


class RoleID(Snowflake):
    """Snowflake of a Discord role."""

    __slots__ = ()
