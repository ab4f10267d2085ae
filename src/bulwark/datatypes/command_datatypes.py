"""
Command definitions and typed session payloads.

Every chat command is a subclass of :class:`Command`. Its class attributes
are the immutable definition read by the registry and the dispatcher; the
instance only carries the application context the handler needs.

Commands that hold a conversation open across several messages declare a
:class:`SessionPayload` subclass as ``payload_type``. The stored payload of a
command cache is validated against it before the command is resumed.
"""

from __future__ import annotations

import dataclasses
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from bulwark.datatypes.permission_level import PermLevel
from bulwark.errors import InvalidSessionPayloadError

if TYPE_CHECKING:
    import discord

    from bulwark.app_context import AppContext
    from bulwark.sessions.command_cache import CommandCache
    from bulwark.settings.guild_handle import GuildHandle
    from bulwark.util.benchmark import BenchmarkTimestamp


@dataclass(slots=True, frozen=True)
class CommandHelp:
    """Help metadata shown by the help command.

    ``{command}`` inside usages and examples is replaced with the guild
    prefix followed by the command name when rendered.
    """

    short_description: str
    long_description: str = ""
    usages: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()
    additional_fields: tuple[tuple[str, str], ...] = ()


@dataclass(slots=True)
class SessionPayload:
    """Base class of typed command-cache payloads."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None):
        """Validate a stored payload and build the typed instance.

        Raises:
            InvalidSessionPayloadError: On unknown keys, missing required keys
                or values whose type does not match the declared field type.
        """
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise InvalidSessionPayloadError(f"{cls.__name__}: payload is not a mapping")

        declared = {f.name: f for f in dataclasses.fields(cls)}
        unknown = set(data) - set(declared)
        if unknown:
            raise InvalidSessionPayloadError(f"{cls.__name__}: unknown keys {sorted(unknown)}")

        hints = typing.get_type_hints(cls)
        values: dict[str, Any] = {}
        for name, f in declared.items():
            if name not in data:
                if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                    raise InvalidSessionPayloadError(f"{cls.__name__}: missing key '{name}'")
                continue
            value = data[name]
            expected = hints.get(name)
            if isinstance(expected, type) and not _matches(value, expected):
                raise InvalidSessionPayloadError(
                    f"{cls.__name__}: '{name}' should be {expected.__name__}, got {type(value).__name__}"
                )
            values[name] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def _matches(value: Any, expected: type) -> bool:
    if expected is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


class Command(ABC):
    """
    Base class of every chat command.

    Class attributes:
        name: Unique, lowercase invocation name.
        path: Slash-delimited category that overrides the load location.
        dm: Whether the command may run in direct messages.
        perm_level: Minimum permission level of the requester.
        togglable: Whether guild admins may disable the command.
        cooldown_local: Per-scope cooldown in milliseconds.
        cooldown_global: Cooldown across all scopes in milliseconds.
        help: Help metadata.
        payload_type: Schema of the command-cache payload, if the command keeps sessions.
    """

    name: ClassVar[str]
    path: ClassVar[str] = ""
    dm: ClassVar[bool] = False
    perm_level: ClassVar[PermLevel] = PermLevel.MEMBER
    togglable: ClassVar[bool] = True
    cooldown_local: ClassVar[int | None] = None
    cooldown_global: ClassVar[int | None] = None
    help: ClassVar[CommandHelp] = CommandHelp(short_description="")
    payload_type: ClassVar[type[SessionPayload] | None] = None

    def __init__(self, context: AppContext | None = None) -> None:
        self.context = context

    @abstractmethod
    async def run(
        self,
        message: discord.Message,
        args: str,
        perm_level: PermLevel,
        dm: bool,
        guild: GuildHandle | None,
        request_time: BenchmarkTimestamp,
        session: CommandCache | None = None,
    ) -> bool | None:
        """Execute the command.

        Returns:
            ``False`` when the invocation was unsuccessful (no cooldown is
            charged); ``True`` or ``None`` otherwise.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
