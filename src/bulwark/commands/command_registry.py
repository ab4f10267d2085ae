"""
Command registry.

The registry is built in two passes:

1. ``discover_commands`` walks the ``bulwark.commands.builtin`` package.
   Every subpackage is a category (named by its ``CATEGORY_NAME``) and every
   concrete :class:`Command` subclass defined in a module is collected
   together with the category it was loaded from.
2. ``CommandRegistryBuilder.build`` instantiates the commands, rejects
   duplicate names and constructs the category tree bottom-up. The result is
   read-only: mappings are exposed through ``MappingProxyType`` and category
   nodes are frozen dataclasses.

A command's ``path`` attribute, when set, overrides its load location.
"""

from __future__ import annotations

import importlib
import inspect
import pkgutil
from dataclasses import dataclass
from types import MappingProxyType, ModuleType
from typing import TYPE_CHECKING, Dict, Iterator, List, Mapping, Tuple

from bulwark.datatypes.command_datatypes import Command
from bulwark.errors import DuplicateCommandError
from bulwark.util.logger import get_logger

if TYPE_CHECKING:
    from bulwark.app_context import AppContext

logger = get_logger("command_registry")

BUILTIN_PACKAGE = "bulwark.commands.builtin"


def normalize_path(path: str) -> str:
    """Lowercase a slash-delimited category path and drop empty segments."""
    return "/".join(segment.strip().lower() for segment in path.split("/") if segment.strip())


def _parent(path: str) -> str:
    return path.rpartition("/")[0]


@dataclass(frozen=True)
class CommandCategory:
    """Immutable node of the category tree."""

    name: str
    path: str
    description: str
    subcategories: Mapping[str, "CommandCategory"]
    commands: Mapping[str, Command]

    @property
    def is_root(self) -> bool:
        return self.path == ""

    def __len__(self) -> int:
        return len(self.commands) + sum(len(child) for child in self.subcategories.values())


class CommandRegistry:
    """Read-only lookup structure over the registered commands."""

    def __init__(
        self,
        commands: Mapping[str, Command],
        root: CommandCategory,
        categories_by_command: Mapping[str, str],
    ) -> None:
        self._commands = commands
        self._root = root
        self._categories_by_command = categories_by_command

    @property
    def commands(self) -> Mapping[str, Command]:
        return self._commands

    @property
    def root(self) -> CommandCategory:
        return self._root

    def lookup(self, name: str) -> Command | None:
        """Return the command registered as ``name`` (case-insensitive), or None."""
        return self._commands.get(name.lower())

    def resolve_category(self, path: str) -> CommandCategory | None:
        """Return the category at a slash-delimited path, or None. ``""`` is the root."""
        node = self._root
        for segment in filter(None, normalize_path(path).split("/")):
            node = node.subcategories.get(segment)
            if node is None:
                return None
        return node

    def category_of(self, name: str) -> str | None:
        """Path of the category a command is listed under."""
        return self._categories_by_command.get(name.lower())

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._commands


class CommandRegistryBuilder:
    """Collects command definitions and builds a :class:`CommandRegistry` once."""

    def __init__(self) -> None:
        self._entries: List[Tuple[str, type[Command] | Command]] = []
        self._category_info: Dict[str, Tuple[str, str]] = {}

    def add_category(self, path: str, name: str | None = None, description: str = "") -> CommandRegistryBuilder:
        path = normalize_path(path)
        self._category_info[path] = (name or path.rpartition("/")[2] or "Commands", description)
        return self

    def add(self, command: type[Command] | Command, category_path: str = "") -> CommandRegistryBuilder:
        self._entries.append((normalize_path(category_path), command))
        return self

    def build(self, context: AppContext | None = None) -> CommandRegistry:
        """
        Instantiate the collected commands and freeze the category tree.

        Raises:
            DuplicateCommandError: If two commands share a name.
        """
        commands: Dict[str, Command] = {}
        placements: Dict[str, List[str]] = {}
        categories_by_command: Dict[str, str] = {}

        for load_path, definition in self._entries:
            command = definition(context) if isinstance(definition, type) else definition
            name = command.name.lower()
            if name in commands:
                raise DuplicateCommandError(name)
            category_path = normalize_path(command.path) if command.path else load_path
            commands[name] = command
            placements.setdefault(category_path, []).append(name)
            categories_by_command[name] = category_path

        paths = {""} | set(placements) | set(self._category_info)
        for path in list(paths):
            while path:
                path = _parent(path)
                paths.add(path)

        nodes: Dict[str, CommandCategory] = {}
        for path in sorted(paths, key=lambda p: p.count("/") if p else -1, reverse=True):
            name, description = self._category_info.get(path, (path.rpartition("/")[2] or "Commands", ""))
            children = {
                child.rpartition("/")[2]: nodes[child]
                for child in sorted(nodes)
                if child and _parent(child) == path
            }
            nodes[path] = CommandCategory(
                name=name,
                path=path,
                description=description,
                subcategories=MappingProxyType(children),
                commands=MappingProxyType({key: commands[key] for key in sorted(placements.get(path, ()))}),
            )

        logger.info("[COMMAND REGISTRY] Registered %d commands in %d categories", len(commands), len(nodes) - 1)
        return CommandRegistry(
            MappingProxyType(commands),
            nodes[""],
            MappingProxyType(categories_by_command),
        )


def _module_commands(module: ModuleType) -> List[type[Command]]:
    # Base classes without a name (shared behaviour for several commands) are skipped
    return [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj)
        and issubclass(obj, Command)
        and obj is not Command
        and not inspect.isabstract(obj)
        and isinstance(getattr(obj, "name", None), str)
        and obj.__module__ == module.__name__
    ]


def discover_commands(package_name: str = BUILTIN_PACKAGE) -> CommandRegistryBuilder:
    """
    First pass: import every module below ``package_name`` and collect its commands.

    Returns:
        A builder holding the discovered commands and categories.
    """
    builder = CommandRegistryBuilder()
    package = importlib.import_module(package_name)
    builder.add_category("", getattr(package, "CATEGORY_NAME", "Commands"), getattr(package, "CATEGORY_DESCRIPTION", ""))
    for command in _module_commands(package):
        builder.add(command, "")

    for module_info in pkgutil.walk_packages(package.__path__, prefix=package_name + "."):
        module = importlib.import_module(module_info.name)
        relative = module_info.name[len(package_name) + 1:].split(".")
        category_parts = relative if module_info.ispkg else relative[:-1]
        category_path = "/".join(category_parts)

        if module_info.ispkg:
            builder.add_category(
                category_path,
                getattr(module, "CATEGORY_NAME", relative[-1].capitalize()),
                getattr(module, "CATEGORY_DESCRIPTION", ""),
            )
        for command in _module_commands(module):
            builder.add(command, category_path)

    return builder


def build_registry(context: AppContext | None = None, package_name: str = BUILTIN_PACKAGE) -> CommandRegistry:
    """Discover the commands of ``package_name`` and build the registry."""
    return discover_commands(package_name).build(context)
