"""Tests for command registration and the help category tree."""

from types import MappingProxyType

import pytest

from bulwark.commands.command_registry import CommandRegistryBuilder, build_registry, normalize_path
from bulwark.datatypes.command_datatypes import Command
from bulwark.errors import DuplicateCommandError


def _command(command_name, command_path=""):
    class Generated(Command):
        name = command_name
        path = command_path

        async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
            return True

    return Generated


def test_normalize_path():
    assert normalize_path("/Management//Ranks/") == "management/ranks"
    assert normalize_path("") == ""


def test_duplicate_names_are_rejected():
    builder = CommandRegistryBuilder().add(_command("ping")).add(_command("PING"), "misc")
    with pytest.raises(DuplicateCommandError):
        builder.build()


def test_path_attribute_overrides_load_location():
    registry = (
        CommandRegistryBuilder()
        .add(_command("plain"), "misc")
        .add(_command("moved", "tools/deep"), "misc")
        .build()
    )
    assert registry.category_of("plain") == "misc"
    assert registry.category_of("moved") == "tools/deep"

    tools = registry.resolve_category("Tools")
    assert "deep" in tools.subcategories
    assert "moved" in registry.resolve_category("tools/deep").commands
    assert len(registry.root) == 2


def test_registry_is_read_only():
    registry = CommandRegistryBuilder().add(_command("ping")).build()
    assert isinstance(registry.commands, MappingProxyType)
    with pytest.raises(TypeError):
        registry.commands["other"] = None
    with pytest.raises(AttributeError):
        registry.root.name = "changed"


def test_lookup_misses_return_none():
    registry = CommandRegistryBuilder().add(_command("ping")).build()
    assert registry.lookup("PING") is not None
    assert registry.lookup("pong") is None
    assert registry.resolve_category("nowhere") is None
    assert "ping" in registry and "pong" not in registry


def test_builtin_discovery():
    registry = build_registry()

    assert {"help", "ping"} <= set(registry.root.commands)
    assert set(registry.root.subcategories) == {"fun", "management", "misc"}
    assert registry.root.subcategories["management"].name == "Management"
    assert {"prefix", "commands", "staff", "admin", "mod", "immune", "megalog", "filters"} <= set(
        registry.resolve_category("management").commands
    )
    assert registry.category_of("abc") == "fun"
    assert registry.category_of("bug") == "misc"
    assert len(registry) == len(registry.root)
    assert all(command.context is None for command in registry)
