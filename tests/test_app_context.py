"""Tests for the application context's periodic jobs."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

from bulwark.datatypes.permission_level import PermLevel


async def test_maintenance_sweeps_sessions_users_and_departed_guilds(context, clock):
    await context.create_command_cache(1, 1, "abc", PermLevel.MEMBER, context.expiration_from_now(1_000))
    await context.store.users.insert_one({"id": "5"})
    await context.guilds.add_guild(10)
    await context.guilds.add_guild(11)
    context.bot = SimpleNamespace(is_ready=lambda: True, guilds=[SimpleNamespace(id=10)])
    clock.advance(5_000)

    await context.run_maintenance()

    assert await context.store.command_caches.count() == 0
    assert await context.store.users.count() == 0
    assert await context.store.guilds.count() == 1


async def test_maintenance_keeps_guilds_until_the_bot_is_ready(context):
    await context.guilds.add_guild(10)
    context.bot = SimpleNamespace(is_ready=lambda: False, guilds=[])

    await context.run_maintenance()

    assert await context.store.guilds.count() == 1


async def test_maintenance_steps_are_independent(context, monkeypatch):
    monkeypatch.setattr(context.sessions, "clean", AsyncMock(side_effect=RuntimeError("boom")))
    clean_users = AsyncMock(return_value=0)
    monkeypatch.setattr(context.users, "clean_users", clean_users)

    await context.run_maintenance()

    clean_users.assert_awaited_once()


async def test_refresh_settings_rereads_the_config(context, config_file):
    config_file.write_text("bot:\n  prefix: '>>'\n", encoding="utf-8")
    await context.refresh_settings()
    assert context.global_settings.prefix == ">>"
