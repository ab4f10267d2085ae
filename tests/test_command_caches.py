"""Tests for command caches (multi-message command sessions)."""

import pytest

from bulwark.datatypes.permission_level import PermLevel
from bulwark.errors import CommandCacheExistsError
from bulwark.sessions.command_cache_manager import CommandCacheManager

CHANNEL, USER = 100, 1


async def _create(context, seconds=100, **kwargs):
    return await context.create_command_cache(
        CHANNEL, USER, "abc", PermLevel.MOD, context.expiration_from_now(seconds * 1000), **kwargs
    )


async def test_create_and_find(context):
    handle = await _create(context, payload={"step": 0})
    found = await context.find_command_cache(CHANNEL, USER, ["command", "perm_level", "cache"])
    assert found is handle
    assert found.command == "abc"
    assert found.perm_level == PermLevel.MOD
    assert found.cache == {"step": 0}
    assert await context.find_command_cache(CHANNEL, 2) is None


async def test_only_one_live_cache_per_channel_and_user(context):
    await _create(context)
    with pytest.raises(CommandCacheExistsError):
        await _create(context)

    replacement = await _create(context, overwrite=True, payload={"step": 2})
    assert await context.store.command_caches.count({"channel": str(CHANNEL), "user": str(USER)}) == 1
    assert (await context.find_command_cache(CHANNEL, USER)) is replacement


async def test_expired_cache_is_invisible_and_replaceable(context, clock):
    handle = await _create(context, seconds=100)
    clock.advance(150_000)
    assert handle.is_expired()
    assert await context.find_command_cache(CHANNEL, USER) is None

    fresh = await _create(context)
    assert fresh is not handle
    assert handle.removed


async def test_cache_is_live_until_its_expiration(context, clock):
    await _create(context, seconds=100)
    clock.advance(100_000)
    assert await context.find_command_cache(CHANNEL, USER) is not None


async def test_save_moves_expiration_and_persists_payload(context, clock):
    handle = await _create(context, seconds=10)
    clock.advance(5_000)
    assert await handle.save({"step": 1}, expires_in_ms=10_000)
    assert handle.expiration_timestamp == clock.now + 10_000

    stored = await context.store.command_caches.find_one({"channel": str(CHANNEL)})
    assert stored["cache"] == {"step": 1}
    assert stored["expiration_timestamp"] == clock.now + 10_000


async def test_extend_expiration(context):
    handle = await _create(context, seconds=10)
    before = handle.expiration_timestamp
    await handle.extend_expiration(5_000)
    assert handle.expiration_timestamp == before + 5_000


async def test_remove_is_idempotent_and_stale_handles_are_inert(context):
    old = await _create(context)
    await old.remove()
    await old.remove()
    assert await context.find_command_cache(CHANNEL, USER) is None

    new = await _create(context)
    assert await old.save({"step": 9}) is False
    await old.remove()
    assert await context.find_command_cache(CHANNEL, USER) is new
    assert await context.store.command_caches.count() == 1


async def test_sweep_deletes_only_expired_records(context, clock):
    await _create(context, seconds=10)
    await context.create_command_cache(CHANNEL, 2, "abc", PermLevel.MEMBER, context.expiration_from_now(60_000))
    clock.advance(20_000)

    assert await context.clean_command_caches() == 1
    assert await context.clean_command_caches() == 0
    assert len(context.sessions) == 1
    assert await context.store.command_caches.count() == 1


async def test_index_is_hydrated_from_the_store(context, clock):
    await _create(context, seconds=100)
    await context.create_command_cache(CHANNEL, 2, "abc", PermLevel.MEMBER, context.expiration_from_now(1_000))
    clock.advance(2_000)

    restarted = CommandCacheManager(context.store, clock)
    assert await restarted.initialize() == 1
    found = await restarted.find(CHANNEL, USER, "command")
    assert found.command == "abc"
    assert await restarted.find(CHANNEL, 2) is None


async def test_default_expiration_comes_from_config(context, clock):
    assert context.expiration_from_now() == clock.now + 60_000
