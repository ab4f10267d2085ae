from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from bulwark.bot.cogs import events_listener, message_listener


class FakeStatus:
    online = "online"
    idle = "idle"


class FakeActivityType:
    watching = "watching"


class FakeActivity:
    def __init__(self, *, type, name):
        self.type = type
        self.name = name


@pytest.fixture(autouse=True)
def patch_discord(monkeypatch):
    monkeypatch.setattr(events_listener.discord, "Status", FakeStatus, raising=False)
    monkeypatch.setattr(events_listener.discord, "ActivityType", FakeActivityType, raising=False)
    monkeypatch.setattr(events_listener.discord, "Activity", FakeActivity, raising=False)
    yield


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        user=SimpleNamespace(id=999, display_name="BulwarkBot"),
        change_presence=AsyncMock(),
        guilds=[SimpleNamespace(id=1)],
        add_cog=MagicMock(),
    )


@pytest.fixture
def fake_context():
    return SimpleNamespace(
        dispatcher=SimpleNamespace(bot_user_id=None, dispatch=AsyncMock()),
        global_settings=SimpleNamespace(prefix="?!"),
        guilds=SimpleNamespace(add_guild=AsyncMock(return_value=True), remove_guild=AsyncMock(return_value=[])),
        start_background_tasks=MagicMock(),
        bot=None,
    )


@pytest.mark.asyncio
async def test_on_ready_sets_presence_and_starts_background_tasks(fake_bot, fake_context):
    cog = events_listener.EventsListenerCog(fake_bot, fake_context)

    await cog.on_ready()

    assert fake_context.dispatcher.bot_user_id == 999
    assert fake_context.bot is fake_bot
    fake_context.start_background_tasks.assert_called_once()

    kwargs = fake_bot.change_presence.await_args.kwargs
    assert kwargs["status"] == FakeStatus.online
    assert kwargs["activity"].name == "for ?!help"


@pytest.mark.asyncio
async def test_on_ready_without_user_still_starts_tasks(fake_bot, fake_context):
    fake_bot.user = None
    cog = events_listener.EventsListenerCog(fake_bot, fake_context)

    await cog.on_ready()

    fake_bot.change_presence.assert_not_awaited()
    assert fake_context.dispatcher.bot_user_id is None
    fake_context.start_background_tasks.assert_called_once()


@pytest.mark.asyncio
async def test_guild_join_and_remove(fake_bot, fake_context):
    cog = events_listener.EventsListenerCog(fake_bot, fake_context)
    guild = SimpleNamespace(id=5, name="Guild")

    await cog.on_guild_join(guild)
    fake_context.guilds.add_guild.assert_awaited_once_with(5)

    fake_context.guilds.remove_guild.return_value = ["logs"]
    await cog.on_guild_remove(guild)
    fake_context.guilds.remove_guild.assert_awaited_once_with(5)


@pytest.mark.asyncio
async def test_guild_join_failure_is_logged_not_raised(fake_bot, fake_context):
    fake_context.guilds.add_guild.side_effect = RuntimeError("db down")
    cog = events_listener.EventsListenerCog(fake_bot, fake_context)

    await cog.on_guild_join(SimpleNamespace(id=5, name="Guild"))


@pytest.mark.asyncio
async def test_on_message_dispatches(fake_bot, fake_context):
    cog = message_listener.MessageListenerCog(fake_bot, fake_context)
    message = SimpleNamespace(id=1, content="?!ping")

    await cog.on_message(message)

    fake_context.dispatcher.dispatch.assert_awaited_once_with(message)


def test_setup_registers_cogs(fake_bot, fake_context):
    events_listener.setup(fake_bot, fake_context)
    message_listener.setup(fake_bot, fake_context)

    added = [call.args[0] for call in fake_bot.add_cog.call_args_list]
    assert isinstance(added[0], events_listener.EventsListenerCog)
    assert isinstance(added[1], message_listener.MessageListenerCog)
