"""Tests for the builtin management, fun and misc commands."""

from types import SimpleNamespace

import pytest

from bulwark.settings.guild_settings_manager import GuildSettingsManager

GUILD_ID = 10


@pytest.fixture
def admin_says(context, message_factory):
    async def _say(content, **kwargs):
        message = message_factory(content, admin=True, **kwargs)
        await context.dispatcher.dispatch(message)
        return message

    return _say


async def _guild(context, fields):
    guilds = GuildSettingsManager(context.store, context.global_settings, context.registry)
    return await guilds.get_guild_wrapper(GUILD_ID, fields)


class TestPrefixCommand:
    async def test_show_set_and_reset(self, context, admin_says, sent):
        assert sent(await admin_says("?!prefix")) == ["The current prefix is `?!`"]
        await admin_says("?!prefix $")
        assert (await _guild(context, "prefix")).get_prefix() == "$"
        assert sent(await admin_says("$prefix reset")) == ["The prefix was reset to `?!`"]

    async def test_long_prefix_is_rejected(self, context, admin_says):
        await admin_says("?!prefix abcdefghijk")
        assert (await _guild(context, "prefix")).get_prefix() == "?!"


class TestStaffCommands:
    async def test_add_list_and_remove(self, context, admin_says, sent):
        await admin_says("?!staff mods add <@&77>")
        await admin_says("?!mod add 88")
        assert sent(await admin_says("?!mods list")) == []
        assert sent(await admin_says("?!mod list")) == ["**mods**: `77`, `88`"]

        duplicate = await admin_says("?!staff mod add 77")
        assert "already in" in sent(duplicate)[0]

        await admin_says("?!mod rem 77")
        assert (await _guild(context, "ranks")).get_rank_ids("mods") == ["88"]

    async def test_rank_members_gain_their_level(self, context, admin_says, message_factory, sent):
        await admin_says("?!admin add <@5>")
        message = message_factory("?!prefix", author_id=5)
        await context.dispatcher.dispatch(message)
        assert sent(message) == ["The current prefix is `?!`"]

    async def test_unknown_rank(self, admin_says, sent):
        assert "Please specify a rank" in sent(await admin_says("?!staff owners add 1"))[0]


class TestCommandsCommand:
    async def test_disable_and_enable(self, context, admin_says, sent):
        assert sent(await admin_says("?!commands disable abc")) == ["`abc` is now disabled"]
        assert sent(await admin_says("?!commands status abc")) == ["`abc` is disabled"]
        assert sent(await admin_says("?!commands enable abc")) == ["`abc` is now enabled"]

    async def test_non_togglable_command(self, admin_says, sent):
        assert sent(await admin_says("?!commands disable help")) == ["`help` can't be toggled"]


class TestMegalogCommand:
    async def test_enable_list_and_disable(self, context, admin_says, sent):
        await admin_says("?!megalog enable voice <#321>")
        listing = sent(await admin_says("?!megalog list"))[0]
        assert "`voiceMute`: <#321>" in listing

        await admin_says("?!megalog disable voiceMute")
        guild = await _guild(context, "megalog")
        assert not guild.megalog_is_enabled("voiceMute")
        assert guild.get_megalog_channel_id("voiceDeaf") == "321"

    async def test_enable_defaults_to_current_channel(self, context, admin_says):
        await admin_says("?!megalog enable ban", channel_id=444)
        assert (await _guild(context, "megalog")).get_megalog_channel_id("ban") == "444"

    async def test_ignore(self, context, admin_says, sent):
        assert sent(await admin_says("?!megalog ignore <#9>")) == ["<#9> is now ignored"]
        assert sent(await admin_says("?!megalog ignore <#9>")) == ["<#9> was already ignored"]
        assert (await _guild(context, "megalog")).megalog_is_ignored(9)

    async def test_unknown_function(self, admin_says, sent):
        assert "no megalog function" in sent(await admin_says("?!megalog enable lasers"))[0]


class TestFiltersCommand:
    async def test_enable_and_list(self, context, admin_says, sent):
        assert sent(await admin_says("?!filters enable invite_links")) == ["`invite_links` is now enabled"]
        assert "`invite_links` (on)" in sent(await admin_says("?!filters list"))[0]
        assert (await _guild(context, "filters")).get_filter_settings("invite_links") == {"_enabled": True}

    async def test_unknown_filter(self, admin_says, sent):
        assert sent(await admin_says("?!filters enable spam")) == ["There is no filter called `spam`"]


class TestMiscCommands:
    async def test_help_for_a_command(self, admin_says):
        message = await admin_says("?!help bug")
        embed = message.channel.send.await_args.kwargs["embed"]
        assert embed.title == "Help for bug"
        assert any(field.name == "Global Cooldown" and field.value == "20 seconds" for field in embed.fields)

    async def test_help_for_a_category(self, admin_says):
        message = await admin_says("?!help management")
        embed = message.channel.send.await_args.kwargs["embed"]
        assert embed.title == "Help for Management"

    async def test_help_miss(self, admin_says, sent):
        assert sent(await admin_says("?!help nothing")) == ["Couldn't find specified category/command"]

    async def test_lmgtfy_encodes_the_query(self, admin_says, sent):
        assert sent(await admin_says("?!lmgtfy what is 1+1?")) == ["https://lmgtfy.app/?q=what+is+1%2B1%3F"]

    async def test_bug_report_is_stored_and_rate_limited(self, context, message_factory, clock):
        first = message_factory("?!bug it broke", dm=True)
        await context.dispatcher.dispatch(first)
        reports = await context.store.collection("bug_reports").find()
        assert reports == [
            {"user": "1", "guild": None, "channel": "100", "report": "it broke", "timestamp": clock.now}
        ]

        clock.advance(1_000)
        second = message_factory("?!bug again", guild_id=GUILD_ID)
        await context.dispatcher.dispatch(second)
        second.channel.send.assert_not_awaited()
        assert await context.store.collection("bug_reports").count() == 1

    async def test_ping_reports_gateway_latency(self, context, message_factory, sent):
        context.bot = SimpleNamespace(latency=0.05)
        message = message_factory("?!ping")
        await context.dispatcher.dispatch(message)
        assert sent(message)[0].endswith("gateway latency 50 ms")
