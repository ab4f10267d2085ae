"""Tests for the filter module and the builtin filters."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord

from bulwark.datatypes.filter_datatypes import Filter, FilterAction, FilterActionType, FilterOutput
from bulwark.filters.builtin.invite_links import InviteLinkFilter
from bulwark.filters.filter_module import FilterModule, load_filters


class AlwaysMatch(Filter):
    name = "always"

    async def run(self, message):
        return FilterOutput(report="matched", actions=[FilterAction(FilterActionType.DELETE, delay=3)])


class FakeGuild:
    id = "10"

    def __init__(self, settings):
        self.settings = settings
        self.load = AsyncMock(return_value=self)

    def get_filter_settings(self, name):
        return self.settings.get(name)


def _message(content=""):
    return SimpleNamespace(id=1, content=content, reply=AsyncMock(), delete=AsyncMock())


def test_builtin_filters_are_discovered():
    module = load_filters()
    assert [f.name for f in module.filters] == ["invite_links"]
    assert module.get("invite_links") is not None
    assert module.get("missing") is None


async def test_invite_filter_matches_invites_only():
    invite_filter = InviteLinkFilter()
    assert await invite_filter.run(_message("hello there")) is None
    output = await invite_filter.run(_message("come to https://discord.com/invite/xyz"))
    assert [action.type for action in output.actions] == [FilterActionType.SEND, FilterActionType.DELETE]


async def test_first_active_match_wins():
    first, second = AlwaysMatch(), AlwaysMatch()
    second.run = AsyncMock()
    module = FilterModule([first, second])
    message = _message()

    output = await module.filter_message(message, FakeGuild({"always": {"_enabled": True}}))
    assert output.report == "matched"
    message.delete.assert_awaited_once_with(delay=3)
    second.run.assert_not_awaited()


async def test_inactive_filters_are_skipped():
    module = FilterModule([AlwaysMatch()])
    message = _message()
    assert await module.filter_message(message, FakeGuild({"always": {"_enabled": False}})) is None
    message.delete.assert_not_awaited()


async def test_failed_action_does_not_stop_the_rest():
    module = FilterModule()
    message = _message()
    message.reply.side_effect = discord.HTTPException(SimpleNamespace(status=403, reason="Forbidden"), "no")

    await module.execute_actions(
        message,
        [FilterAction(FilterActionType.SEND, message="nope"), FilterAction(FilterActionType.DELETE)],
    )
    message.delete.assert_awaited_once_with(delay=None)
