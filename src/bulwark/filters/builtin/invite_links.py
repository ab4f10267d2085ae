"""Deletes Discord invite links posted by members."""

from __future__ import annotations

import re

import discord

from bulwark.datatypes.filter_datatypes import Filter, FilterAction, FilterActionType, FilterOutput

INVITE_PATTERN = re.compile(
    r"(?:https?://)?(?:www\.)?(?:discord\.gg|discord(?:app)?\.com/invite)/[\w-]+",
    re.IGNORECASE,
)


class InviteLinkFilter(Filter):
    name = "invite_links"
    short_help = "Deletes messages containing Discord invite links"

    async def run(self, message: discord.Message) -> FilterOutput | None:
        match = INVITE_PATTERN.search(message.content or "")
        if match is None:
            return None
        return FilterOutput(
            report=f"posted invite link {match.group(0)}",
            actions=[
                FilterAction(FilterActionType.SEND, message="Invite links aren't allowed here."),
                FilterAction(FilterActionType.DELETE),
            ],
        )
