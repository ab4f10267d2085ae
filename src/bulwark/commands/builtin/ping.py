from __future__ import annotations

import math

from bulwark.datatypes.command_datatypes import Command, CommandHelp


class PingCommand(Command):
    name = "ping"
    dm = True
    togglable = False
    help = CommandHelp(
        short_description="Checks that the bot is responsive",
        long_description="Replies with the time it took to handle the request and the gateway latency.",
        usages=("{command}",),
        examples=("{command}",),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        reply = f"Pong! Handled in {request_time.elapsed_ms():.0f} ms"
        bot = self.context.bot if self.context is not None else None
        if bot is not None and math.isfinite(bot.latency):
            reply += f", gateway latency {bot.latency * 1000:.0f} ms"
        await message.channel.send(reply)
        return True
