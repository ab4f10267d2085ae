from __future__ import annotations

from urllib.parse import quote_plus

from bulwark.datatypes.command_datatypes import Command, CommandHelp

LMGTFY_URL = "https://lmgtfy.app/?q={query}"


class LmgtfyCommand(Command):
    name = "lmgtfy"
    dm = True
    help = CommandHelp(
        short_description="Let me google that for you",
        usages=("{command} [search text]",),
        examples=("{command} how to ask good questions",),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        query = args.strip()
        if not query:
            await message.channel.send("What should I search for?")
            return False

        await message.channel.send(LMGTFY_URL.format(query=quote_plus(query)))
        return True
