"""
Recite the alphabet with the bot.

The command keeps a session open between messages: each reply from the user
is checked against the next expected letter.
"""

from __future__ import annotations

from dataclasses import dataclass

from bulwark.datatypes.command_datatypes import Command, CommandHelp, SessionPayload
from bulwark.errors import CommandCacheExistsError

SEQUENCE = "abc"
REPLY_WINDOW_MS = 10_000


@dataclass(slots=True)
class AbcPayload(SessionPayload):
    step: int = 0


class AbcCommand(Command):
    name = "abc"
    dm = True
    payload_type = AbcPayload
    help = CommandHelp(
        short_description="Recite the alphabet",
        long_description=(
            f"Starts a small game: reply with the next letter within {REPLY_WINDOW_MS // 1000} seconds. "
            "Reply `cancel` to stop."
        ),
        usages=("{command}",),
        examples=("{command}",),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        if session is None:
            return await self._start(message, perm_level)

        payload: AbcPayload = session.payload
        answer = args.strip().lower()
        if answer == "cancel":
            await session.remove()
            await message.channel.send("Alright, maybe next time")
            return True

        expected = SEQUENCE[payload.step + 1]
        if answer != expected:
            await message.channel.send(f"That's not right, the next letter is `{expected}`")
            return False

        payload.step += 1
        if payload.step == len(SEQUENCE) - 1:
            await session.remove()
            await message.channel.send("Well done!")
            return True

        await session.save(payload, expires_in_ms=REPLY_WINDOW_MS)
        await message.channel.send(f"{SEQUENCE[:payload.step + 1]}... what comes next?")
        return True

    async def _start(self, message, perm_level) -> bool:
        sessions = self.context.sessions
        try:
            await sessions.create(
                message.channel.id,
                message.author.id,
                self.name,
                perm_level,
                self.context.expiration_from_now(REPLY_WINDOW_MS),
                AbcPayload(),
            )
        except CommandCacheExistsError:
            await message.channel.send("You're already in the middle of something here")
            return False

        await message.channel.send(f"{SEQUENCE[0]}... what comes next?")
        return True
