"""Bug reports from users, stored for the bot masters to review."""

from __future__ import annotations

from bulwark.datatypes.command_datatypes import Command, CommandHelp
from bulwark.util.logger import get_logger

logger = get_logger("bug_command")

MAX_REPORT_LENGTH = 1000


class BugCommand(Command):
    name = "bug"
    dm = True
    togglable = False
    cooldown_global = 20_000
    help = CommandHelp(
        short_description="Reports a bug to the bot developers",
        long_description=f"Sends a short description of a problem (at most {MAX_REPORT_LENGTH} characters) to the developers.",
        usages=("{command} [description]",),
        examples=("{command} the help command shows the wrong prefix",),
    )

    async def run(self, message, args, perm_level, dm, guild, request_time, session=None):
        report = args.strip()
        if not report:
            await message.channel.send("Please describe the bug")
            return False
        if len(report) > MAX_REPORT_LENGTH:
            await message.channel.send(f"Please keep the report under {MAX_REPORT_LENGTH} characters")
            return False

        doc_id = await self.context.store.collection("bug_reports").insert_one(
            {
                "user": str(message.author.id),
                "guild": guild.id if guild is not None else None,
                "channel": str(message.channel.id),
                "report": report,
                "timestamp": request_time.wall_ms,
            }
        )
        logger.info("[BUG COMMAND] Stored bug report %s from user %s", doc_id, message.author.id)
        await message.channel.send("Thanks! The report was sent to the developers")
        return True
