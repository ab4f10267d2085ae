"""Message listener Cog for Bulwark.

Hands every created message to the dispatcher.
"""

import discord
from discord.ext import commands

from bulwark.app_context import AppContext
from bulwark.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for routing message events into the dispatcher."""

    def __init__(self, discord_bot_instance, context: AppContext):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        context:
            Application context holding the dispatcher.
        """
        self.bot = discord_bot_instance
        self.context = context
        logger.info("Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """Dispatch a new message. The dispatcher ignores bots and never raises."""
        await self.context.dispatcher.dispatch(message)


def setup(discord_bot_instance, context: AppContext):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, context))
