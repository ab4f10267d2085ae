"""Event listener Cog for Bulwark.

This cog handles bot lifecycle events (on_ready) and guild membership
changes. Message events are handled by the MessageListenerCog.
"""

import discord
from discord.ext import commands

from bulwark.app_context import AppContext
from bulwark.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and guild membership handlers."""

    def __init__(self, discord_bot_instance, context: AppContext):
        """Initialize the events listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        context:
            Application context owning the guild store and background jobs.
        """
        self.bot = discord_bot_instance
        self.context = context
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """Handle bot startup: presence, bot id for mentions, background jobs.

        ``on_ready`` can fire again after a reconnect; the schedulers ignore
        a second start.
        """
        if self.bot.user:
            self.context.dispatcher.bot_user_id = self.bot.user.id
            await self._update_presence()
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

        self.context.bot = self.bot
        self.context.start_background_tasks()

    async def _update_presence(self) -> None:
        """Show the default prefix in the bot's presence."""
        if not self.bot.user:
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name=f"for {self.context.global_settings.prefix}help",
            ),
        )

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild):
        """Create the default configuration record of a newly joined guild."""
        try:
            await self.context.guilds.add_guild(guild.id)
            logger.info(f"Joined guild {guild.name} ({guild.id})")
        except Exception:
            logger.exception(f"Failed to add guild {guild.id}")

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild):
        """Delete every record of a guild the bot left."""
        failures = await self.context.guilds.remove_guild(guild.id)
        if failures:
            logger.warning(f"Left guild {guild.id}; could not delete: {', '.join(failures)}")
        else:
            logger.info(f"Left guild {guild.name} ({guild.id}); its records were deleted")


def setup(discord_bot_instance, context: AppContext):
    """Register the EventsListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    context:
        Application context shared by the cogs.
    """
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, context))
