"""
Bulwark
=======

A Discord moderation and utility bot with prefixed chat commands,
multi-message command sessions, per-guild configuration, cooldowns and
role-based permission levels.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. BULWARK_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the repository root.
    """
    if env_home := os.getenv("BULWARK_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from bulwark.app_context import AppContext
from bulwark.configuration.app_configuration import CONFIG_PATH, AppConfig
from bulwark.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Returns
    -------
    str
        Discord bot token extracted from the loaded environment.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents Bulwark needs.

    Returns
    -------
    discord.Intents
        Intents enabling guild, member and message content events.
    """
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, context: AppContext) -> None:
    """Register all cogs with the provided Discord bot instance."""
    from bulwark.bot.cogs import events_listener, message_listener

    events_listener.setup(discord_bot_instance, context)
    message_listener.setup(discord_bot_instance, context)

    logger.info("All cogs loaded successfully.")


def create_bot(context: AppContext) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, context)
    context.bot = bot
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection lifecycle."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, context: AppContext) -> None:
    """Close the Discord connection, then stop background jobs and the store."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord bot: %s", exc)

    try:
        await context.shutdown()
    except Exception as exc:
        logger.exception("Error during application shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the application context and run the bot, returning an exit code."""
    token = load_environment()

    try:
        context = AppContext(AppConfig(CONFIG_PATH))
    except Exception as exc:
        logger.critical("Failed to build the application: %s", exc)
        return 1

    try:
        logger.info("Initializing database and command caches...")
        await context.initialize()
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    bot = None
    exit_code = 0
    try:
        bot = create_bot(context)
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, context)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting Bulwark…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    print(f"Exited with code: {main()}")
