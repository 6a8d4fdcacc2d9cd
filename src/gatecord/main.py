"""
Gatecord Discord Bot
====================

A Discord bot built around a command dispatch pipeline: prefix, mention and
no-prefix resolution, an ordered authorization gate chain, per-command
cooldowns, premium entitlements with lazy expiry, and hot-reloadable
commands.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.
    Resolution order:
    1. GATECORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("GATECORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from gatecord.configuration.app_configuration import AppConfig, app_config
from gatecord.database.db_connection import ConnectionManager
from gatecord.dispatch.context import BotServices
from gatecord.dispatch.cooldown import CooldownThrottle
from gatecord.dispatch.gates import GateChain
from gatecord.dispatch.pipeline import DispatchPipeline
from gatecord.dispatch.registry import CommandRegistry
from gatecord.services.entitlement_store import EntitlementStore
from gatecord.services.no_prefix_policy import NoPrefixPolicy
from gatecord.services.settings_service import SettingsService
from gatecord.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

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
    """Intents for text commands (message content), guild state and voice state."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    intents.voice_states = True
    return intents


def build_services(config: AppConfig, connections: ConnectionManager) -> BotServices:
    """Wire the long-lived services and load the command registry."""
    registry = CommandRegistry()
    result = registry.load_all()
    if not result.success:
        logger.error("Some commands failed to load:\n%s", result.error)

    return BotServices(
        config=config,
        settings=SettingsService(
            connections,
            config.default_prefix,
            max_prefix_length=config.max_prefix_length,
        ),
        entitlements=EntitlementStore(connections),
        cooldowns=CooldownThrottle(),
        registry=registry,
    )


def build_pipeline(bot: discord.Bot, services: BotServices) -> DispatchPipeline:
    config = services.config
    gates = GateChain(
        services.settings,
        services.entitlements,
        services.cooldowns,
        owner_ids=config.owner_ids,
        blacklist_user_notice_rate=config.blacklist_user_notice_rate,
        blacklist_guild_notice_rate=config.blacklist_guild_notice_rate,
    )
    no_prefix = NoPrefixPolicy(
        services.settings,
        services.entitlements,
        dm_notice_rate=config.no_prefix_dm_notice_rate,
        channel_notice_rate=config.no_prefix_channel_notice_rate,
        support_url=config.support_url,
    )
    return DispatchPipeline(bot, services, gates, no_prefix)


def load_cogs(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from gatecord.bot.cogs import dispatch_listener, entitlement_sweep, events_listener

    pipeline = build_pipeline(discord_bot_instance, services)
    dispatch_listener.setup(discord_bot_instance, pipeline)
    events_listener.setup(discord_bot_instance, services)
    entitlement_sweep.setup(
        discord_bot_instance,
        services.entitlements,
        services.config.entitlement_sweep_interval,
    )

    logger.info("All cogs loaded successfully.")


def create_bot(services: BotServices) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs.

    Application commands are published explicitly with ``updateslash``, so
    py-cord's automatic sync is turned off.
    """
    bot = discord.Bot(intents=build_intents(), auto_sync_commands=False)
    load_cogs(bot, services)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, connections: ConnectionManager) -> None:
    """Close the Discord connection, then the database."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord bot: %s", exc)

    try:
        await connections.close()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database, services and bot, returning an exit code."""
    token = load_environment()
    connections = ConnectionManager()

    try:
        logger.info("Opening database at %s", app_config.database_path)
        await connections.open(app_config.database_path)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        services = build_services(app_config, connections)
        bot = create_bot(services)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await shutdown_runtime(None, connections)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, connections)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting Gatecord…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    print(f"Exited with code: {main()}")
