"""Event listener Cog for Gatecord.

Handles bot lifecycle events: logs the connection and keeps the presence
text in sync with the configuration.
"""

import discord
from discord.ext import commands

from gatecord.dispatch.context import BotServices
from gatecord.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle handlers."""

    def __init__(self, discord_bot_instance: discord.Bot, services: BotServices):
        self.bot = discord_bot_instance
        self.services = services
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """Update presence and report the loaded command set."""
        if self.bot.user:
            await self._update_presence()
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info(
            "Serving %d command(s) in %d guild(s)", len(self.services.registry), len(self.bot.guilds)
        )
        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

    async def _update_presence(self) -> None:
        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(
                type=discord.ActivityType.listening,
                name=self.services.config.status_text,
            ),
        )


def setup(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, services))
