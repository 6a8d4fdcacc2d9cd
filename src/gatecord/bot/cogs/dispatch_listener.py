"""Dispatch listener Cog for Gatecord.

Feeds every message and application-command interaction into the dispatch
pipeline. All parsing, gating and error reporting happens in the pipeline;
this cog only bridges py-cord events to it.
"""

import discord
from discord.ext import commands

from gatecord.dispatch.pipeline import DispatchPipeline
from gatecord.util.logger import get_logger

logger = get_logger("dispatch_listener_cog")


class DispatchListenerCog(commands.Cog):
    """Cog routing gateway events to the :class:`DispatchPipeline`."""

    def __init__(self, discord_bot_instance: discord.Bot, pipeline: DispatchPipeline):
        self.bot = discord_bot_instance
        self.pipeline = pipeline
        logger.info("Dispatch listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """Resolve and run text commands."""
        await self.pipeline.handle_message(message)

    @commands.Cog.listener(name="on_interaction")
    async def on_interaction(self, interaction: discord.Interaction):
        """Resolve and run application (slash) commands."""
        await self.pipeline.handle_interaction(interaction)


def setup(discord_bot_instance: discord.Bot, pipeline: DispatchPipeline) -> None:
    """Register the DispatchListenerCog with the bot."""
    discord_bot_instance.add_cog(DispatchListenerCog(discord_bot_instance, pipeline))
