"""Background sweep of expired premium grants.

Lazy expiry already hides a lapsed grant the first time it is read; this
loop removes the records nobody has looked at since.
"""

from __future__ import annotations

import asyncio

import discord
from discord.ext import commands, tasks

from gatecord.services.entitlement_store import EntitlementStore
from gatecord.util.logger import get_logger

logger = get_logger("entitlement_sweep_cog")


class EntitlementSweepCog(commands.Cog):
    """Runs :meth:`EntitlementStore.sweep_expired` on a fixed interval."""

    _name = "ENTITLEMENT_SWEEP"

    def __init__(self, bot: discord.Bot, store: EntitlementStore, interval_seconds: float) -> None:
        self.bot = bot
        self.store = store
        self.interval_seconds = interval_seconds

    @tasks.loop(seconds=1)  # real interval set in on_ready
    async def _sweep_task(self) -> None:
        try:
            await self.store.sweep_expired()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("[%s] Sweep failed: %s", self._name, exc)

    @_sweep_task.before_loop
    async def _before_sweep(self) -> None:
        await self.bot.wait_until_ready()

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        self._sweep_task.change_interval(seconds=self.interval_seconds)
        if not self._sweep_task.is_running():
            self._sweep_task.start()
            logger.info("[%s] Started (interval=%.1fs)", self._name, self.interval_seconds)

    def cog_unload(self) -> None:
        self._sweep_task.cancel()
        logger.info("[%s] Stopped", self._name)


def setup(bot: discord.Bot, store: EntitlementStore, interval_seconds: float) -> None:
    bot.add_cog(EntitlementSweepCog(bot, store, interval_seconds))
