"""
Tests for the cogs.
"""

import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord

from gatecord.bot.cogs import dispatch_listener, entitlement_sweep, events_listener
from gatecord.bot.cogs.dispatch_listener import DispatchListenerCog
from gatecord.bot.cogs.entitlement_sweep import EntitlementSweepCog
from gatecord.bot.cogs.events_listener import EventsListenerCog


class TestDispatchListenerCog(unittest.IsolatedAsyncioTestCase):
    """
    Tests for the DispatchListenerCog.
    """

    def setUp(self):
        self.pipeline = MagicMock()
        self.pipeline.handle_message = AsyncMock()
        self.pipeline.handle_interaction = AsyncMock()
        self.cog = DispatchListenerCog(MagicMock(), self.pipeline)

    async def test_on_message_feeds_pipeline(self):
        message = MagicMock(spec=discord.Message)

        await self.cog.on_message(message)

        self.pipeline.handle_message.assert_awaited_once_with(message)

    async def test_on_interaction_feeds_pipeline(self):
        interaction = MagicMock(spec=discord.Interaction)

        await self.cog.on_interaction(interaction)

        self.pipeline.handle_interaction.assert_awaited_once_with(interaction)

    def test_setup_registers_cog(self):
        bot = MagicMock()

        dispatch_listener.setup(bot, self.pipeline)

        cog = bot.add_cog.call_args.args[0]
        self.assertIsInstance(cog, DispatchListenerCog)
        self.assertIs(cog.pipeline, self.pipeline)


class TestEventsListenerCog(unittest.IsolatedAsyncioTestCase):
    """
    Tests for the EventsListenerCog.
    """

    def setUp(self):
        self.bot = MagicMock()
        self.bot.user = SimpleNamespace(id=999)
        self.bot.guilds = [MagicMock(), MagicMock()]
        self.bot.change_presence = AsyncMock()
        self.services = SimpleNamespace(
            registry=["ping", "prefix"],
            config=SimpleNamespace(status_text="!ping"),
        )

    async def test_on_ready_sets_presence(self):
        cog = EventsListenerCog(self.bot, self.services)

        await cog.on_ready()

        activity = self.bot.change_presence.await_args.kwargs["activity"]
        self.assertEqual(activity.name, "!ping")
        self.assertEqual(activity.type, discord.ActivityType.listening)

    async def test_on_ready_without_user(self):
        self.bot.user = None
        cog = EventsListenerCog(self.bot, self.services)

        await cog.on_ready()

        self.bot.change_presence.assert_not_awaited()

    def test_setup_registers_cog(self):
        events_listener.setup(self.bot, self.services)

        self.assertIsInstance(self.bot.add_cog.call_args.args[0], EventsListenerCog)


class TestEntitlementSweepCog(unittest.IsolatedAsyncioTestCase):
    """
    Tests for the EntitlementSweepCog.
    """

    def setUp(self):
        self.store = MagicMock()
        self.store.sweep_expired = AsyncMock()
        self.cog = EntitlementSweepCog(MagicMock(), self.store, 120.0)

    async def test_sweep_calls_store(self):
        await self.cog._sweep_task()

        self.store.sweep_expired.assert_awaited_once()

    async def test_sweep_failure_is_contained(self):
        self.store.sweep_expired.side_effect = RuntimeError("database is locked")

        await self.cog._sweep_task()

        self.store.sweep_expired.assert_awaited_once()

    async def test_on_ready_starts_loop_with_configured_interval(self):
        loop = self.cog._sweep_task
        loop.change_interval = MagicMock()
        loop.start = MagicMock()
        loop.is_running = MagicMock(return_value=False)

        await self.cog.on_ready()

        loop.change_interval.assert_called_once_with(seconds=120.0)
        loop.start.assert_called_once()

    async def test_on_ready_does_not_restart_running_loop(self):
        loop = self.cog._sweep_task
        loop.change_interval = MagicMock()
        loop.start = MagicMock()
        loop.is_running = MagicMock(return_value=True)

        await self.cog.on_ready()

        loop.start.assert_not_called()

    def test_setup_registers_cog(self):
        bot = MagicMock()

        entitlement_sweep.setup(bot, self.store, 60.0)

        cog = bot.add_cog.call_args.args[0]
        self.assertIsInstance(cog, EntitlementSweepCog)
        self.assertEqual(cog.interval_seconds, 60.0)
