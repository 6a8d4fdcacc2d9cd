"""
No-prefix grants are a premium perk: a holder whose user entitlement has
lapsed loses the grant on the next message they send.

The holder is told best-effort. A direct message is attempted with one
probability; if it cannot be delivered, an in-channel notice is attempted
with a second, lower probability. Delivery failures never reach the caller.
"""

from __future__ import annotations

import random
from typing import Any, Callable

import discord

from gatecord.datatypes.entitlement_datatypes import SubjectKind
from gatecord.services.entitlement_store import EntitlementStore
from gatecord.services.settings_service import SettingsService
from gatecord.ui import embeds
from gatecord.util.logger import get_logger

logger = get_logger("no_prefix_policy")


class NoPrefixPolicy:
    """Couples the no-prefix grant to the user entitlement."""

    def __init__(
        self,
        settings: SettingsService,
        entitlements: EntitlementStore,
        *,
        dm_notice_rate: float = 0.3,
        channel_notice_rate: float = 0.2,
        support_url: str = "",
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._settings = settings
        self._entitlements = entitlements
        self._dm_notice_rate = dm_notice_rate
        self._channel_notice_rate = channel_notice_rate
        self._support_url = support_url
        self._rng = rng

    async def check_and_downgrade_no_prefix(
        self,
        user_id: int,
        guild_id: int | None,
        *,
        author: Any = None,
        channel: Any = None,
    ) -> bool:
        """Return whether the user may still invoke commands without a prefix.

        A grant held without an active user entitlement is cleared and the
        holder notified through ``author`` (direct) or ``channel`` (fallback).
        """
        if not await self._settings.has_no_prefix(user_id):
            return False
        if await self._entitlements.is_active(SubjectKind.USER, user_id):
            return True

        await self._settings.clear_no_prefix(user_id)
        logger.info("[NO PREFIX] User %s lost no-prefix access (no active user premium)", user_id)

        if self._rng() < self._dm_notice_rate:
            prefix = (
                await self._settings.get_prefix(guild_id)
                if guild_id is not None
                else self._settings.default_prefix
            )
            await self._notify(author, channel, embeds.no_prefix_removed_embed(prefix, self._support_url))
        return False

    async def _notify(self, author: Any, channel: Any, embed: discord.Embed) -> None:
        if author is not None:
            try:
                await author.send(embed=embed)
                return
            except discord.HTTPException as exc:
                logger.debug("[NO PREFIX] Direct notice to %s failed: %s", getattr(author, "id", "?"), exc)

        if channel is None or self._rng() >= self._channel_notice_rate:
            return
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            logger.debug("[NO PREFIX] Channel notice failed: %s", exc)
