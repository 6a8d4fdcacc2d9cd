"""
Objects handed to command bodies.

``BotServices`` bundles the long-lived services so they can be injected into
the pipeline, the cogs and the command bodies instead of living as module
globals. ``CommandContext`` wraps one dispatch: the resolved invocation, the
descriptor snapshot it was resolved to, and a surface-agnostic ``reply``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import discord

from gatecord.configuration.app_configuration import AppConfig
from gatecord.datatypes.command_datatypes import CommandDescriptor, ParsedInvocation
from gatecord.dispatch.cooldown import CooldownThrottle
from gatecord.dispatch.registry import CommandRegistry
from gatecord.services.entitlement_store import EntitlementStore
from gatecord.services.settings_service import SettingsService


@dataclass
class BotServices:
    config: AppConfig
    settings: SettingsService
    entitlements: EntitlementStore
    cooldowns: CooldownThrottle
    registry: CommandRegistry

    def is_operator(self, user_id: int) -> bool:
        return user_id in self.config.owner_ids


@dataclass
class CommandContext:
    """One dispatch of one command on either surface."""

    bot: discord.Bot
    services: BotServices
    invocation: ParsedInvocation
    descriptor: CommandDescriptor
    author: Any
    guild: Any
    channel: Any
    prefix: str
    message: Optional[discord.Message] = None
    interaction: Optional[discord.Interaction] = None

    @property
    def args(self) -> Tuple[str, ...]:
        return self.invocation.args

    @property
    def options(self) -> Mapping[str, Any]:
        return self.invocation.options

    @property
    def is_interaction(self) -> bool:
        return self.interaction is not None

    @property
    def is_operator(self) -> bool:
        return self.services.is_operator(self.author.id)

    def has_flag(self, flag: str) -> bool:
        return flag in self.invocation.flags

    def option(self, name: str, default: Any = None) -> Any:
        return self.invocation.options.get(name, default)

    async def defer(self, *, ephemeral: bool = False) -> None:
        """Acknowledge an interaction that needs more than a few seconds."""
        if self.interaction is not None and not self.interaction.response.is_done():
            await self.interaction.response.defer(ephemeral=ephemeral)

    async def reply(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        ephemeral: bool = False,
    ) -> Any:
        """Answer the invoker on whichever surface the command came from.

        ``ephemeral`` only applies to interactions.
        """
        kwargs: Dict[str, Any] = {}
        if content is not None:
            kwargs["content"] = content
        if embed is not None:
            kwargs["embed"] = embed

        if self.interaction is not None:
            if self.interaction.response.is_done():
                return await self.interaction.followup.send(ephemeral=ephemeral, **kwargs)
            return await self.interaction.response.send_message(ephemeral=ephemeral, **kwargs)

        if self.message is not None:
            return await self.message.reply(**kwargs)
        return await self.channel.send(**kwargs)
