"""
Dispatch pipeline shared by the message and interaction surfaces.

Message flow:
    bare mention -> prefix hint
    no-prefix downgrade check
    resolve -> registry lookup (unknown names are ignored)
    gate chain -> cooldown stamp -> command body

Interaction flow skips text resolution and looks the command up by its
name path; everything from the gate chain on is identical.

Failure handling at the boundary:
    AuthorizationDenied  -> denial notice (blacklist notices are probabilistic
                            on the message surface)
    ValidationError      -> usage error back to the invoker
    anything else        -> logged, mirrored to the error channel, and
                            reported generically (or inline with --trace/--debug)
"""

from __future__ import annotations

import random
import time
import traceback
from typing import Any, Callable, FrozenSet, Optional

import discord

from gatecord.datatypes.command_datatypes import ParsedInvocation
from gatecord.dispatch.context import BotServices, CommandContext
from gatecord.dispatch.errors import AuthorizationDenied, Gate, ValidationError
from gatecord.dispatch.gates import GateChain, GateContext
from gatecord.dispatch.resolver import is_bare_mention, resolve_interaction, resolve_text
from gatecord.services.no_prefix_policy import NoPrefixPolicy
from gatecord.ui import embeds
from gatecord.util.logger import get_logger

logger = get_logger("dispatch_pipeline")

TRACE_FLAGS = frozenset({"trace", "debug"})


def permission_names(permissions: Any) -> FrozenSet[str]:
    """Names of the granted flags of a ``discord.Permissions`` (empty for ``None``)."""
    if permissions is None:
        return frozenset()
    return frozenset(name for name, granted in permissions if granted)


def build_gate_context(author: Any, guild: Any, channel: Any) -> GateContext:
    """Collect the permission and voice state the gates need from gateway objects."""
    me = getattr(guild, "me", None)

    agent_permissions = None
    if me is not None and hasattr(channel, "permissions_for"):
        agent_permissions = channel.permissions_for(me)

    caller_voice = getattr(getattr(author, "voice", None), "channel", None)
    agent_voice = getattr(getattr(me, "voice", None), "channel", None)

    return GateContext(
        user_id=author.id,
        guild_id=getattr(guild, "id", None),
        caller_permissions=permission_names(getattr(author, "guild_permissions", None)),
        agent_permissions=permission_names(agent_permissions),
        caller_voice_channel_id=getattr(caller_voice, "id", None),
        agent_voice_channel_id=getattr(agent_voice, "id", None),
        agent_voice_channel_name=getattr(agent_voice, "name", None),
    )


class DispatchPipeline:
    """Turns gateway events into command executions."""

    def __init__(
        self,
        bot: discord.Bot,
        services: BotServices,
        gates: GateChain,
        no_prefix: NoPrefixPolicy,
        *,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.bot = bot
        self.services = services
        self.gates = gates
        self.no_prefix = no_prefix
        self._rng = rng

    # ------------------------------------------------------------------
    # Message surface
    # ------------------------------------------------------------------

    async def handle_message(self, message: discord.Message) -> None:
        author = message.author
        guild = message.guild
        agent = self.bot.user
        if getattr(author, "bot", False) or guild is None or agent is None:
            return

        settings = self.services.settings
        content = message.content or ""
        prefix = await settings.get_prefix(guild.id)

        if is_bare_mention(content, agent.id):
            await self._send_prefix_hint(message, prefix)
            return

        has_no_prefix = await self.no_prefix.check_and_downgrade_no_prefix(
            author.id, guild.id, author=author, channel=message.channel
        )
        invocation = resolve_text(
            content,
            guild_prefix=prefix,
            default_prefix=settings.default_prefix,
            agent_id=agent.id,
            has_no_prefix=has_no_prefix,
        )
        if invocation is None:
            return

        descriptor = self.services.registry.lookup(invocation.command_name)
        if descriptor is None:
            return

        ctx = CommandContext(
            bot=self.bot,
            services=self.services,
            invocation=invocation,
            descriptor=descriptor,
            author=author,
            guild=guild,
            channel=message.channel,
            prefix=prefix,
            message=message,
        )
        await self.dispatch(ctx)

    async def _send_prefix_hint(self, message: discord.Message, prefix: str) -> None:
        try:
            await message.reply(
                f"My prefix here is **{prefix}**.\n"
                f"- Use **{prefix}ping** to test the bot."
            )
        except discord.HTTPException as exc:
            logger.debug("[DISPATCH] Could not send prefix hint: %s", exc)

    # ------------------------------------------------------------------
    # Interaction surface
    # ------------------------------------------------------------------

    async def handle_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.application_command:
            return

        invocation: ParsedInvocation = resolve_interaction(interaction.data or {})
        if interaction.guild is None:
            await self._interaction_notice(interaction, "Commands can only be used in a server.")
            return

        descriptor = self.services.registry.lookup_interaction(invocation.interaction_path or ())
        if descriptor is None:
            logger.warning("[DISPATCH] No command registered for interaction /%s", invocation.command_name)
            await self._interaction_notice(interaction, "This command seems to be outdated or improperly configured.")
            return

        ctx = CommandContext(
            bot=self.bot,
            services=self.services,
            invocation=invocation,
            descriptor=descriptor,
            author=interaction.user,
            guild=interaction.guild,
            channel=interaction.channel,
            prefix=await self.services.settings.get_prefix(interaction.guild.id),
            interaction=interaction,
        )
        await self.dispatch(ctx)

    async def _interaction_notice(self, interaction: discord.Interaction, text: str) -> None:
        try:
            await interaction.response.send_message(text, ephemeral=True)
        except discord.HTTPException as exc:
            name = (interaction.data or {}).get("name", "?")
            logger.error("[DISPATCH] Failed to answer interaction /%s: %s", name, exc)

    # ------------------------------------------------------------------
    # Shared tail
    # ------------------------------------------------------------------

    async def dispatch(self, ctx: CommandContext) -> None:
        """Gate chain, cooldown stamp and body, with failures handled here."""
        descriptor = ctx.descriptor
        invocation = ctx.invocation

        try:
            await self.gates.evaluate(build_gate_context(ctx.author, ctx.guild, ctx.channel), descriptor)
        except AuthorizationDenied as denied:
            await self._report_denial(ctx, denied)
            return

        self.services.cooldowns.set_cooldown(ctx.author.id, descriptor)

        if ctx.has_flag("verbose"):
            logger.info(
                "[DISPATCH] %s invoked by %s in guild %s (args=%s, explicit=%s)",
                descriptor.name,
                ctx.author.id,
                getattr(ctx.guild, "id", None),
                list(invocation.args),
                invocation.is_explicit,
            )

        started = time.perf_counter()
        try:
            await descriptor.body(ctx)
        except AuthorizationDenied as denied:
            await self._report_denial(ctx, denied)
            return
        except ValidationError as exc:
            logger.debug("[DISPATCH] %s rejected input from %s: %s", descriptor.name, ctx.author.id, exc)
            await self._safe_reply(ctx, embed=embeds.error_embed("Invalid Usage", str(exc)), ephemeral=True)
            return
        except Exception as exc:
            await self._report_fault(ctx, exc)
            return

        if ctx.has_flag("timing") and not ctx.has_flag("silent"):
            elapsed_ms = (time.perf_counter() - started) * 1000
            await self._safe_reply(ctx, f"⏱️ `{descriptor.name}` finished in {elapsed_ms:.0f} ms", ephemeral=True)

    async def _report_denial(self, ctx: CommandContext, denied: AuthorizationDenied) -> None:
        if denied.notice_rate is not None and not ctx.is_interaction and self._rng() >= denied.notice_rate:
            return

        if denied.gate is Gate.ENTITLEMENT:
            embed = embeds.premium_required_embed(denied.title, self.services.config.support_url)
        else:
            embed = embeds.error_embed(denied.title, denied.reason)
        await self._safe_reply(ctx, embed=embed, ephemeral=True)

    async def _report_fault(self, ctx: CommandContext, exc: Exception) -> None:
        name = ctx.descriptor.name
        logger.error("[DISPATCH] Error executing command '%s'", name, exc_info=exc)
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        limit = self.services.config.error_report_max_chars

        await self._mirror_fault(ctx, trace, limit)

        if ctx.invocation.flags & TRACE_FLAGS:
            await self._safe_reply(ctx, embed=embeds.trace_embed(trace, limit), ephemeral=True)
        else:
            await self._safe_reply(
                ctx,
                embed=embeds.error_embed(
                    "Command Error", f"An unexpected error occurred while running the `{name}` command."
                ),
                ephemeral=True,
            )

    async def _mirror_fault(self, ctx: CommandContext, trace: str, limit: int) -> None:
        channel_id = self.services.config.error_channel_id
        if channel_id is None:
            return

        guild = ctx.guild
        embed = embeds.fault_report_embed(
            command_name=ctx.invocation.command_name,
            invoker=f"{ctx.author} (`{ctx.author.id}`)",
            location=f"{getattr(guild, 'name', 'DM')} (`{getattr(guild, 'id', '-')}`)",
            traceback_text=trace,
            limit=limit,
        )
        try:
            channel = self.bot.get_channel(channel_id) or await self.bot.fetch_channel(channel_id)
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            logger.error("[DISPATCH] Failed to mirror error to channel %s: %s", channel_id, exc)

    async def _safe_reply(
        self,
        ctx: CommandContext,
        content: Optional[str] = None,
        *,
        embed: Optional[discord.Embed] = None,
        ephemeral: bool = False,
    ) -> None:
        try:
            await ctx.reply(content, embed=embed, ephemeral=ephemeral)
        except discord.HTTPException as exc:
            logger.error("[DISPATCH] Failed to reply in %s: %s", getattr(ctx.channel, "id", "?"), exc)
