"""updateslash: publish the interaction schemas as global application commands."""

from __future__ import annotations

import discord

from gatecord.datatypes.command_datatypes import CommandDescriptor, CommandRequirements
from gatecord.dispatch.context import CommandContext
from gatecord.ui import embeds
from gatecord.util.logger import get_logger

logger = get_logger("updateslash_command")


async def update_slash(ctx: CommandContext) -> None:
    payload = ctx.services.registry.list_interaction_schemas()
    if not payload:
        await ctx.reply(
            embed=embeds.info_embed("🤔 No Slash Commands Found", "No slash-enabled commands were found to register.")
        )
        return

    application_id = ctx.bot.application_id or ctx.bot.user.id
    try:
        await ctx.bot.http.bulk_upsert_global_commands(application_id, payload)
    except discord.HTTPException as exc:
        logger.exception("[UPDATESLASH] Failed to register slash commands: %s", exc)
        await ctx.reply(embed=embeds.error_embed("Failed to Register", "An error occurred. Check the console for details."))
        return

    logger.info("[UPDATESLASH] Registered %d application command(s)", len(payload))
    await ctx.reply(
        embed=embeds.success_embed(
            "Success!", f"Successfully registered **{len(payload)}** application (/) commands globally."
        )
    )


def build_command() -> CommandDescriptor:
    return CommandDescriptor(
        name="updateslash",
        body=update_slash,
        description="Registers or updates all slash commands with Discord.",
        usage="updateslash",
        category="owner",
        requirements=CommandRequirements(owner_only=True),
    )
