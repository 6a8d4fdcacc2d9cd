"""ping: gateway latency check."""

import math

from gatecord.datatypes.command_datatypes import CommandDescriptor, InteractionSchema
from gatecord.dispatch.context import CommandContext
from gatecord.ui import embeds

DESCRIPTION = "Check the bot's latency."


async def ping(ctx: CommandContext) -> None:
    latency = ctx.bot.latency
    shown = f"{round(latency * 1000)} ms" if math.isfinite(latency) else "unknown"
    await ctx.reply(embed=embeds.info_embed("🏓 Pong!", f"Gateway latency: **{shown}**"))


def build_command() -> CommandDescriptor:
    return CommandDescriptor(
        name="ping",
        body=ping,
        description=DESCRIPTION,
        usage="ping",
        category="general",
        interaction=InteractionSchema(("ping",), DESCRIPTION),
    )
