"""reload (rl): operator-only hot reload of one command or all of them."""

from __future__ import annotations

import discord

from gatecord.datatypes.command_datatypes import CommandDescriptor, CommandRequirements, ReloadResult
from gatecord.dispatch.context import CommandContext
from gatecord.dispatch.errors import ValidationError
from gatecord.ui import embeds

USAGE = "reload <all | command> [name]"
ERROR_DETAIL_LIMIT = 1000


def build_reload_embed(title: str, result: ReloadResult) -> discord.Embed:
    if result.success:
        embed = discord.Embed(title=title, description=f"✅ **Success**: {result.message}", color=embeds.SUCCESS_COLOR)
    else:
        embed = discord.Embed(title=title, description=f"❌ **Failure**: {result.message}", color=embeds.ERROR_COLOR)
        if result.error:
            embed.add_field(name="Error Details", value=embeds.code_block(result.error, ERROR_DETAIL_LIMIT), inline=False)
    return embed


async def reload_command(ctx: CommandContext) -> None:
    if not ctx.args:
        raise ValidationError(f"Invalid usage. Correct usage: `{USAGE}`")

    registry = ctx.services.registry
    target = ctx.args[0].lower()

    if target == "all":
        title = "Reloading All Commands"
        result = registry.reload_all()
    elif target == "command":
        if len(ctx.args) < 2:
            raise ValidationError("Please provide a command name to reload.")
        name = ctx.args[1]
        title = f"Reloading Command: {name}"
        result = registry.reload(name)
    else:
        raise ValidationError("Invalid type specified. Use `all` or `command`.")

    await ctx.reply(embed=build_reload_embed(title, result))


def build_command() -> CommandDescriptor:
    return CommandDescriptor(
        name="reload",
        body=reload_command,
        description="Reloads a command or all commands.",
        usage=USAGE,
        category="owner",
        aliases=frozenset({"rl"}),
        requirements=CommandRequirements(owner_only=True),
    )
