"""
noprefix (np): operator-only administration of no-prefix grants.

    noprefix add <user> [duration|perm]
    noprefix remove <user>

A grant only stays in effect while its holder has User Premium.
"""

from __future__ import annotations

from gatecord.commands._arguments import parse_snowflake, require_args
from gatecord.datatypes.command_datatypes import CommandDescriptor, CommandRequirements
from gatecord.dispatch.context import CommandContext
from gatecord.dispatch.errors import ValidationError
from gatecord.ui import embeds
from gatecord.util.durations import format_expiry, resolve_expiry

USAGE = "noprefix <add|remove> <user> [duration|perm]"


async def noprefix_command(ctx: CommandContext) -> None:
    action = ctx.args[0].lower() if ctx.args else ""
    settings = ctx.services.settings

    if action == "add":
        require_args(ctx.args, 2, USAGE)
        user_id = parse_snowflake(ctx.args[1])
        duration = ctx.args[2] if len(ctx.args) > 2 else "perm"
        expires_at = resolve_expiry(duration, ctx.services.entitlements.now())
        await settings.set_no_prefix(user_id, True, expires_at)
        await ctx.reply(
            embed=embeds.success_embed(
                "No-Prefix Granted",
                f"<@{user_id}> can now use commands without a prefix.\n"
                f"Expires: {format_expiry(expires_at)}\n"
                "Requires an active User Premium to stay in effect.",
            )
        )
    elif action == "remove":
        require_args(ctx.args, 2, USAGE)
        user_id = parse_snowflake(ctx.args[1])
        if await settings.clear_no_prefix(user_id):
            await ctx.reply(embed=embeds.success_embed("No-Prefix Removed", f"<@{user_id}> must use a prefix again."))
        else:
            await ctx.reply(embed=embeds.error_embed("Not Found", f"<@{user_id}> does not have no-prefix access."))
    else:
        raise ValidationError(f"Usage: `{USAGE}`")


def build_command() -> CommandDescriptor:
    return CommandDescriptor(
        name="noprefix",
        body=noprefix_command,
        description="Grant or remove no-prefix access (Owner Only)",
        usage=USAGE,
        category="owner",
        aliases=frozenset({"np"}),
        requirements=CommandRequirements(owner_only=True),
    )
