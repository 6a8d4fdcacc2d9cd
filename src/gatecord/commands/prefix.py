"""prefix (setprefix, /settings prefix): view or change the server prefix."""

from __future__ import annotations

from gatecord.datatypes.command_datatypes import (
    CommandDescriptor,
    CommandRequirements,
    InteractionOption,
    InteractionSchema,
)
from gatecord.dispatch.context import CommandContext
from gatecord.dispatch.errors import AuthorizationDenied, Gate
from gatecord.ui import embeds

DESCRIPTION = "View or change the bot prefix for this server"
OPTION_NAME = "newprefix"


def _is_admin(member) -> bool:
    permissions = getattr(member, "guild_permissions", None)
    return bool(getattr(permissions, "administrator", False))


async def prefix_command(ctx: CommandContext) -> None:
    settings = ctx.services.settings
    if ctx.is_interaction:
        new_prefix = ctx.option(OPTION_NAME)
    else:
        new_prefix = ctx.args[0] if ctx.args else None

    if not new_prefix:
        current = await settings.get_prefix(ctx.guild.id)
        embed = embeds.info_embed("Server Prefix", f"Current prefix for this server: `{current}`")
        embed.add_field(name="Usage", value=f"To change it: `{current}prefix <new prefix>`", inline=False)
        embed.add_field(name="Default Prefix", value=f"The default prefix is: `{settings.default_prefix}`", inline=False)
        embed.set_footer(text="Note: Only server admins can change the prefix")
        await ctx.reply(embed=embed)
        return

    if not (ctx.is_operator or _is_admin(ctx.author)):
        raise AuthorizationDenied(
            Gate.CALLER_PERMISSIONS,
            "Permission Denied",
            "Only server administrators can change the bot prefix.",
        )

    stored = await settings.set_prefix(ctx.guild.id, str(new_prefix))
    embed = embeds.success_embed("Prefix Updated", f"Server prefix has been updated to `{stored}`")
    embed.add_field(name="Example", value=f"Use commands with: `{stored}ping`", inline=False)
    embed.set_footer(text="All members will need to use this new prefix")
    await ctx.reply(embed=embed)


def build_command() -> CommandDescriptor:
    return CommandDescriptor(
        name="prefix",
        body=prefix_command,
        description=DESCRIPTION,
        usage="prefix [new prefix]",
        category="settings",
        aliases=frozenset({"setprefix"}),
        requirements=CommandRequirements(
            agent_permissions=frozenset({"send_messages"}),
            cooldown_seconds=10,
        ),
        interaction=InteractionSchema(
            ("settings", "prefix"),
            DESCRIPTION,
            options=(
                InteractionOption(
                    OPTION_NAME,
                    "The new prefix to set (max 5 characters)",
                    max_length=5,
                ),
            ),
        ),
    )
