"""
blacklist (bl): operator-only blacklist administration.

    blacklist add <user|guild> <id> [reason]
    blacklist remove <user|guild> <id>
    blacklist list
"""

from __future__ import annotations

from gatecord.commands._arguments import parse_kind, parse_snowflake, require_args
from gatecord.datatypes.command_datatypes import CommandDescriptor, CommandRequirements
from gatecord.datatypes.entitlement_datatypes import SubjectKind
from gatecord.dispatch.context import CommandContext
from gatecord.dispatch.errors import ValidationError
from gatecord.services.settings_service import DEFAULT_BLACKLIST_REASON
from gatecord.ui import embeds

USAGE = "blacklist <add|remove> <user|guild> <id> [reason] | blacklist list"
LIST_LIMIT = 20


async def _set(ctx: CommandContext, blacklisted: bool) -> None:
    rest = ctx.args[1:]
    require_args(rest, 2, USAGE)
    kind = parse_kind(rest[0])
    subject_id = parse_snowflake(rest[1])
    reason = " ".join(rest[2:]) or DEFAULT_BLACKLIST_REASON

    settings = ctx.services.settings
    if kind is SubjectKind.USER:
        await settings.set_user_blacklist(subject_id, blacklisted, reason)
    else:
        await settings.set_guild_blacklist(subject_id, blacklisted, reason)

    if blacklisted:
        await ctx.reply(embed=embeds.success_embed("Blacklisted", f"{kind.value.title()} `{subject_id}` blacklisted.\nReason: {reason}"))
    else:
        await ctx.reply(embed=embeds.success_embed("Unblacklisted", f"{kind.value.title()} `{subject_id}` removed from the blacklist."))


async def _list(ctx: CommandContext) -> None:
    settings = ctx.services.settings
    users = await settings.list_blacklisted_users()
    guilds = await settings.list_blacklisted_guilds()
    if not users and not guilds:
        await ctx.reply(embed=embeds.info_embed("Blacklist", "Nothing is blacklisted."))
        return

    embed = embeds.info_embed("Blacklist", f"{len(users)} user(s), {len(guilds)} guild(s)")
    for heading, entries in (("Users", users), ("Guilds", guilds)):
        if entries:
            value = "\n".join(f"• `{entry.subject_id}` - {entry.reason}" for entry in entries[:LIST_LIMIT])
            embed.add_field(name=heading, value=value[:1024], inline=False)
    await ctx.reply(embed=embed)


async def blacklist_command(ctx: CommandContext) -> None:
    action = ctx.args[0].lower() if ctx.args else ""
    if action == "add":
        await _set(ctx, True)
    elif action == "remove":
        await _set(ctx, False)
    elif action == "list":
        await _list(ctx)
    else:
        raise ValidationError(f"Usage: `{USAGE}`")


def build_command() -> CommandDescriptor:
    return CommandDescriptor(
        name="blacklist",
        body=blacklist_command,
        description="Block users or servers from using the bot (Owner Only)",
        usage=USAGE,
        category="owner",
        aliases=frozenset({"bl"}),
        requirements=CommandRequirements(owner_only=True),
    )
