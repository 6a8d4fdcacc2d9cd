"""
premium (prem): operator-only administration of premium grants.

    premium grant <user|guild> <id> [duration|perm] [reason]
    premium revoke <user|guild> <id>
    premium extend <user|guild> <id> <duration>
    premium stats
    premium cleanup
"""

from __future__ import annotations

from typing import Sequence

from gatecord.commands._arguments import parse_kind, parse_snowflake, require_args
from gatecord.datatypes.command_datatypes import CommandDescriptor, CommandRequirements
from gatecord.datatypes.entitlement_datatypes import SubjectKind
from gatecord.dispatch.context import CommandContext
from gatecord.dispatch.errors import ValidationError
from gatecord.ui import embeds
from gatecord.util.durations import format_expiry, parse_duration_ms, resolve_expiry

DEFAULT_REASON = "Premium granted by owner"
RECENT_LIMIT = 5

HELP_TEXT = (
    "`premium grant <user|guild> <id> [duration] [reason]` - Grant premium\n"
    "`premium revoke <user|guild> <id>` - Revoke premium\n"
    "`premium extend <user|guild> <id> <duration>` - Extend an existing grant\n"
    "`premium stats` - View premium statistics\n"
    "`premium cleanup` - Remove expired premiums\n\n"
    "**Duration formats:** 45m, 12h, 30d, perm\n"
    "**Examples:**\n"
    "• `premium grant user 123456789 30d VIP user`\n"
    "• `premium grant guild 987654321 perm Server boost`\n"
    "• `premium revoke user 123456789`"
)


async def _grant(ctx: CommandContext, args: Sequence[str]) -> None:
    require_args(args, 2, "premium grant <user|guild> <id> [duration] [reason]")
    kind = parse_kind(args[0])
    subject_id = parse_snowflake(args[1])
    duration = args[2] if len(args) > 2 else ctx.services.config.default_grant_duration
    reason = " ".join(args[3:]) or DEFAULT_REASON

    store = ctx.services.entitlements
    expires_at = resolve_expiry(duration, store.now())
    if not await store.grant(kind, subject_id, ctx.author.id, expires_at, reason):
        await ctx.reply(embed=embeds.error_embed("Grant Failed", f"Failed to grant premium to {kind.value} `{subject_id}`."))
        return

    await ctx.reply(
        embed=embeds.success_embed(
            "Premium Granted",
            f"Successfully granted {kind.value} premium to `{subject_id}`\n"
            f"Expires: {format_expiry(expires_at)}\n"
            f"Reason: {reason}",
        )
    )


async def _revoke(ctx: CommandContext, args: Sequence[str]) -> None:
    require_args(args, 2, "premium revoke <user|guild> <id>")
    kind = parse_kind(args[0])
    subject_id = parse_snowflake(args[1])

    if await ctx.services.entitlements.revoke(kind, subject_id):
        await ctx.reply(embed=embeds.success_embed("Premium Revoked", f"Successfully revoked {kind.value} premium from `{subject_id}`."))
    else:
        await ctx.reply(
            embed=embeds.error_embed(
                "Revoke Failed", f"Failed to revoke premium from {kind.value} `{subject_id}` (may not have premium)."
            )
        )


async def _extend(ctx: CommandContext, args: Sequence[str]) -> None:
    require_args(args, 3, "premium extend <user|guild> <id> <duration>")
    kind = parse_kind(args[0])
    subject_id = parse_snowflake(args[1])
    additional_ms = parse_duration_ms(args[2])

    store = ctx.services.entitlements
    if not await store.extend(kind, subject_id, additional_ms):
        raise ValidationError(f"{kind.value.title()} `{subject_id}` has no premium to extend.")

    record = await store.get(kind, subject_id)
    expires_at = record.expires_at if record is not None else None
    await ctx.reply(
        embed=embeds.success_embed(
            "Premium Extended", f"{kind.value.title()} `{subject_id}` premium now expires: {format_expiry(expires_at)}"
        )
    )


async def _stats(ctx: CommandContext) -> None:
    store = ctx.services.entitlements
    stats = await store.stats()

    lines = [
        f"**Users:** {stats.counts_by_kind[SubjectKind.USER]} ({stats.active_counts_by_kind[SubjectKind.USER]} active)",
        f"**Guilds:** {stats.counts_by_kind[SubjectKind.GUILD]} ({stats.active_counts_by_kind[SubjectKind.GUILD]} active)",
        f"**Total Active:** {stats.active_total}",
        f"**Total Registered:** {stats.total}",
    ]
    for kind, heading in ((SubjectKind.USER, "Recent User Premiums"), (SubjectKind.GUILD, "Recent Guild Premiums")):
        records = await store.list_records(kind, RECENT_LIMIT)
        if records:
            lines.append(f"\n**{heading}:**")
            lines.extend(f"• `{record.subject_id}` - {format_expiry(record.expires_at)}" for record in records)

    await ctx.reply(embed=embeds.info_embed("Premium Statistics", "\n".join(lines)))


async def _cleanup(ctx: CommandContext) -> None:
    result = await ctx.services.entitlements.sweep_expired()
    await ctx.reply(
        embed=embeds.success_embed(
            "Cleanup Completed",
            f"Removed {result.revoked_counts.get(SubjectKind.USER, 0)} expired user premiums and "
            f"{result.revoked_counts.get(SubjectKind.GUILD, 0)} expired guild premiums.\n"
            f"Total cleaned: {result.total}",
        )
    )


async def premium_command(ctx: CommandContext) -> None:
    if not ctx.args:
        await ctx.reply(embed=embeds.info_embed("Premium Commands", HELP_TEXT))
        return

    action, rest = ctx.args[0].lower(), ctx.args[1:]
    if action == "grant":
        await _grant(ctx, rest)
    elif action == "revoke":
        await _revoke(ctx, rest)
    elif action == "extend":
        await _extend(ctx, rest)
    elif action == "stats":
        await _stats(ctx)
    elif action == "cleanup":
        await _cleanup(ctx)
    else:
        raise ValidationError(f"Invalid action: `{action}`\n\n{HELP_TEXT}")


def build_command() -> CommandDescriptor:
    return CommandDescriptor(
        name="premium",
        body=premium_command,
        description="Manage premium subscriptions (Owner Only)",
        usage="premium <grant|revoke|extend|stats|cleanup> [type] [id] [duration] [reason]",
        category="owner",
        aliases=frozenset({"prem"}),
        requirements=CommandRequirements(owner_only=True),
    )
