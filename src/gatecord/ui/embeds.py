"""
Embed builders for dispatch replies.

Every user-facing notice (errors, denials, premium prompts, tracebacks) is
built here so the pipeline and command bodies share one look.
"""

from __future__ import annotations

import datetime

import discord

ERROR_COLOR = discord.Color.red()
INFO_COLOR = discord.Color.blurple()
SUCCESS_COLOR = discord.Color.green()
WARNING_COLOR = discord.Color.gold()
FAULT_COLOR = discord.Color.dark_red()

CODE_BLOCK_OVERHEAD = len("```\n\n```")


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def error_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(title=f"❌ {title}", description=description, color=ERROR_COLOR)


def info_embed(title: str | None, description: str) -> discord.Embed:
    return discord.Embed(title=title, description=description, color=INFO_COLOR)


def success_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(title=f"✅ {title}", description=description, color=SUCCESS_COLOR)


def premium_required_embed(tier: str, support_url: str = "") -> discord.Embed:
    """Prompt shown when an entitlement gate rejects a dispatch."""
    description = f"**This command requires {tier}!**\n\n💎 Contact the bot owner for access"
    if support_url:
        description += f"\n[Support Server]({support_url})"
    return discord.Embed(title=f"❌ {tier} Required", description=description, color=ERROR_COLOR)


def no_prefix_removed_embed(prefix: str, support_url: str = "") -> discord.Embed:
    description = (
        "**Premium subscription expired**\n\n"
        "💎 **Get User Premium to restore access**\n"
        f"🔓 **Current prefix:** `{prefix}`"
    )
    if support_url:
        description += f"\n[Get Premium]({support_url})"
    return discord.Embed(title="No-Prefix Access Removed", description=description, color=WARNING_COLOR)


def code_block(text: str, limit: int) -> str:
    """Wrap ``text`` in a code block whose total length stays within ``limit``."""
    body = text[: max(limit - CODE_BLOCK_OVERHEAD, 0)]
    return f"```\n{body}\n```"


def trace_embed(traceback_text: str, limit: int = 4000) -> discord.Embed:
    """Inline traceback requested by the invoker with ``--trace`` / ``--debug``."""
    return discord.Embed(title="🔍 Command Trace", description=code_block(traceback_text, limit), color=FAULT_COLOR)


def fault_report_embed(
    command_name: str,
    invoker: str,
    location: str,
    traceback_text: str,
    limit: int,
) -> discord.Embed:
    """Report mirrored to the operations error channel for an execution fault."""
    header = (
        f"**Command**: `{command_name}`\n"
        f"**User**: {invoker}\n"
        f"**Server**: {location}\n"
    )
    embed = discord.Embed(
        title="❌ Logged Error",
        description=header + code_block(traceback_text, max(limit - len(header), 0)),
        color=FAULT_COLOR,
        timestamp=_now(),
    )
    return embed
