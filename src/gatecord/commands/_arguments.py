"""Argument parsing shared by the administration commands."""

from __future__ import annotations

import re
from typing import Sequence

from gatecord.datatypes.entitlement_datatypes import SubjectKind
from gatecord.dispatch.errors import ValidationError

_SNOWFLAKE_RE = re.compile(r"^(?:<(?:@!?|@&|#)(\d+)>|(\d+))$")


def parse_snowflake(text: str) -> int:
    """Accept a raw id or a mention (``<@id>``, ``<@!id>``, ``<#id>``)."""
    match = _SNOWFLAKE_RE.match(text.strip())
    if not match:
        raise ValidationError(f"`{text}` is not a valid id or mention.")
    return int(match.group(1) or match.group(2))


def parse_kind(text: str) -> SubjectKind:
    try:
        return SubjectKind.parse(text)
    except ValueError:
        raise ValidationError("Type must be either `user` or `guild`.") from None


def require_args(args: Sequence[str], count: int, usage: str) -> None:
    if len(args) < count:
        raise ValidationError(f"Usage: `{usage}`")
