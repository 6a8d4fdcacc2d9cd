"""Duration grammar shared by the administration commands.

Accepted forms are ``<n>m``, ``<n>h`` and ``<n>d`` (minutes, hours, days) or
the literals ``perm`` / ``permanent``. Durations are returned in milliseconds
because every persisted timestamp is epoch milliseconds.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from gatecord.dispatch.errors import ValidationError

_DURATION_RE = re.compile(r"^(\d+)([dhm])$", re.IGNORECASE)

_UNIT_MS = {
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}

PERMANENT_WORDS = frozenset({"perm", "permanent"})

# 9999-12-31 23:59:59 UTC, the last instant datetime can render
MAX_EXPIRY_MS = 253_402_300_799_000


def is_permanent(text: str) -> bool:
    return text.strip().lower() in PERMANENT_WORDS


def parse_duration_ms(text: str) -> int:
    """Parse ``30d`` / ``12h`` / ``45m`` into milliseconds.

    Raises:
        ValidationError: If ``text`` does not match the grammar or is zero or too long.
    """
    match = _DURATION_RE.match(text.strip())
    if not match:
        raise ValidationError(f"Invalid duration `{text}`. Use a number followed by m, h or d (e.g. 30d), or `perm`.")

    value = int(match.group(1))
    if value <= 0:
        raise ValidationError("Duration must be greater than zero.")
    duration = value * _UNIT_MS[match.group(2).lower()]
    if duration > MAX_EXPIRY_MS:
        raise ValidationError(f"Duration `{text}` is too long.")
    return duration


def resolve_expiry(text: str, now_ms: int) -> int | None:
    """Turn a duration argument into an absolute expiry, ``None`` for permanent."""
    if is_permanent(text):
        return None
    return check_expiry(now_ms + parse_duration_ms(text))


def check_expiry(expires_at: int) -> int:
    """Reject an absolute expiry past :data:`MAX_EXPIRY_MS`."""
    if expires_at > MAX_EXPIRY_MS:
        raise ValidationError("Expiry is too far in the future.")
    return expires_at


def format_expiry(expires_at: int | None) -> str:
    """Render an expiry for chat: a relative Discord timestamp, or ``Permanent``."""
    if expires_at is None:
        return "Permanent"
    return f"<t:{expires_at // 1000}:R>"


def format_timestamp(epoch_ms: int) -> str:
    """Render epoch milliseconds as a UTC string for logs and console output."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
