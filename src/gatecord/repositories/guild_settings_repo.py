"""
Repository for the guild_settings table.

Handles only guild_settings: the prefix override and the blacklist flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import aiosqlite

from gatecord.util.logger import get_logger

logger = get_logger("guild_settings_repo")


@dataclass
class GuildSettingsRow:
    """Raw DB row for a guild. ``prefix`` is ``None`` when the guild uses the default."""
    guild_id: int
    prefix: str | None
    blacklisted: bool
    blacklist_reason: str | None


def _to_row(row: aiosqlite.Row) -> GuildSettingsRow:
    return GuildSettingsRow(
        guild_id=row["guild_id"],
        prefix=row["prefix"],
        blacklisted=bool(row["blacklisted"]),
        blacklist_reason=row["blacklist_reason"],
    )


class GuildSettingsRepository:
    """CRUD for the guild_settings table only."""

    async def get(self, conn: aiosqlite.Connection, guild_id: int) -> GuildSettingsRow | None:
        async with conn.execute(
            """
            SELECT guild_id, prefix, blacklisted, blacklist_reason
            FROM guild_settings
            WHERE guild_id = ?
            """,
            (int(guild_id),),
        ) as cursor:
            row = await cursor.fetchone()

        return _to_row(row) if row is not None else None

    async def ensure(self, conn: aiosqlite.Connection, guild_id: int, now_ms: int) -> None:
        """Create the guild's row with defaults if it does not exist yet."""
        await conn.execute(
            """
            INSERT OR IGNORE INTO guild_settings (guild_id, created_at, updated_at)
            VALUES (?, ?, ?)
            """,
            (int(guild_id), now_ms, now_ms),
        )

    async def set_prefix(
        self, conn: aiosqlite.Connection, guild_id: int, prefix: str | None, now_ms: int
    ) -> None:
        await conn.execute(
            """
            INSERT INTO guild_settings (guild_id, prefix, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                prefix     = excluded.prefix,
                updated_at = excluded.updated_at
            """,
            (int(guild_id), prefix, now_ms, now_ms),
        )

    async def set_blacklist(
        self,
        conn: aiosqlite.Connection,
        guild_id: int,
        blacklisted: bool,
        reason: str | None,
        now_ms: int,
    ) -> None:
        await conn.execute(
            """
            INSERT INTO guild_settings (guild_id, blacklisted, blacklist_reason, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                blacklisted      = excluded.blacklisted,
                blacklist_reason = excluded.blacklist_reason,
                updated_at       = excluded.updated_at
            """,
            (int(guild_id), 1 if blacklisted else 0, reason if blacklisted else None, now_ms, now_ms),
        )

    async def list_blacklisted(self, conn: aiosqlite.Connection) -> List[GuildSettingsRow]:
        async with conn.execute(
            """
            SELECT guild_id, prefix, blacklisted, blacklist_reason
            FROM guild_settings
            WHERE blacklisted = 1
            ORDER BY updated_at DESC
            """
        ) as cursor:
            rows = await cursor.fetchall()
        return [_to_row(row) for row in rows]
