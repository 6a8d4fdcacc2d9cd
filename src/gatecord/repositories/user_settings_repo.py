"""
Repository for the user_settings table.

Holds the per-user no-prefix grant and blacklist flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import aiosqlite

from gatecord.util.logger import get_logger

logger = get_logger("user_settings_repo")


@dataclass
class UserSettingsRow:
    """Raw DB row for a user."""
    user_id: int
    no_prefix: bool
    no_prefix_expires_at: int | None
    blacklisted: bool
    blacklist_reason: str | None


def _to_row(row: aiosqlite.Row) -> UserSettingsRow:
    return UserSettingsRow(
        user_id=row["user_id"],
        no_prefix=bool(row["no_prefix"]),
        no_prefix_expires_at=row["no_prefix_expires_at"],
        blacklisted=bool(row["blacklisted"]),
        blacklist_reason=row["blacklist_reason"],
    )


class UserSettingsRepository:
    """CRUD for the user_settings table only."""

    async def get(self, conn: aiosqlite.Connection, user_id: int) -> UserSettingsRow | None:
        async with conn.execute(
            """
            SELECT user_id, no_prefix, no_prefix_expires_at, blacklisted, blacklist_reason
            FROM user_settings
            WHERE user_id = ?
            """,
            (int(user_id),),
        ) as cursor:
            row = await cursor.fetchone()

        return _to_row(row) if row is not None else None

    async def set_no_prefix(
        self,
        conn: aiosqlite.Connection,
        user_id: int,
        enabled: bool,
        expires_at: int | None,
        now_ms: int,
    ) -> None:
        await conn.execute(
            """
            INSERT INTO user_settings (user_id, no_prefix, no_prefix_expires_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                no_prefix            = excluded.no_prefix,
                no_prefix_expires_at = excluded.no_prefix_expires_at,
                updated_at           = excluded.updated_at
            """,
            (int(user_id), 1 if enabled else 0, expires_at if enabled else None, now_ms, now_ms),
        )

    async def clear_no_prefix_if_set(self, conn: aiosqlite.Connection, user_id: int, now_ms: int) -> bool:
        """Clear the grant only if it is still set; returns True when a row changed."""
        cursor = await conn.execute(
            """
            UPDATE user_settings
            SET no_prefix = 0, no_prefix_expires_at = NULL, updated_at = ?
            WHERE user_id = ? AND no_prefix = 1
            """,
            (now_ms, int(user_id)),
        )
        return cursor.rowcount > 0

    async def set_blacklist(
        self,
        conn: aiosqlite.Connection,
        user_id: int,
        blacklisted: bool,
        reason: str | None,
        now_ms: int,
    ) -> None:
        await conn.execute(
            """
            INSERT INTO user_settings (user_id, blacklisted, blacklist_reason, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                blacklisted      = excluded.blacklisted,
                blacklist_reason = excluded.blacklist_reason,
                updated_at       = excluded.updated_at
            """,
            (int(user_id), 1 if blacklisted else 0, reason if blacklisted else None, now_ms, now_ms),
        )

    async def list_blacklisted(self, conn: aiosqlite.Connection) -> List[UserSettingsRow]:
        async with conn.execute(
            """
            SELECT user_id, no_prefix, no_prefix_expires_at, blacklisted, blacklist_reason
            FROM user_settings
            WHERE blacklisted = 1
            ORDER BY updated_at DESC
            """
        ) as cursor:
            rows = await cursor.fetchall()
        return [_to_row(row) for row in rows]
