"""
Repository for the entitlements table.

One row per (subject_kind, subject_id). Revocation and lazy expiry clear the
``active`` flag; only the expiry sweep deletes rows.
"""

from __future__ import annotations

from typing import Dict, List

import aiosqlite

from gatecord.datatypes.entitlement_datatypes import EntitlementRecord, SubjectKind
from gatecord.util.logger import get_logger

logger = get_logger("entitlement_repo")

_COLUMNS = "subject_kind, subject_id, granted_by, granted_at, expires_at, reason, active"


def _to_record(row: aiosqlite.Row) -> EntitlementRecord:
    return EntitlementRecord(
        subject_kind=SubjectKind(row["subject_kind"]),
        subject_id=row["subject_id"],
        granted_by=row["granted_by"],
        granted_at=row["granted_at"],
        expires_at=row["expires_at"],
        reason=row["reason"] or "",
        active=bool(row["active"]),
    )


class EntitlementRepository:
    """CRUD for the entitlements table only."""

    async def get(
        self, conn: aiosqlite.Connection, kind: SubjectKind, subject_id: int
    ) -> EntitlementRecord | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM entitlements WHERE subject_kind = ? AND subject_id = ?",
            (kind.value, int(subject_id)),
        ) as cursor:
            row = await cursor.fetchone()
        return _to_record(row) if row is not None else None

    async def upsert(self, conn: aiosqlite.Connection, record: EntitlementRecord) -> int:
        """Insert or overwrite the record for its subject; returns the affected row count."""
        cursor = await conn.execute(
            f"""
            INSERT INTO entitlements ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(subject_kind, subject_id) DO UPDATE SET
                granted_by = excluded.granted_by,
                granted_at = excluded.granted_at,
                expires_at = excluded.expires_at,
                reason     = excluded.reason,
                active     = excluded.active
            """,
            (
                record.subject_kind.value,
                int(record.subject_id),
                int(record.granted_by),
                record.granted_at,
                record.expires_at,
                record.reason,
                1 if record.active else 0,
            ),
        )
        return cursor.rowcount

    async def deactivate(self, conn: aiosqlite.Connection, kind: SubjectKind, subject_id: int) -> int:
        """Clear the active flag if it is set; returns the affected row count."""
        cursor = await conn.execute(
            "UPDATE entitlements SET active = 0 WHERE subject_kind = ? AND subject_id = ? AND active = 1",
            (kind.value, int(subject_id)),
        )
        return cursor.rowcount

    async def set_expiry(
        self, conn: aiosqlite.Connection, kind: SubjectKind, subject_id: int, expires_at: int | None
    ) -> int:
        cursor = await conn.execute(
            "UPDATE entitlements SET expires_at = ?, active = 1 WHERE subject_kind = ? AND subject_id = ?",
            (expires_at, kind.value, int(subject_id)),
        )
        return cursor.rowcount

    async def list_for_kind(
        self, conn: aiosqlite.Connection, kind: SubjectKind, limit: int | None = None
    ) -> List[EntitlementRecord]:
        """Most recently granted first."""
        query = f"SELECT {_COLUMNS} FROM entitlements WHERE subject_kind = ? ORDER BY granted_at DESC"
        params: tuple = (kind.value,)
        if limit is not None:
            query += " LIMIT ?"
            params = (kind.value, int(limit))
        async with conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [_to_record(row) for row in rows]

    async def count_by_kind(self, conn: aiosqlite.Connection) -> Dict[SubjectKind, int]:
        async with conn.execute(
            "SELECT subject_kind, COUNT(*) AS n FROM entitlements GROUP BY subject_kind"
        ) as cursor:
            rows = await cursor.fetchall()
        return {SubjectKind(row["subject_kind"]): row["n"] for row in rows}

    async def count_active_by_kind(self, conn: aiosqlite.Connection, now_ms: int) -> Dict[SubjectKind, int]:
        async with conn.execute(
            """
            SELECT subject_kind, COUNT(*) AS n
            FROM entitlements
            WHERE active = 1 AND (expires_at IS NULL OR expires_at > ?)
            GROUP BY subject_kind
            """,
            (now_ms,),
        ) as cursor:
            rows = await cursor.fetchall()
        return {SubjectKind(row["subject_kind"]): row["n"] for row in rows}

    async def delete_expired(self, conn: aiosqlite.Connection, kind: SubjectKind, now_ms: int) -> int:
        """Delete every record of ``kind`` that was revoked or whose expiry has passed.

        Active permanent rows are kept.
        """
        cursor = await conn.execute(
            "DELETE FROM entitlements WHERE subject_kind = ? "
            "AND (active = 0 OR (expires_at IS NOT NULL AND expires_at <= ?))",
            (kind.value, now_ms),
        )
        return cursor.rowcount
