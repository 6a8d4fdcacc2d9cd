"""
EntitlementStore: durable, time-bounded or permanent premium grants.

Lifecycle of a record
---------------------
- ``grant`` creates or overwrites the one record of a subject (idempotent).
- ``revoke`` clears the ``active`` flag (logical delete).
- ``is_active`` clears the flag the moment it observes a past expiry, so stale
  grants stop counting without waiting for the sweep. The write is
  conditional on the flag still being set, which makes concurrent downgrades
  converge and keeps a second read from writing again.
- ``sweep_expired`` physically deletes revoked and expired records; active
  permanent records are never touched.
"""

from __future__ import annotations

from typing import List

from gatecord.database.db_connection import ConnectionManager
from gatecord.datatypes.entitlement_datatypes import (
    AccessScope,
    EntitlementRecord,
    EntitlementStats,
    SubjectKind,
    SweepResult,
)
from gatecord.dispatch.errors import ValidationError
from gatecord.repositories import EntitlementRepository
from gatecord.util.clock import Clock, now_ms
from gatecord.util.durations import check_expiry, format_timestamp
from gatecord.util.logger import get_logger

logger = get_logger("entitlement_store")


class EntitlementStore:
    """Grant, revoke, check and sweep entitlements for users and guilds."""

    def __init__(self, connections: ConnectionManager, *, clock: Clock = now_ms) -> None:
        self._connections = connections
        self._repo = EntitlementRepository()
        self._clock = clock

    def now(self) -> int:
        """Current time in epoch ms, as seen by this store."""
        return self._clock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def grant(
        self,
        kind: SubjectKind,
        subject_id: int,
        granted_by: int,
        expires_at: int | None,
        reason: str,
    ) -> bool:
        """Create or overwrite the subject's grant.

        Args:
            expires_at: Epoch ms in the future, or ``None`` for a permanent grant.

        Returns:
            True if the record was written.

        Raises:
            ValidationError: If ``expires_at`` is not in the future or is past
                :data:`~gatecord.util.durations.MAX_EXPIRY_MS`.
        """
        now = self._clock()
        if expires_at is not None and expires_at <= now:
            raise ValidationError("Expiry must be in the future.")
        until = format_timestamp(check_expiry(expires_at)) if expires_at is not None else "permanent"

        record = EntitlementRecord(
            subject_kind=kind,
            subject_id=int(subject_id),
            granted_by=int(granted_by),
            granted_at=now,
            expires_at=expires_at,
            reason=reason,
        )
        async with self._connections.transaction() as conn:
            changed = await self._repo.upsert(conn, record)

        logger.info(
            "[ENTITLEMENTS] Granted %s %s by %s until %s (%s)",
            kind.value,
            subject_id,
            granted_by,
            until,
            reason,
        )
        return changed > 0

    async def revoke(self, kind: SubjectKind, subject_id: int) -> bool:
        """Logically delete an active grant; False if there was none."""
        async with self._connections.transaction() as conn:
            changed = await self._repo.deactivate(conn, kind, subject_id)
        if changed:
            logger.info("[ENTITLEMENTS] Revoked %s %s", kind.value, subject_id)
        return changed > 0

    async def extend(self, kind: SubjectKind, subject_id: int, additional_ms: int) -> bool:
        """Push an existing grant's expiry out by ``additional_ms``.

        A grant that already lapsed is extended from now. Permanent grants
        stay permanent. Returns False when the subject has no record.
        """
        if additional_ms <= 0:
            raise ValidationError("Extension must be greater than zero.")

        async with self._connections.transaction() as conn:
            record = await self._repo.get(conn, kind, subject_id)
            if record is None:
                return False
            if record.is_permanent:
                return True
            base = max(record.expires_at or 0, self._clock())
            await self._repo.set_expiry(conn, kind, subject_id, check_expiry(base + additional_ms))

        logger.info("[ENTITLEMENTS] Extended %s %s by %d ms", kind.value, subject_id, additional_ms)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, kind: SubjectKind, subject_id: int) -> EntitlementRecord | None:
        async with self._connections.read() as conn:
            return await self._repo.get(conn, kind, subject_id)

    async def is_active(self, kind: SubjectKind, subject_id: int) -> bool:
        """True iff the record exists, is flagged active and has not expired.

        An active record found past its expiry is downgraded before False is
        returned.
        """
        async with self._connections.read() as conn:
            record = await self._repo.get(conn, kind, subject_id)

        if record is None or not record.active:
            return False
        if not record.is_expired(self._clock()):
            return True

        async with self._connections.transaction() as conn:
            await self._repo.deactivate(conn, kind, subject_id)
        logger.info("[ENTITLEMENTS] %s %s expired; downgraded on read", kind.value, subject_id)
        return False

    async def has_any(self, user_id: int, guild_id: int | None) -> bool:
        """True if either the user or the guild holds an active grant."""
        if await self.is_active(SubjectKind.USER, user_id):
            return True
        return guild_id is not None and await self.is_active(SubjectKind.GUILD, guild_id)

    async def has_access(self, user_id: int, guild_id: int | None, scope: AccessScope) -> bool:
        """Check the grant(s) that satisfy ``scope``."""
        if scope is AccessScope.USER:
            return await self.is_active(SubjectKind.USER, user_id)
        if scope is AccessScope.GUILD:
            return guild_id is not None and await self.is_active(SubjectKind.GUILD, guild_id)
        return await self.has_any(user_id, guild_id)

    async def list_records(self, kind: SubjectKind, limit: int | None = None) -> List[EntitlementRecord]:
        async with self._connections.read() as conn:
            return await self._repo.list_for_kind(conn, kind, limit)

    async def stats(self) -> EntitlementStats:
        """Registered and currently active record counts per subject kind."""
        async with self._connections.read() as conn:
            counts = await self._repo.count_by_kind(conn)
            active = await self._repo.count_active_by_kind(conn, self._clock())

        return EntitlementStats(
            counts_by_kind={kind: counts.get(kind, 0) for kind in SubjectKind},
            active_counts_by_kind={kind: active.get(kind, 0) for kind in SubjectKind},
        )

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def sweep_expired(self) -> SweepResult:
        """Delete every revoked or expired record. Safe to call at any time; idempotent."""
        now = self._clock()
        result = SweepResult()
        async with self._connections.transaction() as conn:
            for kind in SubjectKind:
                result.revoked_counts[kind] = await self._repo.delete_expired(conn, kind, now)

        if result.total:
            logger.info(
                "[ENTITLEMENTS] Sweep removed %d expired grant(s) (users=%d, guilds=%d)",
                result.total,
                result.revoked_counts[SubjectKind.USER],
                result.revoked_counts[SubjectKind.GUILD],
            )
        else:
            logger.debug("[ENTITLEMENTS] Sweep found nothing to remove")
        return result
