"""Value types for the entitlement (premium) subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class SubjectKind(str, Enum):
    """What an entitlement is attached to."""

    USER = "user"
    GUILD = "guild"

    @classmethod
    def parse(cls, text: str) -> "SubjectKind":
        """Parse ``user`` / ``guild`` (case-insensitive).

        Raises:
            ValueError: For any other value.
        """
        return cls(text.strip().lower())


class AccessScope(str, Enum):
    """Which grants satisfy an entitlement requirement."""

    USER = "user"
    GUILD = "guild"
    ANY = "any"


@dataclass(slots=True)
class EntitlementRecord:
    """One persisted grant. ``expires_at`` is epoch ms, ``None`` when permanent."""

    subject_kind: SubjectKind
    subject_id: int
    granted_by: int
    granted_at: int
    expires_at: Optional[int]
    reason: str
    active: bool = True

    @property
    def is_permanent(self) -> bool:
        return self.expires_at is None

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at is not None and self.expires_at <= now_ms


@dataclass(slots=True)
class EntitlementStats:
    """Aggregate counts returned by ``EntitlementStore.stats``."""

    counts_by_kind: Dict[SubjectKind, int] = field(default_factory=dict)
    active_counts_by_kind: Dict[SubjectKind, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts_by_kind.values())

    @property
    def active_total(self) -> int:
        return sum(self.active_counts_by_kind.values())


@dataclass(slots=True)
class SweepResult:
    """Records removed by one expiry sweep, per subject kind."""

    revoked_counts: Dict[SubjectKind, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.revoked_counts.values())
