"""
SettingsService: per-guild and per-user settings used on every message.

Responsibilities:
- Prefix Record per guild (lazily created, cached in memory)
- No-Prefix Grant per user, downgraded the first time it is seen expired
- Blacklist flags for users and guilds

All SQL lives in the repositories; this service only sequences repository
calls inside read/write contexts of the connection manager.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from gatecord.database.db_connection import ConnectionManager
from gatecord.dispatch.errors import ValidationError
from gatecord.repositories import GuildSettingsRepository, UserSettingsRepository
from gatecord.util.clock import Clock, now_ms
from gatecord.util.logger import get_logger

logger = get_logger("settings_service")

DEFAULT_BLACKLIST_REASON = "No reason provided"


@dataclass(frozen=True, slots=True)
class BlacklistEntry:
    subject_id: int
    reason: str


class SettingsService:
    """
    Guild prefix, no-prefix grant and blacklist persistence.

    Prefixes are read on every message, so resolved prefixes are cached per
    guild and the cache is updated on every write.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        default_prefix: str,
        *,
        max_prefix_length: int = 5,
        clock: Clock = now_ms,
    ) -> None:
        self._connections = connections
        self._guild_repo = GuildSettingsRepository()
        self._user_repo = UserSettingsRepository()
        self._default_prefix = default_prefix
        self._max_prefix_length = max_prefix_length
        self._clock = clock
        self._prefix_cache: Dict[int, str] = {}

    @property
    def default_prefix(self) -> str:
        return self._default_prefix

    # ------------------------------------------------------------------
    # Prefix
    # ------------------------------------------------------------------

    async def get_prefix(self, guild_id: int) -> str:
        """Return the guild's prefix, creating its record on first lookup."""
        cached = self._prefix_cache.get(guild_id)
        if cached is not None:
            return cached

        async with self._connections.read() as conn:
            row = await self._guild_repo.get(conn, guild_id)

        if row is None:
            async with self._connections.transaction() as conn:
                await self._guild_repo.ensure(conn, guild_id, self._clock())
            prefix = self._default_prefix
        else:
            prefix = row.prefix or self._default_prefix

        self._prefix_cache[guild_id] = prefix
        return prefix

    def validate_prefix(self, prefix: str) -> str:
        """Check a candidate prefix and return it stripped.

        Raises:
            ValidationError: If it is empty, contains whitespace or is too long.
        """
        candidate = prefix.strip()
        if not candidate:
            raise ValidationError("Prefix cannot be empty.")
        if any(ch.isspace() for ch in candidate):
            raise ValidationError("Prefix cannot contain spaces.")
        if len(candidate) > self._max_prefix_length:
            raise ValidationError(
                f"Prefix is too long. Maximum {self._max_prefix_length} characters allowed."
            )
        return candidate

    async def set_prefix(self, guild_id: int, prefix: str) -> str:
        """Validate and store a guild's prefix override; returns the stored value."""
        candidate = self.validate_prefix(prefix)
        async with self._connections.transaction() as conn:
            await self._guild_repo.set_prefix(conn, guild_id, candidate, self._clock())
        self._prefix_cache[guild_id] = candidate
        logger.info("[SETTINGS] Guild %s prefix set to %r", guild_id, candidate)
        return candidate

    # ------------------------------------------------------------------
    # No-prefix grant
    # ------------------------------------------------------------------

    async def has_no_prefix(self, user_id: int) -> bool:
        """Return whether the user may invoke commands without a prefix.

        A grant found past its expiry is cleared before returning False.
        """
        async with self._connections.read() as conn:
            row = await self._user_repo.get(conn, user_id)

        if row is None or not row.no_prefix:
            return False
        if row.no_prefix_expires_at is None or row.no_prefix_expires_at > self._clock():
            return True

        await self.clear_no_prefix(user_id)
        logger.debug("[SETTINGS] No-prefix grant of user %s expired; cleared", user_id)
        return False

    async def set_no_prefix(self, user_id: int, enabled: bool, expires_at: int | None = None) -> None:
        async with self._connections.transaction() as conn:
            await self._user_repo.set_no_prefix(conn, user_id, enabled, expires_at, self._clock())
        logger.info("[SETTINGS] No-prefix for user %s set to %s (expires_at=%s)", user_id, enabled, expires_at)

    async def clear_no_prefix(self, user_id: int) -> bool:
        """Clear the grant if set; concurrent calls converge on the same state."""
        async with self._connections.transaction() as conn:
            return await self._user_repo.clear_no_prefix_if_set(conn, user_id, self._clock())

    # ------------------------------------------------------------------
    # Blacklist
    # ------------------------------------------------------------------

    async def get_user_blacklist(self, user_id: int) -> BlacklistEntry | None:
        async with self._connections.read() as conn:
            row = await self._user_repo.get(conn, user_id)
        if row is None or not row.blacklisted:
            return None
        return BlacklistEntry(user_id, row.blacklist_reason or DEFAULT_BLACKLIST_REASON)

    async def get_guild_blacklist(self, guild_id: int) -> BlacklistEntry | None:
        async with self._connections.read() as conn:
            row = await self._guild_repo.get(conn, guild_id)
        if row is None or not row.blacklisted:
            return None
        return BlacklistEntry(guild_id, row.blacklist_reason or DEFAULT_BLACKLIST_REASON)

    async def set_user_blacklist(self, user_id: int, blacklisted: bool, reason: str | None = None) -> None:
        async with self._connections.transaction() as conn:
            await self._user_repo.set_blacklist(
                conn, user_id, blacklisted, reason or DEFAULT_BLACKLIST_REASON, self._clock()
            )
        logger.info("[SETTINGS] User %s blacklisted=%s", user_id, blacklisted)

    async def set_guild_blacklist(self, guild_id: int, blacklisted: bool, reason: str | None = None) -> None:
        async with self._connections.transaction() as conn:
            await self._guild_repo.set_blacklist(
                conn, guild_id, blacklisted, reason or DEFAULT_BLACKLIST_REASON, self._clock()
            )
        logger.info("[SETTINGS] Guild %s blacklisted=%s", guild_id, blacklisted)

    async def list_blacklisted_users(self) -> List[BlacklistEntry]:
        async with self._connections.read() as conn:
            rows = await self._user_repo.list_blacklisted(conn)
        return [BlacklistEntry(row.user_id, row.blacklist_reason or DEFAULT_BLACKLIST_REASON) for row in rows]

    async def list_blacklisted_guilds(self) -> List[BlacklistEntry]:
        async with self._connections.read() as conn:
            rows = await self._guild_repo.list_blacklisted(conn)
        return [BlacklistEntry(row.guild_id, row.blacklist_reason or DEFAULT_BLACKLIST_REASON) for row in rows]
