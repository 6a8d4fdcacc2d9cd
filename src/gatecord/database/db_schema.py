"""
Database schema initialization and version tracking.

Three independently keyed tables back the dispatcher:

- ``guild_settings``: prefix override and blacklist flag per guild
- ``user_settings``: no-prefix grant and blacklist flag per user
- ``entitlements``: one premium grant per (subject kind, subject id)

All timestamps are epoch milliseconds.
"""

import aiosqlite
from gatecord.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates tables, indexes and the schema version row."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables and indexes if they do not exist.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id INTEGER PRIMARY KEY,
                prefix TEXT,
                blacklisted INTEGER NOT NULL DEFAULT 0,
                blacklist_reason TEXT,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_settings (
                user_id INTEGER PRIMARY KEY,
                no_prefix INTEGER NOT NULL DEFAULT 0,
                no_prefix_expires_at INTEGER,
                blacklisted INTEGER NOT NULL DEFAULT 0,
                blacklist_reason TEXT,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS entitlements (
                subject_kind TEXT NOT NULL CHECK (subject_kind IN ('user', 'guild')),
                subject_id INTEGER NOT NULL,
                granted_by INTEGER NOT NULL,
                granted_at INTEGER NOT NULL,
                expires_at INTEGER,
                reason TEXT NOT NULL DEFAULT '',
                active INTEGER NOT NULL DEFAULT 1,
                PRIMARY KEY (subject_kind, subject_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Indexes for the blacklist listing and the expiry sweep."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_guild_settings_blacklisted ON guild_settings(blacklisted)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_entitlements_expiry ON entitlements(expires_at)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
