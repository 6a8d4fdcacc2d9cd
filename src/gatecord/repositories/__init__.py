"""Repository layer: one class per table, each taking an open aiosqlite connection."""
from gatecord.repositories.guild_settings_repo import GuildSettingsRepository
from gatecord.repositories.user_settings_repo import UserSettingsRepository
from gatecord.repositories.entitlement_repo import EntitlementRepository

__all__ = [
    "GuildSettingsRepository",
    "UserSettingsRepository",
    "EntitlementRepository",
]
