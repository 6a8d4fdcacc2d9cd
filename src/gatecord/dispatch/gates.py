"""
Authorization gate chain.

Gates run in a fixed order and the first failure wins; later gates are not
evaluated. Each failure raises :class:`AuthorizationDenied` carrying the gate
id and the user-facing reason.

Order:
    1. blacklist (user, then guild)
    2. maintenance
    3. owner-only
    4. caller permissions
    5. agent permissions
    6. entitlements (user, guild, any)
    7. cooldown (checked only; the pipeline stamps it)
    8. voice presence
    9. same voice channel as the agent
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Awaitable, Callable, FrozenSet, List, Optional

from gatecord.datatypes.command_datatypes import CommandDescriptor
from gatecord.datatypes.entitlement_datatypes import AccessScope
from gatecord.dispatch.cooldown import CooldownThrottle
from gatecord.dispatch.errors import AuthorizationDenied, Gate
from gatecord.services.entitlement_store import EntitlementStore
from gatecord.services.settings_service import SettingsService
from gatecord.util.logger import get_logger

logger = get_logger("gate_chain")


@dataclass(frozen=True, slots=True)
class GateContext:
    """Everything the gates need to know about one dispatch.

    Permission sets hold ``discord.Permissions`` attribute names that are
    granted. Voice fields are ``None`` when not connected.
    """

    user_id: int
    guild_id: Optional[int]
    caller_permissions: FrozenSet[str] = frozenset()
    agent_permissions: FrozenSet[str] = frozenset()
    caller_voice_channel_id: Optional[int] = None
    agent_voice_channel_id: Optional[int] = None
    agent_voice_channel_name: Optional[str] = None


def permission_label(name: str) -> str:
    """``manage_guild`` -> ``Manage Guild``."""
    return name.replace("_", " ").title()


def missing_permissions(required: AbstractSet[str], held: AbstractSet[str]) -> List[str]:
    return sorted(name for name in required if name not in held)


class GateChain:
    """Evaluates every gate for a resolved command, in order."""

    def __init__(
        self,
        settings: SettingsService,
        entitlements: EntitlementStore,
        cooldowns: CooldownThrottle,
        *,
        owner_ids: FrozenSet[int] = frozenset(),
        blacklist_user_notice_rate: float = 0.1,
        blacklist_guild_notice_rate: float = 0.05,
    ) -> None:
        self._settings = settings
        self._entitlements = entitlements
        self._cooldowns = cooldowns
        self._owner_ids = owner_ids
        self._blacklist_user_notice_rate = blacklist_user_notice_rate
        self._blacklist_guild_notice_rate = blacklist_guild_notice_rate

        self._gates: List[Callable[[GateContext, CommandDescriptor], Awaitable[None]]] = [
            self._check_blacklist,
            self._check_maintenance,
            self._check_owner_only,
            self._check_caller_permissions,
            self._check_agent_permissions,
            self._check_entitlements,
            self._check_cooldown,
            self._check_voice,
            self._check_same_voice,
        ]

    def is_operator(self, user_id: int) -> bool:
        return user_id in self._owner_ids

    async def evaluate(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        """Run the chain; returns normally only when every gate passes.

        Raises:
            AuthorizationDenied: From the first gate that fails.
        """
        for gate in self._gates:
            try:
                await gate(ctx, descriptor)
            except AuthorizationDenied as denied:
                logger.debug(
                    "[GATES] %s denied for user %s at gate %s",
                    descriptor.name,
                    ctx.user_id,
                    denied.gate.value,
                )
                raise

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    async def _check_blacklist(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        user_entry = await self._settings.get_user_blacklist(ctx.user_id)
        if user_entry is not None:
            raise AuthorizationDenied(
                Gate.BLACKLIST,
                "Blacklisted",
                f"You're blacklisted: {user_entry.reason}",
                notice_rate=self._blacklist_user_notice_rate,
            )

        if ctx.guild_id is None:
            return
        guild_entry = await self._settings.get_guild_blacklist(ctx.guild_id)
        if guild_entry is not None:
            raise AuthorizationDenied(
                Gate.BLACKLIST,
                "Blacklisted",
                f"Server blacklisted: {guild_entry.reason}",
                notice_rate=self._blacklist_guild_notice_rate,
            )

    async def _check_maintenance(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        if descriptor.requirements.maintenance and not self.is_operator(ctx.user_id):
            raise AuthorizationDenied(
                Gate.MAINTENANCE,
                "Under Maintenance",
                "This command is currently under maintenance. Please try again later.",
            )

    async def _check_owner_only(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        if descriptor.requirements.owner_only and not self.is_operator(ctx.user_id):
            raise AuthorizationDenied(Gate.OWNER_ONLY, "Permission Denied", "This is an owner-only command.")

    async def _check_caller_permissions(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        missing = missing_permissions(descriptor.requirements.caller_permissions, ctx.caller_permissions)
        if missing:
            raise AuthorizationDenied(
                Gate.CALLER_PERMISSIONS,
                "Insufficient Permissions",
                "You are missing the following permissions: "
                f"`{', '.join(permission_label(name) for name in missing)}`",
            )

    async def _check_agent_permissions(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        missing = missing_permissions(descriptor.requirements.agent_permissions, ctx.agent_permissions)
        if missing:
            raise AuthorizationDenied(
                Gate.AGENT_PERMISSIONS,
                "Missing Bot Permissions",
                "I am missing the following permissions: "
                f"`{', '.join(permission_label(name) for name in missing)}`",
            )

    async def _check_entitlements(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        requirements = descriptor.requirements
        checks = (
            (requirements.user_entitlement, AccessScope.USER, "User Premium"),
            (requirements.guild_entitlement, AccessScope.GUILD, "Guild Premium"),
            (requirements.any_entitlement, AccessScope.ANY, "Premium"),
        )
        for required, scope, tier in checks:
            if required and not await self._entitlements.has_access(ctx.user_id, ctx.guild_id, scope):
                raise AuthorizationDenied(Gate.ENTITLEMENT, tier, f"This command requires {tier}!")

    async def _check_cooldown(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        remaining = self._cooldowns.check_cooldown(ctx.user_id, descriptor)
        if remaining:
            raise AuthorizationDenied(
                Gate.COOLDOWN,
                "Cooldown Active",
                f"Please wait **{remaining}** more second(s) before using this command.",
                retry_after=remaining,
            )

    async def _check_voice(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        if descriptor.requirements.voice_required and ctx.caller_voice_channel_id is None:
            raise AuthorizationDenied(
                Gate.VOICE,
                "Voice Channel Required",
                "You must be in a voice channel to use this command.",
            )

    async def _check_same_voice(self, ctx: GateContext, descriptor: CommandDescriptor) -> None:
        if not descriptor.requirements.same_voice_required or ctx.agent_voice_channel_id is None:
            return
        if ctx.caller_voice_channel_id != ctx.agent_voice_channel_id:
            raise AuthorizationDenied(
                Gate.SAME_VOICE,
                "Different Voice Channel",
                f"You must be in the same voice channel as me: **{ctx.agent_voice_channel_name}**.",
            )
