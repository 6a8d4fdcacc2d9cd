from unittest.mock import AsyncMock

import pytest

from gatecord.datatypes.command_datatypes import CommandDescriptor, CommandRequirements
from gatecord.datatypes.entitlement_datatypes import SubjectKind
from gatecord.dispatch.cooldown import CooldownThrottle
from gatecord.dispatch.errors import AuthorizationDenied, Gate
from gatecord.dispatch.gates import GateChain, GateContext, missing_permissions, permission_label

OWNER_ID = 1
USER_ID = 2
GUILD_ID = 300


def command(name="cmd", **requirements):
    return CommandDescriptor(name=name, body=AsyncMock(), requirements=CommandRequirements(**requirements))


def context(user_id=USER_ID, guild_id=GUILD_ID, **overrides):
    return GateContext(user_id=user_id, guild_id=guild_id, **overrides)


@pytest.fixture
def cooldowns(clock):
    return CooldownThrottle(clock=clock)


@pytest.fixture
def gates(settings, entitlements, cooldowns):
    return GateChain(
        settings,
        entitlements,
        cooldowns,
        owner_ids=frozenset({OWNER_ID}),
        blacklist_user_notice_rate=0.1,
        blacklist_guild_notice_rate=0.05,
    )


async def denial(gates, ctx, descriptor) -> AuthorizationDenied:
    with pytest.raises(AuthorizationDenied) as info:
        await gates.evaluate(ctx, descriptor)
    return info.value


def test_permission_helpers():
    assert permission_label("manage_guild") == "Manage Guild"
    assert missing_permissions({"ban_members", "kick_members"}, {"kick_members"}) == ["ban_members"]


@pytest.mark.asyncio
async def test_plain_command_passes(gates):
    await gates.evaluate(context(), command())


@pytest.mark.asyncio
async def test_blacklist_wins_over_owner_only(gates, settings):
    await settings.set_user_blacklist(USER_ID, True, "spam")

    denied = await denial(gates, context(), command(owner_only=True))

    assert denied.gate is Gate.BLACKLIST
    assert denied.reason == "You're blacklisted: spam"
    assert denied.notice_rate == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_guild_blacklist(gates, settings):
    await settings.set_guild_blacklist(GUILD_ID, True, "raids")

    denied = await denial(gates, context(), command())

    assert denied.gate is Gate.BLACKLIST
    assert denied.reason == "Server blacklisted: raids"
    assert denied.notice_rate == pytest.approx(0.05)


@pytest.mark.asyncio
async def test_operators_are_blacklistable(gates, settings):
    await settings.set_user_blacklist(OWNER_ID, True)

    denied = await denial(gates, context(user_id=OWNER_ID), command())

    assert denied.gate is Gate.BLACKLIST


@pytest.mark.asyncio
async def test_maintenance_blocks_everyone_but_operators(gates):
    descriptor = command(maintenance=True)

    denied = await denial(gates, context(), descriptor)
    assert denied.gate is Gate.MAINTENANCE

    await gates.evaluate(context(user_id=OWNER_ID), descriptor)


@pytest.mark.asyncio
async def test_owner_only(gates):
    descriptor = command(owner_only=True)

    denied = await denial(gates, context(), descriptor)
    assert denied.gate is Gate.OWNER_ONLY
    assert denied.title == "Permission Denied"

    await gates.evaluate(context(user_id=OWNER_ID), descriptor)
    assert gates.is_operator(OWNER_ID)
    assert not gates.is_operator(USER_ID)


@pytest.mark.asyncio
async def test_missing_caller_permissions_are_named(gates):
    descriptor = command(caller_permissions=frozenset({"manage_guild", "ban_members"}))

    denied = await denial(gates, context(caller_permissions=frozenset({"ban_members"})), descriptor)

    assert denied.gate is Gate.CALLER_PERMISSIONS
    assert "Manage Guild" in denied.reason
    assert "Ban Members" not in denied.reason


@pytest.mark.asyncio
async def test_missing_agent_permissions_are_named(gates):
    descriptor = command(agent_permissions=frozenset({"send_messages", "embed_links"}))

    denied = await denial(gates, context(agent_permissions=frozenset()), descriptor)

    assert denied.gate is Gate.AGENT_PERMISSIONS
    assert "Embed Links, Send Messages" in denied.reason


@pytest.mark.asyncio
async def test_caller_permissions_checked_before_agent_permissions(gates):
    descriptor = command(
        caller_permissions=frozenset({"manage_guild"}),
        agent_permissions=frozenset({"send_messages"}),
    )

    denied = await denial(gates, context(), descriptor)

    assert denied.gate is Gate.CALLER_PERMISSIONS


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "requirement, tier",
    [
        ("user_entitlement", "User Premium"),
        ("guild_entitlement", "Guild Premium"),
        ("any_entitlement", "Premium"),
    ],
)
async def test_entitlement_tiers(gates, requirement, tier):
    denied = await denial(gates, context(), command(**{requirement: True}))

    assert denied.gate is Gate.ENTITLEMENT
    assert denied.title == tier
    assert denied.reason == f"This command requires {tier}!"


@pytest.mark.asyncio
async def test_guild_grant_satisfies_guild_and_any(gates, entitlements):
    await entitlements.grant(SubjectKind.GUILD, GUILD_ID, OWNER_ID, None, "server")

    await gates.evaluate(context(), command(guild_entitlement=True))
    await gates.evaluate(context(), command(any_entitlement=True))
    denied = await denial(gates, context(), command(user_entitlement=True))
    assert denied.title == "User Premium"


@pytest.mark.asyncio
async def test_cooldown_gate_reports_remaining(gates, cooldowns, clock):
    descriptor = command(cooldown_seconds=10)
    cooldowns.set_cooldown(USER_ID, descriptor)
    clock.advance(4_000)

    denied = await denial(gates, context(), descriptor)

    assert denied.gate is Gate.COOLDOWN
    assert denied.retry_after == 6
    assert "**6**" in denied.reason


@pytest.mark.asyncio
async def test_gates_do_not_stamp_cooldowns(gates, cooldowns):
    await gates.evaluate(context(), command(cooldown_seconds=10))

    assert len(cooldowns) == 0


@pytest.mark.asyncio
async def test_voice_required(gates):
    descriptor = command(voice_required=True)

    denied = await denial(gates, context(), descriptor)
    assert denied.gate is Gate.VOICE

    await gates.evaluate(context(caller_voice_channel_id=10), descriptor)


@pytest.mark.asyncio
async def test_same_voice_channel(gates):
    descriptor = command(voice_required=True, same_voice_required=True)

    denied = await denial(
        gates,
        context(caller_voice_channel_id=10, agent_voice_channel_id=11, agent_voice_channel_name="Music"),
        descriptor,
    )
    assert denied.gate is Gate.SAME_VOICE
    assert "**Music**" in denied.reason

    await gates.evaluate(context(caller_voice_channel_id=11, agent_voice_channel_id=11), descriptor)
    # agent not connected anywhere yet
    await gates.evaluate(context(caller_voice_channel_id=10), descriptor)
