from unittest.mock import AsyncMock, patch

import pytest

from gatecord.datatypes.entitlement_datatypes import AccessScope, SubjectKind
from gatecord.dispatch.errors import ValidationError
from gatecord.util.durations import MAX_EXPIRY_MS

DAY_MS = 24 * 60 * 60 * 1000
T0 = 1_700_000_000_000  # FakeClock start

USER = SubjectKind.USER
GUILD = SubjectKind.GUILD


@pytest.mark.asyncio
async def test_thirty_day_grant_lapses_and_is_downgraded(entitlements, clock):
    assert await entitlements.grant(USER, 42, 1, T0 + 30 * DAY_MS, "VIP")

    clock.advance(29 * DAY_MS)
    assert await entitlements.is_active(USER, 42)

    clock.advance(2 * DAY_MS)
    assert not await entitlements.is_active(USER, 42)

    record = await entitlements.get(USER, 42)
    assert record is not None
    assert record.active is False


@pytest.mark.asyncio
async def test_expired_read_writes_the_downgrade_once(entitlements, clock):
    await entitlements.grant(USER, 42, 1, T0 + DAY_MS, "short")
    clock.advance(2 * DAY_MS)

    repo = entitlements._repo
    with patch.object(repo, "deactivate", AsyncMock(wraps=repo.deactivate)) as deactivate:
        assert not await entitlements.is_active(USER, 42)
        assert not await entitlements.is_active(USER, 42)

    assert deactivate.await_count == 1


@pytest.mark.asyncio
async def test_grant_rejects_past_expiry(entitlements):
    with pytest.raises(ValidationError):
        await entitlements.grant(USER, 42, 1, T0, "too late")
    assert await entitlements.get(USER, 42) is None


@pytest.mark.asyncio
async def test_grant_is_an_overwrite(entitlements):
    await entitlements.grant(GUILD, 7, 1, T0 + DAY_MS, "first")
    await entitlements.grant(GUILD, 7, 2, None, "second")

    record = await entitlements.get(GUILD, 7)
    assert record.is_permanent
    assert record.granted_by == 2
    assert record.reason == "second"
    assert (await entitlements.stats()).counts_by_kind[GUILD] == 1


@pytest.mark.asyncio
async def test_grant_revoke_and_stats(entitlements):
    await entitlements.grant(USER, 1, 9, None, "a")
    await entitlements.grant(USER, 2, 9, T0 + DAY_MS, "b")
    await entitlements.grant(GUILD, 3, 9, None, "c")

    assert await entitlements.revoke(USER, 2)
    assert not await entitlements.revoke(USER, 2)
    assert not await entitlements.revoke(GUILD, 999)

    stats = await entitlements.stats()
    assert stats.counts_by_kind == {USER: 2, GUILD: 1}
    assert stats.active_counts_by_kind == {USER: 1, GUILD: 1}
    assert stats.total == 3
    assert stats.active_total == 2


@pytest.mark.asyncio
async def test_stats_on_empty_store_lists_every_kind(entitlements):
    stats = await entitlements.stats()

    assert stats.counts_by_kind == {USER: 0, GUILD: 0}
    assert stats.active_total == 0


@pytest.mark.asyncio
async def test_sweep_deletes_expired_and_keeps_permanent(entitlements, clock):
    await entitlements.grant(USER, 1, 9, None, "forever")
    await entitlements.grant(USER, 2, 9, T0 + DAY_MS, "short")
    await entitlements.grant(GUILD, 3, 9, T0 + DAY_MS, "short")
    await entitlements.grant(GUILD, 4, 9, T0 + 10 * DAY_MS, "long")

    clock.advance(2 * DAY_MS)
    result = await entitlements.sweep_expired()

    assert result.revoked_counts == {USER: 1, GUILD: 1}
    assert result.total == 2
    assert await entitlements.get(USER, 1) is not None
    assert await entitlements.get(USER, 2) is None
    assert await entitlements.is_active(GUILD, 4)

    again = await entitlements.sweep_expired()
    assert again.total == 0


@pytest.mark.asyncio
async def test_sweep_removes_revoked_records(entitlements):
    await entitlements.grant(USER, 1, 9, None, "forever")
    await entitlements.grant(GUILD, 3, 9, T0 + 10 * DAY_MS, "long")
    await entitlements.grant(GUILD, 4, 9, None, "kept")
    assert await entitlements.revoke(USER, 1)
    assert await entitlements.revoke(GUILD, 3)

    result = await entitlements.sweep_expired()

    assert result.revoked_counts == {USER: 1, GUILD: 1}
    assert await entitlements.get(USER, 1) is None
    assert await entitlements.get(GUILD, 3) is None
    assert await entitlements.is_active(GUILD, 4)


@pytest.mark.asyncio
async def test_extend_pushes_expiry(entitlements, clock):
    await entitlements.grant(USER, 5, 9, T0 + DAY_MS, "x")

    assert await entitlements.extend(USER, 5, DAY_MS)
    assert (await entitlements.get(USER, 5)).expires_at == T0 + 2 * DAY_MS


@pytest.mark.asyncio
async def test_extend_lapsed_grant_counts_from_now(entitlements, clock):
    await entitlements.grant(USER, 5, 9, T0 + DAY_MS, "x")
    clock.advance(3 * DAY_MS)
    assert not await entitlements.is_active(USER, 5)

    assert await entitlements.extend(USER, 5, DAY_MS)

    assert (await entitlements.get(USER, 5)).expires_at == T0 + 4 * DAY_MS
    assert await entitlements.is_active(USER, 5)


@pytest.mark.asyncio
async def test_extend_edge_cases(entitlements):
    assert not await entitlements.extend(USER, 404, DAY_MS)

    await entitlements.grant(GUILD, 6, 9, None, "perm")
    assert await entitlements.extend(GUILD, 6, DAY_MS)
    assert (await entitlements.get(GUILD, 6)).is_permanent

    with pytest.raises(ValidationError):
        await entitlements.extend(GUILD, 6, 0)


@pytest.mark.asyncio
async def test_expiry_past_the_calendar_is_rejected_before_writing(entitlements):
    with pytest.raises(ValidationError):
        await entitlements.grant(USER, 8, 1, MAX_EXPIRY_MS + 1, "too far")
    assert await entitlements.get(USER, 8) is None

    await entitlements.grant(USER, 8, 1, T0 + DAY_MS, "x")
    with pytest.raises(ValidationError):
        await entitlements.extend(USER, 8, MAX_EXPIRY_MS)
    assert (await entitlements.get(USER, 8)).expires_at == T0 + DAY_MS


@pytest.mark.asyncio
async def test_has_access_scopes(entitlements):
    await entitlements.grant(GUILD, 100, 9, None, "server")

    assert not await entitlements.has_access(1, 100, AccessScope.USER)
    assert await entitlements.has_access(1, 100, AccessScope.GUILD)
    assert await entitlements.has_access(1, 100, AccessScope.ANY)
    assert not await entitlements.has_access(1, None, AccessScope.GUILD)
    assert not await entitlements.has_any(1, None)

    await entitlements.grant(USER, 1, 9, None, "user")
    assert await entitlements.has_access(1, None, AccessScope.USER)
    assert await entitlements.has_any(1, None)


@pytest.mark.asyncio
async def test_list_records_newest_first(entitlements, clock):
    await entitlements.grant(USER, 1, 9, None, "old")
    clock.advance(1_000)
    await entitlements.grant(USER, 2, 9, None, "new")

    records = await entitlements.list_records(USER)
    assert [record.subject_id for record in records] == [2, 1]
    assert len(await entitlements.list_records(USER, limit=1)) == 1
