"""
Unit tests for services.activation_store_fallback module.
"""
import datetime as dt
from unittest.mock import AsyncMock, MagicMock

import pytest
from activation_hub.services.activation_base import ActivationCodeRecord, CodeStatus
from activation_hub.services.activation_errors import AlreadyUsedError, DuplicateCodeError, StorageError
from activation_hub.services.activation_service import ActivationCodeService
from activation_hub.services.activation_store_fallback import FallbackActivationCodeStore
from activation_hub.services.activation_store_memory import InMemoryActivationCodeStore


pytestmark = pytest.mark.asyncio

T0 = dt.datetime(2026, 1, 15, 12, 0, 0, tzinfo=dt.timezone.utc)


def _record(code: str) -> ActivationCodeRecord:
    return ActivationCodeRecord(code=code, created_at=T0, expires_at=T0 + dt.timedelta(days=1))


def _failing_store() -> MagicMock:
    store = MagicMock()
    store.name = "broken"
    for op in ("insert", "find_by_code", "find_by_id", "mark_used", "list_filtered", "aggregate_counts"):
        setattr(store, op, AsyncMock(side_effect=StorageError(f"{op} failed")))
    return store


async def test_primary_serves_when_healthy():
    primary, secondary = InMemoryActivationCodeStore(), InMemoryActivationCodeStore()
    store = FallbackActivationCodeStore(primary, secondary)
    stored = await store.insert(_record("P-1"))
    assert await primary.find_by_id(stored.id) is not None
    assert await secondary.find_by_id(stored.id) is None
    assert store.name == "memory->memory"


async def test_storage_error_falls_back_to_secondary():
    secondary = InMemoryActivationCodeStore()
    store = FallbackActivationCodeStore(_failing_store(), secondary)
    stored = await store.insert(_record("F-1"))
    assert (await store.find_by_code("F-1")).id == stored.id
    assert await store.mark_used(stored.id, T0) is True
    counts = await store.aggregate_counts(T0)
    assert (counts.total, counts.used) == (1, 1)
    page = await store.list_filtered(CodeStatus.USED, 1, 10, T0)
    assert page.total == 1


async def test_lookup_miss_on_primary_reads_secondary():
    primary, secondary = InMemoryActivationCodeStore(), InMemoryActivationCodeStore()
    stored = await secondary.insert(_record("S-1"))
    store = FallbackActivationCodeStore(primary, secondary)
    assert (await store.find_by_code("S-1")).id == stored.id
    assert (await store.find_by_id(stored.id)).code == "S-1"
    assert await store.find_by_code("MISSING") is None


async def test_used_row_on_primary_is_not_rerouted():
    primary = InMemoryActivationCodeStore()
    stored = await primary.insert(_record("U-1"))
    await primary.mark_used(stored.id, T0)
    secondary = MagicMock()
    secondary.mark_used = AsyncMock()
    store = FallbackActivationCodeStore(primary, secondary)
    assert await store.mark_used(stored.id, T0) is False
    secondary.mark_used.assert_not_called()


async def test_duplicate_from_primary_is_not_rerouted():
    primary = InMemoryActivationCodeStore()
    await primary.insert(_record("D-1"))
    secondary = InMemoryActivationCodeStore()
    store = FallbackActivationCodeStore(primary, secondary)
    with pytest.raises(DuplicateCodeError):
        await store.insert(_record("D-1"))
    assert await secondary.find_by_code("D-1") is None


async def test_both_failing_surfaces_storage_error():
    store = FallbackActivationCodeStore(_failing_store(), _failing_store())
    with pytest.raises(StorageError):
        await store.find_by_id("x")


async def test_code_issued_during_outage_redeemable_after_recovery(clock):
    primary = InMemoryActivationCodeStore()
    store = FallbackActivationCodeStore(primary, InMemoryActivationCodeStore())
    service = ActivationCodeService(store=store, clock=clock)

    primary.insert = AsyncMock(side_effect=StorageError("database down"))
    record = await service.create()
    del primary.insert  # database is back

    consumed = await service.verify_and_consume(record.code)
    assert consumed.id == record.id
    with pytest.raises(AlreadyUsedError):
        await service.verify_and_consume(record.code)
    assert (await service.stats()).used == 1


async def test_secondary_ledger_blocks_reissue_on_primary(clock):
    primary = InMemoryActivationCodeStore()
    store = FallbackActivationCodeStore(primary, InMemoryActivationCodeStore())
    service = ActivationCodeService(store=store, clock=clock, generator=lambda: "OUTAGE-CODE-00000000")

    primary.insert = AsyncMock(side_effect=StorageError("database down"))
    record = await service.create()
    del primary.insert

    await service.delete(record.id)
    assert await store.is_issued("OUTAGE-CODE-00000000")
    with pytest.raises(DuplicateCodeError):
        await service.create()


async def test_cleanup_and_counts_span_both_stores():
    primary, secondary = InMemoryActivationCodeStore(), InMemoryActivationCodeStore()
    await primary.insert(_record("P-OLD"))
    await secondary.insert(_record("S-OLD"))
    store = FallbackActivationCodeStore(primary, secondary)
    later = T0 + dt.timedelta(hours=1)

    counts = await store.aggregate_counts(later)
    assert (counts.total, counts.active) == (2, 2)
    assert {r.code for r in await store.find_stale_unused(later)} == {"P-OLD", "S-OLD"}
    assert await store.delete_stale_unused(later) == 2
    assert (await store.aggregate_counts(later)).total == 0
