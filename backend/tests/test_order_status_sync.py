import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from order_sync.exceptions import StorageError, UnmappedStatusError
from order_sync.services.order_status_sync import (
    OrderStatusSyncService,
    format_timestamp,
    parse_timestamp,
)
from order_sync.services.repositories import LegacyOrderRepository, SyncedStatusRepository
from order_sync.storage.base import InMemoryStorage


SYNCED_KEY = "synced_order_statuses_v1"


class SpyStorage(InMemoryStorage):
    def __init__(self, initial=None, fail_on_get=(), fail_on_set=(), yield_on_get=False, yield_on_set=False):
        super().__init__(initial)
        self.get_calls = []
        self.set_calls = []
        self.fail_on_get = set(fail_on_get)
        self.fail_on_set = set(fail_on_set)
        self.yield_on_get = yield_on_get
        self.yield_on_set = yield_on_set

    async def get(self, key):
        self.get_calls.append(key)
        if key in self.fail_on_get:
            raise StorageError(f"read rejected for {key}")
        if self.yield_on_get:
            await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value):
        self.set_calls.append(key)
        if key in self.fail_on_set:
            raise StorageError(f"write rejected for {key}")
        if self.yield_on_set:
            await asyncio.sleep(0)
        await super().set(key, value)


def step_clock(start=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)):
    state = {"now": start}

    def _clock():
        current = state["now"]
        state["now"] = current + timedelta(seconds=1)
        return current

    return _clock


def make_service(storage, **kwargs):
    kwargs.setdefault("clock", step_clock())
    return OrderStatusSyncService(
        SyncedStatusRepository(storage),
        LegacyOrderRepository(storage),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_set_then_get_returns_written_status():
    service = make_service(SpyStorage())

    await service.set_synced_order_status("ORD-1", "ready")

    synced = await service.get_synced_order_status("ORD-1")
    assert synced is not None
    assert synced.orderId == "ORD-1"
    assert synced.statusKey == "ready"
    assert synced.updatedAt == "2024-05-01T12:00:00.000Z"


@pytest.mark.asyncio
async def test_second_write_overwrites_first():
    service = make_service(SpyStorage())

    await service.set_synced_order_status("ORD-1", "preparing")
    await service.set_synced_order_status("ORD-1", "delivered")

    statuses = await service.get_synced_order_statuses()
    assert list(statuses) == ["ORD-1"]
    assert statuses["ORD-1"].statusKey == "delivered"


@pytest.mark.asyncio
@pytest.mark.parametrize("order_id", ["", None])
async def test_get_with_falsy_order_id_skips_storage(order_id):
    storage = SpyStorage()
    service = make_service(storage)

    assert await service.get_synced_order_status(order_id) is None
    assert storage.get_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("order_id", ["", None])
async def test_set_with_falsy_order_id_is_noop(order_id):
    storage = SpyStorage()
    service = make_service(storage)

    assert await service.set_synced_order_status(order_id, "ready") is None
    assert storage.get_calls == []
    assert storage.set_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42", "null"])
async def test_corrupt_or_non_object_store_reads_as_empty(raw):
    service = make_service(SpyStorage({SYNCED_KEY: raw}))

    assert await service.get_synced_order_statuses() == {}
    assert await service.get_latest_synced_order_status() is None


@pytest.mark.asyncio
async def test_malformed_entries_are_skipped():
    raw = json.dumps({
        "A": "oops",
        "B": {"orderId": "B", "statusKey": "ready", "updatedAt": "2024-05-01T12:00:00.000Z"},
        "C": {"orderId": "C"},
    })
    service = make_service(SpyStorage({SYNCED_KEY: raw}))

    statuses = await service.get_synced_order_statuses()
    assert list(statuses) == ["B"]


@pytest.mark.asyncio
async def test_read_failure_reads_as_empty_for_getters():
    service = make_service(SpyStorage(fail_on_get={SYNCED_KEY}))

    assert await service.get_synced_order_statuses() == {}
    assert await service.get_synced_order_status("ORD-1") is None


@pytest.mark.asyncio
async def test_read_failure_propagates_from_set_without_writing():
    storage = SpyStorage(fail_on_get={SYNCED_KEY})
    service = make_service(storage)

    with pytest.raises(StorageError):
        await service.set_synced_order_status("ORD-1", "ready")
    assert storage.set_calls == []


@pytest.mark.asyncio
async def test_latest_on_empty_map_is_none():
    service = make_service(SpyStorage())
    assert await service.get_latest_synced_order_status() is None


@pytest.mark.asyncio
async def test_latest_returns_max_updated_at():
    raw = json.dumps({
        "B": {"orderId": "B", "statusKey": "ready", "updatedAt": "2024-05-01T12:00:02.000Z"},
        "C": {"orderId": "C", "statusKey": "delivered", "updatedAt": "2024-05-01T12:00:03.000Z"},
        "A": {"orderId": "A", "statusKey": "preparing", "updatedAt": "2024-05-01T12:00:01.000Z"},
    })
    service = make_service(SpyStorage({SYNCED_KEY: raw}))

    latest = await service.get_latest_synced_order_status()
    assert latest.orderId == "C"


@pytest.mark.asyncio
async def test_latest_ranks_unparsable_timestamps_lowest():
    raw = json.dumps({
        "A": {"orderId": "A", "statusKey": "ready", "updatedAt": "2024-05-01T12:00:00.000Z"},
        "B": {"orderId": "B", "statusKey": "ready", "updatedAt": "yesterday"},
    })
    service = make_service(SpyStorage({SYNCED_KEY: raw}))

    latest = await service.get_latest_synced_order_status()
    assert latest.orderId == "A"


@pytest.mark.asyncio
async def test_mirror_patches_matching_legacy_record_only():
    orders = [{"id": "A", "status": "preparing"}, {"id": "B", "status": "preparing"}]
    storage = SpyStorage({"orders": json.dumps(orders)})
    service = make_service(storage)

    entry = await service.set_synced_order_status("A", "delivered")

    legacy = json.loads(storage.snapshot()["orders"])
    assert legacy[0]["status"] == "completed"
    assert legacy[0]["trackingStatus"] == "delivered"
    assert legacy[0]["updatedAt"] == entry.updatedAt
    assert legacy[1] == {"id": "B", "status": "preparing"}


@pytest.mark.asyncio
async def test_mirror_without_legacy_orders_is_noop():
    storage = SpyStorage()
    service = make_service(storage)

    await service.set_synced_order_status("A", "ready")

    synced = await service.get_synced_order_status("A")
    assert synced.statusKey == "ready"
    assert "orders" not in storage.snapshot()


@pytest.mark.asyncio
async def test_mirror_failure_does_not_fail_primary_write():
    orders = [{"id": "A", "status": "preparing"}]
    storage = SpyStorage({"orders": json.dumps(orders)}, fail_on_set={"orders"})
    service = make_service(storage)

    entry = await service.set_synced_order_status("A", "onTheWay")

    assert entry.statusKey == "onTheWay"
    assert (await service.get_synced_order_status("A")).statusKey == "onTheWay"
    assert json.loads(storage.snapshot()["orders"]) == orders


@pytest.mark.asyncio
async def test_primary_write_failure_propagates():
    storage = SpyStorage(fail_on_set={SYNCED_KEY})
    service = make_service(storage)

    with pytest.raises(StorageError):
        await service.set_synced_order_status("A", "ready")


@pytest.mark.asyncio
async def test_unknown_status_key_stored_verbatim_and_mirrored_as_preparing():
    orders = [{"orderId": "A", "status": "ready"}]
    storage = SpyStorage({"orders": json.dumps(orders)})
    service = make_service(storage)

    await service.set_synced_order_status("A", "teleported")

    assert (await service.get_synced_order_status("A")).statusKey == "teleported"
    legacy = json.loads(storage.snapshot()["orders"])
    assert legacy[0]["status"] == "preparing"
    assert legacy[0]["trackingStatus"] == "teleported"


@pytest.mark.asyncio
async def test_strict_mode_rejects_unknown_status_key():
    storage = SpyStorage()
    service = make_service(storage, strict_status_keys=True)

    with pytest.raises(UnmappedStatusError):
        await service.set_synced_order_status("A", "teleported")
    assert storage.set_calls == []


@pytest.mark.asyncio
async def test_any_transition_is_allowed():
    service = make_service(SpyStorage())

    await service.set_synced_order_status("A", "delivered")
    await service.set_synced_order_status("A", "preparing")

    assert (await service.get_synced_order_status("A")).statusKey == "preparing"


@pytest.mark.asyncio
async def test_concurrent_writes_are_serialized_in_process():
    service = make_service(SpyStorage(yield_on_get=True))

    await asyncio.gather(*[
        service.set_synced_order_status(f"ORD-{i}", "ready") for i in range(10)
    ])

    statuses = await service.get_synced_order_statuses()
    assert sorted(statuses) == sorted(f"ORD-{i}" for i in range(10))


@pytest.mark.asyncio
async def test_end_to_end_scenario():
    service = make_service(SpyStorage())

    await service.set_synced_order_status("ORD-1", "preparing")
    await service.set_synced_order_status("ORD-1", "ready")
    await service.set_synced_order_status("ORD-2", "onTheWay")

    statuses = await service.get_synced_order_statuses()
    assert set(statuses) == {"ORD-1", "ORD-2"}
    assert statuses["ORD-1"].statusKey == "ready"
    assert statuses["ORD-2"].statusKey == "onTheWay"

    latest = await service.get_latest_synced_order_status()
    assert latest.orderId == "ORD-2"


@pytest.mark.asyncio
async def test_resync_reapplies_synced_statuses():
    storage = SpyStorage()
    service = make_service(storage)
    await service.set_synced_order_status("A", "delivered")
    await service.set_synced_order_status("B", "onTheWay")

    orders = [{"id": "A", "status": "preparing"}, {"id": "B", "status": "preparing"}, {"id": "C"}]
    await storage.set("orders", json.dumps(orders))

    assert await service.resync_legacy_orders(dry_run=True) == 2
    assert json.loads(storage.snapshot()["orders"]) == orders

    assert await service.resync_legacy_orders() == 2
    legacy = json.loads(storage.snapshot()["orders"])
    assert [o.get("status") for o in legacy] == ["completed", "ready", None]


@pytest.mark.asyncio
async def test_unrelated_write_keeps_entries_that_fail_validation():
    stored = {
        "X": {"orderId": "X", "statusKey": "ready", "updatedAt": 1714564800000},
        "Z": "oops",
        "W": {"orderId": "W", "statusKey": "ready", "updatedAt": "2024-05-01T11:00:00.000Z", "note": "leave at door"},
    }
    storage = SpyStorage({SYNCED_KEY: json.dumps(stored)})
    service = make_service(storage)

    await service.set_synced_order_status("Y", "ready")

    after = json.loads(storage.snapshot()[SYNCED_KEY])
    assert after["X"] == stored["X"]
    assert after["Z"] == "oops"
    assert after["W"]["note"] == "leave at door"
    assert after["Y"]["statusKey"] == "ready"
    assert sorted(await service.get_synced_order_statuses()) == ["W", "Y"]


@pytest.mark.asyncio
async def test_write_over_an_invalid_entry_replaces_it():
    stored = {"X": {"orderId": "X", "updatedAt": 5}}
    storage = SpyStorage({SYNCED_KEY: json.dumps(stored)})
    service = make_service(storage)

    await service.set_synced_order_status("X", "delivered")

    assert (await service.get_synced_order_status("X")).statusKey == "delivered"


@pytest.mark.asyncio
async def test_concurrent_writes_keep_every_legacy_patch():
    orders = [{"id": f"ORD-{i}", "status": "preparing"} for i in range(5)]
    storage = SpyStorage({"orders": json.dumps(orders)}, yield_on_get=True, yield_on_set=True)
    service = make_service(storage)

    await asyncio.gather(*[
        service.set_synced_order_status(f"ORD-{i}", "delivered") for i in range(5)
    ])

    legacy = json.loads(storage.snapshot()["orders"])
    assert [o["status"] for o in legacy] == ["completed"] * 5
    assert [o["trackingStatus"] for o in legacy] == ["delivered"] * 5


@pytest.mark.asyncio
async def test_latest_tie_goes_to_entry_listed_later():
    raw = json.dumps({
        "A": {"orderId": "A", "statusKey": "ready", "updatedAt": "2024-05-01T12:00:00.000Z"},
        "B": {"orderId": "B", "statusKey": "ready", "updatedAt": "2024-05-01T12:00:00.000Z"},
    })
    service = make_service(SpyStorage({SYNCED_KEY: raw}))

    latest = await service.get_latest_synced_order_status()
    assert latest.orderId == "B"


def test_format_timestamp_matches_iso_string_shape():
    moment = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    assert format_timestamp(moment) == "2024-05-01T12:00:00.123Z"


def test_format_timestamp_converts_to_utc():
    moment = datetime(2024, 5, 1, 15, 0, tzinfo=timezone(timedelta(hours=3)))
    assert format_timestamp(moment) == "2024-05-01T12:00:00.000Z"


def test_parse_timestamp():
    assert parse_timestamp("2024-05-01T12:00:00.123Z") == datetime(2024, 5, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)
    assert parse_timestamp("garbage") is None
    assert parse_timestamp("") is None
