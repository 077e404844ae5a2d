from __future__ import annotations

import asyncio
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from ..exceptions import StorageError
from ..logger import logger
from ..schemas import SyncedOrderStatus
from .order_status import coerce_status_key
from .repositories import LegacyOrderRepository, SyncedStatusRepository


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render like JavaScript's toISOString(): 2024-05-01T12:00:00.000Z"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class OrderStatusSyncService:
    """
    Latest known fulfillment status per order, plus best-effort mirroring
    into the legacy order list.

    The synced map is authoritative: a failed primary write propagates to
    the caller, while a failed mirror is logged and ignored.
    """

    def __init__(
        self,
        synced: SyncedStatusRepository,
        legacy: LegacyOrderRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        strict_status_keys: bool = False,
        serialize_writes: bool = True,
    ) -> None:
        self.synced = synced
        self.legacy = legacy
        self.clock = clock or utc_now
        self.strict_status_keys = strict_status_keys
        self.serialize_writes = serialize_writes
        self._write_lock = asyncio.Lock()

    def _write_guard(self):
        # Covers the synced map and the legacy list, both read-modify-written.
        if self.serialize_writes:
            return self._write_lock
        return nullcontext()

    async def get_synced_order_statuses(self) -> Dict[str, SyncedOrderStatus]:
        try:
            return await self.synced.load()
        except StorageError as e:
            logger.error(
                f"Failed to read synced statuses, treating as empty: {e.message}",
                extra={"storage_key": self.synced.key},
            )
            return {}

    async def get_synced_order_status(self, order_id: Optional[str]) -> Optional[SyncedOrderStatus]:
        if not order_id:
            return None
        statuses = await self.get_synced_order_statuses()
        return statuses.get(order_id)

    async def set_synced_order_status(self, order_id: Optional[str], status_key: str) -> Optional[SyncedOrderStatus]:
        if not order_id:
            return None

        status_key = coerce_status_key(status_key, strict=self.strict_status_keys)

        async with self._write_guard():
            entry = SyncedOrderStatus(
                orderId=order_id,
                statusKey=status_key,
                updatedAt=format_timestamp(self.clock()),
            )
            await self.synced.put(entry)

            logger.info(
                "Synced order status updated",
                extra={"order_id": order_id, "status_key": status_key},
            )

            await self._mirror_legacy_orders(entry)
        return entry

    async def get_latest_synced_order_status(self) -> Optional[SyncedOrderStatus]:
        """
        Entry with the greatest `updatedAt`; unparsable timestamps rank lowest.

        On equal timestamps the entry listed later in the map wins, where a
        stable newest-first sort would return the one listed first.
        """
        statuses = await self.get_synced_order_statuses()
        latest: Optional[SyncedOrderStatus] = None
        latest_at = _EARLIEST
        for entry in statuses.values():
            updated_at = parse_timestamp(entry.updatedAt) or _EARLIEST
            if latest is None or updated_at >= latest_at:
                latest = entry
                latest_at = updated_at
        return latest

    async def resync_legacy_orders(self, *, dry_run: bool = False) -> int:
        """Re-apply every synced status to the legacy order list."""
        statuses = await self.synced.load()
        if not statuses:
            return 0
        status_keys = {order_id: entry.statusKey for order_id, entry in statuses.items()}
        async with self._write_guard():
            patched = await self.legacy.mirror_statuses(
                status_keys,
                format_timestamp(self.clock()),
                dry_run=dry_run,
            )
        logger.info(
            "Legacy orders resynced",
            extra={"synced_orders": len(status_keys), "patched": patched, "dry_run": dry_run},
        )
        return patched

    async def _mirror_legacy_orders(self, entry: SyncedOrderStatus) -> None:
        try:
            patched = await self.legacy.mirror_status(entry.orderId, entry.statusKey, entry.updatedAt)
        except Exception as e:
            logger.error(
                f"Failed to sync legacy orders status: {e}",
                extra={"order_id": entry.orderId, "status_key": entry.statusKey},
            )
            return
        if patched:
            logger.debug(
                "Legacy orders mirrored",
                extra={"order_id": entry.orderId, "patched": patched},
            )
