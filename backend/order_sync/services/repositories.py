from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..logger import logger
from ..schemas import SyncedOrderStatus
from ..storage.base import KeyValueStorage
from .order_status import normalize_status_for_orders


SYNCED_STATUSES_KEY = "synced_order_statuses_v1"
LEGACY_ORDERS_KEY = "orders"


class SyncedStatusRepository:
    """The authoritative `orderId -> SyncedOrderStatus` map, stored as one JSON object."""

    def __init__(self, storage: KeyValueStorage, key: str = SYNCED_STATUSES_KEY) -> None:
        self.storage = storage
        self.key = key

    def parse_raw(self, raw: Optional[str]) -> Dict[str, Any]:
        """The stored JSON object as-is, or `{}` when absent or corrupt."""
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.error(f"Failed to parse synced statuses: {e}", extra={"storage_key": self.key})
            return {}

        if not isinstance(parsed, dict):
            logger.error(
                "Synced statuses are not a JSON object",
                extra={"storage_key": self.key, "value_type": type(parsed).__name__},
            )
            return {}
        return parsed

    def parse(self, raw: Optional[str]) -> Dict[str, SyncedOrderStatus]:
        statuses: Dict[str, SyncedOrderStatus] = {}
        for order_id, entry in self.parse_raw(raw).items():
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed synced status", extra={"order_id": order_id})
                continue
            try:
                statuses[order_id] = SyncedOrderStatus.parse_obj(entry)
            except ValidationError as e:
                logger.warning(
                    f"Skipping invalid synced status: {e}",
                    extra={"order_id": order_id},
                )
        return statuses

    async def load(self) -> Dict[str, SyncedOrderStatus]:
        raw = await self.storage.get(self.key)
        return self.parse(raw)

    async def load_raw(self) -> Dict[str, Any]:
        raw = await self.storage.get(self.key)
        return self.parse_raw(raw)

    async def put(self, entry: SyncedOrderStatus) -> None:
        """
        Write one entry back into the stored object.

        Entries that do not validate, and extra fields on the others, are
        written back exactly as they were read.
        """
        stored = await self.load_raw()
        stored[entry.orderId] = entry.dict()
        await self.storage.set(self.key, json.dumps(stored))


def _record_order_id(record: Any) -> Any:
    if not isinstance(record, dict):
        return None
    record_id = record.get("id")
    if record_id is None:
        return record.get("orderId")
    return record_id


class LegacyOrderRepository:
    """
    The older `orders` list owned by the ordering feature.

    Only `status`, `trackingStatus` and `updatedAt` of existing records are
    ever touched here; records are never added or removed.
    """

    def __init__(self, storage: KeyValueStorage, key: str = LEGACY_ORDERS_KEY) -> None:
        self.storage = storage
        self.key = key

    async def load(self) -> Optional[List[Any]]:
        raw = await self.storage.get(self.key)
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.error(f"Failed to parse legacy orders: {e}", extra={"storage_key": self.key})
            return None
        if not isinstance(parsed, list):
            return None
        return parsed

    async def save(self, orders: List[Any]) -> None:
        await self.storage.set(self.key, json.dumps(orders))

    async def list_orders(self) -> List[Any]:
        return await self.load() or []

    async def mirror_status(self, order_id: str, status_key: str, updated_at: str) -> int:
        return await self.mirror_statuses({order_id: status_key}, updated_at)

    async def mirror_statuses(
        self,
        status_keys: Dict[str, str],
        updated_at: str,
        *,
        dry_run: bool = False,
    ) -> int:
        """
        Patch every record whose `id` (or `orderId` when `id` is missing) is
        in `status_keys`. Returns the number of patched records; the list is
        written back only when that number is non-zero.
        """
        orders = await self.load()
        if orders is None:
            return 0

        patched = 0
        updated: List[Any] = []
        for record in orders:
            record_id = _record_order_id(record)
            status_key = status_keys.get(record_id) if isinstance(record_id, str) else None
            if status_key is None:
                updated.append(record)
                continue
            patched += 1
            updated.append({
                **record,
                "status": normalize_status_for_orders(status_key),
                "trackingStatus": status_key,
                "updatedAt": updated_at,
            })

        if patched and not dry_run:
            await self.save(updated)
        return patched
