from __future__ import annotations

from functools import lru_cache
from typing import Optional

from .config import settings
from .services.order_status_sync import OrderStatusSyncService
from .services.repositories import LegacyOrderRepository, SyncedStatusRepository
from .storage.base import KeyValueStorage
from .storage.factory import build_storage


def build_order_status_service(storage: KeyValueStorage, config=None) -> OrderStatusSyncService:
    config = config or settings
    return OrderStatusSyncService(
        SyncedStatusRepository(storage, config.SYNCED_STATUSES_KEY),
        LegacyOrderRepository(storage, config.LEGACY_ORDERS_KEY),
        strict_status_keys=config.STRICT_STATUS_KEYS,
        serialize_writes=config.SERIALIZE_STATUS_WRITES,
    )


@lru_cache(maxsize=None)
def get_storage() -> KeyValueStorage:
    return build_storage(settings)


@lru_cache(maxsize=None)
def _default_service() -> OrderStatusSyncService:
    return build_order_status_service(get_storage())


def get_order_status_service() -> OrderStatusSyncService:
    """FastAPI dependency; tests replace it through `app.dependency_overrides`."""
    return _default_service()


async def init_storage(storage: Optional[KeyValueStorage] = None) -> None:
    storage = storage or get_storage()
    init = getattr(storage, "init", None)
    if init is not None:
        await init()
