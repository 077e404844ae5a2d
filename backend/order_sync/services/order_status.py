from __future__ import annotations

from enum import Enum
from typing import Any

from ..exceptions import UnmappedStatusError
from ..logger import logger


class SyncedOrderStatusKey(str, Enum):
    PREPARING = "preparing"
    READY = "ready"
    ON_THE_WAY = "onTheWay"
    DELIVERED = "delivered"


class LegacyOrderStatus(str, Enum):
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"


# Declaration order is the fulfillment order.
_STATUS_ORDER = [k.value for k in SyncedOrderStatusKey]

_LEGACY_STATUS_BY_KEY = {
    SyncedOrderStatusKey.PREPARING.value: LegacyOrderStatus.PREPARING.value,
    SyncedOrderStatusKey.READY.value: LegacyOrderStatus.READY.value,
    # The legacy schema has no "on the way" state.
    SyncedOrderStatusKey.ON_THE_WAY.value: LegacyOrderStatus.READY.value,
    SyncedOrderStatusKey.DELIVERED.value: LegacyOrderStatus.COMPLETED.value,
}


def _raw(value: Any) -> Any:
    # Enum members hash by name, not by value.
    return value.value if isinstance(value, Enum) else value


def is_known_status_key(value: Any) -> bool:
    value = _raw(value)
    return isinstance(value, str) and value in _LEGACY_STATUS_BY_KEY


def normalize_status_for_orders(status_key: str) -> str:
    """
    Map a fine-grained synced status onto the coarse legacy order status.

    Rules:
    - preparing -> preparing
    - ready     -> ready
    - onTheWay  -> ready
    - delivered -> completed
    - anything else -> preparing
    """
    status_key = _raw(status_key)
    legacy = _LEGACY_STATUS_BY_KEY.get(status_key) if isinstance(status_key, str) else None
    if legacy is None:
        logger.warning(
            "Unmapped status key, falling back to preparing",
            extra={"status_key": status_key},
        )
        return LegacyOrderStatus.PREPARING.value
    return legacy


def coerce_status_key(value: Any, *, strict: bool = False) -> str:
    """Return the raw status key, rejecting unknown values only in strict mode."""
    if isinstance(value, SyncedOrderStatusKey):
        return value.value
    if strict and not is_known_status_key(value):
        raise UnmappedStatusError(str(value))
    return value


def status_rank(status_key: Any) -> int:
    if not is_known_status_key(status_key):
        return -1
    return _STATUS_ORDER.index(_raw(status_key))
