from __future__ import annotations

from typing import List, Optional

from ..schemas import TrackingStep
from .order_status import SyncedOrderStatusKey, is_known_status_key


TRACKING_STEP_KEYS = ("received", "preparing", "ready", "delivered")


def build_tracking_steps(status_key: Optional[str]) -> List[TrackingStep]:
    """
    Progress steps shown on the order tracking screen.

    Unknown or missing statuses render as `preparing`.
    """
    status = status_key if is_known_status_key(status_key) else SyncedOrderStatusKey.PREPARING.value

    preparing = status == SyncedOrderStatusKey.PREPARING.value
    ready = status == SyncedOrderStatusKey.READY.value
    on_the_way = status == SyncedOrderStatusKey.ON_THE_WAY.value
    delivered = status == SyncedOrderStatusKey.DELIVERED.value

    flags = [
        (True, preparing),
        (not preparing, preparing),
        (on_the_way or delivered, ready),
        (delivered, on_the_way),
    ]
    return [
        TrackingStep(id=index, key=key, completed=completed, active=active)
        for index, (key, (completed, active)) in enumerate(zip(TRACKING_STEP_KEYS, flags), start=1)
    ]
