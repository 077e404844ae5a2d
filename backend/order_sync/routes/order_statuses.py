"""
Order status routes
"""
from fastapi import APIRouter, Depends

from ..dependencies import get_order_status_service
from ..exceptions import OrderStatusNotFoundError
from ..logger import logger
from ..schemas import (
    LegacyOrderListResponse,
    OrderTrackingResponse,
    ResyncResponse,
    SetOrderStatusRequest,
    SyncedOrderStatus,
    SyncedOrderStatusMapResponse,
)
from ..services.order_status_sync import OrderStatusSyncService
from ..services.tracking import build_tracking_steps

router = APIRouter(tags=["Order statuses"])


@router.get("/order-statuses", response_model=SyncedOrderStatusMapResponse)
async def list_order_statuses(service: OrderStatusSyncService = Depends(get_order_status_service)):
    """All synced statuses keyed by order id"""
    statuses = await service.get_synced_order_statuses()
    return SyncedOrderStatusMapResponse(data=statuses)


@router.get("/latest-order-status", response_model=SyncedOrderStatus)
async def get_latest_order_status(service: OrderStatusSyncService = Depends(get_order_status_service)):
    """Most recently written status, whatever the order"""
    latest = await service.get_latest_synced_order_status()
    if latest is None:
        raise OrderStatusNotFoundError()
    return latest


@router.get("/order-statuses/{orderId}", response_model=SyncedOrderStatus)
async def get_order_status(orderId: str, service: OrderStatusSyncService = Depends(get_order_status_service)):
    synced = await service.get_synced_order_status(orderId)
    if synced is None:
        raise OrderStatusNotFoundError(orderId)
    return synced


@router.put("/order-statuses/{orderId}", response_model=SyncedOrderStatus)
async def set_order_status(
    orderId: str,
    body: SetOrderStatusRequest,
    service: OrderStatusSyncService = Depends(get_order_status_service),
):
    """Record a status picked by the seller; any transition is allowed"""
    logger.info(
        "Set order status request",
        extra={"order_id": orderId, "status_key": body.statusKey},
    )
    return await service.set_synced_order_status(orderId, body.statusKey)


@router.get("/order-statuses/{orderId}/tracking", response_model=OrderTrackingResponse)
async def get_order_tracking(orderId: str, service: OrderStatusSyncService = Depends(get_order_status_service)):
    synced = await service.get_synced_order_status(orderId)
    status_key = synced.statusKey if synced else "preparing"
    return OrderTrackingResponse(
        orderId=orderId,
        statusKey=status_key,
        steps=build_tracking_steps(status_key),
    )


@router.get("/orders/legacy", response_model=LegacyOrderListResponse)
async def list_legacy_orders(service: OrderStatusSyncService = Depends(get_order_status_service)):
    orders = await service.legacy.list_orders()
    return LegacyOrderListResponse(data=orders)


@router.post("/orders/legacy/resync", response_model=ResyncResponse)
async def resync_legacy_orders(service: OrderStatusSyncService = Depends(get_order_status_service)):
    patched = await service.resync_legacy_orders()
    return ResyncResponse(patched=patched)
