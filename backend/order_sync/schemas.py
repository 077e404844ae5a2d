"""
Pydantic schemas for stored records and request/response validation
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any

# ===== Common Schemas =====

class HealthResponse(BaseModel):
    status: str
    service: str

class VersionResponse(BaseModel):
    version: str

# ===== Synced Status Schemas =====

class SyncedOrderStatus(BaseModel):
    """One entry of the `synced_order_statuses_v1` map."""
    orderId: str
    statusKey: str
    updatedAt: str

class SetOrderStatusRequest(BaseModel):
    statusKey: str = Field(min_length=1)

class SyncedOrderStatusMapResponse(BaseModel):
    data: Dict[str, SyncedOrderStatus]

# ===== Tracking Schemas =====

class TrackingStep(BaseModel):
    id: int
    key: str
    completed: bool
    active: bool

class OrderTrackingResponse(BaseModel):
    orderId: str
    statusKey: str
    steps: List[TrackingStep]

# ===== Legacy Order Schemas =====

class LegacyOrderListResponse(BaseModel):
    data: List[Any]

class ResyncResponse(BaseModel):
    patched: int
