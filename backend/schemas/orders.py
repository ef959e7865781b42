import uuid
from typing import Optional

from pydantic import Field

from schemas.common import CamelModel, UtcDatetime


class OrderItem(CamelModel):
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)


class PlaceOrderRequest(CamelModel):
    session_token: str = ""
    items: list[OrderItem] = []


class UpdateOrderStatusRequest(CamelModel):
    status: str


class OrderResponse(CamelModel):
    id: uuid.UUID
    table_number: int
    session_token: str
    items: list[OrderItem]
    total_amount: float
    status: str
    created_at: UtcDatetime
    updated_at: UtcDatetime


class OrderPatch(CamelModel):
    """Partial order carried by status updates; only the fields set are merged."""

    id: uuid.UUID
    table_number: Optional[int] = None
    status: Optional[str] = None
    old_status: Optional[str] = None
    updated_at: Optional[UtcDatetime] = None


class OrderEnvelope(CamelModel):
    success: bool = True
    message: str
    order: OrderResponse


class OrderListResponse(CamelModel):
    success: bool = True
    orders: list[OrderResponse]


class OrderStats(CamelModel):
    pending: int = 0
    preparing: int = 0
    served: int = 0
    total: int = 0


class OrderStatsResponse(CamelModel):
    success: bool = True
    stats: OrderStats
