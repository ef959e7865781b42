import uuid
from fastapi import APIRouter, status

from api.deps import RealtimeDep, SessionDep, StaffUser
from schemas.common import MessageResponse
from schemas.orders import (
    OrderEnvelope,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    PlaceOrderRequest,
    UpdateOrderStatusRequest,
)
from services import orders as order_service

router = APIRouter(prefix="/order", tags=["orders"])


@router.post("/place", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
async def place_order(data: PlaceOrderRequest, db: SessionDep, events: RealtimeDep):
    """Public: a customer places an order with the token of their table session."""
    order = await order_service.place_order(db, events, data.session_token, data.items)
    return OrderEnvelope(
        message="Order placed successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get("/all", response_model=OrderListResponse)
async def get_all_orders(current_user: StaffUser, db: SessionDep):
    orders = await order_service.list_all_orders(db)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders])


@router.get("/stats", response_model=OrderStatsResponse)
async def get_order_stats(current_user: StaffUser, db: SessionDep):
    stats = await order_service.order_stats(db)
    return OrderStatsResponse(stats=stats)


@router.get("/table/{table_number}", response_model=OrderListResponse)
async def get_orders_by_table(table_number: int, db: SessionDep):
    """Public: orders of one table, newest first."""
    orders = await order_service.list_table_orders(db, table_number)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders])


@router.put("/{order_id}/status", response_model=OrderEnvelope)
async def update_order_status(
    order_id: uuid.UUID,
    data: UpdateOrderStatusRequest,
    current_user: StaffUser,
    db: SessionDep,
    events: RealtimeDep,
):
    order = await order_service.update_order_status(db, events, order_id, data.status)
    return OrderEnvelope(
        message=f"Order marked as '{order.status}'",
        order=OrderResponse.model_validate(order),
    )


@router.delete("/{order_id}", response_model=MessageResponse)
async def cancel_order(
    order_id: uuid.UUID,
    current_user: StaffUser,
    db: SessionDep,
    events: RealtimeDep,
):
    await order_service.cancel_order(db, events, order_id)
    return MessageResponse(message="Order cancelled successfully")
