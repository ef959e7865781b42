import logging
import uuid

from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from api.websocket.manager import ConnectionManager
from core.exceptions import NotFoundError, ValidationError
from crud import orders as crud_orders
from crud import table_sessions as crud_sessions
from models.orders import ORDER_STATUSES, Order
from models.table_sessions import TableSession
from schemas.orders import OrderItem, OrderPatch, OrderResponse, OrderStats
from schemas.websocket import NewOrderEvent, OrderDeletedEvent, OrderStatusUpdatedEvent
from services.table_sessions import is_expired

logger = logging.getLogger(__name__)


def _record_order(db: Session, session: TableSession, items: list[dict]) -> Order:
    order = crud_orders.create_order(
        db,
        table_number=session.table_number,
        session_token=session.session_token,
        items=items,
        commit=False,
    )
    crud_sessions.mark_session_used(db, session, commit=False)
    db.commit()
    db.refresh(order)
    return order


async def place_order(
    db: Session,
    events: ConnectionManager,
    session_token: str,
    items: list[OrderItem],
) -> Order:
    """Place a customer order against an active table session."""
    if not session_token or not items:
        raise ValidationError("Missing session or items")

    session = await run_in_threadpool(crud_sessions.get_session_by_token, db, session_token)
    if session is None or is_expired(session):
        raise ValidationError("Invalid or expired session")

    order = await run_in_threadpool(
        _record_order, db, session, [item.model_dump() for item in items]
    )
    logger.info("Order %s placed for table %s (%.2f)", order.id, order.table_number, order.total_amount)

    await events.broadcast_to_staff(
        NewOrderEvent(order=OrderResponse.model_validate(order)),
        table_number=order.table_number,
    )
    return order


async def update_order_status(
    db: Session,
    events: ConnectionManager,
    order_id: uuid.UUID,
    status: str,
) -> Order:
    if status not in ORDER_STATUSES:
        raise ValidationError("Invalid status value")

    order = await run_in_threadpool(crud_orders.get_order_by_id, db, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    old_status = order.status
    order = await run_in_threadpool(crud_orders.update_order_status, db, order, status)
    logger.info("Order %s status: %s -> %s", order.id, old_status, status)

    await events.broadcast_to_staff(
        OrderStatusUpdatedEvent(order=OrderPatch(
            id=order.id,
            table_number=order.table_number,
            status=order.status,
            old_status=old_status,
            updated_at=order.updated_at,
        )),
        table_number=order.table_number,
    )
    return order


async def cancel_order(db: Session, events: ConnectionManager, order_id: uuid.UUID) -> None:
    """Delete an order that the kitchen has not started."""
    order = await run_in_threadpool(crud_orders.get_order_by_id, db, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.status != "pending":
        raise ValidationError("Only pending orders can be cancelled")

    table_number = order.table_number
    await run_in_threadpool(crud_orders.delete_order, db, order)
    logger.info("Order %s cancelled for table %s", order_id, table_number)

    await events.broadcast_to_staff(
        OrderDeletedEvent(order_id=order_id, table_number=table_number),
        table_number=table_number,
    )


async def list_table_orders(db: Session, table_number: int) -> list[Order]:
    return await run_in_threadpool(crud_orders.get_orders_by_table, db, table_number)


async def list_all_orders(db: Session) -> list[Order]:
    return await run_in_threadpool(crud_orders.get_all_orders, db)


async def order_stats(db: Session) -> OrderStats:
    counts = await run_in_threadpool(crud_orders.count_orders_by_status, db)
    return OrderStats(
        pending=counts.get("pending", 0),
        preparing=counts.get("preparing", 0),
        served=counts.get("served", 0),
        total=sum(counts.values()),
    )
