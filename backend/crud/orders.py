import uuid
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from core.timeutils import utcnow
from models.orders import Order


def create_order(
    db: Session,
    table_number: int,
    session_token: str,
    items: list[dict],
    commit: bool = True
) -> Order:
    """Create a pending order. The total is computed from the items."""
    total_amount = sum(item["price"] * item["quantity"] for item in items)
    order = Order(
        table_number=table_number,
        session_token=session_token,
        items=items,
        total_amount=total_amount,
        status="pending",
    )
    db.add(order)
    if commit:
        db.commit()
        db.refresh(order)
    else:
        db.flush()
    return order


def get_order_by_id(db: Session, order_id: uuid.UUID) -> Optional[Order]:
    """Get an order by its ID."""
    return db.get(Order, order_id)


def get_orders_by_table(db: Session, table_number: int) -> list[Order]:
    """Get all orders of a table, newest first."""
    return list(db.exec(
        select(Order)
        .where(Order.table_number == table_number)
        .order_by(Order.created_at.desc())
    ).all())


def get_all_orders(db: Session, limit: Optional[int] = None) -> list[Order]:
    """Get all orders, newest first."""
    statement = select(Order).order_by(Order.created_at.desc())
    if limit:
        statement = statement.limit(limit)
    return list(db.exec(statement).all())


def update_order_status(db: Session, order: Order, status: str) -> Order:
    """Set the status of an order."""
    order.status = status
    order.updated_at = utcnow()
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def delete_order(db: Session, order: Order) -> None:
    db.delete(order)
    db.commit()


def count_orders_by_status(db: Session) -> dict[str, int]:
    """Number of orders per status."""
    rows = db.exec(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    ).all()
    return {status: total for status, total in rows}
