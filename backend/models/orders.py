import uuid
from datetime import datetime
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field

from core.timeutils import utcnow

ORDER_STATUSES = ("pending", "preparing", "served")


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        sa_column_kwargs={"nullable": False}
    )
    table_number: int = Field(nullable=False, index=True)
    session_token: str = Field(max_length=64, nullable=False)
    # [{"name": str, "price": float, "quantity": int}]
    items: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    total_amount: float = Field(default=0, nullable=False)
    status: str = Field(default="pending", max_length=20, nullable=False)  # pending, preparing, served
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, index=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, onupdate=utcnow, nullable=False)
    )
