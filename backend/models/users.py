import uuid
from datetime import datetime
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field, Index

from core.timeutils import utcnow

ROLES = ("admin", "manager", "waiter", "kitchen", "pending")
STAFF_ROLES = ("admin", "manager", "waiter", "kitchen")


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        sa_column_kwargs={"nullable": False}
    )
    name: str = Field(max_length=100, nullable=False)
    email: str = Field(max_length=100, unique=True, nullable=False)
    hashed_password: str = Field(max_length=100, nullable=False)
    role: str = Field(default="pending", max_length=20, nullable=False)  # admin, manager, waiter, kitchen, pending
    is_approved: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, onupdate=utcnow, nullable=False)
    )

    __table_args__ = (
        Index("idx_user_email", "email"),
    )
