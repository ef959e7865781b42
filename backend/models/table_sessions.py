import uuid
from datetime import datetime
from sqlalchemy import Column, DateTime, Index, text
from sqlmodel import SQLModel, Field

from core.timeutils import utcnow


class TableSession(SQLModel, table=True):
    __tablename__ = "table_sessions"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        sa_column_kwargs={"nullable": False}
    )
    table_number: int = Field(nullable=False, index=True)
    session_token: str = Field(max_length=64, unique=True, nullable=False)
    qr_link: str = Field(max_length=500, nullable=False)
    created_by: uuid.UUID | None = Field(default=None, nullable=True)
    is_active: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, index=True)
    )
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    expired_at: datetime | None = Field(default=None, sa_column=Column(DateTime, nullable=True))
    expired_by: uuid.UUID | None = Field(default=None, nullable=True)
    was_used: bool = Field(default=False, nullable=False)
    usage_count: int = Field(default=0, nullable=False)
    last_used_at: datetime | None = Field(default=None, sa_column=Column(DateTime, nullable=True))

    # At most one active session per table. The insert itself is the
    # "create if no active session exists" check.
    __table_args__ = (
        Index(
            "uq_table_sessions_active_table",
            "table_number",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )
