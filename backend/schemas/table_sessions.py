import uuid
from collections.abc import Iterable
import datetime as dt
from typing import Literal, Optional

from schemas.common import CamelModel, UtcDatetime


class TableSessionResponse(CamelModel):
    id: uuid.UUID
    table_number: int
    session_token: str
    qr_link: str
    created_by: Optional[uuid.UUID] = None
    is_active: bool
    created_at: UtcDatetime
    expires_at: UtcDatetime
    expired_at: Optional[UtcDatetime] = None
    was_used: bool = False
    usage_count: int = 0
    last_used_at: Optional[UtcDatetime] = None


class GenerateSessionRequest(CamelModel):
    table_number: int


class GenerateSessionResponse(CamelModel):
    success: bool = True
    message: str
    session: TableSessionResponse


class SessionValidation(CamelModel):
    """Outcome of validating a customer token. ``reason`` is set only when invalid."""

    valid: bool
    table_number: Optional[int] = None
    expires_at: Optional[UtcDatetime] = None
    reason: Optional[Literal["not_found", "expired"]] = None


class ValidateSessionResponse(CamelModel):
    success: bool = True
    valid: bool = True
    table_number: int
    session_token: str
    expires_at: UtcDatetime


class SessionListResponse(CamelModel):
    success: bool = True
    sessions: list[TableSessionResponse]
    count: int
    date: Optional[dt.date] = None


class ExpireSessionResponse(CamelModel):
    success: bool = True
    message: str
    session: TableSessionResponse


class TableCount(CamelModel):
    table_number: int
    count: int


class SessionStats(CamelModel):
    total_today: int
    active_today: int
    expired_today: int
    used_today: int
    unused_today: int
    top_tables: list[TableCount]


class SessionStatsResponse(CamelModel):
    success: bool = True
    stats: SessionStats
    date: dt.date


class QuickStats(CamelModel):
    active_count: int
    expired_count: int
    total_count: int


def quick_stats(sessions: Iterable) -> QuickStats:
    """Count active and expired sessions of an in-memory list."""
    active = expired = 0
    for session in sessions:
        if session.is_active:
            active += 1
        else:
            expired += 1
    return QuickStats(active_count=active, expired_count=expired, total_count=active + expired)
