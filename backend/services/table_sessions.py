"""Table-session lifecycle.

A session is created by staff for one table, validated (read-only) by the
customer device holding its token, and deactivated either explicitly, by the
expiry sweep once ``expires_at`` has passed, or implicitly at read time.
Sessions are never deleted.
"""
import logging
import secrets
import uuid
from datetime import datetime, timedelta

from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from api.websocket.manager import ConnectionManager
from core.config import settings
from core.exceptions import NotFoundError, ValidationError
from core.timeutils import business_date, business_day_bounds, range_start, utcnow
from crud import table_sessions as crud_sessions
from models.table_sessions import TableSession
from schemas.table_sessions import (
    SessionStats,
    SessionValidation,
    TableCount,
    TableSessionResponse,
    quick_stats,
)
from schemas.websocket import TableSessionCreatedEvent, TableSessionExpiredEvent

logger = logging.getLogger(__name__)

__all__ = [
    "generate_session",
    "validate_session",
    "expire_session",
    "list_today_sessions",
    "list_sessions",
    "session_stats",
    "sweep_expired_sessions",
    "quick_stats",
]


def build_qr_link(session_token: str, table_number: int) -> str:
    """Customer URL: the token is the credential, the table number is for display."""
    return f"{settings.CUSTOMER_APP_URL.rstrip('/')}/s/{session_token}/{table_number}"


def compute_expiry(now: datetime) -> datetime:
    """TTL after creation, but never past the end of the business day."""
    end_of_day = business_day_bounds(business_date(now))[1]
    return min(now + timedelta(minutes=settings.SESSION_TTL_MINUTES), end_of_day)


def is_expired(session: TableSession, now: datetime | None = None) -> bool:
    return not session.is_active or session.expires_at <= (now or utcnow())


async def generate_session(
    db: Session,
    events: ConnectionManager,
    table_number: int,
    requesting_staff_id: uuid.UUID | None,
) -> TableSession:
    """Create the active session of a table.

    Raises TableAlreadyActiveError when the table already has one; the
    existing session is left as it was.
    """
    if isinstance(table_number, bool) or not isinstance(table_number, int) or table_number <= 0:
        raise ValidationError("Table number must be a positive integer")

    session_token = secrets.token_hex(16)
    session = await run_in_threadpool(
        crud_sessions.create_table_session,
        db,
        table_number=table_number,
        session_token=session_token,
        qr_link=build_qr_link(session_token, table_number),
        expires_at=compute_expiry(utcnow()),
        created_by=requesting_staff_id,
    )
    logger.info(
        "Session %s generated for table %s by %s (expires %s)",
        session.id, table_number, requesting_staff_id, session.expires_at
    )

    await events.broadcast_to_staff(
        TableSessionCreatedEvent(session=TableSessionResponse.model_validate(session))
    )
    return session


async def validate_session(db: Session, session_token: str) -> SessionValidation:
    """Check a customer token without touching the session."""
    session = await run_in_threadpool(crud_sessions.get_session_by_token, db, session_token)
    if session is None:
        return SessionValidation(valid=False, reason="not_found")
    if is_expired(session):
        return SessionValidation(valid=False, reason="expired")
    return SessionValidation(
        valid=True,
        table_number=session.table_number,
        expires_at=session.expires_at,
    )


async def expire_session(
    db: Session,
    events: ConnectionManager,
    session_id: uuid.UUID,
    actor_id: uuid.UUID | None,
) -> TableSession:
    """Deactivate a session. Expiring an inactive session is a no-op."""
    session = await run_in_threadpool(crud_sessions.get_session_by_id, db, session_id)
    if session is None:
        raise NotFoundError("Session not found")

    changed = await run_in_threadpool(crud_sessions.deactivate_session, db, session, actor_id)
    if changed:
        logger.info("Session %s for table %s expired by %s", session.id, session.table_number, actor_id)
        await events.broadcast_to_staff(
            TableSessionExpiredEvent(session_id=session.id, table_number=session.table_number),
            table_number=session.table_number,
        )
        # Customers hear the expiry before their sockets leave the table room
        events.revoke_session(session.id)
    return session


async def sweep_expired_sessions(db: Session) -> int:
    """Deactivate every session past its expiry time.

    Customer sockets opened with a swept session carry the same expiry and
    are evicted by the connection manager on its next broadcast.
    """
    count = await run_in_threadpool(crud_sessions.expire_stale_sessions, db)
    if count:
        logger.info("Expiry sweep deactivated %d sessions", count)
    return count


async def list_today_sessions(db: Session) -> list[TableSession]:
    """All sessions of the current business day, newest first."""
    await sweep_expired_sessions(db)
    start, end = business_day_bounds()
    return await run_in_threadpool(crud_sessions.list_sessions, db, start, end)


async def list_sessions(db: Session, range_name: str = "today") -> list[TableSession]:
    """Sessions created since the start of ``range_name``, newest first."""
    try:
        start = range_start(range_name)
    except ValueError:
        raise ValidationError("Range must be one of today, week, month, year")
    await sweep_expired_sessions(db)
    return await run_in_threadpool(crud_sessions.list_sessions, db, start)


async def session_stats(db: Session) -> SessionStats:
    """Counts for today's sessions plus the busiest tables."""
    sessions = await list_today_sessions(db)
    start, end = business_day_bounds()
    busiest = await run_in_threadpool(crud_sessions.top_tables, db, start, end)

    counts = quick_stats(sessions)
    used = sum(1 for session in sessions if session.was_used)
    return SessionStats(
        total_today=counts.total_count,
        active_today=counts.active_count,
        expired_today=counts.expired_count,
        used_today=used,
        unused_today=counts.total_count - used,
        top_tables=[TableCount(table_number=table, count=count) for table, count in busiest],
    )
