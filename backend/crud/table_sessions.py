import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from core.exceptions import TableAlreadyActiveError
from core.timeutils import utcnow
from models.table_sessions import TableSession


def get_session_by_id(db: Session, session_id: uuid.UUID) -> Optional[TableSession]:
    """Get a table session by its ID."""
    return db.get(TableSession, session_id)


def get_session_by_token(db: Session, session_token: str) -> Optional[TableSession]:
    """Get a table session by its customer token, active or not."""
    return db.exec(
        select(TableSession).where(TableSession.session_token == session_token)
    ).first()


def get_active_session_for_table(db: Session, table_number: int) -> Optional[TableSession]:
    """Get the active session of a table, if any."""
    return db.exec(
        select(TableSession).where(
            TableSession.table_number == table_number,
            TableSession.is_active == True,  # noqa: E712
        )
    ).first()


def expire_stale_sessions(
    db: Session,
    now: Optional[datetime] = None,
    table_number: Optional[int] = None,
    commit: bool = True
) -> int:
    """Deactivate sessions whose expiry time has passed. Returns the number flipped."""
    now = now or utcnow()
    statement = (
        update(TableSession)
        .where(TableSession.is_active == True, TableSession.expires_at <= now)  # noqa: E712
        .values(is_active=False, expired_at=TableSession.expires_at)
    )
    if table_number is not None:
        statement = statement.where(TableSession.table_number == table_number)

    result = db.execute(statement)
    if commit:
        db.commit()
    return result.rowcount or 0


def create_table_session(
    db: Session,
    table_number: int,
    session_token: str,
    qr_link: str,
    expires_at: datetime,
    created_by: Optional[uuid.UUID] = None,
) -> TableSession:
    """Insert a new active session for a table.

    The partial unique index on active sessions turns the insert into an
    atomic "create unless the table already has an active session"; a
    violation is reported as TableAlreadyActiveError and nothing is changed.
    """
    # A session past its expiry still holds the active slot until swept.
    expire_stale_sessions(db, table_number=table_number, commit=False)

    session = TableSession(
        table_number=table_number,
        session_token=session_token,
        qr_link=qr_link,
        expires_at=expires_at,
        created_by=created_by,
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if get_active_session_for_table(db, table_number) is not None:
            raise TableAlreadyActiveError(table_number)
        raise
    db.refresh(session)
    return session


def deactivate_session(
    db: Session,
    session: TableSession,
    actor_id: Optional[uuid.UUID] = None
) -> bool:
    """Mark a session inactive. Returns False when it already was."""
    if not session.is_active:
        return False

    session.is_active = False
    session.expired_at = utcnow()
    session.expired_by = actor_id
    db.add(session)
    db.commit()
    db.refresh(session)
    return True


def mark_session_used(db: Session, session: TableSession, commit: bool = True) -> TableSession:
    """Record that an order was placed with this session."""
    now = utcnow()
    session.was_used = True
    session.usage_count += 1
    session.last_used_at = now
    db.add(session)
    if commit:
        db.commit()
        db.refresh(session)
    return session


def list_sessions(
    db: Session,
    start: datetime,
    end: Optional[datetime] = None,
    created_by: Optional[uuid.UUID] = None
) -> list[TableSession]:
    """List sessions created in [start, end), newest first."""
    statement = select(TableSession).where(TableSession.created_at >= start)
    if end is not None:
        statement = statement.where(TableSession.created_at < end)
    if created_by is not None:
        statement = statement.where(TableSession.created_by == created_by)
    statement = statement.order_by(TableSession.created_at.desc())
    return list(db.exec(statement).all())


def top_tables(db: Session, start: datetime, end: datetime, limit: int = 5) -> list[tuple[int, int]]:
    """Tables with the most sessions created in [start, end)."""
    count = func.count(TableSession.id)
    rows = db.exec(
        select(TableSession.table_number, count)
        .where(TableSession.created_at >= start, TableSession.created_at < end)
        .group_by(TableSession.table_number)
        .order_by(count.desc(), TableSession.table_number)
        .limit(limit)
    ).all()
    return [(table_number, total) for table_number, total in rows]
