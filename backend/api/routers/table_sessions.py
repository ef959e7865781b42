import uuid
from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from api.deps import FloorUser, ManagerUser, RealtimeDep, SessionDep, StaffUser
from core.timeutils import business_date
from schemas.table_sessions import (
    ExpireSessionResponse,
    GenerateSessionRequest,
    GenerateSessionResponse,
    SessionListResponse,
    SessionStatsResponse,
    TableSessionResponse,
    ValidateSessionResponse,
)
from services import table_sessions as session_service

router = APIRouter(prefix="/table-session", tags=["table_sessions"])

VALIDATION_MESSAGES = {
    "not_found": "Invalid or expired QR",
    "expired": "QR expired",
}


@router.post("/generate", response_model=GenerateSessionResponse, status_code=status.HTTP_201_CREATED)
async def generate_session(
    data: GenerateSessionRequest,
    current_user: FloorUser,
    db: SessionDep,
    events: RealtimeDep,
):
    """Generate the QR session of a table. Fails with 409 while one is active."""
    session = await session_service.generate_session(db, events, data.table_number, current_user.id)
    return GenerateSessionResponse(
        message=f"QR generated for Table {session.table_number}",
        session=TableSessionResponse.model_validate(session),
    )


@router.get("/validate/{token}", response_model=ValidateSessionResponse)
async def validate_session(token: str, db: SessionDep):
    """Public: check the token of a scanned QR code."""
    result = await session_service.validate_session(db, token)
    if not result.valid:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "valid": False,
                "reason": result.reason,
                "message": VALIDATION_MESSAGES[result.reason],
            },
        )
    return ValidateSessionResponse(
        table_number=result.table_number,
        session_token=token,
        expires_at=result.expires_at,
    )


@router.get("/active", response_model=SessionListResponse)
async def get_today_sessions(current_user: StaffUser, db: SessionDep):
    """Today's sessions, active and expired, newest first."""
    sessions = await session_service.list_today_sessions(db)
    return SessionListResponse(
        sessions=[TableSessionResponse.model_validate(s) for s in sessions],
        count=len(sessions),
        date=business_date(),
    )


@router.get("/stats", response_model=SessionStatsResponse)
async def get_session_stats(current_user: StaffUser, db: SessionDep):
    stats = await session_service.session_stats(db)
    return SessionStatsResponse(stats=stats, date=business_date())


@router.get("/all", response_model=SessionListResponse)
async def get_all_sessions(
    current_user: ManagerUser,
    db: SessionDep,
    range: str = Query("today", description="today, week, month or year"),
):
    sessions = await session_service.list_sessions(db, range)
    return SessionListResponse(
        sessions=[TableSessionResponse.model_validate(s) for s in sessions],
        count=len(sessions),
    )


@router.put("/{session_id}/expire", response_model=ExpireSessionResponse)
async def expire_session(
    session_id: uuid.UUID,
    current_user: FloorUser,
    db: SessionDep,
    events: RealtimeDep,
):
    """Expire a session manually. Expiring it again is not an error."""
    session = await session_service.expire_session(db, events, session_id, current_user.id)
    return ExpireSessionResponse(
        message=f"Session for table {session.table_number} expired manually",
        session=TableSessionResponse.model_validate(session),
    )
