import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, status
from fastapi.concurrency import run_in_threadpool

from api.deps import RealtimeDep, SessionDep
from api.websocket.realtime import authenticate_connection, websocket_realtime_endpoint

router = APIRouter(tags=["websocket"])

logger = logging.getLogger(__name__)


def _bearer_from_headers(websocket: WebSocket) -> Optional[str]:
    scheme, _, credentials = websocket.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    db: SessionDep,
    events: RealtimeDep,
    token: Optional[str] = Query(None),
    session_token: Optional[str] = Query(None),
):
    """Realtime channel. The credential is checked before the handshake completes."""
    token = token or _bearer_from_headers(websocket)
    principal = await run_in_threadpool(authenticate_connection, db, token, session_token)
    db.close()

    if principal is None:
        logger.info("Refused realtime connection from %s: missing or invalid credential", websocket.client)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket_realtime_endpoint(websocket, events, principal)
