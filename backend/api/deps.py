from typing import Annotated, Optional
from uuid import UUID

from sqlmodel import Session
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.websocket.manager import ConnectionManager, manager
from db.session import get_db
from models.users import STAFF_ROLES, User
from core.security import decode_access_token

security = HTTPBearer(auto_error=False)

SessionDep = Annotated[Session, Depends(get_db)]

# Area of the dashboards each role lands on after login
ROLE_LANDING = {
    "admin": "/dashboard",
    "manager": "/dashboard",
    "waiter": "/waiter",
    "kitchen": "/kitchen",
}
PENDING_LANDING = "/pending-approval"


def landing_for(user: User) -> str:
    """Protected area for a user; unapproved accounts wait in the holding area."""
    if not user.is_approved:
        return PENDING_LANDING
    return ROLE_LANDING.get(user.role, PENDING_LANDING)


def get_realtime() -> ConnectionManager:
    return manager


RealtimeDep = Annotated[ConnectionManager, Depends(get_realtime)]


def get_current_user(
    db: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """Get current authenticated user from JWT token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, user_uuid)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_roles(*roles: str):
    """Dependency that only lets approved users with one of ``roles`` through."""

    def checker(user: CurrentUser) -> User:
        if not user.is_approved:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account pending approval",
            )
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied for role " + user.role,
            )
        return user

    return checker


StaffUser = Annotated[User, Depends(require_roles(*STAFF_ROLES))]
FloorUser = Annotated[User, Depends(require_roles("admin", "manager", "waiter"))]
ManagerUser = Annotated[User, Depends(require_roles("admin", "manager"))]
AdminUser = Annotated[User, Depends(require_roles("admin"))]
