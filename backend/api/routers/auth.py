from fastapi import APIRouter, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from api.deps import CurrentUser, RealtimeDep, SessionDep, landing_for
from core.security import create_access_token
from crud.auth import authenticate_user
from schemas.auth import (
    LoginRequest,
    MeResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from services.employees import register_employee

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user) -> TokenResponse:
    access_token = create_access_token(user.id, user.email)
    return TokenResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
        landing=landing_for(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, db: SessionDep, events: RealtimeDep):
    """Register a new employee. The account waits for administrator approval."""
    user = await register_employee(db, events, data.name, data.email, data.password)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: SessionDep):
    user = await run_in_threadpool(authenticate_user, db, data.email.strip().lower(), data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _token_response(user)


@router.get("/me", response_model=MeResponse)
def get_me(current_user: CurrentUser):
    """The authoritative record of the signed-in account."""
    return MeResponse(user=UserResponse.model_validate(current_user), landing=landing_for(current_user))
