from typing import Optional
from uuid import UUID

from pydantic import Field

from schemas.common import CamelModel, UtcDatetime


class UserResponse(CamelModel):
    """User information response."""
    id: UUID
    name: str
    email: str
    role: str
    # Spelled as the dashboards expect it
    is_approved: bool = Field(alias="isAproved")
    created_at: Optional[UtcDatetime] = None


class TokenResponse(CamelModel):
    """Response with access token and user info."""
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    landing: str


class MeResponse(CamelModel):
    success: bool = True
    user: UserResponse
    landing: str


class RegisterRequest(CamelModel):
    """Request to register a new employee account."""
    name: str
    email: str
    password: str = Field(min_length=6)


class LoginRequest(CamelModel):
    """Request to login with email and password."""
    email: str
    password: str


class RoleUpdateRequest(CamelModel):
    role: str


class RejectRequest(CamelModel):
    reason: Optional[str] = None


class EmployeeResponse(CamelModel):
    success: bool = True
    message: str
    employee: UserResponse


class EmployeeListResponse(CamelModel):
    success: bool = True
    count: int
    employees: list[UserResponse]
