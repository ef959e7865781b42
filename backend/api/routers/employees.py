import uuid
from fastapi import APIRouter

from api.deps import AdminUser, RealtimeDep, SessionDep
from schemas.auth import (
    EmployeeListResponse,
    EmployeeResponse,
    RejectRequest,
    RoleUpdateRequest,
    UserResponse,
)
from schemas.common import MessageResponse
from services import employees as employee_service

router = APIRouter(prefix="/admin/employees", tags=["employees"])


@router.get("", response_model=EmployeeListResponse)
async def get_employees(current_user: AdminUser, db: SessionDep):
    employees = await employee_service.list_employees(db)
    return EmployeeListResponse(
        count=len(employees),
        employees=[UserResponse.model_validate(e) for e in employees],
    )


@router.put("/{user_id}/approve", response_model=EmployeeResponse)
async def approve_employee(user_id: uuid.UUID, current_user: AdminUser, db: SessionDep, events: RealtimeDep):
    user = await employee_service.approve_employee(db, events, user_id)
    return EmployeeResponse(message="Employee approved", employee=UserResponse.model_validate(user))


@router.put("/{user_id}/role", response_model=EmployeeResponse)
async def update_employee_role(
    user_id: uuid.UUID,
    data: RoleUpdateRequest,
    current_user: AdminUser,
    db: SessionDep,
    events: RealtimeDep,
):
    user = await employee_service.change_role(db, events, user_id, data.role)
    return EmployeeResponse(
        message=f"Employee role updated to {user.role}",
        employee=UserResponse.model_validate(user),
    )


@router.put("/{user_id}/reject", response_model=MessageResponse)
async def reject_employee(
    user_id: uuid.UUID,
    data: RejectRequest,
    current_user: AdminUser,
    db: SessionDep,
    events: RealtimeDep,
):
    reason = await employee_service.reject_employee(db, events, user_id, data.reason)
    return MessageResponse(message=f"Employee rejected and removed: {reason}")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_employee(user_id: uuid.UUID, current_user: AdminUser, db: SessionDep, events: RealtimeDep):
    await employee_service.delete_employee(db, events, user_id)
    return MessageResponse(message="Employee deleted successfully")
