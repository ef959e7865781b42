import logging
import uuid

from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from api.websocket.manager import ConnectionManager
from api.websocket.rooms import role_room
from core.exceptions import NotFoundError, ValidationError
from crud import auth as crud_auth
from crud import employees as crud_employees
from models.users import User
from schemas.auth import UserResponse
from schemas.websocket import (
    AccountApprovedEvent,
    AccountDeletedEvent,
    AccountRejectedEvent,
    EmployeeApprovedEvent,
    EmployeeDeletedEvent,
    EmployeeRegisteredEvent,
    EmployeeRejectedEvent,
    EmployeeRoleUpdatedEvent,
    RoleChangedEvent,
)

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = ("manager", "waiter", "kitchen", "pending")

# Rooms that follow changes to the staff roster
ROSTER_ROOMS = (role_room("admin"), role_room("manager"))


async def register_employee(
    db: Session,
    events: ConnectionManager,
    name: str,
    email: str,
    password: str,
) -> User:
    """Create a pending account and let the administrators know."""
    try:
        user = await run_in_threadpool(
            crud_auth.create_user_with_password,
            db,
            email=email.strip().lower(),
            password=password,
            name=name.strip(),
        )
    except ValueError as e:
        raise ValidationError(str(e))
    logger.info("Employee %s registered, awaiting approval", user.id)

    await events.broadcast(
        EmployeeRegisteredEvent(employee=UserResponse.model_validate(user)),
        [role_room("admin")],
    )
    return user


async def _get_employee(db: Session, user_id: uuid.UUID) -> User:
    user = await run_in_threadpool(crud_auth.get_user_by_id, db, user_id)
    if user is None or user.role == "admin":
        raise NotFoundError("Employee not found")
    return user


async def list_employees(db: Session) -> list[User]:
    return await run_in_threadpool(crud_employees.get_all_employees, db)


async def approve_employee(db: Session, events: ConnectionManager, user_id: uuid.UUID) -> User:
    """Final approval; the employee's own connections are told to refresh."""
    user = await _get_employee(db, user_id)
    if user.role == "pending":
        raise ValidationError("Assign a role before approving this account")

    user = await run_in_threadpool(crud_employees.approve_employee, db, user)
    logger.info("Employee %s approved as %s", user.id, user.role)

    events.update_user_access(user.id, user.role, user.is_approved)
    await events.broadcast(EmployeeApprovedEvent(employee=UserResponse.model_validate(user)), ROSTER_ROOMS)
    await events.send_to_user(AccountApprovedEvent(), user.id)
    return user


async def change_role(db: Session, events: ConnectionManager, user_id: uuid.UUID, role: str) -> User:
    if role not in ASSIGNABLE_ROLES:
        raise ValidationError("Invalid or missing role")

    user = await _get_employee(db, user_id)
    old_role = user.role
    user = await run_in_threadpool(crud_employees.set_employee_role, db, user, role)
    logger.info("Employee %s role: %s -> %s", user.id, old_role, role)

    events.update_user_access(user.id, user.role, user.is_approved)
    await events.broadcast(
        EmployeeRoleUpdatedEvent(employee=UserResponse.model_validate(user), old_role=old_role),
        ROSTER_ROOMS,
    )
    await events.send_to_user(
        RoleChangedEvent(message=f"Your role has been changed to {role}", new_role=role),
        user.id,
    )
    return user


async def reject_employee(
    db: Session,
    events: ConnectionManager,
    user_id: uuid.UUID,
    reason: str | None = None,
) -> str:
    """Reject and remove an account. Returns the reason recorded."""
    user = await _get_employee(db, user_id)
    reason = reason or "No reason provided"
    name, email = user.name, user.email

    # Tell the employee before the account disappears
    await events.send_to_user(AccountRejectedEvent(reason=reason), user_id)
    await run_in_threadpool(crud_employees.delete_employee, db, user)
    events.revoke_user(user_id)
    logger.info("Employee %s rejected: %s", user_id, reason)

    await events.broadcast(
        EmployeeRejectedEvent(employee_id=user_id, name=name, email=email, reason=reason),
        ROSTER_ROOMS,
    )
    return reason


async def delete_employee(db: Session, events: ConnectionManager, user_id: uuid.UUID) -> None:
    user = await _get_employee(db, user_id)
    name, email = user.name, user.email

    await events.send_to_user(AccountDeletedEvent(), user_id)
    await run_in_threadpool(crud_employees.delete_employee, db, user)
    events.revoke_user(user_id)
    logger.info("Employee %s deleted", user_id)

    await events.broadcast(EmployeeDeletedEvent(employee_id=user_id, name=name, email=email), ROSTER_ROOMS)
