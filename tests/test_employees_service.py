import pytest

from crud.auth import get_user_by_id
from services import employees as service

pytestmark = pytest.mark.anyio

ROSTER = ("role:admin", "role:manager")


async def test_role_change_and_approval_are_announced(db, events, make_user):
    employee = make_user(role="pending", is_approved=False)

    await service.change_role(db, events, employee.id, "waiter")
    await service.approve_employee(db, events, employee.id)

    assert [(message.type, rooms) for message, rooms in events.rooms] == [
        ("employee:roleUpdated", ROSTER),
        ("employee:approved", ROSTER),
    ]
    assert events.rooms[0][0].old_role == "pending"
    assert events.access == [(employee.id, "waiter", True), (employee.id, "waiter", True)]


async def test_delete_revokes_live_access(db, events, make_user):
    employee = make_user(role="kitchen", name="Ines", email="ines@example.com")
    employee_id = employee.id

    await service.delete_employee(db, events, employee_id)

    assert get_user_by_id(db, employee_id) is None
    assert events.revoked_users == [employee_id]
    assert [message.type for message, _ in events.users] == ["account:deleted"]
    deleted, rooms = events.rooms[-1]
    assert (deleted.type, deleted.employee_id, deleted.email, rooms) == (
        "employee:deleted", employee_id, "ines@example.com", ROSTER
    )


async def test_reject_revokes_live_access(db, events, make_user):
    employee_id = make_user(role="pending", is_approved=False).id

    reason = await service.reject_employee(db, events, employee_id, None)

    assert reason == "No reason provided"
    assert events.revoked_users == [employee_id]
    rejected, rooms = events.rooms[-1]
    assert (rejected.type, rejected.reason, rooms) == ("employee:rejected", reason, ROSTER)
