"""Room naming and the join policy of the realtime channel.

Rooms:

* ``role:<role>``   staff of a role (approved accounts only)
* ``user:<id>``     every connection of one account
* ``table:<n>``     everyone following one table
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from core.timeutils import utcnow
from models.users import STAFF_ROLES


@dataclass(frozen=True)
class Principal:
    """Who a realtime connection belongs to."""

    kind: Literal["staff", "customer"]
    user_id: Optional[uuid.UUID] = None
    role: Optional[str] = None
    is_approved: bool = False
    table_number: Optional[int] = None
    # Customers only: the table session the credential belongs to
    session_id: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.kind != "customer" or self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())

    @property
    def label(self) -> str:
        if self.kind == "customer":
            return f"customer(table {self.table_number})"
        return f"{self.role}({self.user_id})"


def role_room(role: str) -> str:
    return f"role:{role}"


def user_room(user_id: uuid.UUID) -> str:
    return f"user:{user_id}"


def table_room(table_number: int) -> str:
    return f"table:{table_number}"


STAFF_ROOMS = tuple(role_room(role) for role in STAFF_ROLES)


def default_rooms(principal: Principal) -> list[str]:
    """Rooms a connection joins as soon as it is accepted."""
    if principal.kind == "customer":
        return [table_room(principal.table_number)]

    rooms = [user_room(principal.user_id)]
    if principal.is_approved and principal.role in STAFF_ROLES:
        rooms.append(role_room(principal.role))
    return rooms


def can_join(principal: Principal, room: str) -> bool:
    """Whether a principal may subscribe to a room.

    Admins may join anything. Approved staff may follow any table plus their
    own role and user rooms. Unapproved accounts only get their user room and
    customers only their own table while their session lasts.
    """
    if principal.kind == "customer":
        return not principal.is_expired() and room == table_room(principal.table_number)

    if room == user_room(principal.user_id):
        return True
    if not principal.is_approved:
        return False
    if principal.role == "admin":
        return True
    if room == role_room(principal.role):
        return True

    kind, _, value = room.partition(":")
    return kind == "table" and value.isdigit() and int(value) > 0
