"""In-memory reflection of what a dashboard shows.

Every merge is idempotent and independent of arrival order relative to a
re-fetch, so duplicated or missed pushes are repaired by the next reconcile.
"""
import logging
from typing import Optional

from schemas.auth import UserResponse
from schemas.orders import OrderResponse
from schemas.table_sessions import QuickStats, TableSessionResponse, quick_stats
from schemas.websocket import (
    EmployeeApprovedEvent,
    EmployeeDeletedEvent,
    EmployeeRegisteredEvent,
    EmployeeRejectedEvent,
    EmployeeRoleUpdatedEvent,
    NewOrderEvent,
    OrderDeletedEvent,
    OrderStatusUpdatedEvent,
    RoleChangedEvent,
    TableSessionCreatedEvent,
    TableSessionExpiredEvent,
)

logger = logging.getLogger(__name__)


class LocalState:
    def __init__(self):
        self.orders: list[OrderResponse] = []
        self.sessions: list[TableSessionResponse] = []
        self.user: Optional[UserResponse] = None
        # Staff roster, followed by admin and manager dashboards
        self.employees: list[UserResponse] = []

    def replace_orders(self, orders: list[OrderResponse]):
        self.orders = list(orders)

    def replace_sessions(self, sessions: list[TableSessionResponse]):
        self.sessions = list(sessions)

    def apply(self, event) -> bool:
        """Merge one pushed event. Returns whether the state changed."""
        if isinstance(event, NewOrderEvent):
            if any(order.id == event.order.id for order in self.orders):
                return False
            self.orders.insert(0, event.order)
            return True

        if isinstance(event, OrderStatusUpdatedEvent):
            patch = event.order.model_dump(exclude_none=True, exclude={"id", "old_status"})
            for i, order in enumerate(self.orders):
                if order.id == event.order.id:
                    self.orders[i] = order.model_copy(update=patch)
                    return True
            return False

        if isinstance(event, OrderDeletedEvent):
            remaining = [order for order in self.orders if order.id != event.order_id]
            changed = len(remaining) != len(self.orders)
            self.orders = remaining
            return changed

        if isinstance(event, TableSessionCreatedEvent):
            if any(session.id == event.session.id for session in self.sessions):
                return False
            self.sessions.insert(0, event.session)
            return True

        if isinstance(event, TableSessionExpiredEvent):
            for i, session in enumerate(self.sessions):
                if session.id == event.session_id:
                    self.sessions[i] = session.model_copy(update={"is_active": False})
                    return True
            return False

        if isinstance(event, RoleChangedEvent):
            # Display only; access decisions use the re-fetched record
            if self.user is None:
                return False
            self.user = self.user.model_copy(update={"role": event.new_role})
            return True

        if isinstance(event, (EmployeeRegisteredEvent, EmployeeApprovedEvent, EmployeeRoleUpdatedEvent)):
            return self._upsert_employee(event.employee)

        if isinstance(event, (EmployeeRejectedEvent, EmployeeDeletedEvent)):
            remaining = [employee for employee in self.employees if employee.id != event.employee_id]
            changed = len(remaining) != len(self.employees)
            self.employees = remaining
            return changed

        logger.debug("No local merge for '%s'", event.type)
        return False

    def _upsert_employee(self, employee: UserResponse) -> bool:
        for i, known in enumerate(self.employees):
            if known.id == employee.id:
                if known == employee:
                    return False
                self.employees[i] = employee
                return True
        self.employees.append(employee)
        return True

    @property
    def pending_count(self) -> int:
        return sum(1 for order in self.orders if order.status == "pending")

    def quick_stats(self) -> QuickStats:
        return quick_stats(self.sessions)
