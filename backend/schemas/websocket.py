from typing import Annotated, Literal, Union
import uuid

from pydantic import Field, TypeAdapter

from schemas.auth import UserResponse
from schemas.common import CamelModel
from schemas.orders import OrderPatch, OrderResponse
from schemas.table_sessions import TableSessionResponse


# Incoming messages
class JoinTableMessage(CamelModel):
    type: Literal["joinTable"] = "joinTable"
    table_number: int


class JoinRoomMessage(CamelModel):
    type: Literal["joinRoom"] = "joinRoom"
    room: str


class LeaveRoomMessage(CamelModel):
    type: Literal["leaveRoom"] = "leaveRoom"
    room: str


ClientMessage = Annotated[
    Union[JoinTableMessage, JoinRoomMessage, LeaveRoomMessage],
    Field(discriminator="type"),
]


# Outgoing events
class NewOrderEvent(CamelModel):
    type: Literal["newOrder"] = "newOrder"
    order: OrderResponse


class OrderStatusUpdatedEvent(CamelModel):
    type: Literal["orderStatusUpdated"] = "orderStatusUpdated"
    order: OrderPatch


class OrderDeletedEvent(CamelModel):
    type: Literal["orderDeleted"] = "orderDeleted"
    order_id: uuid.UUID
    table_number: int


class TableSessionCreatedEvent(CamelModel):
    type: Literal["tableSession:created"] = "tableSession:created"
    session: TableSessionResponse


class TableSessionExpiredEvent(CamelModel):
    type: Literal["tableSession:expired"] = "tableSession:expired"
    session_id: uuid.UUID
    table_number: int


class EmployeeRegisteredEvent(CamelModel):
    type: Literal["employee:registered"] = "employee:registered"
    employee: UserResponse


class EmployeeApprovedEvent(CamelModel):
    type: Literal["employee:approved"] = "employee:approved"
    employee: UserResponse


class EmployeeRoleUpdatedEvent(CamelModel):
    type: Literal["employee:roleUpdated"] = "employee:roleUpdated"
    employee: UserResponse
    old_role: str


class EmployeeRejectedEvent(CamelModel):
    type: Literal["employee:rejected"] = "employee:rejected"
    employee_id: uuid.UUID
    name: str
    email: str
    reason: str


class EmployeeDeletedEvent(CamelModel):
    type: Literal["employee:deleted"] = "employee:deleted"
    employee_id: uuid.UUID
    name: str
    email: str


class AccountApprovedEvent(CamelModel):
    type: Literal["account:approved"] = "account:approved"
    message: str = "Your account has been approved!"


class AccountRejectedEvent(CamelModel):
    type: Literal["account:rejected"] = "account:rejected"
    message: str = "Your account has been rejected"
    reason: str = "No reason provided"


class AccountDeletedEvent(CamelModel):
    type: Literal["account:deleted"] = "account:deleted"
    message: str = "Your account has been deleted by an administrator"


class RoleChangedEvent(CamelModel):
    type: Literal["role:changed"] = "role:changed"
    message: str
    new_role: str


RealtimeEvent = Union[
    NewOrderEvent,
    OrderStatusUpdatedEvent,
    OrderDeletedEvent,
    TableSessionCreatedEvent,
    TableSessionExpiredEvent,
    EmployeeRegisteredEvent,
    EmployeeApprovedEvent,
    EmployeeRoleUpdatedEvent,
    EmployeeRejectedEvent,
    EmployeeDeletedEvent,
    AccountApprovedEvent,
    AccountRejectedEvent,
    AccountDeletedEvent,
    RoleChangedEvent,
]


# Connection control messages
class ConnectionReadyMessage(CamelModel):
    type: Literal["connection:ready"] = "connection:ready"
    connection_id: str
    rooms: list[str]


class RoomJoinedMessage(CamelModel):
    type: Literal["room:joined"] = "room:joined"
    room: str


class RoomLeftMessage(CamelModel):
    type: Literal["room:left"] = "room:left"
    room: str


class ErrorMessage(CamelModel):
    type: Literal["error"] = "error"
    message: str


ServerMessage = Annotated[
    Union[
        RealtimeEvent,
        ConnectionReadyMessage,
        RoomJoinedMessage,
        RoomLeftMessage,
        ErrorMessage,
    ],
    Field(discriminator="type"),
]

client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)
server_message_adapter: TypeAdapter[ServerMessage] = TypeAdapter(ServerMessage)


def encode_message(message: CamelModel) -> dict:
    """Serialize an outgoing message to its JSON wire form."""
    return message.model_dump(mode="json", by_alias=True, exclude_none=True)
