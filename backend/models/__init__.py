from models.users import User
from models.table_sessions import TableSession
from models.orders import Order

__all__ = [
    "User",
    "TableSession",
    "Order",
]
