from fastapi import APIRouter

from api.routers import auth, employees, orders, table_sessions, websocket

routes = APIRouter()

# Include all routers
routes.include_router(auth.router)
routes.include_router(employees.router)
routes.include_router(table_sessions.router)
routes.include_router(orders.router)

# WebSocket routes
routes.include_router(websocket.router)
