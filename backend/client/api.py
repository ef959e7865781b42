"""Async binding of the REST API used by the dashboards."""
import logging
import uuid
from typing import Any, Optional

import httpx

from schemas.auth import MeResponse, TokenResponse
from schemas.orders import OrderItem, OrderResponse, OrderStats
from schemas.table_sessions import SessionStats, SessionValidation, TableSessionResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A request the server answered with ``{success: false}`` or an error status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class RestaurantApi:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/api",
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs: Any) -> tuple[httpx.Response, dict]:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = await self._client.request(method, path, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        return response, body

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        response, body = await self._send(method, path, **kwargs)
        if response.is_error or body.get("success") is False:
            message = body.get("message") or response.reason_phrase
            logger.debug("%s %s failed: %s %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, str(message))
        return body

    # Auth
    async def login(self, email: str, password: str) -> TokenResponse:
        body = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        result = TokenResponse.model_validate(body)
        self.token = result.access_token
        return result

    async def me(self) -> MeResponse:
        return MeResponse.model_validate(await self._request("GET", "/auth/me"))

    # Table sessions
    async def generate_session(self, table_number: int) -> TableSessionResponse:
        body = await self._request("POST", "/table-session/generate", json={"tableNumber": table_number})
        return TableSessionResponse.model_validate(body["session"])

    async def validate_session(self, session_token: str) -> SessionValidation:
        """Validation failures are an answer, not an error."""
        response, body = await self._send("GET", f"/table-session/validate/{session_token}")
        if response.status_code == 400 and body.get("valid") is False:
            return SessionValidation(valid=False, reason=body.get("reason"))
        if response.is_error:
            raise ApiError(response.status_code, str(body.get("message") or response.reason_phrase))
        return SessionValidation.model_validate(body)

    async def today_sessions(self) -> list[TableSessionResponse]:
        body = await self._request("GET", "/table-session/active")
        return [TableSessionResponse.model_validate(s) for s in body["sessions"]]

    async def session_stats(self) -> SessionStats:
        body = await self._request("GET", "/table-session/stats")
        return SessionStats.model_validate(body["stats"])

    async def expire_session(self, session_id: uuid.UUID) -> TableSessionResponse:
        body = await self._request("PUT", f"/table-session/{session_id}/expire")
        return TableSessionResponse.model_validate(body["session"])

    # Orders
    async def place_order(self, session_token: str, items: list[OrderItem]) -> OrderResponse:
        payload = {
            "sessionToken": session_token,
            "items": [item.model_dump(by_alias=True) for item in items],
        }
        body = await self._request("POST", "/order/place", json=payload)
        return OrderResponse.model_validate(body["order"])

    async def all_orders(self) -> list[OrderResponse]:
        body = await self._request("GET", "/order/all")
        return [OrderResponse.model_validate(o) for o in body["orders"]]

    async def table_orders(self, table_number: int) -> list[OrderResponse]:
        body = await self._request("GET", f"/order/table/{table_number}")
        return [OrderResponse.model_validate(o) for o in body["orders"]]

    async def order_stats(self) -> OrderStats:
        body = await self._request("GET", "/order/stats")
        return OrderStats.model_validate(body["stats"])

    async def update_order_status(self, order_id: uuid.UUID, status: str) -> OrderResponse:
        body = await self._request("PUT", f"/order/{order_id}/status", json={"status": status})
        return OrderResponse.model_validate(body["order"])
