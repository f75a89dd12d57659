"""
Campus Delivery: Catalog / order backend client

Thin wrapper over the REST backend. Every failure leaves this module as an
UpstreamError carrying the normalized {type, message} pair.
"""
import logging
from typing import Any

import httpx

from campus_delivery.core.errors import upstream_error

logger = logging.getLogger(__name__)


class BackendClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        context: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> Any:
        headers = kwargs.pop("headers", {}) or {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise upstream_error(exc, context)
        if not response.content:
            return None
        return response.json()

    async def ping(self) -> int:
        response = await self._client.get("/")
        return response.status_code

    # ── Catalog ──────────────────────────────────────────────────────────────

    async def list_universities(self) -> list[dict]:
        return await self._request("GET", "/api/universities", context="list_universities") or []

    async def list_campuses(self, university_id: str | None = None) -> list[dict]:
        params = {"universityId": university_id} if university_id else None
        return await self._request("GET", "/api/campuses", params=params, context="list_campuses") or []

    async def list_restaurants(self, campus_id: str) -> list[dict]:
        return await self._request(
            "GET", "/api/restaurants", params={"campusId": campus_id}, context="list_restaurants"
        ) or []

    async def get_restaurant(self, restaurant_id: str, token: str | None = None) -> dict:
        return await self._request(
            "GET", f"/api/restaurants/{restaurant_id}", token=token, context="get_restaurant"
        )

    async def list_menu_items(self, restaurant_id: str) -> list[dict]:
        return await self._request(
            "GET", "/api/menu-items", params={"restaurantId": restaurant_id}, context="list_menu_items"
        ) or []

    async def list_mart_items(self, campus_id: str) -> list[dict]:
        return await self._request(
            "GET", "/api/mart-items", params={"campusId": campus_id}, context="list_mart_items"
        ) or []

    # ── Settings ─────────────────────────────────────────────────────────────

    async def list_campus_settings(self) -> list[dict]:
        data = await self._request("GET", "/api/campus-settings", context="list_campus_settings")
        return data if isinstance(data, list) else []

    async def get_global_delivery_fee(self) -> dict:
        return await self._request("GET", "/api/global-delivery-fee", context="get_global_delivery_fee") or {}

    # ── Orders ───────────────────────────────────────────────────────────────

    async def list_all_orders(self, limit: int = 1000, token: str | None = None) -> list[dict]:
        data = await self._request(
            "GET", "/api/orders/all", params={"limit": limit}, token=token, context="list_all_orders"
        )
        return data if isinstance(data, list) else []

    async def list_restaurant_orders(self, restaurant_id: str, limit: int = 1000, token: str | None = None) -> list[dict]:
        data = await self._request(
            "GET",
            f"/api/orders/restaurant/{restaurant_id}",
            params={"limit": limit},
            token=token,
            context="list_restaurant_orders",
        )
        return data if isinstance(data, list) else []

    async def get_order(self, order_id: str, token: str | None = None) -> dict:
        return await self._request("GET", f"/api/orders/{order_id}", token=token, context="get_order")

    async def update_order_status(self, order_id: str, status: str, token: str | None = None) -> dict | None:
        return await self._request(
            "PATCH", f"/api/orders/{order_id}", json={"status": status}, token=token, context="update_order_status"
        )

    async def submit_order(self, order: dict) -> dict | None:
        """Backup order write (secondary sink)."""
        return await self._request("POST", "/submit-order", json=order, context="submit_order")
