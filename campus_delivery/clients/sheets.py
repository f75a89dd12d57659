"""
Campus Delivery: Spreadsheet order ledger client

Each campus has its own tab, named "<University>_<Campus>" after sanitizing.
Rows are positional; ORDER_COLUMNS documents the layout.
"""
import re
from urllib.parse import quote
from typing import Any

import httpx

from campus_delivery.core.errors import upstream_error

ORDER_COLUMNS = [
    "universityName",
    "campusName",
    "firstName",
    "lastName",
    "room",
    "phone",
    "email",
    "gender",
    "persons",
    "deliveryCharge",
    "itemTotal",
    "grandTotal",
    "cartItems",
    "timestamp",
    "accountTitle",
    "bankName",
    "screenshotURL",
    "Special Instructions",
    "maleOrders",
    "maleOrderDetails",
    "femaleOrders",
    "femaleOrderDetails",
]

MAX_TAB_NAME_LENGTH = 30


def sanitize_tab_name(name: str) -> str:
    name = re.sub(r"[^\w\s-]", "", name)
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"-+", "-", name)
    name = re.sub(r"_{2,}", "_", name)
    return name[:MAX_TAB_NAME_LENGTH]


def campus_tab_name(university_name: str, campus_name: str) -> str:
    return sanitize_tab_name(f"{university_name}_{campus_name}")


def build_order_row(order: dict[str, Any], university_name: str, campus_name: str) -> list[Any]:
    """18 positional fields followed by the four gender-split columns."""
    row = [
        university_name,
        campus_name,
        order.get("firstName"),
        order.get("lastName"),
        order.get("room") or "",
        order.get("phone"),
        order.get("email"),
        order.get("gender"),
        order.get("persons"),
        order.get("deliveryCharge"),
        order.get("itemTotal"),
        order.get("grandTotal"),
        order.get("cartItems"),
        order.get("timestamp"),
        order.get("accountTitle"),
        order.get("bankName"),
        order.get("screenshotURL"),
        order.get("specialInstruction") or "",
    ]

    gender = str(order.get("gender") or "").lower()
    persons = order.get("persons") or 1
    details = order.get("cartItems") or ""
    row.extend([
        persons if gender == "male" else "",
        details if gender == "male" else "",
        persons if gender == "female" else "",
        details if gender == "female" else "",
    ])
    return row


class SheetsClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def append_order(self, tab_name: str, row: list[Any]) -> dict | None:
        try:
            response = await self._client.post(
                f"/api/sheets/orders/{quote(tab_name, safe='')}",
                json={"values": [row]},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise upstream_error(exc, "append_order")
        return response.json() if response.content else None
