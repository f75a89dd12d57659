"""
Campus Delivery: Order schemas

OrderRecord mirrors the backend's order documents as read by dashboards.
Unknown fields are kept so that a status update can round-trip them.

Order documents are written by several clients over time, so every scalar is
read leniently: a value that cannot be understood becomes None instead of
rejecting the whole record.
"""
import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from campus_delivery.models.order_status import OrderStatus

# Date.prototype.toString(), e.g. "Wed May 01 2024 10:00:00 GMT+0500 (Pakistan Standard Time)"
JS_DATE_FORMAT = "%a %b %d %Y %H:%M:%S GMT%z"


def lenient_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def lenient_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def lenient_datetime(value: Any) -> datetime | int | float | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.isdigit():
        return int(text)
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return datetime.strptime(text.split(" (", 1)[0], JS_DATE_FORMAT)
    except ValueError:
        return None


class OrderLine(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = None
    item_name: str | None = Field(None, alias="itemName")
    price: float | None = None
    quantity: float | None = None
    restaurant_name: str | None = Field(None, alias="restaurantName")
    restaurant_id: str | None = Field(None, alias="restaurantId")

    @field_validator("price", "quantity", mode="before")
    @classmethod
    def _number(cls, value: Any) -> float | None:
        return lenient_number(value)

    @field_validator("name", "item_name", "restaurant_name", "restaurant_id", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return lenient_text(value)

    @property
    def label(self) -> str | None:
        return self.name or self.item_name


class OrderRecord(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = Field(None, alias="_id")
    created_at: datetime | None = Field(None, alias="createdAt")
    grand_total: float | None = Field(None, alias="grandTotal")
    item_total: float | None = Field(None, alias="itemTotal")
    delivery_charge: float | None = Field(None, alias="deliveryCharge")
    persons: int | None = None
    status: str | None = None
    cart_items: str | list[OrderLine] | None = Field(None, alias="cartItems")
    cart_items_array: list[OrderLine] | None = Field(None, alias="cartItemsArray")
    restaurant_names: list[str | None] | None = Field(None, alias="restaurantNames")
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    phone: str | None = None
    email: str | None = None
    gender: str | None = None
    university_id: str | None = Field(None, alias="universityId")
    university_name: str | None = Field(None, alias="universityName")
    campus_id: str | None = Field(None, alias="campusId")
    campus_name: str | None = Field(None, alias="campusName")
    special_instruction: str | None = Field(None, alias="specialInstruction")

    @field_validator("created_at", mode="before")
    @classmethod
    def _timestamp(cls, value: Any) -> Any:
        return lenient_datetime(value)

    @field_validator("grand_total", "item_total", "delivery_charge", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float | None:
        return lenient_number(value)

    @field_validator("persons", mode="before")
    @classmethod
    def _persons(cls, value: Any) -> int | None:
        number = lenient_number(value)
        return int(number) if number is not None else None

    @field_validator(
        "id", "status", "first_name", "last_name", "phone", "email", "gender",
        "university_id", "university_name", "campus_id", "campus_name", "special_instruction",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return lenient_text(value)

    @field_validator("cart_items_array", mode="before")
    @classmethod
    def _line_list(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [line for line in value if isinstance(line, (dict, OrderLine))]

    @field_validator("cart_items", mode="before")
    @classmethod
    def _cart_items(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            return [line for line in value if isinstance(line, (dict, OrderLine))]
        return None

    @field_validator("restaurant_names", mode="before")
    @classmethod
    def _names(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [lenient_text(name) for name in value]

    @property
    def amount(self) -> float:
        return float(self.grand_total or 0)


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


class StatusUpdateResponse(BaseModel):
    order_id: str
    previous_status: OrderStatus
    status: OrderStatus
    changed: bool
