"""
Campus Delivery: Cart and session schemas
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CartItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    restaurant_name: str = Field(..., min_length=1, alias="restaurantName")
    restaurant_id: str | None = Field(None, alias="restaurantId")
    campus_id: str | None = Field(None, alias="campusId")
    restaurant: dict[str, Any] | None = None


class CartLineKey(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    restaurant_name: str = Field(..., alias="restaurantName")


class CartResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[dict[str, Any]]
    item_count: int = Field(..., serialization_alias="itemCount")
    total_cost: float = Field(..., serialization_alias="totalCost")


class SelectionRequest(BaseModel):
    """A university or campus document as listed by the catalog."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str | None = None
