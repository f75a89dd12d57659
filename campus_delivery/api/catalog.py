"""
Campus Delivery: Catalog API (read-only pass-through to the backend)
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query

from campus_delivery.api.deps import get_app_settings
from campus_delivery.clients.backend import BackendClient
from campus_delivery.core.clients import get_backend
from campus_delivery.core.config import Settings
from campus_delivery.models.availability import (
    AvailabilityWindow,
    format_time_for_display,
    is_open,
    next_closing_time,
    next_opening_time,
)

router = APIRouter(prefix="/catalog", tags=["catalog"])


def with_availability(restaurant: dict, now: datetime) -> dict:
    """Add the open/closed hints the storefront shows on restaurant cards."""
    window = AvailabilityWindow.from_restaurant(restaurant)
    return {
        **restaurant,
        "isOpen": is_open(window, now),
        "opensAt": format_time_for_display(next_opening_time(window)),
        "closesAt": format_time_for_display(next_closing_time(window)),
    }


@router.get("/restaurants")
async def list_restaurants(
    campus_id: str = Query(..., alias="campusId"),
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    now = datetime.now(ZoneInfo(settings.ORDER_TIMEZONE))
    restaurants = await backend.list_restaurants(campus_id)
    return [with_availability(r, now) for r in restaurants]


@router.get("/restaurants/{restaurant_id}/menu-items")
async def list_menu_items(restaurant_id: str, backend: BackendClient = Depends(get_backend)):
    return await backend.list_menu_items(restaurant_id)


@router.get("/mart-items")
async def list_mart_items(
    campus_id: str = Query(..., alias="campusId"),
    backend: BackendClient = Depends(get_backend),
):
    return await backend.list_mart_items(campus_id)


@router.get("/universities")
async def list_universities(backend: BackendClient = Depends(get_backend)):
    return await backend.list_universities()


@router.get("/campuses")
async def list_campuses(
    university_id: str | None = Query(None, alias="universityId"),
    backend: BackendClient = Depends(get_backend),
):
    return await backend.list_campuses(university_id)
