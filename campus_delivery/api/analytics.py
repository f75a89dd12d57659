"""
Campus Delivery: CRM dashboard API
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query

from campus_delivery.analytics.crm import (
    Period,
    build_collection_split,
    build_daily_series,
    build_deliveries_by_period,
    build_delivered_stats,
    build_hourly_counts,
    build_hourly_counts_for_day,
    build_orders_by_day,
    build_status_counts,
    build_summary_stats,
    build_top_items,
    build_top_restaurants,
)
from campus_delivery.api.deps import get_app_settings, get_principal, get_token
from campus_delivery.clients.backend import BackendClient
from campus_delivery.core.clients import get_backend
from campus_delivery.core.config import Settings
from campus_delivery.models.roles import Principal
from campus_delivery.ops.orders import load_scoped_orders

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard")
async def dashboard(
    days: int = Query(14, ge=1, le=366),
    hourly_days: int = Query(7, ge=1, le=366, alias="hourlyDays"),
    period: Period = Period.SEVEN_DAYS,
    delivery_period: Period = Query(Period.ONE_DAY, alias="deliveryPeriod"),
    top_n: int = Query(5, ge=1, le=50, alias="topN"),
    principal: Principal = Depends(get_principal),
    token: str | None = Depends(get_token),
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    orders = await load_scoped_orders(backend, principal, token, settings.ORDERS_FETCH_LIMIT)
    now = datetime.now(ZoneInfo(settings.ORDER_TIMEZONE))

    return {
        "summary": build_summary_stats(orders, now=now),
        "statusCounts": build_status_counts(orders),
        "daily": build_daily_series(orders, days=days, now=now),
        "collection": build_collection_split(orders),
        "delivered": build_delivered_stats(orders),
        "hourly": build_hourly_counts(orders, days=hourly_days, now=now),
        "hourlyToday": build_hourly_counts_for_day(orders, 0, now=now),
        "topRestaurants": build_top_restaurants(orders, top_n=top_n),
        "topItems": build_top_items(orders, top_n=top_n),
        "ordersByDay": build_orders_by_day(orders, period, now=now),
        "deliveriesByPeriod": build_deliveries_by_period(orders, delivery_period, now=now),
    }
