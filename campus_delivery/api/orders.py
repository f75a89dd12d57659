"""
Campus Delivery: Orders API (admin panels)

Listing and export are scoped by role; status updates go through the
transition table and are only forwarded to the backend when legal.
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from campus_delivery.analytics.order_export import XLSX_MEDIA_TYPE, build_orders_workbook
from campus_delivery.analytics.order_query import OrderFilter, SortField, SortOrder, filter_orders, paginate
from campus_delivery.api.deps import get_app_settings, get_principal, get_token
from campus_delivery.clients.backend import BackendClient
from campus_delivery.core.clients import get_backend
from campus_delivery.core.config import Settings
from campus_delivery.models.roles import Principal
from campus_delivery.ops.orders import change_order_status, export_filename, load_scoped_orders, pin_filter
from campus_delivery.schemas.order import StatusUpdateRequest, StatusUpdateResponse

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_filter(
    search: str | None = None,
    gender: str | None = None,
    status: str | None = None,
    university_id: str | None = Query(None, alias="universityId"),
    campus_id: str | None = Query(None, alias="campusId"),
    restaurant_name: str | None = Query(None, alias="restaurantName"),
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
    min_amount: float | None = Query(None, alias="minAmount"),
    max_amount: float | None = Query(None, alias="maxAmount"),
    sort_by: SortField = Query(SortField.DATE, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
) -> OrderFilter:
    return OrderFilter(
        search=search,
        gender=gender,
        status=status,
        university_id=university_id,
        campus_id=campus_id,
        restaurant_name=restaurant_name,
        date_from=date_from,
        date_to=date_to,
        min_amount=min_amount,
        max_amount=max_amount,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("")
async def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200, alias="pageSize"),
    criteria: OrderFilter = Depends(get_order_filter),
    principal: Principal = Depends(get_principal),
    token: str | None = Depends(get_token),
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    orders = await load_scoped_orders(backend, principal, token, settings.ORDERS_FETCH_LIMIT)
    result = paginate(filter_orders(orders, pin_filter(principal, criteria)), page, page_size)
    result["items"] = [o.model_dump(by_alias=True, mode="json") for o in result["items"]]
    return result


@router.get("/export")
async def export_orders(
    criteria: OrderFilter = Depends(get_order_filter),
    principal: Principal = Depends(get_principal),
    token: str | None = Depends(get_token),
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    """The filtered order list (every page) as an .xlsx download."""
    orders = await load_scoped_orders(backend, principal, token, settings.ORDERS_FETCH_LIMIT)
    rows = filter_orders(orders, pin_filter(principal, criteria))
    today = datetime.now(ZoneInfo(settings.ORDER_TIMEZONE)).date()

    headers = {"Content-Disposition": f"attachment; filename={export_filename(principal, today)}"}
    return StreamingResponse(
        build_orders_workbook(rows, settings.ORDER_TIMEZONE),
        media_type=XLSX_MEDIA_TYPE,
        headers=headers,
    )


@router.patch("/{order_id}/status", response_model=StatusUpdateResponse)
async def update_status(
    order_id: str,
    payload: StatusUpdateRequest,
    principal: Principal = Depends(get_principal),
    token: str | None = Depends(get_token),
    backend: BackendClient = Depends(get_backend),
):
    return await change_order_status(backend, principal, order_id, payload.status, token)
