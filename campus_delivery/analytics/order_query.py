"""
Campus Delivery: Order list filtering, sorting and paging for admin panels
"""
from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel

from campus_delivery.analytics.crm import coerce_orders
from campus_delivery.schemas.order import OrderRecord


class SortField(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    NAME = "name"
    GENDER = "gender"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class OrderFilter(BaseModel):
    search: str | None = None
    gender: str | None = None          # "all" or None disables
    status: str | None = None
    university_id: str | None = None
    campus_id: str | None = None
    restaurant_name: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    sort_by: SortField = SortField.DATE
    sort_order: SortOrder = SortOrder.DESC


def _matches_search(order: OrderRecord, query: str) -> bool:
    query = query.lower()
    return any([
        query in (order.first_name or "").lower(),
        query in (order.last_name or "").lower(),
        query in (order.phone or ""),
        query in (order.email or "").lower(),
    ])


def _matches_restaurant(order: OrderRecord, name: str) -> bool:
    selected = name.lower()
    if order.restaurant_names:
        return any(str(n).lower() == selected for n in order.restaurant_names)
    # free-text fallback for orders without structured restaurant names
    if isinstance(order.cart_items, str) and order.cart_items:
        return selected in order.cart_items.lower()
    return False


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


def filter_orders(orders, criteria: OrderFilter) -> list[OrderRecord]:
    result = coerce_orders(orders)

    if criteria.search:
        result = [o for o in result if _matches_search(o, criteria.search)]
    if criteria.gender and criteria.gender != "all":
        result = [o for o in result if o.gender == criteria.gender]
    if criteria.status:
        result = [o for o in result if (o.status or "pending") == criteria.status]
    if criteria.university_id:
        result = [o for o in result if o.university_id == criteria.university_id]
    if criteria.campus_id:
        result = [o for o in result if o.campus_id == criteria.campus_id]
    if criteria.restaurant_name:
        result = [o for o in result if _matches_restaurant(o, criteria.restaurant_name)]
    if criteria.date_from:
        start = datetime.combine(criteria.date_from, time.min)
        result = [o for o in result if o.created_at and _naive(o.created_at) >= start]
    if criteria.date_to:
        # the end date is inclusive through the last instant of that day
        end = datetime.combine(criteria.date_to, time.max)
        result = [o for o in result if o.created_at and _naive(o.created_at) <= end]
    if criteria.min_amount is not None:
        result = [o for o in result if o.amount >= criteria.min_amount]
    if criteria.max_amount is not None:
        result = [o for o in result if o.amount <= criteria.max_amount]

    return sort_orders(result, criteria.sort_by, criteria.sort_order)


def sort_orders(orders, sort_by: SortField = SortField.DATE, sort_order: SortOrder = SortOrder.DESC) -> list[OrderRecord]:
    orders = coerce_orders(orders)
    if sort_by is SortField.DATE:
        key = lambda o: _naive(o.created_at) if o.created_at else datetime.min
    elif sort_by is SortField.AMOUNT:
        key = lambda o: o.amount
    elif sort_by is SortField.NAME:
        key = lambda o: (o.first_name or "").lower()
    else:
        key = lambda o: (o.gender or "").lower()
    return sorted(orders, key=key, reverse=sort_order is SortOrder.DESC)


def paginate(orders: list, page: int = 1, page_size: int = 20) -> dict:
    page = max(page, 1)
    start = (page - 1) * page_size
    return {
        "items": orders[start:start + page_size],
        "page": page,
        "page_size": page_size,
        "total": len(orders),
        "pages": (len(orders) + page_size - 1) // page_size if page_size else 0,
    }
