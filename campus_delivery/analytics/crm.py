"""
Campus Delivery: Dashboard aggregations

Pure folds over an order list for the CRM charts. None of these mutate their
input, and every one of them accepts None or an empty list. Each takes an
optional ``now`` so results are reproducible; dates are compared in the
timezone of ``now`` (local time when ``now`` is naive).
"""
import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import ValidationError

from campus_delivery.schemas.order import OrderRecord

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24


class Period(str, Enum):
    ONE_DAY = "1day"
    SEVEN_DAYS = "7days"
    ONE_MONTH = "1month"
    SIX_MONTHS = "6months"
    ONE_YEAR = "1year"
    ALL = "all"


PERIOD_DAYS: dict[Period, int] = {
    Period.ONE_DAY: 1,
    Period.SEVEN_DAYS: 7,
    Period.ONE_MONTH: 30,
    Period.SIX_MONTHS: 182,
    Period.ONE_YEAR: 365,
}

DAILY_LABEL_LIMIT = 30
WEEKLY_LABEL_LIMIT = 182


# ── Helpers ───────────────────────────────────────────────────────────────────

def coerce_orders(orders: Iterable[OrderRecord | Mapping[str, Any]] | None) -> list[OrderRecord]:
    """Parse raw order documents; a record that cannot be read at all is skipped."""
    if not orders:
        return []
    records = []
    for order in orders:
        if isinstance(order, OrderRecord):
            records.append(order)
            continue
        try:
            records.append(OrderRecord.model_validate(order))
        except ValidationError as exc:
            order_id = order.get("_id") if isinstance(order, Mapping) else None
            logger.warning("Skipping unreadable order %s: %d field error(s)", order_id, exc.error_count())
    return records


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now()


def _localize(value: datetime | None, now: datetime) -> datetime | None:
    """Express an order timestamp in the same clock as ``now``."""
    if value is None:
        return None
    if now.tzinfo is None:
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value.astimezone(now.tzinfo)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _day_label(day: date) -> str:
    return day.strftime("%d %b")


def _ranked(totals: dict[str, float], top_n: int) -> list[tuple[str, float]]:
    # sorted() is stable with reverse=True, so ties keep encounter order
    return sorted(totals.items(), key=lambda entry: entry[1], reverse=True)[:max(top_n, 0)]


# ── Status / revenue ──────────────────────────────────────────────────────────

def build_status_counts(orders) -> dict[str, int]:
    counts: dict[str, int] = {}
    for order in coerce_orders(orders):
        status = order.status or "pending"
        counts[status] = counts.get(status, 0) + 1
    return counts


def build_daily_series(orders, days: int = 14, now: datetime | None = None) -> dict[str, list]:
    """Order count and revenue per day for the last ``days`` days, today last."""
    now = _now(now)
    today = now.date()
    labels = [_day_label(today - timedelta(days=offset)) for offset in range(days - 1, -1, -1)]
    counts = [0] * days
    revenue: list[float] = [0] * days

    for order in coerce_orders(orders):
        created = _localize(order.created_at, now)
        if created is None:
            continue
        offset = (today - created.date()).days
        if 0 <= offset < days:
            idx = days - 1 - offset
            counts[idx] += 1
            revenue[idx] += order.amount

    return {"labels": labels, "counts": counts, "revenue": revenue}


def build_collection_split(orders) -> dict[str, float]:
    delivered = 0.0
    total = 0.0
    for order in coerce_orders(orders):
        total += order.amount
        if order.status == "delivered":
            delivered += order.amount
    return {"delivered": delivered, "receivable": max(total - delivered, 0)}


def build_delivered_stats(orders) -> dict[str, float]:
    orders = coerce_orders(orders)
    total = len(orders)
    delivered_count = sum(1 for o in orders if o.status == "delivered")
    split = build_collection_split(orders)
    return {
        "delivered_count": delivered_count,
        "total": total,
        "rate": delivered_count / total if total else 0,
        "delivered_amount": split["delivered"],
        "receivable_amount": split["receivable"],
    }


# ── Hour-of-day ───────────────────────────────────────────────────────────────

def build_hourly_counts(orders, days: int = 7, now: datetime | None = None) -> list[int]:
    """Orders per hour of day among those placed in [now - days, now]."""
    now = _now(now)
    start = now - timedelta(days=days)
    counts = [0] * HOURS_PER_DAY
    for order in coerce_orders(orders):
        created = _localize(order.created_at, now)
        if created is not None and start <= created <= now:
            counts[created.hour] += 1
    return counts


def build_hourly_counts_for_day(orders, day_offset: int = 0, now: datetime | None = None) -> list[int]:
    """Orders per hour of day for a single calendar day ``day_offset`` days ago."""
    now = _now(now)
    target = now.date() - timedelta(days=day_offset)
    counts = [0] * HOURS_PER_DAY
    for order in coerce_orders(orders):
        created = _localize(order.created_at, now)
        if created is not None and created.date() == target:
            counts[created.hour] += 1
    return counts


# ── Rankings ──────────────────────────────────────────────────────────────────

def build_top_restaurants(orders, top_n: int = 5) -> dict[str, list]:
    """
    Restaurants ranked by revenue. Line items are preferred; orders that only
    carry restaurantNames split their grand total evenly between them.
    """
    revenue: dict[str, float] = {}
    for order in coerce_orders(orders):
        if order.cart_items_array:
            for line in order.cart_items_array:
                name = line.restaurant_name or line.restaurant_id or "Unknown"
                amount = float(line.price or 0) * float(line.quantity or 1)
                revenue[name] = revenue.get(name, 0) + amount
        elif order.restaurant_names:
            share = order.amount / len(order.restaurant_names)
            for name in order.restaurant_names:
                key = name or "Unknown"
                revenue[key] = revenue.get(key, 0) + share

    entries = _ranked(revenue, top_n)
    return {"labels": [e[0] for e in entries], "values": [_round_half_up(e[1]) for e in entries]}


def build_top_items(orders, top_n: int = 5) -> dict[str, list]:
    """Items ranked by quantity sold."""
    quantities: dict[str, float] = {}
    for order in coerce_orders(orders):
        if isinstance(order.cart_items, list) and order.cart_items:
            lines = order.cart_items
        elif order.cart_items_array:
            lines = order.cart_items_array
        else:
            continue
        for line in lines:
            name = line.label or "Item"
            quantities[name] = quantities.get(name, 0) + float(line.quantity or 1)

    entries = _ranked(quantities, top_n)
    return {
        "labels": [e[0] for e in entries],
        "values": [int(e[1]) if float(e[1]).is_integer() else e[1] for e in entries],
    }


# ── Period series ─────────────────────────────────────────────────────────────

def period_window(orders, period: Period | str, now: datetime | None = None) -> tuple[date, int]:
    """First day and length in days of the window a period covers (ending today)."""
    now = _now(now)
    period = Period(period)
    today = now.date()
    if period is Period.ALL:
        dates = [
            created.date()
            for created in (_localize(o.created_at, now) for o in coerce_orders(orders))
            if created is not None
        ]
        earliest = min(dates, default=today)
        length = max((today - earliest).days + 1, 1)
    else:
        length = PERIOD_DAYS[period]
    return today - timedelta(days=length - 1), length


def _period_labels(start: date, length: int) -> list[str]:
    labels = []
    for idx in range(length):
        day = start + timedelta(days=idx)
        if length < DAILY_LABEL_LIMIT:
            labels.append(_day_label(day))
        elif length <= WEEKLY_LABEL_LIMIT:
            # weekly ticks counted back from today
            labels.append(_day_label(day) if (length - 1 - idx) % 7 == 0 else "")
        else:
            labels.append(day.strftime("%b %Y") if idx == 0 or day.day == 1 else "")
    return labels


def _bucket_by_period(orders, period: Period | str, now: datetime | None, weight) -> dict[str, list]:
    now = _now(now)
    orders = coerce_orders(orders)
    start, length = period_window(orders, period, now)
    values = [0] * length
    for order in orders:
        created = _localize(order.created_at, now)
        if created is None:
            continue
        idx = (created.date() - start).days
        if 0 <= idx < length:
            values[idx] += weight(order)
    return {"labels": _period_labels(start, length), "values": values}


def build_orders_by_day(orders, period: Period | str = Period.SEVEN_DAYS, now: datetime | None = None) -> dict[str, list]:
    series = _bucket_by_period(orders, period, now, lambda order: 1)
    return {"labels": series["labels"], "counts": series["values"]}


def build_deliveries_by_period(orders, period: Period | str = Period.ONE_DAY, now: datetime | None = None) -> dict[str, list]:
    """Deliveries are counted per person: an order for three delivers three meals."""
    series = _bucket_by_period(orders, period, now, lambda order: order.persons or 0)
    return {"labels": series["labels"], "deliveries": series["values"]}


# ── Dashboard tiles ───────────────────────────────────────────────────────────

def build_summary_stats(orders, now: datetime | None = None) -> dict[str, float]:
    now = _now(now)
    orders = coerce_orders(orders)
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_month = start_of_today.replace(day=1)
    week_ago = start_of_today - timedelta(days=6)

    revenue = 0.0
    today = week = month = 0
    deliveries_today = deliveries_month = deliveries_total = 0
    for order in orders:
        revenue += order.amount
        persons = order.persons or 0
        deliveries_total += persons
        created = _localize(order.created_at, now)
        if created is None:
            continue
        if created >= start_of_today:
            today += 1
            deliveries_today += persons
        if created >= week_ago:
            week += 1
        if created >= start_of_month:
            month += 1
            deliveries_month += persons

    return {
        "total": len(orders),
        "revenue": revenue,
        "today": today,
        "week": week,
        "month": month,
        "average": revenue / len(orders) if orders else 0,
        "deliveries_today": deliveries_today,
        "deliveries_month": deliveries_month,
        "deliveries_total": deliveries_total,
    }
