from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

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
    period_window,
)

NOW = datetime(2024, 5, 15, 12, 0)


def order(days_ago: float = 0, **fields) -> dict:
    created = NOW - timedelta(days=days_ago)
    return {"createdAt": created.isoformat(), **fields}


def test_empty_input_is_tolerated():
    for orders in (None, []):
        assert build_status_counts(orders) == {}
        assert build_daily_series(orders, now=NOW)["counts"] == [0] * 14
        assert build_delivered_stats(orders)["rate"] == 0
        assert build_top_restaurants(orders) == {"labels": [], "values": []}
        assert build_hourly_counts(orders, now=NOW) == [0] * 24


def test_status_counts_default_pending():
    orders = [order(status="delivered"), order(), order(status="")]
    assert build_status_counts(orders) == {"delivered": 1, "pending": 2}


def test_daily_series_today_is_last_bucket():
    series = build_daily_series([order(0, grandTotal=500)], days=14, now=NOW)
    assert series["counts"][13] == 1
    assert series["revenue"][13] == 500
    assert series["labels"][13] == "15 May"
    assert series["labels"][0] == "02 May"


def test_daily_series_window_edges():
    series = build_daily_series([order(13), order(14), order(15)], days=14, now=NOW)
    assert series["counts"][0] == 1
    assert sum(series["counts"]) == 1


def test_inputs_are_not_mutated():
    orders = [order(1, status="delivered", grandTotal=100)]
    snapshot = [dict(o) for o in orders]
    build_daily_series(orders, now=NOW)
    build_top_restaurants(orders)
    build_summary_stats(orders, now=NOW)
    assert orders == snapshot


def test_delivered_stats():
    orders = [
        order(status="delivered", grandTotal=300),
        order(status="pending", grandTotal=200),
        order(status="delivered", grandTotal="100"),
        order(status="cancelled", grandTotal=""),
    ]
    stats = build_delivered_stats(orders)
    assert stats["delivered_count"] == 2
    assert stats["total"] == 4
    assert stats["rate"] == 0.5
    assert stats["delivered_amount"] == 400
    assert stats["receivable_amount"] == 200
    assert build_collection_split(orders) == {"delivered": 400, "receivable": 200}


def test_zero_orders_rate_is_zero():
    assert build_delivered_stats([])["rate"] == 0


def test_hourly_counts_window():
    orders = [
        {"createdAt": datetime(2024, 5, 15, 9, 30).isoformat()},
        {"createdAt": datetime(2024, 5, 10, 9, 5).isoformat()},
        {"createdAt": datetime(2024, 5, 1, 9, 5).isoformat()},
        {"createdAt": datetime(2024, 5, 15, 21, 0).isoformat()},  # after now
    ]
    counts = build_hourly_counts(orders, days=7, now=NOW)
    assert counts[9] == 2
    assert sum(counts) == 2


def test_hourly_counts_for_single_day():
    orders = [
        {"createdAt": datetime(2024, 5, 14, 13, 0).isoformat()},
        {"createdAt": datetime(2024, 5, 15, 13, 0).isoformat()},
    ]
    assert build_hourly_counts_for_day(orders, day_offset=1, now=NOW)[13] == 1
    assert sum(build_hourly_counts_for_day(orders, day_offset=1, now=NOW)) == 1


def test_top_restaurants_from_line_items():
    orders = [
        order(cartItemsArray=[
            {"name": "Zinger", "price": 150, "quantity": 2, "restaurantName": "A"},
            {"name": "Karahi", "price": 500, "restaurantName": "B"},
        ]),
    ]
    assert build_top_restaurants(orders, top_n=5) == {"labels": ["B", "A"], "values": [500, 300]}


def test_top_restaurants_split_grand_total():
    orders = [order(grandTotal=301, restaurantNames=["A", "B"]), order(grandTotal=100, restaurantNames=["A"])]
    result = build_top_restaurants(orders, top_n=1)
    assert result == {"labels": ["A"], "values": [251]}


def test_top_restaurants_ties_keep_encounter_order():
    orders = [order(restaurantNames=["X"], grandTotal=100), order(restaurantNames=["Y"], grandTotal=100)]
    assert build_top_restaurants(orders)["labels"] == ["X", "Y"]


def test_top_items():
    orders = [
        order(cartItems=[{"name": "Chai", "quantity": 3}, {"itemName": "Paratha"}]),
        order(cartItems="📍 Khan Dhaba:\n  - Chai (x1) - Rs 60", cartItemsArray=[{"name": "Paratha", "quantity": 4}]),
    ]
    assert build_top_items(orders) == {"labels": ["Paratha", "Chai"], "values": [5, 3]}


def test_period_window_lengths():
    assert period_window([], Period.ONE_DAY, now=NOW) == (NOW.date(), 1)
    start, length = period_window([], Period.SIX_MONTHS, now=NOW)
    assert length == 182
    assert start == NOW.date() - timedelta(days=181)

    start, length = period_window([order(40)], Period.ALL, now=NOW)
    assert length == 41
    assert start == (NOW - timedelta(days=40)).date()


def test_orders_by_day_labels():
    week = build_orders_by_day([order(0), order(0), order(3), order(9)], Period.SEVEN_DAYS, now=NOW)
    assert week["counts"] == [0, 0, 0, 1, 0, 0, 2]
    assert all(week["labels"])

    half_year = build_orders_by_day([], Period.SIX_MONTHS, now=NOW)
    assert half_year["labels"][-1] == "15 May"
    assert half_year["labels"][-8] == "08 May"
    assert half_year["labels"][-2] == ""

    year = build_orders_by_day([], Period.ONE_YEAR, now=NOW)
    assert year["labels"][0] != ""
    assert "May 2024" in year["labels"]


def test_deliveries_sum_persons():
    orders = [order(0, persons=3), order(0, persons=2), order(0)]
    assert build_deliveries_by_period(orders, Period.ONE_DAY, now=NOW)["deliveries"] == [5]


def test_summary_stats():
    orders = [
        order(0, grandTotal=500, persons=2),
        order(3, grandTotal=300, persons=1),
        order(20, grandTotal=200, persons=4),
    ]
    stats = build_summary_stats(orders, now=NOW)
    assert stats["total"] == 3
    assert stats["revenue"] == 1000
    assert stats["today"] == 1
    assert stats["week"] == 2
    assert stats["month"] == 2
    assert stats["deliveries_today"] == 2
    assert stats["deliveries_month"] == 3
    assert stats["deliveries_total"] == 7


def test_malformed_fields_degrade_per_order():
    orders = [
        order(status="delivered", grandTotal=100),
        {"status": "delivered", "grandTotal": 100, "createdAt": ""},
        {"status": "pending", "grandTotal": "n/a", "persons": "two"},
        order(cartItemsArray=[{"name": "Zinger", "price": "free", "restaurantName": "KFC"}]),
    ]

    assert build_status_counts(orders) == {"delivered": 2, "pending": 2}
    assert build_collection_split(orders) == {"delivered": 200, "receivable": 0}
    assert build_daily_series(orders, now=NOW)["counts"][-1] == 2
    assert build_top_items(orders)["labels"] == ["Zinger"]


def test_unreadable_order_is_skipped():
    orders = [order(status="delivered"), "not an order", {"restaurantNames": "KFC", "status": "pending"}, 42]
    assert build_status_counts(orders) == {"delivered": 1, "pending": 1}


def test_javascript_date_strings_are_read():
    now = datetime(2024, 5, 1, 12, 0, tzinfo=ZoneInfo("Asia/Karachi"))
    orders = [{"createdAt": "Wed May 01 2024 10:00:00 GMT+0500 (Pakistan Standard Time)"}]
    assert build_hourly_counts_for_day(orders, 0, now=now)[10] == 1
