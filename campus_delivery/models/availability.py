"""
Campus Delivery: Restaurant availability windows

Times are configured as "h:mm AM/PM" strings. A window whose close time is
earlier than its open time runs past midnight (e.g. 8:00 PM -> 2:00 AM).
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")


@dataclass(frozen=True)
class AvailabilityWindow:
    opens_at: str | None = None
    closes_at: str | None = None
    is_always_open: bool | None = None

    @classmethod
    def from_restaurant(cls, restaurant: Mapping[str, Any] | None) -> "AvailabilityWindow":
        """Build a window from a catalog restaurant document."""
        restaurant = restaurant or {}
        return cls(
            opens_at=restaurant.get("openTime"),
            closes_at=restaurant.get("closeTime"),
            is_always_open=restaurant.get("is24x7"),
        )

    def to_restaurant_fields(self) -> dict[str, Any]:
        return {"openTime": self.opens_at, "closeTime": self.closes_at, "is24x7": self.is_always_open}


def parse_time_to_minutes(value: str) -> int:
    """
    Convert "h:mm AM/PM" to minutes since midnight.

    The hour is taken mod 12 and 720 is added for PM, so "12:00 AM" is 0 and
    "12:00 PM" is 720. Raises ValueError for anything else.
    """
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"invalid time string {value!r}, expected 'h:mm AM/PM'")
    hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hours <= 12 or minutes > 59:
        raise ValueError(f"invalid time string {value!r}, hour or minute out of range")
    total = (hours % 12) * 60 + minutes
    if period == "PM":
        total += 12 * 60
    return total


def is_open(window: AvailabilityWindow, now: datetime | None = None) -> bool:
    if window.is_always_open is True:
        return True

    # Missing timing fields mean the restaurant predates schedules: keep it open
    if not window.opens_at or not window.closes_at:
        return True

    now = now or datetime.now()
    now_min = now.hour * 60 + now.minute

    try:
        open_min = parse_time_to_minutes(window.opens_at)
        close_min = parse_time_to_minutes(window.closes_at)
    except ValueError:
        logger.warning(
            "Unparseable availability window %r-%r treated as open", window.opens_at, window.closes_at
        )
        return True

    if close_min < open_min:
        return now_min >= open_min or now_min < close_min
    return open_min <= now_min < close_min


def next_opening_time(window: AvailabilityWindow) -> str:
    if window.is_always_open is True:
        return ""
    return window.opens_at or ""


def next_closing_time(window: AvailabilityWindow) -> str:
    if window.is_always_open is True:
        return ""
    return window.closes_at or ""


def format_time_for_display(value: str | None) -> str:
    return value or ""
