"""
Campus Delivery: Cart aggregator

A keyed multiset of (item, restaurant) selections. Two lines with the same
(item_name, restaurant_label) key never coexist; adding again merges by
quantity. The whole collection is re-serialized to the client's ``cartItems``
slot after every mutation.

Each mutation is applied to the stored cart inside a storage update, so
concurrent requests from one client never overwrite each other's changes.
"""
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Iterator, TypeVar

from campus_delivery.clients.storage import CART_ITEMS_KEY, ClientStorage
from campus_delivery.models.availability import AvailabilityWindow

logger = logging.getLogger(__name__)

CartKey = tuple[str, str]
T = TypeVar("T")


@dataclass
class CartLine:
    item_name: str
    unit_price: float
    restaurant_label: str
    quantity: int = 1
    restaurant_ref: str | None = None
    campus_ref: str | None = None
    restaurant_meta: dict[str, Any] | None = field(default=None, compare=False)

    @property
    def key(self) -> CartKey:
        return (self.item_name, self.restaurant_label)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def availability(self) -> AvailabilityWindow:
        return AvailabilityWindow.from_restaurant(self.restaurant_meta)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.item_name,
            "price": self.unit_price,
            "quantity": self.quantity,
            "restaurantName": self.restaurant_label,
        }
        if self.restaurant_ref is not None:
            data["restaurantId"] = self.restaurant_ref
        if self.campus_ref is not None:
            data["campusId"] = self.campus_ref
        if self.restaurant_meta is not None:
            data["restaurant"] = self.restaurant_meta
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLine":
        """Raises KeyError/TypeError/ValueError on a malformed entry."""
        quantity = int(data.get("quantity", 1))
        if quantity < 1:
            raise ValueError("quantity must be >= 1")
        return cls(
            item_name=str(data["name"]),
            unit_price=float(data["price"]),
            restaurant_label=str(data["restaurantName"]),
            quantity=quantity,
            restaurant_ref=data.get("restaurantId"),
            campus_ref=data.get("campusId"),
            restaurant_meta=data.get("restaurant"),
        )


def _find(lines: list[CartLine], item_name: str, restaurant_label: str) -> CartLine | None:
    for line in lines:
        if line.key == (item_name, restaurant_label):
            return line
    return None


class Cart:
    def __init__(self, storage: ClientStorage):
        self._storage = storage
        self._lines: list[CartLine] = self._decode(storage.get_item(CART_ITEMS_KEY))

    @staticmethod
    def _decode(raw: str | None) -> list[CartLine]:
        if raw is None:
            return []
        try:
            entries = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding malformed cart in client storage")
            return []
        if not isinstance(entries, list):
            return []
        lines: dict[CartKey, CartLine] = {}
        try:
            for entry in entries:
                line = CartLine.from_dict(entry)
                if line.key in lines:
                    lines[line.key].quantity += line.quantity
                else:
                    lines[line.key] = line
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Discarding malformed cart in client storage")
            return []
        return list(lines.values())

    def _mutate(self, change: Callable[[list[CartLine]], T], delete: bool = False) -> T:
        """Apply ``change`` to the freshest stored lines and write them back."""
        outcome: list[T] = []

        def apply(raw: str | None) -> str | None:
            lines = self._decode(raw)
            outcome[:] = [change(lines)]
            self._lines = lines
            if delete:
                return None
            return json.dumps([line.to_dict() for line in lines])

        self._storage.update(CART_ITEMS_KEY, apply)
        if not outcome:
            # storage unavailable: the change lives for this request only
            outcome.append(change(self._lines))
        return outcome[0]

    # ── Mutations ────────────────────────────────────────────────────────────

    def add(
        self,
        item_name: str,
        unit_price: float,
        restaurant_label: str,
        campus_ref: str | None = None,
        restaurant_ref: str | None = None,
        restaurant_meta: dict[str, Any] | None = None,
    ) -> CartLine:
        def change(lines: list[CartLine]) -> CartLine:
            line = _find(lines, item_name, restaurant_label)
            if line is not None:
                line.quantity += 1
                return line
            line = CartLine(
                item_name=item_name,
                unit_price=unit_price,
                restaurant_label=restaurant_label,
                quantity=1,
                restaurant_ref=restaurant_ref,
                campus_ref=campus_ref,
                restaurant_meta=restaurant_meta,
            )
            lines.append(line)
            return line

        return self._mutate(change)

    def increment(self, item_name: str, restaurant_label: str) -> CartLine | None:
        def change(lines: list[CartLine]) -> CartLine | None:
            line = _find(lines, item_name, restaurant_label)
            if line is not None:
                line.quantity += 1
            return line

        return self._mutate(change)

    def decrement(self, item_name: str, restaurant_label: str) -> CartLine | None:
        """Lower the quantity by one; the line disappears when it reaches zero."""
        def change(lines: list[CartLine]) -> CartLine | None:
            line = _find(lines, item_name, restaurant_label)
            if line is None:
                return None
            line.quantity -= 1
            if line.quantity <= 0:
                lines.remove(line)
                return None
            return line

        return self._mutate(change)

    def remove(self, item_name: str, restaurant_label: str) -> None:
        def change(lines: list[CartLine]) -> None:
            lines[:] = [line for line in lines if line.key != (item_name, restaurant_label)]

        self._mutate(change)

    def clear(self) -> None:
        self._mutate(lambda lines: lines.clear(), delete=True)

    # ── Queries ──────────────────────────────────────────────────────────────

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def get(self, item_name: str, restaurant_label: str) -> CartLine | None:
        return _find(self._lines, item_name, restaurant_label)

    def total_cost(self) -> float:
        return sum(line.unit_price * line.quantity for line in self._lines)

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def campus_refs(self) -> set[str]:
        return {line.campus_ref for line in self._lines if line.campus_ref is not None}

    def to_list(self) -> list[dict[str, Any]]:
        return [line.to_dict() for line in self._lines]

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(list(self._lines))
