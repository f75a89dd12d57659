"""
Campus Delivery: Roles and authenticated principals

Every decision over Role is written as an exhaustive if-chain that raises on
an unhandled member, so a newly added role cannot silently fall through.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from campus_delivery.core.errors import Forbidden, NotAuthenticated


class Role(str, Enum):
    SUPER_ADMIN = "superAdmin"
    CAMPUS_ADMIN = "campusAdmin"
    RESTAURANT_MANAGER = "restaurantManager"
    USER = "user"


class UnhandledRole(RuntimeError):
    pass


@dataclass(frozen=True)
class OrderScope:
    """Which orders a principal may read: everything, one campus, or one restaurant."""

    kind: str  # "all" | "campus" | "restaurant"
    campus_id: str | None = None
    restaurant_id: str | None = None


@dataclass(frozen=True)
class Principal:
    uid: str
    role: Role
    university_id: str | None = None
    campus_id: str | None = None
    restaurant_id: str | None = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Principal":
        uid = claims.get("sub")
        if not uid:
            raise NotAuthenticated("Token is missing the subject claim.")
        try:
            role = Role(claims.get("role") or Role.USER.value)
        except ValueError:
            raise Forbidden(f"Unknown role '{claims.get('role')}'.")
        return cls(
            uid=str(uid),
            role=role,
            university_id=claims.get("universityId"),
            campus_id=claims.get("campusId"),
            restaurant_id=claims.get("restaurantId"),
        )

    def can_access_campus(self, university_id: str | None, campus_id: str | None) -> bool:
        if self.role is Role.SUPER_ADMIN:
            return True
        if self.role is Role.CAMPUS_ADMIN:
            return self.university_id == university_id and self.campus_id == campus_id
        if self.role is Role.RESTAURANT_MANAGER:
            return False
        if self.role is Role.USER:
            return False
        raise UnhandledRole(self.role)

    def order_scope(self) -> OrderScope:
        if self.role is Role.SUPER_ADMIN:
            return OrderScope(kind="all")
        if self.role is Role.CAMPUS_ADMIN:
            if not self.campus_id:
                raise Forbidden("Campus admin account is not bound to a campus.")
            return OrderScope(kind="campus", campus_id=self.campus_id)
        if self.role is Role.RESTAURANT_MANAGER:
            if not self.restaurant_id:
                raise Forbidden("Restaurant manager account is not bound to a restaurant.")
            return OrderScope(kind="restaurant", restaurant_id=self.restaurant_id)
        if self.role is Role.USER:
            raise Forbidden("Order dashboards require an admin or manager role.")
        raise UnhandledRole(self.role)

    def can_update_order(self, order: Mapping[str, Any]) -> bool:
        if self.role is Role.SUPER_ADMIN:
            return True
        if self.role is Role.CAMPUS_ADMIN:
            return bool(self.campus_id) and order.get("campusId") == self.campus_id
        if self.role is Role.RESTAURANT_MANAGER:
            if not self.restaurant_id:
                return False
            restaurant_ids = set(order.get("restaurantIds") or [])
            for line in order.get("cartItemsArray") or []:
                if isinstance(line, Mapping) and line.get("restaurantId"):
                    restaurant_ids.add(line["restaurantId"])
            return self.restaurant_id in restaurant_ids
        if self.role is Role.USER:
            return False
        raise UnhandledRole(self.role)
