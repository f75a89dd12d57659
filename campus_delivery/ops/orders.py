"""
Campus Delivery: Role-scoped order access
"""
import logging
import re
from datetime import date

from campus_delivery.analytics.crm import coerce_orders
from campus_delivery.analytics.order_query import OrderFilter
from campus_delivery.clients.backend import BackendClient
from campus_delivery.core.errors import Forbidden, NotFound
from campus_delivery.models.order_status import OrderStatus, parse_status, validate_transition
from campus_delivery.models.roles import Principal, Role
from campus_delivery.schemas.order import OrderRecord, StatusUpdateResponse

logger = logging.getLogger(__name__)


async def load_scoped_orders(
    backend: BackendClient,
    principal: Principal,
    token: str | None,
    limit: int,
) -> list[OrderRecord]:
    """Fetch the orders the principal is allowed to see."""
    scope = principal.order_scope()
    if scope.kind == "restaurant":
        raw = await backend.list_restaurant_orders(scope.restaurant_id, limit=limit, token=token)
        return coerce_orders(raw)

    orders = coerce_orders(await backend.list_all_orders(limit=limit, token=token))
    if scope.kind == "campus":
        return [o for o in orders if o.campus_id == scope.campus_id]
    return orders


def pin_filter(principal: Principal, criteria: OrderFilter) -> OrderFilter:
    """Campus admins are pinned to their own campus whatever the query asks for."""
    if principal.role is Role.CAMPUS_ADMIN and not principal.can_access_campus(
        criteria.university_id, criteria.campus_id
    ):
        return criteria.model_copy(update={"university_id": None, "campus_id": None})
    return criteria


def export_filename(principal: Principal, day: date) -> str:
    scope = principal.order_scope()
    if scope.kind == "campus":
        label = f"campus_{scope.campus_id}"
    elif scope.kind == "restaurant":
        label = f"restaurant_{scope.restaurant_id}"
    else:
        label = "all"
    return re.sub(r"[^\w.-]", "_", f"orders_{label}_{day.isoformat()}.xlsx")


async def change_order_status(
    backend: BackendClient,
    principal: Principal,
    order_id: str,
    target: OrderStatus,
    token: str | None,
) -> StatusUpdateResponse:
    order = await backend.get_order(order_id, token=token)
    if not order:
        raise NotFound(f"Order '{order_id}' was not found.")
    if not principal.can_update_order(order):
        raise Forbidden("You cannot update this order.")

    current = parse_status(order.get("status"))
    changed = validate_transition(current, target)
    if changed:
        await backend.update_order_status(order_id, target.value, token=token)
        logger.info("Order %s: %s -> %s by %s", order_id, current.value, target.value, principal.uid)

    return StatusUpdateResponse(order_id=order_id, previous_status=current, status=target, changed=changed)
