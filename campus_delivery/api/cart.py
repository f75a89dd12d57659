"""
Campus Delivery: Cart API

Cart and session storage is synchronous Redis, so these handlers are plain
functions and run in the threadpool. The async totals route gets everything
it needs from the store through sync dependencies.
"""
from fastapi import APIRouter, Depends, Query, status

from campus_delivery.api.deps import get_app_settings, get_cart, get_selected_campus_id, get_selection
from campus_delivery.clients.backend import BackendClient
from campus_delivery.clients.storage import CampusSelection
from campus_delivery.core.clients import get_backend
from campus_delivery.core.config import Settings
from campus_delivery.core.errors import ConflictFailure, NotFound
from campus_delivery.models.cart import Cart
from campus_delivery.models.fees import compute_totals
from campus_delivery.ops.fee_config import resolve_fee_config
from campus_delivery.schemas.cart import CartItemRequest, CartLineKey, CartResponse

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(items=cart.to_list(), item_count=cart.item_count(), total_cost=cart.total_cost())


@router.get("", response_model=CartResponse)
def get_cart_contents(cart: Cart = Depends(get_cart)):
    return _cart_response(cart)


@router.post("/items", response_model=CartResponse)
def add_item(
    payload: CartItemRequest,
    cart: Cart = Depends(get_cart),
    selection: CampusSelection = Depends(get_selection),
):
    campus_id = payload.campus_id or selection.campus_id
    selected = selection.campus_id
    if selected and campus_id and campus_id != selected:
        raise ConflictFailure("This item belongs to a different campus than the one selected.")
    if campus_id and any(ref != campus_id for ref in cart.campus_refs()):
        raise ConflictFailure("Your cart already holds items from another campus.")

    cart.add(
        payload.name,
        payload.price,
        payload.restaurant_name,
        campus_ref=campus_id,
        restaurant_ref=payload.restaurant_id,
        restaurant_meta=payload.restaurant,
    )
    return _cart_response(cart)


@router.post("/items/increment", response_model=CartResponse)
def increment_item(payload: CartLineKey, cart: Cart = Depends(get_cart)):
    if cart.increment(payload.name, payload.restaurant_name) is None:
        raise NotFound("Item is not in the cart.")
    return _cart_response(cart)


@router.post("/items/decrement", response_model=CartResponse)
def decrement_item(payload: CartLineKey, cart: Cart = Depends(get_cart)):
    cart.decrement(payload.name, payload.restaurant_name)
    return _cart_response(cart)


@router.delete("/items", response_model=CartResponse)
def remove_item(payload: CartLineKey, cart: Cart = Depends(get_cart)):
    cart.remove(payload.name, payload.restaurant_name)
    return _cart_response(cart)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(cart: Cart = Depends(get_cart)):
    cart.clear()


@router.get("/totals")
async def get_totals(
    persons: int = Query(1, ge=1),
    cart: Cart = Depends(get_cart),
    campus_id: str | None = Depends(get_selected_campus_id),
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    fee_config = await resolve_fee_config(backend, campus_id, settings)
    totals = compute_totals(cart.total_cost(), persons, fee_config)
    return {**totals.to_dict(), **fee_config.to_dict(), "persons": persons}
