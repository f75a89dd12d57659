"""
Campus Delivery: Checkout API

A retried submission carrying the same Idempotency-Key is answered by
IdempotencyMiddleware without reaching this handler.
"""
from fastapi import APIRouter, Depends

from campus_delivery.api.deps import get_app_settings, get_cart, get_selection
from campus_delivery.clients.storage import CampusSelection
from campus_delivery.core.clients import AppClients, get_clients
from campus_delivery.core.config import Settings
from campus_delivery.models.cart import Cart
from campus_delivery.ops.checkout import CheckoutOrchestrator
from campus_delivery.schemas.checkout import CheckoutRequest, CheckoutResponse

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=CheckoutResponse)
async def checkout(
    payload: CheckoutRequest,
    cart: Cart = Depends(get_cart),
    selection: CampusSelection = Depends(get_selection),
    clients: AppClients = Depends(get_clients),
    settings: Settings = Depends(get_app_settings),
):
    orchestrator = CheckoutOrchestrator(clients, settings)
    return await orchestrator.place_order(payload, cart, selection)
