"""
Campus Delivery: Request dependencies

Shopper state (cart, campus selection) lives in Redis slots namespaced by the
X-Client-Id header the storefront sends with every request.
"""
from fastapi import Depends, Header, Request

from campus_delivery.clients.storage import CampusSelection, ClientStorage, RedisStorage
from campus_delivery.core.config import Settings
from campus_delivery.core.errors import NotAuthenticated, ValidationFailure
from campus_delivery.models.cart import Cart
from campus_delivery.models.roles import Principal


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_client_storage(
    request: Request,
    x_client_id: str | None = Header(None, alias="X-Client-Id"),
) -> ClientStorage:
    if not x_client_id or not x_client_id.strip():
        raise ValidationFailure("Missing X-Client-Id header.")
    settings = request.app.state.settings
    return RedisStorage(
        request.app.state.clients.storage_redis,
        x_client_id.strip(),
        ttl_seconds=settings.CLIENT_STORAGE_TTL_SECONDS,
    )


def get_cart(storage: ClientStorage = Depends(get_client_storage)) -> Cart:
    return Cart(storage)


def get_selection(storage: ClientStorage = Depends(get_client_storage)) -> CampusSelection:
    return CampusSelection(storage)


def get_selected_campus_id(selection: CampusSelection = Depends(get_selection)) -> str | None:
    """Resolved here so async routes never read the sync store on the event loop."""
    return selection.campus_id


def get_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise NotAuthenticated()
    return principal


def get_token(request: Request) -> str | None:
    return getattr(request.state, "token", None)
