"""
Campus Delivery: Shopper session (selected university and campus)
"""
from fastapi import APIRouter, Depends, status

from campus_delivery.api.deps import get_cart, get_selection
from campus_delivery.clients.storage import CampusSelection
from campus_delivery.core.errors import ValidationFailure
from campus_delivery.models.cart import Cart
from campus_delivery.schemas.cart import SelectionRequest

router = APIRouter(prefix="/session", tags=["session"])


@router.get("")
def get_session(selection: CampusSelection = Depends(get_selection)):
    return selection.as_dict()


@router.put("/university")
def select_university(payload: SelectionRequest, selection: CampusSelection = Depends(get_selection)):
    selection.select_university(payload.model_dump())
    return selection.as_dict()


@router.put("/campus")
def select_campus(
    payload: SelectionRequest,
    selection: CampusSelection = Depends(get_selection),
    cart: Cart = Depends(get_cart),
):
    """Switching campus empties a cart holding another campus's items."""
    university = selection.university
    campus = payload.model_dump()
    if university is None:
        raise ValidationFailure("Please select a university first.")
    if campus.get("universityId") not in (None, university.get("id")):
        raise ValidationFailure("Campus does not belong to the selected university.")

    if any(ref != payload.id for ref in cart.campus_refs()):
        cart.clear()
    selection.select_campus(campus)
    return selection.as_dict()


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_session(selection: CampusSelection = Depends(get_selection)):
    selection.clear()
