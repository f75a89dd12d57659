"""
Campus Delivery: Delivery fee API
"""
from fastapi import APIRouter, Depends, Query

from campus_delivery.api.deps import get_app_settings
from campus_delivery.clients.backend import BackendClient
from campus_delivery.core.clients import get_backend
from campus_delivery.core.config import Settings
from campus_delivery.ops.fee_config import resolve_fee_config

router = APIRouter(prefix="/fees", tags=["fees"])


@router.get("")
async def get_fee_config(
    campus_id: str | None = Query(None, alias="campusId"),
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    fee_config = await resolve_fee_config(backend, campus_id, settings)
    return fee_config.to_dict()
