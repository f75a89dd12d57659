"""
Campus Delivery: Delivery fee resolution

Precedence: the campus's own settings entry, then the global per-person fee,
then the built-in default. Every lookup goes to the backend; nothing is cached.
"""
import logging
from typing import Any

from campus_delivery.clients.backend import BackendClient
from campus_delivery.core.config import Settings
from campus_delivery.core.errors import UpstreamError
from campus_delivery.models.fees import FeeConfig

logger = logging.getLogger(__name__)


def default_fee_config(settings: Settings) -> FeeConfig:
    return FeeConfig(
        per_person_charge=settings.DEFAULT_DELIVERY_FEE,
        payee_name=settings.DEFAULT_ACCOUNT_TITLE,
        bank_name=settings.DEFAULT_BANK_NAME,
        account_number=settings.DEFAULT_ACCOUNT_NUMBER,
    )


def _positive_fee(value: Any) -> float | None:
    """Non-numeric and non-positive fees are ignored."""
    if isinstance(value, bool):
        return None
    try:
        fee = float(value)
    except (TypeError, ValueError):
        return None
    return fee if fee > 0 else None


def _campus_entry(entries: list[dict], campus_id: str) -> dict | None:
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if str(entry.get("campusId") or entry.get("campus_id") or "") == str(campus_id):
            return entry
    return None


def fee_config_from_campus_entry(entry: dict, base: FeeConfig) -> FeeConfig | None:
    fee = _positive_fee(entry.get("deliveryChargePerPerson"))
    if fee is None:
        return None
    return FeeConfig(
        per_person_charge=fee,
        payee_name=entry.get("accountTitle") or base.payee_name,
        bank_name=entry.get("bankName") or base.bank_name,
        account_number=entry.get("accountNumber") or base.account_number,
    )


async def resolve_fee_config(
    backend: BackendClient,
    campus_id: str | None,
    settings: Settings,
) -> FeeConfig:
    default = default_fee_config(settings)

    if campus_id:
        try:
            entries = await backend.list_campus_settings()
        except UpstreamError as exc:
            logger.warning("Campus settings unavailable for %s, trying global fee: %s", campus_id, exc)
        else:
            entry = _campus_entry(entries, campus_id)
            if entry is not None:
                config = fee_config_from_campus_entry(entry, default)
                if config is not None:
                    return config
                logger.warning("Ignoring invalid delivery charge in campus settings for %s", campus_id)

    try:
        global_fee = await backend.get_global_delivery_fee()
    except UpstreamError as exc:
        logger.warning("Global delivery fee unavailable, using default: %s", exc)
        return default

    fee = _positive_fee(global_fee.get("deliveryFee"))
    if fee is None:
        return default
    return FeeConfig(
        per_person_charge=fee,
        payee_name=default.payee_name,
        bank_name=default.bank_name,
        account_number=default.account_number,
    )
