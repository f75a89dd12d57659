"""
Campus Delivery: Checkout orchestration

Flow:
  1. Validate the form, the cart and the session (nothing is written on failure)
  2. Upload the payment screenshot (online payment only)
  3. Append the order row to the campus tab of the spreadsheet ledger
  4. Copy the order to the backend, inline or through the projection queue
  5. Clear the cart

The spreadsheet row is the order of record: a failure there aborts the
checkout and keeps the cart, while a failed backend copy is only logged.
"""
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.concurrency import run_in_threadpool

from campus_delivery.clients.sheets import build_order_row, campus_tab_name
from campus_delivery.clients.storage import CampusSelection
from campus_delivery.core.clients import AppClients
from campus_delivery.core.config import Settings
from campus_delivery.core.errors import (
    AppError,
    NormalizedError,
    UpstreamError,
    ValidationFailure,
    validation_error,
)
from campus_delivery.models.availability import is_open
from campus_delivery.models.cart import Cart, CartLine
from campus_delivery.models.fees import OrderTotals, compute_totals
from campus_delivery.models.order_status import OrderStatus
from campus_delivery.ops.fee_config import resolve_fee_config
from campus_delivery.schemas.checkout import ONLINE_PAYMENT, CheckoutRequest, CheckoutResponse
from campus_delivery.tasks.projection import project_order

logger = logging.getLogger(__name__)

PROJECTION_QUEUED = "queued"


def _format_amount(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)


def format_cart_items(lines: list[CartLine]) -> str:
    """Group lines per restaurant, in first-seen order, as the ledger shows them."""
    grouped: dict[str, list[str]] = {}
    for line in lines:
        grouped.setdefault(line.restaurant_label, []).append(
            f"{line.item_name} (x{line.quantity}) - Rs {_format_amount(line.line_total)}"
        )
    return "\n\n".join(
        f"📍 {restaurant}:\n  - " + "\n  - ".join(entries)
        for restaurant, entries in grouped.items()
    )


def format_timestamp(moment: datetime, timezone: str) -> str:
    local = moment.astimezone(ZoneInfo(timezone))
    return local.strftime("%A, %d %B %Y, %I:%M:%S %p")


def _enqueue_projection(order: dict) -> None:
    project_order.delay(order)


class CheckoutOrchestrator:
    def __init__(
        self,
        clients: AppClients,
        settings: Settings,
        enqueue: Callable[[dict], Any] | None = None,
    ):
        self.clients = clients
        self.settings = settings
        self._enqueue = enqueue or _enqueue_projection

    # ── Validation ───────────────────────────────────────────────────────────

    def validate_form(self, form: CheckoutRequest, cart: Cart) -> None:
        if len(cart) == 0:
            raise ValidationFailure("Your cart is empty.")

        required = [form.first_name, form.last_name, form.phone, form.email, form.payment_method]
        if not all(value.strip() for value in required):
            raise ValidationFailure("Please fill in all required fields.")

        domain = self.settings.ALLOWED_EMAIL_DOMAIN
        if domain and not form.email.strip().lower().endswith(domain.lower()):
            raise ValidationFailure(f"Email must end with {domain}")

        if form.persons < 1:
            raise ValidationFailure("Number of persons must be at least 1.")

        if form.payment_method == ONLINE_PAYMENT:
            errors = {
                "screenshot": None if form.screenshot else "Payment screenshot is required",
                "accountTitle": None if form.account_title.strip() else "Account title is required",
                "bankName": None if form.bank_name.strip() else "Bank name is required",
            }
            if any(errors.values()):
                raise validation_error(errors)

        if not form.recaptcha_token.strip():
            raise ValidationFailure("Please complete the reCAPTCHA check.")

    def validate_session(self, cart: Cart, selection: CampusSelection) -> tuple[dict, dict]:
        university, campus = selection.university, selection.campus
        if not university or not campus:
            raise ValidationFailure("Please select your university and campus.")

        campus_id = selection.campus_id
        foreign = {ref for ref in cart.campus_refs() if ref != campus_id}
        if foreign:
            raise ValidationFailure(
                "Your cart contains items from another campus. Please clear the cart and try again."
            )
        return university, campus

    def validate_open(self, cart: Cart, now: datetime) -> None:
        local_now = now.astimezone(ZoneInfo(self.settings.ORDER_TIMEZONE))
        closed = []
        for line in cart:
            if line.restaurant_meta is None:
                continue
            if not is_open(line.availability, local_now) and line.restaurant_label not in closed:
                closed.append(line.restaurant_label)
        if closed:
            raise ValidationFailure(f"Currently closed: {', '.join(closed)}. Please remove their items.")

    async def verify_recaptcha(self, token: str) -> None:
        if not self.settings.RECAPTCHA_VERIFY_ENABLED:
            return
        if not await self.clients.recaptcha.verify(token):
            raise ValidationFailure("reCAPTCHA verification failed.")

    # ── Sinks ────────────────────────────────────────────────────────────────

    async def upload_screenshot(self, form: CheckoutRequest) -> str:
        if form.payment_method != ONLINE_PAYMENT or not form.screenshot:
            return ""
        try:
            return await self.clients.media.upload(form.screenshot)
        except UpstreamError as exc:
            raise UpstreamError(
                NormalizedError(type=exc.error_type, message="Screenshot upload failed. Try again."),
                upstream_status=exc.upstream_status,
            )

    async def write_ledger(self, tab_name: str, row: list) -> None:
        try:
            await self.clients.sheets.append_order(tab_name, row)
        except UpstreamError as exc:
            raise UpstreamError(
                NormalizedError(type=exc.error_type, message="Failed to place order."),
                upstream_status=exc.upstream_status,
            )

    async def project(self, order: dict) -> str:
        """Best-effort copy to the backend; never fails the checkout."""
        if self.settings.ORDER_PROJECTION_MODE == PROJECTION_QUEUED:
            try:
                self._enqueue(order)
            except Exception:
                logger.exception("Could not enqueue order projection for %s", order.get("email"))
                return "failed"
            return "queued"

        try:
            await self.clients.backend.submit_order(order)
        except AppError as exc:
            logger.warning("Backend order copy failed for %s: %s", order.get("email"), exc.message)
            return "failed"
        return "submitted"

    # ── Orchestration ────────────────────────────────────────────────────────

    def build_order(
        self,
        form: CheckoutRequest,
        cart: Cart,
        university: dict,
        campus: dict,
        totals: OrderTotals,
        screenshot_url: str,
        timestamp: str,
    ) -> dict[str, Any]:
        lines = cart.lines
        restaurant_names = list(dict.fromkeys(line.restaurant_label for line in lines))
        restaurant_ids = list(dict.fromkeys(line.restaurant_ref for line in lines if line.restaurant_ref))
        return {
            "firstName": form.first_name,
            "lastName": form.last_name,
            "room": form.room,
            "phone": form.phone,
            "email": form.email,
            "gender": form.gender,
            "persons": form.persons,
            "paymentMethod": form.payment_method,
            "accountTitle": form.account_title,
            "bankName": form.bank_name,
            "specialInstruction": form.special_instruction,
            "recaptchaToken": form.recaptcha_token,
            "screenshotURL": screenshot_url,
            "itemTotal": totals.item_total,
            "deliveryCharge": totals.delivery_charge,
            "grandTotal": totals.grand_total,
            "cartItems": format_cart_items(lines),
            "cartItemsArray": [
                {
                    "name": line.item_name,
                    "price": line.unit_price,
                    "quantity": line.quantity,
                    "restaurantName": line.restaurant_label,
                    "restaurantId": line.restaurant_ref,
                }
                for line in lines
            ],
            "restaurantNames": restaurant_names,
            "restaurantIds": restaurant_ids,
            "universityId": university.get("id"),
            "universityName": university.get("name"),
            "campusId": campus.get("id"),
            "campusName": campus.get("name"),
            "status": OrderStatus.PENDING.value,
            "timestamp": timestamp,
        }

    async def place_order(
        self,
        form: CheckoutRequest,
        cart: Cart,
        selection: CampusSelection,
        now: datetime | None = None,
    ) -> CheckoutResponse:
        now = now or datetime.now(ZoneInfo(self.settings.ORDER_TIMEZONE))

        self.validate_form(form, cart)
        # client storage is sync Redis; keep it off the event loop
        university, campus = await run_in_threadpool(self.validate_session, cart, selection)
        self.validate_open(cart, now)
        await self.verify_recaptcha(form.recaptcha_token)

        fee_config = await resolve_fee_config(self.clients.backend, campus.get("id"), self.settings)
        totals = compute_totals(cart.total_cost(), form.persons, fee_config)

        screenshot_url = await self.upload_screenshot(form)

        order = self.build_order(
            form,
            cart,
            university,
            campus,
            totals,
            screenshot_url,
            format_timestamp(now, self.settings.ORDER_TIMEZONE),
        )
        university_name = university.get("name") or ""
        campus_name = campus.get("name") or ""
        tab_name = campus_tab_name(university_name, campus_name)
        await self.write_ledger(tab_name, build_order_row(order, university_name, campus_name))
        logger.info("Order for %s written to ledger tab %s", form.email, tab_name)

        projection = await self.project(order)
        await run_in_threadpool(cart.clear)

        return CheckoutResponse(
            item_total=totals.item_total,
            delivery_charge=totals.delivery_charge,
            grand_total=totals.grand_total,
            screenshot_url=screenshot_url,
            sheet_tab=tab_name,
            projection=projection,
        )
