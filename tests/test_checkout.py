import threading
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from conftest import CAMPUS, UNIVERSITY

from campus_delivery.clients.storage import (
    CART_ITEMS_KEY,
    SELECTED_CAMPUS_KEY,
    SELECTED_UNIVERSITY_KEY,
    CampusSelection,
    MemoryStorage,
)
from campus_delivery.core.errors import ErrorType, UpstreamError, ValidationFailure
from campus_delivery.models.cart import Cart
from campus_delivery.ops.checkout import CheckoutOrchestrator, format_cart_items, format_timestamp
from campus_delivery.schemas.checkout import CheckoutRequest

NOON = datetime(2024, 5, 15, 12, 0, tzinfo=ZoneInfo("Asia/Karachi"))


def form(**overrides) -> CheckoutRequest:
    data = {
        "firstName": "Ayesha",
        "lastName": "Khan",
        "room": "B-12",
        "phone": "03001234567",
        "email": "f220001@cfd.nu.edu.pk",
        "gender": "female",
        "persons": 3,
        "paymentMethod": "Cash on Delivery",
        "recaptchaToken": "token",
    }
    data.update(overrides)
    return CheckoutRequest.model_validate(data)


@pytest.fixture
def storage() -> MemoryStorage:
    storage = MemoryStorage()
    selection = CampusSelection(storage)
    selection.select_university(UNIVERSITY)
    selection.select_campus(CAMPUS)
    cart = Cart(storage)
    cart.add("Zinger", 125, "KFC", campus_ref="c1", restaurant_ref="r1")
    cart.add("Zinger", 125, "KFC", campus_ref="c1", restaurant_ref="r1")
    cart.add("Chai", 150, "Khan Dhaba", campus_ref="c1", restaurant_ref="r2")
    return storage


@pytest.fixture
def orchestrator(clients, settings) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(clients, settings)


async def place(orchestrator, storage, **overrides):
    return await orchestrator.place_order(form(**overrides), Cart(storage), CampusSelection(storage), now=NOON)


def test_format_cart_items_groups_by_restaurant(storage):
    text = format_cart_items(Cart(storage).lines)
    assert text == (
        "📍 KFC:\n  - Zinger (x2) - Rs 250"
        "\n\n"
        "📍 Khan Dhaba:\n  - Chai (x1) - Rs 150"
    )


def test_format_timestamp_uses_order_timezone():
    moment = datetime(2024, 5, 15, 7, 0, tzinfo=ZoneInfo("UTC"))
    assert format_timestamp(moment, "Asia/Karachi") == "Wednesday, 15 May 2024, 12:00:00 PM"


@pytest.mark.asyncio
async def test_successful_checkout_sequence(orchestrator, storage, downstream):
    result = await place(orchestrator, storage)

    assert downstream.calls == ["sheets", "backend"]
    assert (result.item_total, result.delivery_charge, result.grand_total) == (400, 450, 850)
    assert result.sheet_tab == "FAST_NUCES_Chiniot-Faisalabad"
    assert result.projection == "submitted"
    assert storage.get_item(CART_ITEMS_KEY) is None

    tab, row = downstream.sheet_rows[0]
    assert tab == "FAST_NUCES_Chiniot-Faisalabad"
    assert row[:3] == ["FAST NUCES", "Chiniot-Faisalabad", "Ayesha"]
    assert row[13] == "Wednesday, 15 May 2024, 12:00:00 PM"

    submitted = downstream.submitted[0]
    assert submitted["status"] == "pending"
    assert submitted["campusId"] == "c1"
    assert submitted["restaurantIds"] == ["r1", "r2"]
    assert submitted["restaurantNames"] == ["KFC", "Khan Dhaba"]


@pytest.mark.asyncio
async def test_online_payment_uploads_screenshot_first(orchestrator, storage, downstream):
    result = await place(
        orchestrator,
        storage,
        paymentMethod="Online Payment",
        accountTitle="Ayesha Khan",
        bankName="Meezan",
        screenshot="data:image/png;base64,AAAA",
    )

    assert downstream.calls == ["upload", "sheets", "backend"]
    assert downstream.uploads == [{"file": "data:image/png;base64,AAAA", "upload_preset": "orders"}]
    assert result.screenshot_url == "https://cdn.example.com/receipt.png"
    assert downstream.sheet_rows[0][1][16] == "https://cdn.example.com/receipt.png"


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides,message", [
    ({"firstName": ""}, "Please fill in all required fields."),
    ({"email": "someone@gmail.com"}, "Email must end with @cfd.nu.edu.pk"),
    ({"persons": 0}, "Number of persons must be at least 1."),
    ({"recaptchaToken": " "}, "Please complete the reCAPTCHA check."),
    ({"paymentMethod": "Online Payment", "bankName": "Meezan"}, "Payment screenshot is required. Account title is required"),
])
async def test_validation_failures_write_nothing(orchestrator, storage, downstream, overrides, message):
    with pytest.raises(ValidationFailure) as exc_info:
        await place(orchestrator, storage, **overrides)

    assert exc_info.value.message == message
    assert downstream.calls == []
    assert len(Cart(storage)) == 2


@pytest.mark.asyncio
async def test_empty_cart_is_rejected(orchestrator, downstream):
    storage = MemoryStorage()
    with pytest.raises(ValidationFailure, match="Your cart is empty."):
        await place(orchestrator, storage)
    assert downstream.calls == []


@pytest.mark.asyncio
async def test_missing_campus_selection_is_rejected(orchestrator, storage, downstream):
    CampusSelection(storage).clear()
    with pytest.raises(ValidationFailure, match="select your university and campus"):
        await place(orchestrator, storage)
    assert downstream.calls == []


@pytest.mark.asyncio
async def test_cart_from_another_campus_is_rejected(orchestrator, storage, downstream):
    Cart(storage).add("Biryani", 300, "Lahore Bites", campus_ref="c2")
    with pytest.raises(ValidationFailure, match="another campus"):
        await place(orchestrator, storage)
    assert downstream.calls == []


@pytest.mark.asyncio
async def test_closed_restaurant_blocks_checkout(orchestrator, storage, downstream):
    Cart(storage).add(
        "Karahi", 1200, "Night Owl", campus_ref="c1",
        restaurant_meta={"openTime": "8:00 PM", "closeTime": "2:00 AM"},
    )
    with pytest.raises(ValidationFailure, match="Currently closed: Night Owl"):
        await place(orchestrator, storage)
    assert downstream.calls == []


@pytest.mark.asyncio
async def test_recaptcha_rejection(clients, settings, storage, downstream):
    settings.RECAPTCHA_VERIFY_ENABLED = True
    downstream.recaptcha_success = False
    orchestrator = CheckoutOrchestrator(clients, settings)

    with pytest.raises(ValidationFailure, match="reCAPTCHA verification failed"):
        await place(orchestrator, storage)
    assert downstream.calls == ["recaptcha"]


@pytest.mark.asyncio
async def test_upload_failure_aborts(orchestrator, storage, downstream):
    downstream.fail.add("upload")
    with pytest.raises(UpstreamError) as exc_info:
        await place(
            orchestrator,
            storage,
            paymentMethod="Online Payment",
            accountTitle="Ayesha Khan",
            bankName="Meezan",
            screenshot="data:image/png;base64,AAAA",
        )

    assert exc_info.value.message == "Screenshot upload failed. Try again."
    assert downstream.calls == ["upload"]
    assert len(Cart(storage)) == 2


@pytest.mark.asyncio
async def test_sheet_failure_keeps_cart_and_skips_backend(orchestrator, storage, downstream):
    downstream.fail.add("sheets")
    with pytest.raises(UpstreamError) as exc_info:
        await place(orchestrator, storage)

    assert exc_info.value.normalized.type == ErrorType.SERVER
    assert exc_info.value.message == "Failed to place order."
    assert downstream.calls == ["sheets"]
    assert len(Cart(storage)) == 2


@pytest.mark.asyncio
async def test_backend_failure_still_succeeds(orchestrator, storage, downstream):
    downstream.fail.add("backend")
    result = await place(orchestrator, storage)

    assert result.success is True
    assert result.projection == "failed"
    assert downstream.calls == ["sheets", "backend"]
    assert len(Cart(storage)) == 0


@pytest.mark.asyncio
async def test_queued_projection(clients, settings, storage, downstream):
    settings.ORDER_PROJECTION_MODE = "queued"
    queued = []
    orchestrator = CheckoutOrchestrator(clients, settings, enqueue=queued.append)

    result = await place(orchestrator, storage)

    assert result.projection == "queued"
    assert downstream.calls == ["sheets"]
    assert queued[0]["grandTotal"] == 850


@pytest.mark.asyncio
async def test_queue_outage_does_not_fail_checkout(clients, settings, storage, downstream):
    settings.ORDER_PROJECTION_MODE = "queued"

    def broken(order):
        raise ConnectionError("broker down")

    orchestrator = CheckoutOrchestrator(clients, settings, enqueue=broken)
    result = await place(orchestrator, storage)

    assert result.projection == "failed"
    assert len(Cart(storage)) == 0


@pytest.mark.asyncio
async def test_campus_fee_applies_to_checkout(orchestrator, storage, downstream):
    downstream.campus_settings = [{"campusId": "c1", "deliveryChargePerPerson": 100}]
    result = await place(orchestrator, storage)
    assert (result.delivery_charge, result.grand_total) == (300, 700)


class ThreadRecordingStorage(MemoryStorage):
    """Remembers which threads touched the store."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.threads: set[int] = set()

    def get_item(self, key):
        self.threads.add(threading.get_ident())
        return super().get_item(key)

    def remove_item(self, key):
        self.threads.add(threading.get_ident())
        super().remove_item(key)

    def update(self, key, change):
        self.threads.add(threading.get_ident())
        super().update(key, change)


@pytest.mark.asyncio
async def test_checkout_keeps_client_storage_off_the_event_loop(orchestrator, storage):
    keys = (CART_ITEMS_KEY, SELECTED_UNIVERSITY_KEY, SELECTED_CAMPUS_KEY)
    recording = ThreadRecordingStorage({key: storage.get_item(key) for key in keys})
    cart, selection = Cart(recording), CampusSelection(recording)
    recording.threads.clear()
    loop_thread = threading.get_ident()

    result = await orchestrator.place_order(form(), cart, selection, now=NOON)

    assert result.grand_total == 850
    assert recording.threads
    assert loop_thread not in recording.threads
    assert recording.get_item(CART_ITEMS_KEY) is None
