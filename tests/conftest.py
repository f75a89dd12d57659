"""
Shared fixtures: an in-process Redis and a scripted downstream (backend,
spreadsheet ledger, media CDN, reCAPTCHA) served through httpx.MockTransport.
"""
import json
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import fakeredis
import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio
from jose import jwt

from campus_delivery.clients.backend import BackendClient
from campus_delivery.clients.media import MediaUploader
from campus_delivery.clients.recaptcha import RecaptchaVerifier
from campus_delivery.clients.sheets import SheetsClient
from campus_delivery.core.clients import AppClients
from campus_delivery.core.config import Settings
from campus_delivery.main import create_app

TEST_SECRET = "test-secret"
CLIENT_ID = "browser-1"

UNIVERSITY = {"id": "u1", "name": "FAST NUCES"}
CAMPUS = {"id": "c1", "name": "Chiniot-Faisalabad", "universityId": "u1"}


class Downstream:
    """Scripted collaborators. ``fail`` names the sinks that should answer 500."""

    def __init__(self):
        self.universities = [UNIVERSITY]
        self.campuses = [CAMPUS, {"id": "c2", "name": "Lahore", "universityId": "u1"}]
        self.restaurants = []
        self.menu_items = []
        self.campus_settings = []
        self.global_fee = {}
        self.orders: dict[str, dict] = {}
        self.submitted: list[dict] = []
        self.sheet_rows: list[tuple[str, list]] = []
        self.uploads: list[dict] = []
        self.status_updates: list[tuple[str, str]] = []
        self.calls: list[str] = []
        self.fail: set[str] = set()
        self.recaptcha_success = True

    @staticmethod
    def _error(status: int = 500) -> httpx.Response:
        return httpx.Response(status, json={"error": "boom"})

    def backend(self, request: httpx.Request) -> httpx.Response:
        path, method = request.url.path, request.method
        params = request.url.params

        if path == "/":
            return httpx.Response(200, text="ok")
        if path == "/api/universities":
            return httpx.Response(200, json=self.universities)
        if path == "/api/campuses":
            uid = params.get("universityId")
            return httpx.Response(200, json=[c for c in self.campuses if not uid or c["universityId"] == uid])
        if path == "/api/restaurants":
            return httpx.Response(200, json=[r for r in self.restaurants if r.get("campusId") == params.get("campusId")])
        if path == "/api/menu-items":
            return httpx.Response(200, json=[m for m in self.menu_items if m.get("restaurantId") == params.get("restaurantId")])
        if path == "/api/mart-items":
            return httpx.Response(200, json=[])
        if path == "/api/campus-settings":
            if "campus_settings" in self.fail:
                return self._error()
            return httpx.Response(200, json=self.campus_settings)
        if path == "/api/global-delivery-fee":
            if "global_fee" in self.fail:
                return self._error()
            return httpx.Response(200, json=self.global_fee)
        if path == "/api/orders/all":
            return httpx.Response(200, json=list(self.orders.values()))
        if path.startswith("/api/orders/restaurant/"):
            rid = path.rsplit("/", 1)[1]
            return httpx.Response(200, json=[
                o for o in self.orders.values()
                if rid in (o.get("restaurantIds") or [])
                or any(line.get("restaurantId") == rid for line in o.get("cartItemsArray") or [])
            ])
        if path.startswith("/api/orders/"):
            order_id = path.rsplit("/", 1)[1]
            order = self.orders.get(order_id)
            if order is None:
                return self._error(404)
            if method == "PATCH":
                status = json.loads(request.content)["status"]
                self.status_updates.append((order_id, status))
                order["status"] = status
            return httpx.Response(200, json=order)
        if path == "/submit-order" and method == "POST":
            self.calls.append("backend")
            if "backend" in self.fail:
                return self._error()
            self.submitted.append(json.loads(request.content))
            return httpx.Response(200, json={"message": "Order submitted"})
        return self._error(404)

    def sheets(self, request: httpx.Request) -> httpx.Response:
        self.calls.append("sheets")
        if "sheets" in self.fail:
            return self._error()
        tab = request.url.path.rsplit("/", 1)[1]
        self.sheet_rows.append((tab, json.loads(request.content)["values"][0]))
        return httpx.Response(200, json={"updates": {"updatedRows": 1}})

    def media(self, request: httpx.Request) -> httpx.Response:
        self.calls.append("upload")
        if "upload" in self.fail:
            return self._error()
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.uploads.append(form)
        return httpx.Response(200, json={"secure_url": "https://cdn.example.com/receipt.png"})

    def recaptcha(self, request: httpx.Request) -> httpx.Response:
        self.calls.append("recaptcha")
        return httpx.Response(200, json={"success": self.recaptcha_success})

    def build_clients(self) -> AppClients:
        return AppClients(
            redis=fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True),
            storage_redis=fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True),
            backend=BackendClient("http://backend", transport=httpx.MockTransport(self.backend)),
            sheets=SheetsClient("http://sheets", transport=httpx.MockTransport(self.sheets)),
            media=MediaUploader("http://media/upload", "orders", transport=httpx.MockTransport(self.media)),
            recaptcha=RecaptchaVerifier(
                "http://recaptcha/verify", "secret", transport=httpx.MockTransport(self.recaptcha)
            ),
        )


def make_token(role: str = "superAdmin", sub: str = "admin-1", **claims) -> str:
    payload = {
        "sub": sub,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def bearer(role: str = "superAdmin", **claims) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(role, **claims)}"}


# ─── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def settings() -> Settings:
    return Settings(
        JWT_SECRET_KEY=TEST_SECRET,
        METRICS_ENABLED=False,
        ALLOWED_EMAIL_DOMAIN="@cfd.nu.edu.pk",
        ORDER_PROJECTION_MODE="inline",
        RECAPTCHA_VERIFY_ENABLED=False,
    )


@pytest.fixture
def downstream() -> Downstream:
    return Downstream()


@pytest_asyncio.fixture
async def clients(downstream):
    app_clients = downstream.build_clients()
    yield app_clients
    await app_clients.aclose()


@pytest_asyncio.fixture
async def api(settings, clients):
    app = create_app(settings, clients)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Client-Id": CLIENT_ID},
    ) as client:
        yield client
