import json

import httpx
import pytest

from sellkit.client import SellKitClient
from sellkit.clock import ManualClock
from sellkit.config import refresh_settings
from sellkit.page import Page
from sellkit.storage import InMemoryPersistence
from sellkit.widget import OfferWidget

CHECKOUT_URL = "https://pay.test/session/cs_123"


class FakeBackend:
    """In-process stand-in for the config, tracking and checkout endpoints."""

    def __init__(self):
        self.configs = {}
        self.checkout_body = {"response": {"success": "yes", "checkout_url": CHECKOUT_URL}}
        self.checkout_status = 200
        self.checkout_exc = None
        self.tracking_status = 200
        self.requests = []
        self.tracked = []
        self.checkout_requests = []

    def add_offer(self, offer_id="offer-1", **fields):
        body = {
            "is_live": "yes",
            "product_id": "prod-1",
            "trigger_type": "time",
            "trigger_value": 5,
            "persistent_mode": "no",
            "title": "Launch Kit",
            "price": "29",
        }
        body.update(fields)
        self.configs[offer_id] = body
        return body

    def config_requests(self):
        return [request for request in self.requests if request.url.path.endswith("/get-popup-config")]

    def handler(self, request):
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/get-popup-config"):
            body = self.configs.get(request.url.params.get("popup_id"))
            if body is None:
                return httpx.Response(200, json={"response": {"success": "no"}})
            return httpx.Response(200, json={"response": {"success": "yes", **body}})
        if path.endswith("/track-event"):
            self.tracked.append(json.loads(request.content))
            return httpx.Response(self.tracking_status, json={})
        if path.endswith("/create-checkout-session"):
            self.checkout_requests.append(json.loads(request.content))
            if self.checkout_exc is not None:
                raise self.checkout_exc
            return httpx.Response(self.checkout_status, json=self.checkout_body)
        return httpx.Response(404)

    def client(self, settings):
        return SellKitClient(settings=settings, transport=httpx.MockTransport(self.handler))


@pytest.fixture()
def test_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("SELLKIT_API_BASE", "https://backend.test/api/1.1/wf")
    monkeypatch.setenv("SELLKIT_CHECKOUT_BASE", "https://shop.test")
    monkeypatch.setenv("SELLKIT_DATABASE_URL", f"sqlite:///{tmp_path / 'sellkit.db'}")
    monkeypatch.setenv("SELLKIT_REQUEST_TIMEOUT_SECONDS", "2")
    return refresh_settings()


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def make_widget(test_settings, backend):
    def _make(
        offer_id="offer-1",
        *,
        url="https://shop.test/landing",
        storage=None,
        clock=None,
        viewport_width=1280,
        diagnostic=None,
    ):
        page = Page(url=url, viewport_width=viewport_width)
        return OfferWidget(
            offer_id,
            page=page,
            client=backend.client(test_settings),
            storage=storage if storage is not None else InMemoryPersistence(),
            clock=clock if clock is not None else ManualClock(),
            settings=test_settings,
            diagnostic=diagnostic,
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    yield
    refresh_settings()
