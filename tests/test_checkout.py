import asyncio
import re

import httpx

from sellkit.checkout import (
    CANCELLED_NOTICE,
    CONNECTION_NOTICE,
    DRAFT_NOTICE,
    TOKEN_KEY,
    ReturnSignal,
    direct_checkout,
    new_purchase_token,
)
from sellkit.clock import ManualClock
from sellkit.events import EventReporter, EventType
from sellkit.identity import IdentityManager
from sellkit.ledger import PurchaseLedger
from sellkit.page import Page
from sellkit.schemas import CheckoutStatus, CtaState, OfferConfig
from sellkit.storage import InMemoryPersistence
from sellkit.visibility import Surface
from sellkit.widget import InitStatus


def _opened(widget):
    async def scenario():
        await widget.init()
        widget.open_manually()
        outcome = await widget.click_cta()
        await widget.reporter.drain()
        return outcome

    return asyncio.run(scenario())


def test_new_purchase_token_format():
    assert re.fullmatch(r"pt_1700000000000_[0-9a-f]{12}", new_purchase_token(1_700_000_000.0))


def test_checkout_redirects_and_persists_token(make_widget, backend):
    backend.add_offer(persistent_mode="yes")
    widget = make_widget()

    outcome = _opened(widget)

    assert outcome.status == CheckoutStatus.REDIRECTED
    assert widget.page.navigations == [backend.checkout_body["response"]["checkout_url"]]
    assert widget.checkout.outstanding_token() == outcome.token
    # The overlay closes for the redirect without a close report or reminder.
    assert widget.visibility.surface == Surface.HIDDEN
    assert widget.reporter.count(EventType.CLOSE) == 0

    request = backend.checkout_requests[0]
    token = outcome.token.token
    assert request["popup_id"] == "offer-1"
    assert request["product_id"] == "prod-1"
    assert request["session_id"] == widget.identity.get_session_id()
    assert request["purchase_token"] == token
    assert request["success_url"] == f"https://shop.test/payment-processing?token={token}"
    assert request["cancel_url"] == "https://shop.test/landing?mysellkit_cancelled=true"

    clicks = [event for event in backend.tracked if event["event_type"] == "click"]
    assert len(clicks) == 1
    assert clicks[0]["purchase_token"] == token
    assert "direct_checkout" not in clicks[0]


def test_not_live_offer_refuses_checkout_without_network(make_widget, backend):
    widget = make_widget()

    outcome = asyncio.run(widget.checkout.attempt_checkout(OfferConfig(is_live=False)))

    assert outcome.status == CheckoutStatus.UNAVAILABLE
    assert widget.page.last_notice.message == DRAFT_NOTICE
    assert backend.requests == []
    assert widget.reporter.get_events() == []


def test_backend_refusal_restores_cta(make_widget, backend):
    backend.add_offer()
    backend.checkout_body = {"response": {"success": "no", "error": "Card declined"}}
    widget = make_widget()

    outcome = _opened(widget)

    assert outcome.status == CheckoutStatus.FAILED
    assert outcome.error == "Unable to start checkout. Card declined"
    assert widget.page.last_notice.message == outcome.error
    assert widget.checkout.cta_state == CtaState.READY
    assert widget.checkout.outstanding_token() is None
    assert widget.page.navigations == []
    assert widget.visibility.surface == Surface.OVERLAY


def test_transport_failure_shows_connection_notice_and_allows_retry(make_widget, backend):
    backend.add_offer()
    backend.checkout_exc = httpx.ConnectError("offline")
    widget = make_widget()

    outcome = _opened(widget)
    assert outcome.status == CheckoutStatus.FAILED
    assert widget.page.last_notice.message == CONNECTION_NOTICE
    assert len(backend.checkout_requests) == 1

    backend.checkout_exc = None
    retry = asyncio.run(widget.click_cta())
    assert retry.status == CheckoutStatus.REDIRECTED
    assert retry.token != outcome.token


def test_checkout_in_flight_is_not_repeated(make_widget, backend):
    backend.add_offer()
    widget = make_widget()
    asyncio.run(widget.init())
    widget.checkout.cta_state = CtaState.LOADING

    outcome = asyncio.run(widget.click_cta())

    assert outcome.status == CheckoutStatus.BUSY
    assert backend.checkout_requests == []


def test_success_return_marks_purchase_and_consumes_token(make_widget, backend):
    backend.add_offer()
    storage = InMemoryPersistence()
    storage.set_ephemeral(TOKEN_KEY, {"token": "pt_1_abc", "minted_at": 1.0})
    widget = make_widget(url="https://shop.test/landing?ref=ad&mysellkit_success=true", storage=storage)

    outcome = asyncio.run(widget.init())

    assert outcome.status == InitStatus.PURCHASED
    assert outcome.reconcile.signal == ReturnSignal.SUCCESS
    assert outcome.reconcile.token.token == "pt_1_abc"
    assert storage.get_ephemeral(TOKEN_KEY) is None
    assert widget.ledger.has_purchased("offer-1")
    assert widget.page.url == "https://shop.test/landing?ref=ad"
    assert widget.page.navigations == []
    assert backend.requests == []


def test_success_return_without_token_still_records_purchase(make_widget):
    widget = make_widget(url="https://shop.test/landing?mysellkit_success=true")

    outcome = widget.checkout.reconcile_return()

    assert outcome.signal == ReturnSignal.SUCCESS
    assert outcome.token is None
    assert widget.ledger.has_purchased("offer-1")


def test_cancel_return_shows_notice_and_strips_marker(make_widget):
    storage = InMemoryPersistence()
    storage.set_ephemeral(TOKEN_KEY, {"token": "pt_1_abc", "minted_at": 1.0})
    widget = make_widget(url="https://shop.test/landing?mysellkit_cancelled=true", storage=storage)

    outcome = widget.checkout.reconcile_return()

    assert outcome.signal == ReturnSignal.CANCELLED
    assert widget.page.last_notice.message == CANCELLED_NOTICE
    assert widget.page.url == "https://shop.test/landing"
    assert widget.page.url_history == ["https://shop.test/landing?mysellkit_cancelled=true"]
    assert storage.get_ephemeral(TOKEN_KEY) is None
    assert not widget.ledger.has_purchased("offer-1")


def test_cancel_return_keeps_host_query_untouched(make_widget):
    widget = make_widget(url="https://shop.test/p?preview&q=a%20b&mysellkit_cancelled=true")

    outcome = widget.checkout.reconcile_return()

    assert outcome.signal == ReturnSignal.CANCELLED
    assert widget.page.url == "https://shop.test/p?preview&q=a%20b"


def test_success_marker_wins_over_cancel_marker(make_widget):
    widget = make_widget(url="https://shop.test/p?mysellkit_cancelled=true&mysellkit_success=true")

    outcome = widget.checkout.reconcile_return()

    assert outcome.signal == ReturnSignal.SUCCESS
    assert widget.page.url == "https://shop.test/p"
    assert widget.page.notices == []


def test_plain_load_leaves_token_alone(make_widget):
    storage = InMemoryPersistence()
    storage.set_ephemeral(TOKEN_KEY, {"token": "pt_1_abc", "minted_at": 1.0})
    widget = make_widget(storage=storage)

    outcome = widget.checkout.reconcile_return()

    assert outcome.signal == ReturnSignal.NONE
    assert widget.checkout.outstanding_token().token == "pt_1_abc"
    assert widget.page.url_history == []


def _direct_stack(backend, settings):
    storage = InMemoryPersistence()
    clock = ManualClock()
    page = Page(url="https://shop.test/pricing")
    client = backend.client(settings)
    identity = IdentityManager(storage, clock)
    reporter = EventReporter(client, identity=identity, page=page)
    return {
        "client": client,
        "identity": identity,
        "storage": storage,
        "ledger": PurchaseLedger(storage),
        "reporter": reporter,
        "page": page,
        "clock": clock,
        "settings": settings,
    }


def test_direct_checkout_marks_click_and_omits_offer(test_settings, backend):
    backend.add_offer("prod-9", product_id="prod-9")
    stack = _direct_stack(backend, test_settings)

    async def scenario():
        outcome = await direct_checkout("prod-9", **stack)
        await stack["reporter"].drain()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.status == CheckoutStatus.REDIRECTED
    request = backend.checkout_requests[0]
    assert "popup_id" not in request
    assert request["product_id"] == "prod-9"
    assert request["cancel_url"] == "https://shop.test/pricing?mysellkit_cancelled=true"
    assert backend.tracked[0]["direct_checkout"] is True
    assert backend.tracked[0]["product_id"] == "prod-9"


def test_direct_checkout_config_failure(test_settings, backend):
    stack = _direct_stack(backend, test_settings)

    outcome = asyncio.run(direct_checkout("missing", **stack))

    assert outcome.status == CheckoutStatus.FAILED
    assert stack["page"].last_notice.message == CONNECTION_NOTICE
    assert backend.checkout_requests == []


def test_direct_checkout_refuses_draft_product(test_settings, backend):
    backend.add_offer("prod-9", is_live="no")
    stack = _direct_stack(backend, test_settings)

    outcome = asyncio.run(direct_checkout("prod-9", **stack))

    assert outcome.status == CheckoutStatus.UNAVAILABLE
    assert stack["page"].last_notice.message == DRAFT_NOTICE
