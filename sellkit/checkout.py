from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from .client import SellKitClient
from .clock import Clock
from .config import Settings, get_settings
from .events import EventReporter, EventType
from .exceptions import CheckoutSessionError, SellKitError
from .identity import IdentityManager
from .ledger import PurchaseLedger
from .log import log_checkout
from .page import NoticeKind, Page
from .schemas import (
    CheckoutOutcome,
    CheckoutRequest,
    CheckoutStatus,
    CtaState,
    OfferConfig,
    PurchaseToken,
)
from .storage import PersistencePort, ephemeral_key
from .utils import add_query_param, build_url, has_query_flag, strip_query_params
from .visibility import VisibilityController

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "mysellkit_success"
CANCEL_MARKER = "mysellkit_cancelled"
TOKEN_KEY = ephemeral_key("purchase_token")

DRAFT_NOTICE = "This product is in draft mode. Checkout is disabled."
CONNECTION_NOTICE = "Connection error. Please check your internet and try again."
CANCELLED_NOTICE = "Payment was not completed. You can try again anytime!"


def new_purchase_token(now: float) -> str:
    return f"pt_{int(now * 1000)}_{uuid.uuid4().hex[:12]}"


class ReturnSignal(str, enum.Enum):
    NONE = "none"
    SUCCESS = "success"
    CANCELLED = "cancelled"


@dataclass
class ReconcileOutcome:
    signal: ReturnSignal
    token: Optional[PurchaseToken] = None


class CheckoutHandoff:
    """Token-correlated round trip to the payment processor and back.

    ``attempt_checkout`` mints a token, asks the backend for a checkout
    target and navigates there; ``reconcile_return`` runs on the next load
    and reads the success or cancellation marker the processor sent the
    visitor back with.
    """

    def __init__(
        self,
        offer_id: str,
        *,
        client: SellKitClient,
        identity: IdentityManager,
        storage: PersistencePort,
        ledger: PurchaseLedger,
        reporter: EventReporter,
        page: Page,
        clock: Clock,
        visibility: Optional[VisibilityController] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.offer_id = offer_id
        self._client = client
        self._identity = identity
        self._storage = storage
        self._ledger = ledger
        self._reporter = reporter
        self._page = page
        self._clock = clock
        self._visibility = visibility
        self._settings = settings or get_settings()
        self.cta_state = CtaState.READY

    def outstanding_token(self) -> Optional[PurchaseToken]:
        raw = self._storage.get_ephemeral(TOKEN_KEY)
        if raw is None:
            return None
        try:
            return PurchaseToken.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding unreadable purchase token")
            return None

    def consume_token(self) -> Optional[PurchaseToken]:
        token = self.outstanding_token()
        self._storage.delete_ephemeral(TOKEN_KEY)
        return token

    def return_signal(self) -> ReturnSignal:
        url = self._page.url
        if has_query_flag(url, SUCCESS_MARKER):
            return ReturnSignal.SUCCESS
        if has_query_flag(url, CANCEL_MARKER):
            return ReturnSignal.CANCELLED
        return ReturnSignal.NONE

    def reconcile_return(self) -> ReconcileOutcome:
        signal = self.return_signal()
        if signal == ReturnSignal.NONE:
            return ReconcileOutcome(signal)

        token = self.consume_token()
        if signal == ReturnSignal.SUCCESS:
            self._ledger.mark_purchased(self.offer_id)
            if self._visibility is not None:
                self._visibility.hide_all()
            logger.info("Successful purchase detected for %s", self.offer_id)
        else:
            self._page.show_notice(CANCELLED_NOTICE, NoticeKind.ERROR)
            logger.info("Payment cancelled for %s", self.offer_id)

        self._page.replace_url(strip_query_params(self._page.url, SUCCESS_MARKER, CANCEL_MARKER))
        log_checkout(
            self.offer_id,
            signal.value,
            token=token.token if token else None,
        )
        return ReconcileOutcome(signal, token)

    async def attempt_checkout(
        self,
        config: OfferConfig,
        *,
        direct: bool = False,
    ) -> CheckoutOutcome:
        if not config.is_live:
            self._page.show_notice(DRAFT_NOTICE, NoticeKind.ERROR)
            log_checkout(self.offer_id, CheckoutStatus.UNAVAILABLE.value)
            return CheckoutOutcome(status=CheckoutStatus.UNAVAILABLE, error=DRAFT_NOTICE)
        if self.cta_state == CtaState.LOADING:
            return CheckoutOutcome(status=CheckoutStatus.BUSY)

        token = PurchaseToken(token=new_purchase_token(self._clock.now()), minted_at=self._clock.now())
        self._reporter.report(
            EventType.CLICK,
            purchase_token=token.token,
            direct_checkout=True if direct else None,
        )

        request = CheckoutRequest(
            popup_id=None if direct else self.offer_id,
            product_id=config.product_id or (self.offer_id if direct else None),
            session_id=self._identity.get_session_id(),
            purchase_token=token.token,
            success_url=build_url(self._settings.checkout_base, "payment-processing", token=token.token),
            cancel_url=add_query_param(self._page.url, CANCEL_MARKER, "true"),
        )

        self.cta_state = CtaState.LOADING
        try:
            session = await self._client.create_checkout_session(request)
        except CheckoutSessionError as exc:
            return self._fail(token, str(exc), exc.trace_id)
        except SellKitError as exc:
            logger.error("Checkout request failed: %s", exc.with_trace())
            return self._fail(token, CONNECTION_NOTICE, exc.trace_id)

        self._storage.set_ephemeral(TOKEN_KEY, token.model_dump())
        if self._visibility is not None:
            self._visibility.hide_overlay()
        log_checkout(self.offer_id, CheckoutStatus.REDIRECTED.value, token=token.token)
        self._page.navigate(session.checkout_url)
        return CheckoutOutcome(
            status=CheckoutStatus.REDIRECTED,
            token=token,
            checkout_url=session.checkout_url,
        )

    def _fail(self, token: PurchaseToken, message: str, trace_id: Optional[str]) -> CheckoutOutcome:
        self._page.show_notice(message, NoticeKind.ERROR)
        self.cta_state = CtaState.READY
        log_checkout(self.offer_id, CheckoutStatus.FAILED.value, token=token.token, trace_id=trace_id)
        return CheckoutOutcome(
            status=CheckoutStatus.FAILED,
            token=token,
            error=message,
            trace_id=trace_id,
        )


async def direct_checkout(
    product_id: str,
    *,
    client: SellKitClient,
    identity: IdentityManager,
    storage: PersistencePort,
    ledger: PurchaseLedger,
    reporter: EventReporter,
    page: Page,
    clock: Clock,
    settings: Optional[Settings] = None,
) -> CheckoutOutcome:
    """Checkout button with no widget: fetch the product, then hand off."""
    handoff = CheckoutHandoff(
        product_id,
        client=client,
        identity=identity,
        storage=storage,
        ledger=ledger,
        reporter=reporter,
        page=page,
        clock=clock,
        settings=settings,
    )
    try:
        config = await client.fetch_offer_config(product_id)
    except SellKitError as exc:
        logger.error("Direct checkout config failed: %s", exc.with_trace())
        page.show_notice(CONNECTION_NOTICE, NoticeKind.ERROR)
        return CheckoutOutcome(status=CheckoutStatus.FAILED, error=str(exc), trace_id=exc.trace_id)
    reporter.product_id = config.product_id or product_id
    return await handoff.attempt_checkout(config, direct=True)


__all__ = [
    "SUCCESS_MARKER",
    "CANCEL_MARKER",
    "TOKEN_KEY",
    "DRAFT_NOTICE",
    "CONNECTION_NOTICE",
    "CANCELLED_NOTICE",
    "new_purchase_token",
    "ReturnSignal",
    "ReconcileOutcome",
    "CheckoutHandoff",
    "direct_checkout",
]
