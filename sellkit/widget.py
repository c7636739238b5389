from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .checkout import CheckoutHandoff, ReconcileOutcome, ReturnSignal
from .client import SellKitClient
from .clock import Clock, SystemClock
from .config import Settings, get_settings
from .diagnostics import DiagnosticStatus, describe_status, is_diagnostic_url
from .events import EventReporter
from .exceptions import SellKitError
from .identity import IdentityManager
from .ledger import PurchaseLedger
from .log import log_decision
from .page import Page
from .schemas import CheckoutOutcome, CheckoutStatus, OfferConfig
from .storage import InMemoryPersistence, PersistencePort
from .triggers import TriggerEngine, resolve_trigger
from .visibility import EntryPath, SurfaceView, VisibilityController

logger = logging.getLogger(__name__)


class InitStatus(str, enum.Enum):
    READY = "ready"
    PURCHASED = "purchased"
    MISSING_OFFER = "missing_offer"
    CONFIG_FAILED = "config_failed"
    NOT_LIVE = "not_live"


@dataclass
class InitOutcome:
    status: InitStatus
    entry: Optional[EntryPath] = None
    reconcile: Optional[ReconcileOutcome] = None
    error: Optional[str] = None
    trace_id: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.status == InitStatus.READY


class OfferWidget:
    """Everything one embedded offer needs for one page load.

    ``init`` runs once per page load, strictly in order: return
    reconciliation, purchase check, configuration fetch, live check and
    entry-path decision. The remaining methods are what the host wires to
    its surface buttons.
    """

    def __init__(
        self,
        offer_id: Optional[str],
        *,
        page: Page,
        client: Optional[SellKitClient] = None,
        storage: Optional[PersistencePort] = None,
        clock: Optional[Clock] = None,
        view: Optional[SurfaceView] = None,
        settings: Optional[Settings] = None,
        diagnostic: Optional[bool] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.offer_id = (offer_id or "").strip()
        self.page = page
        self.diagnostic = is_diagnostic_url(page.url) if diagnostic is None else bool(diagnostic)
        if self.diagnostic:
            logger.info("Diagnostic mode for offer %s", self.offer_id or "<missing>")

        self._owns_client = client is None
        self.client = client or SellKitClient(settings=self.settings)
        self.storage = storage or InMemoryPersistence()
        self.clock = clock or SystemClock()

        self.identity = IdentityManager(
            self.storage,
            self.clock,
            diagnostic=self.diagnostic,
            ttl_seconds=self.settings.session_ttl_seconds,
        )
        self.ledger = PurchaseLedger(self.storage)
        self.reporter = EventReporter(
            self.client,
            identity=self.identity,
            page=page,
            clock=self.clock,
            offer_id=self.offer_id or None,
        )
        self.visibility = VisibilityController(
            self.offer_id,
            storage=self.storage,
            ledger=self.ledger,
            clock=self.clock,
            reporter=self.reporter,
            view=view,
            diagnostic=self.diagnostic,
            viewport_width=page.viewport_width,
            settings=self.settings,
        )
        self.checkout = CheckoutHandoff(
            self.offer_id,
            client=self.client,
            identity=self.identity,
            storage=self.storage,
            ledger=self.ledger,
            reporter=self.reporter,
            page=page,
            clock=self.clock,
            visibility=self.visibility,
            settings=self.settings,
        )
        self.trigger: Optional[TriggerEngine] = None

    @property
    def config(self) -> Optional[OfferConfig]:
        return self.visibility.config

    async def init(self) -> InitOutcome:
        if self.trigger is not None:
            # Re-initialization: detach the previous listener or timer first.
            self.trigger.disarm()
            self.trigger = None

        if not self.offer_id:
            logger.error("No offer id supplied; widget not initialized")
            return InitOutcome(status=InitStatus.MISSING_OFFER)

        reconcile = self.checkout.reconcile_return()

        if self.ledger.has_purchased(self.offer_id):
            log_decision(self.offer_id, "init_aborted_purchased", diagnostic=self.diagnostic)
            return InitOutcome(status=InitStatus.PURCHASED, reconcile=reconcile)

        try:
            config = await self.client.fetch_offer_config(self.offer_id)
        except SellKitError as exc:
            logger.error(
                "Failed to load offer config",
                extra={"data": {"offer_id": self.offer_id, "error": exc.with_trace()}},
            )
            return InitOutcome(
                status=InitStatus.CONFIG_FAILED,
                reconcile=reconcile,
                error=str(exc),
                trace_id=exc.trace_id,
            )

        if not config.is_live and not self.diagnostic:
            log_decision(self.offer_id, "init_aborted_not_live")
            return InitOutcome(status=InitStatus.NOT_LIVE, reconcile=reconcile)
        if not config.is_live:
            logger.info("Offer %s is in draft; previewing in diagnostic mode", self.offer_id)

        self.visibility.config = config
        self.reporter.product_id = config.product_id
        self.trigger = TriggerEngine(
            resolve_trigger(config.trigger_type, config.trigger_value, self.settings),
            signals=self.page.signals,
            clock=self.clock,
            on_activate=self.visibility.on_trigger_activated,
            exit_threshold_px=self.settings.exit_intent_threshold_px,
        )

        if reconcile.signal == ReturnSignal.CANCELLED and config.persistent_mode:
            # Back from an abandoned checkout: offer the reminder, don't re-arm.
            self.visibility.show_reminder()
            log_decision(self.offer_id, "entry_reminder_after_cancel", diagnostic=self.diagnostic)
            entry = EntryPath.REMINDER
        else:
            entry = self.visibility.decide_entry_path(self.trigger)
        return InitOutcome(status=InitStatus.READY, entry=entry, reconcile=reconcile)

    def open_manually(self) -> bool:
        """Host-driven open for manual triggers; only the purchase gate applies."""
        if self.config is None:
            logger.warning("open_manually called before a successful init")
            return False
        return self.visibility.open_overlay(manual=True)

    def close(self) -> bool:
        return self.visibility.close_overlay()

    def click_reminder(self) -> bool:
        return self.visibility.click_reminder()

    async def click_cta(self) -> CheckoutOutcome:
        if self.config is None:
            return CheckoutOutcome(status=CheckoutStatus.UNAVAILABLE, error="Offer is not initialized")
        return await self.checkout.attempt_checkout(self.config)

    def status(self) -> DiagnosticStatus:
        return describe_status(self)

    def dispose(self) -> None:
        if self.trigger is not None:
            self.trigger.disarm()

    async def aclose(self) -> None:
        self.dispose()
        await self.reporter.drain()
        if self._owns_client:
            await self.client.aclose()


__all__ = ["InitStatus", "InitOutcome", "OfferWidget"]
