from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, List, Optional, Protocol

from .clock import Clock
from .config import Settings, get_settings
from .events import EventReporter, EventType
from .ledger import PurchaseLedger
from .log import log_decision
from .schemas import DisplayMode, OfferConfig
from .storage import PersistencePort, durable_key, ephemeral_key
from .triggers import TriggerKind, TriggerSpec

if TYPE_CHECKING:
    from .triggers import TriggerEngine

logger = logging.getLogger(__name__)

IMPRESSION_FIELD = "impression"
SEEN_FIELD = "seen"


class Surface(str, enum.Enum):
    HIDDEN = "hidden"
    OVERLAY = "overlay"
    REMINDER = "reminder"


class EntryPath(str, enum.Enum):
    SUPPRESSED = "suppressed"
    REMINDER = "reminder"
    IDLE = "idle"
    COOLDOWN = "cooldown"
    MANUAL = "manual"
    ARMED = "armed"


class SurfaceView(Protocol):
    def render(self, surface: Surface, config: Optional[OfferConfig]) -> None: ...


class RecordingView:
    """Keeps every rendered surface; the default when the host supplies no view."""

    def __init__(self) -> None:
        self.history: List[Surface] = []

    def render(self, surface: Surface, config: Optional[OfferConfig]) -> None:
        self.history.append(surface)


class VisibilityController:
    """Owns the single visible surface of one offer.

    The overlay and the reminder are two values of one field, so they can
    never be visible together. Automatic openings respect the purchase
    ledger, the per-session impression and the 24h cooldown; manual and
    reminder-click openings respect only the ledger.
    """

    def __init__(
        self,
        offer_id: str,
        *,
        storage: PersistencePort,
        ledger: PurchaseLedger,
        clock: Clock,
        reporter: EventReporter,
        view: Optional[SurfaceView] = None,
        diagnostic: bool = False,
        viewport_width: Optional[int] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.offer_id = offer_id
        self._storage = storage
        self._ledger = ledger
        self._clock = clock
        self._reporter = reporter
        self.view: SurfaceView = view or RecordingView()
        self.diagnostic = diagnostic
        self.viewport_width = viewport_width
        self._settings = settings or get_settings()
        self.config: Optional[OfferConfig] = None
        self.surface = Surface.HIDDEN
        # Diagnostic mode keeps the impression in memory only.
        self._impressed_in_memory = False

    @property
    def persistent_mode(self) -> bool:
        return bool(self.config and self.config.persistent_mode)

    @property
    def purchased(self) -> bool:
        return self._ledger.has_purchased(self.offer_id)

    def has_impression(self) -> bool:
        if self.diagnostic:
            return self._impressed_in_memory
        return bool(self._storage.get_ephemeral(ephemeral_key(IMPRESSION_FIELD, self.offer_id)))

    def cooldown_remaining(self) -> float:
        last_seen = self._storage.get_durable(durable_key(SEEN_FIELD, self.offer_id))
        if last_seen is None:
            return 0.0
        try:
            age = self._clock.now() - float(last_seen)
        except (TypeError, ValueError):
            return 0.0
        return max(0.0, self._settings.cooldown_seconds - age)

    def cooldown_active(self) -> bool:
        return self.cooldown_remaining() > 0

    def automatic_allowed(self) -> bool:
        if self.purchased:
            return False
        if self.has_impression():
            return False
        if self.diagnostic:
            return True
        return not self.cooldown_active()

    def decide_entry_path(self, trigger: "TriggerEngine") -> EntryPath:
        if self.purchased:
            log_decision(self.offer_id, "entry_suppressed_purchased", diagnostic=self.diagnostic)
            return EntryPath.SUPPRESSED

        if self.has_impression():
            if self.persistent_mode and not self.diagnostic:
                self.show_reminder()
                log_decision(self.offer_id, "entry_reminder", diagnostic=self.diagnostic)
                return EntryPath.REMINDER
            log_decision(self.offer_id, "entry_idle_after_impression", diagnostic=self.diagnostic)
            return EntryPath.IDLE

        if trigger.spec.kind == TriggerKind.MANUAL:
            log_decision(self.offer_id, "entry_manual", diagnostic=self.diagnostic)
            return EntryPath.MANUAL

        if not self.diagnostic and self.cooldown_active():
            log_decision(self.offer_id, "entry_cooldown", remaining_s=round(self.cooldown_remaining(), 1))
            return EntryPath.COOLDOWN

        trigger.arm()
        log_decision(
            self.offer_id,
            "entry_armed",
            diagnostic=self.diagnostic,
            trigger=trigger.spec.kind.value,
            threshold=trigger.spec.threshold,
        )
        return EntryPath.ARMED

    def on_trigger_activated(self, spec: TriggerSpec) -> bool:
        """Automatic path: a trigger fired."""
        if not self.automatic_allowed():
            log_decision(self.offer_id, "activation_suppressed", diagnostic=self.diagnostic, trigger=spec.kind.value)
            return False
        if self._prefers_reminder():
            self._record_impression(report=False)
            log_decision(self.offer_id, "activation_reminder", diagnostic=self.diagnostic, trigger=spec.kind.value)
            return self.show_reminder()
        return self.open_overlay()

    def _prefers_reminder(self) -> bool:
        if self.config is None:
            return False
        if self.config.display_mode == DisplayMode.REMINDER_ONLY:
            return True
        return bool(
            self.config.mobile_floating
            and self.viewport_width is not None
            and self.viewport_width <= self._settings.mobile_breakpoint_px
        )

    def open_overlay(self, *, manual: bool = False) -> bool:
        if self.surface == Surface.OVERLAY:
            return False
        if self.purchased:
            log_decision(self.offer_id, "open_refused_purchased", diagnostic=self.diagnostic, manual=manual)
            return False

        self._set_surface(Surface.OVERLAY)
        if not self.has_impression():
            self._record_impression(report=True)
        if not self.diagnostic:
            self._storage.set_durable(durable_key(SEEN_FIELD, self.offer_id), self._clock.now())
        log_decision(self.offer_id, "overlay_opened", diagnostic=self.diagnostic, manual=manual)
        return True

    def close_overlay(self) -> bool:
        if self.surface != Surface.OVERLAY:
            return False
        self._reporter.report(EventType.CLOSE)
        self.hide_overlay()
        if self.persistent_mode:
            self.show_reminder()
        return True

    def hide_overlay(self) -> bool:
        """Hide without a close report or reminder, as before a redirect."""
        if self.surface != Surface.OVERLAY:
            return False
        self._set_surface(Surface.HIDDEN)
        return True

    def show_reminder(self) -> bool:
        if self.surface != Surface.HIDDEN:
            return False
        if self.purchased:
            return False
        self._set_surface(Surface.REMINDER)
        return True

    def hide_reminder(self) -> bool:
        if self.surface != Surface.REMINDER:
            return False
        self._set_surface(Surface.HIDDEN)
        return True

    def click_reminder(self) -> bool:
        if not self.hide_reminder():
            return False
        return self.open_overlay(manual=True)

    def hide_all(self) -> None:
        self._set_surface(Surface.HIDDEN)

    def _record_impression(self, *, report: bool) -> None:
        if self.diagnostic:
            self._impressed_in_memory = True
        else:
            self._storage.set_ephemeral(ephemeral_key(IMPRESSION_FIELD, self.offer_id), True)
        if report:
            extra = {}
            if self.config is not None and self.config.display_mode == DisplayMode.FULLSCREEN:
                extra["display_mode"] = self.config.display_mode.value
            self._reporter.report(EventType.IMPRESSION, **extra)

    def _set_surface(self, surface: Surface) -> None:
        if surface == self.surface:
            return
        logger.debug("Surface %s -> %s (%s)", self.surface.value, surface.value, self.offer_id)
        self.surface = surface
        self.view.render(surface, self.config)


__all__ = [
    "IMPRESSION_FIELD",
    "SEEN_FIELD",
    "Surface",
    "EntryPath",
    "SurfaceView",
    "RecordingView",
    "VisibilityController",
]
