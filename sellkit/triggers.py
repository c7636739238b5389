from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from .clock import Clock, TimerHandle
from .config import Settings, get_settings
from .page import Channel, PointerLeaveSignal, ScrollSignal, SignalHub, Subscription

logger = logging.getLogger(__name__)


class TriggerKind(str, enum.Enum):
    SCROLL = "scroll"
    TIME = "time"
    EXIT_INTENT = "exit_intent"
    MANUAL = "click"


_KIND_ALIASES = {
    "scroll": TriggerKind.SCROLL,
    "time": TriggerKind.TIME,
    "exit_intent": TriggerKind.EXIT_INTENT,
    "exit": TriggerKind.EXIT_INTENT,
    "click": TriggerKind.MANUAL,
    "manual": TriggerKind.MANUAL,
}


class TriggerState(str, enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    ACTIVATED = "activated"


@dataclass(frozen=True)
class TriggerSpec:
    kind: TriggerKind
    threshold: Optional[float] = None

    @property
    def automatic(self) -> bool:
        return self.kind != TriggerKind.MANUAL


def resolve_trigger(
    trigger_type: Optional[str],
    trigger_value: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> TriggerSpec:
    """Map configured trigger fields to a ``TriggerSpec``; unknown kinds become ``time(5)``."""
    resolved_settings = settings or get_settings()
    kind = _KIND_ALIASES.get((trigger_type or "").strip().lower())
    if kind is None:
        logger.warning("Unknown trigger type %r, defaulting to time trigger", trigger_type)
        return TriggerSpec(TriggerKind.TIME, resolved_settings.default_time_trigger_seconds)
    if kind == TriggerKind.SCROLL:
        threshold = trigger_value if trigger_value is not None else resolved_settings.default_scroll_percent
        return TriggerSpec(kind, float(threshold))
    if kind == TriggerKind.TIME:
        threshold = trigger_value if trigger_value is not None else resolved_settings.default_time_trigger_seconds
        return TriggerSpec(kind, max(0.0, float(threshold)))
    return TriggerSpec(kind)


def scroll_percent(signal: ScrollSignal) -> Optional[float]:
    """Scroll depth in percent, or None when the page cannot scroll."""
    denominator = signal.document_height - signal.viewport_height
    if not math.isfinite(denominator) or denominator <= 0:
        return None
    percent = signal.scroll_y / denominator * 100
    return percent if math.isfinite(percent) else None


class TriggerEngine:
    """Single-use activation for one offer on one page load.

    ``arm`` registers exactly one listener (scroll, pointer-leave or timer).
    The first qualifying signal moves the engine to ``ACTIVATED``, detaches
    the listener and calls ``on_activate`` once. Manual triggers never arm;
    the host opens the surface directly.
    """

    def __init__(
        self,
        spec: TriggerSpec,
        *,
        signals: SignalHub,
        clock: Clock,
        on_activate: Callable[[TriggerSpec], None],
        exit_threshold_px: Optional[int] = None,
    ) -> None:
        self.spec = spec
        self._signals = signals
        self._clock = clock
        self._on_activate = on_activate
        self._exit_threshold_px = (
            exit_threshold_px if exit_threshold_px is not None else get_settings().exit_intent_threshold_px
        )
        self.state = TriggerState.IDLE
        self.last_scroll_percent: Optional[float] = None
        self.armed_at: Optional[float] = None
        self._subscription: Optional[Subscription] = None
        self._timer: Optional[TimerHandle] = None

    @property
    def activated(self) -> bool:
        return self.state == TriggerState.ACTIVATED

    @property
    def armed(self) -> bool:
        return self.state == TriggerState.ARMED

    def elapsed_seconds(self) -> float:
        if self.armed_at is None:
            return 0.0
        return max(0.0, self._clock.now() - self.armed_at)

    def arm(self) -> bool:
        if self.state != TriggerState.IDLE:
            return False
        if self.spec.kind == TriggerKind.MANUAL:
            logger.debug("Manual trigger: waiting for the host to open the surface")
            return False

        self.armed_at = self._clock.now()
        self.state = TriggerState.ARMED
        if self.spec.kind == TriggerKind.SCROLL:
            self._subscription = self._signals.subscribe(Channel.SCROLL, self._on_scroll)
        elif self.spec.kind == TriggerKind.EXIT_INTENT:
            self._subscription = self._signals.subscribe(Channel.POINTER_LEAVE, self._on_pointer_leave)
        else:
            self._timer = self._clock.call_later(float(self.spec.threshold or 0.0), self._on_timer)
        logger.debug("Trigger armed: %s threshold=%s", self.spec.kind.value, self.spec.threshold)
        return True

    def disarm(self) -> None:
        self._detach()
        if self.state == TriggerState.ARMED:
            self.state = TriggerState.IDLE

    def _detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _activate(self) -> None:
        if self.state != TriggerState.ARMED:
            return
        self.state = TriggerState.ACTIVATED
        self._subscription, subscription = None, self._subscription
        if subscription is not None:
            subscription.unsubscribe()
        self._timer = None
        logger.debug("Trigger activated: %s", self.spec.kind.value)
        self._on_activate(self.spec)

    def _on_scroll(self, signal: ScrollSignal) -> None:
        percent = scroll_percent(signal)
        if percent is None:
            return
        self.last_scroll_percent = percent
        if percent >= float(self.spec.threshold or 0.0):
            self._activate()

    def _on_pointer_leave(self, signal: PointerLeaveSignal) -> None:
        if signal.client_y > self._exit_threshold_px:
            return
        self._activate()

    def _on_timer(self) -> None:
        self._timer = None
        self._activate()


__all__ = [
    "TriggerKind",
    "TriggerState",
    "TriggerSpec",
    "resolve_trigger",
    "scroll_percent",
    "TriggerEngine",
]
