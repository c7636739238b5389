"""Diagnostic mode: detection from the page URL and the debug-badge snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel

from .triggers import TriggerEngine, TriggerKind
from .utils import has_query_flag

if TYPE_CHECKING:
    from .widget import OfferWidget

DIAGNOSTIC_PARAMS = ("debug", "mysellkit_test")


def is_diagnostic_url(url: str) -> bool:
    return any(has_query_flag(url, name) for name in DIAGNOSTIC_PARAMS)


class DiagnosticStatus(BaseModel):
    version: str
    offer_id: str
    diagnostic: bool
    trigger: str
    state: str
    surface: str
    draft: bool
    purchased: bool
    session_id: Optional[str] = None

    def lines(self) -> list[str]:
        rows = [
            f"Sellkit v{self.version}",
            self.trigger,
            f"Status: {self.state}",
            f"Surface: {self.surface}",
        ]
        if self.draft:
            rows.append("Draft mode")
        if self.session_id:
            rows.append(f"Session: {self.session_id}")
        return rows


def describe_trigger(engine: Optional[TriggerEngine]) -> str:
    if engine is None:
        return "Trigger: not configured"
    spec = engine.spec
    if spec.kind == TriggerKind.SCROLL:
        current = engine.last_scroll_percent or 0.0
        return f"Scroll: {current:.0f}% / {spec.threshold:.0f}%"
    if spec.kind == TriggerKind.TIME:
        return f"Time: {engine.elapsed_seconds():.0f}s / {spec.threshold:.0f}s"
    if spec.kind == TriggerKind.EXIT_INTENT:
        return "Exit Intent"
    return "Manual Trigger"


def describe_status(widget: "OfferWidget") -> DiagnosticStatus:
    """Snapshot of what the widget has decided so far."""
    from . import __version__

    engine = widget.trigger
    config = widget.config
    return DiagnosticStatus(
        version=__version__,
        offer_id=widget.offer_id,
        diagnostic=widget.diagnostic,
        trigger=describe_trigger(engine),
        state="TRIGGERED" if engine is not None and engine.activated else "WAITING",
        surface=widget.visibility.surface.value,
        draft=bool(config is not None and not config.is_live),
        purchased=widget.ledger.has_purchased(widget.offer_id),
        session_id=widget.identity.get_session_id() if widget.diagnostic else None,
    )


__all__ = [
    "DIAGNOSTIC_PARAMS",
    "is_diagnostic_url",
    "DiagnosticStatus",
    "describe_trigger",
    "describe_status",
]
