"""The host page as seen by the widget.

The widget never touches a real browser. It reads the page URL, viewport and
user agent, receives scroll and pointer-leave signals, and asks the host to
rewrite the URL, navigate away, or show a transient notice. Hosts subclass
``Page`` to bridge those calls to whatever actually renders the page.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class Channel(str, enum.Enum):
    SCROLL = "scroll"
    POINTER_LEAVE = "pointer_leave"


class NoticeKind(str, enum.Enum):
    ERROR = "error"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class ScrollSignal:
    scroll_y: float
    document_height: float
    viewport_height: float


@dataclass(frozen=True)
class PointerLeaveSignal:
    client_y: float


@dataclass(frozen=True)
class Notice:
    message: str
    kind: NoticeKind = NoticeKind.ERROR


class Subscription:
    """Handle returned by ``SignalHub.subscribe``; detach with ``unsubscribe``."""

    def __init__(self, hub: "SignalHub", channel: Channel, callback: Callable[[Any], None]) -> None:
        self._hub = hub
        self.channel = channel
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._hub._remove(self)


class SignalHub:
    def __init__(self) -> None:
        self._subscribers: Dict[Channel, List[Subscription]] = {}

    def subscribe(self, channel: Channel, callback: Callable[[Any], None]) -> Subscription:
        subscription = Subscription(self, channel, callback)
        self._subscribers.setdefault(channel, []).append(subscription)
        return subscription

    def emit(self, channel: Channel, payload: Any) -> int:
        delivered = 0
        # Callbacks may unsubscribe while we iterate.
        for subscription in list(self._subscribers.get(channel, [])):
            if not subscription.active:
                continue
            subscription.callback(payload)
            delivered += 1
        return delivered

    def listener_count(self, channel: Channel) -> int:
        return len(self._subscribers.get(channel, []))

    def _remove(self, subscription: Subscription) -> None:
        listeners = self._subscribers.get(subscription.channel, [])
        if subscription in listeners:
            listeners.remove(subscription)


@dataclass
class Page:
    url: str
    user_agent: str = "sellkit"
    viewport_width: int = 1280
    signals: SignalHub = field(default_factory=SignalHub)
    notices: List[Notice] = field(default_factory=list)
    navigations: List[str] = field(default_factory=list)
    url_history: List[str] = field(default_factory=list)

    def replace_url(self, url: str) -> None:
        """Rewrite the address without reloading (history.replaceState)."""
        self.url_history.append(self.url)
        self.url = url

    def navigate(self, url: str) -> None:
        """Full-page redirect; nothing meaningful runs in this page afterwards."""
        logger.info("Navigating away to %s", url)
        self.navigations.append(url)

    def show_notice(self, message: str, kind: NoticeKind = NoticeKind.ERROR) -> None:
        self.notices.append(Notice(message=message, kind=kind))

    def scroll(self, scroll_y: float, document_height: float, viewport_height: float) -> int:
        return self.signals.emit(Channel.SCROLL, ScrollSignal(scroll_y, document_height, viewport_height))

    def pointer_leave(self, client_y: float) -> int:
        return self.signals.emit(Channel.POINTER_LEAVE, PointerLeaveSignal(client_y))

    @property
    def last_notice(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None


__all__ = [
    "Channel",
    "NoticeKind",
    "ScrollSignal",
    "PointerLeaveSignal",
    "Notice",
    "Subscription",
    "SignalHub",
    "Page",
]
