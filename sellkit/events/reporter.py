from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, List, Optional, Set

from ..exceptions import SellKitError
from .models import TrackEvent
from .types import EventType

if TYPE_CHECKING:
    from ..client import SellKitClient
    from ..clock import Clock
    from ..identity import IdentityManager
    from ..page import Page

logger = logging.getLogger(__name__)


class EventReporter:
    """Best-effort engagement reporting.

    ``report`` builds the event synchronously and hands delivery to a
    background task; failures are logged and never retried or surfaced.
    """

    def __init__(
        self,
        client: "SellKitClient",
        *,
        identity: "IdentityManager",
        page: "Page",
        clock: Optional["Clock"] = None,
        offer_id: Optional[str] = None,
        product_id: Optional[str] = None,
        max_events: int | None = 500,
    ) -> None:
        self._client = client
        self._identity = identity
        self._page = page
        self._clock = clock
        self.offer_id = offer_id
        self.product_id = product_id
        self._events: List[TrackEvent] = []
        self._max_events = max_events
        self._pending: Set[asyncio.Task] = set()

    def report(self, event_type: EventType, **extra: Any) -> TrackEvent:
        if self._clock is not None:
            extra.setdefault("timestamp", int(self._clock.now() * 1000))
        event = TrackEvent(
            event_type=event_type,
            popup_id=self.offer_id,
            product_id=self.product_id,
            session_id=self._identity.get_session_id(),
            page_url=self._page.url,
            user_agent=self._page.user_agent,
            **{key: value for key, value in extra.items() if value is not None},
        )
        self._events.append(event)
        if self._max_events is not None and len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; dropping %s event", event_type.value)
            return event
        task = loop.create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug("Event reported: %s", event_type.value)
        return event

    async def _deliver(self, event: TrackEvent) -> None:
        try:
            await self._client.track_event(event)
        except SellKitError as exc:
            logger.warning(
                "Failed to track event",
                extra={"data": {"event_type": event.event_type.value, "error": exc.with_trace()}},
            )

    async def drain(self) -> None:
        """Wait for in-flight deliveries; used on teardown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get_events(self) -> List[TrackEvent]:
        return list(self._events)

    def count(self, event_type: EventType) -> int:
        return sum(1 for event in self._events if event.event_type == event_type)


__all__ = ["EventReporter"]
