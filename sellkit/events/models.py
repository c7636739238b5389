from __future__ import annotations

import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import EventType


def _now_millis() -> int:
    return int(time.time() * 1000)


class TrackEvent(BaseModel):
    """Engagement report sent to the tracking endpoint.

    Extra keys (``direct_checkout``, ``display_mode`` ...) are allowed and
    forwarded as top-level fields.
    """

    model_config = ConfigDict(extra="allow")

    event_type: EventType
    popup_id: Optional[str] = None
    product_id: Optional[str] = None
    session_id: str
    timestamp: int = Field(default_factory=_now_millis)
    page_url: str
    user_agent: str
    purchase_token: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


__all__ = ["TrackEvent"]
