from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PurchaseToken(BaseModel):
    """Correlates a checkout attempt with the visitor's return trip."""

    model_config = ConfigDict(extra="forbid")

    token: str
    minted_at: float


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    popup_id: Optional[str] = None
    product_id: Optional[str] = None
    session_id: str
    purchase_token: str
    success_url: str
    cancel_url: str


class CheckoutSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    checkout_url: str = Field(min_length=1)


class CheckoutStatus(str, enum.Enum):
    REDIRECTED = "redirected"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"
    BUSY = "busy"


class CtaState(str, enum.Enum):
    READY = "ready"
    LOADING = "loading"


class CheckoutOutcome(BaseModel):
    status: CheckoutStatus
    token: Optional[PurchaseToken] = None
    checkout_url: Optional[str] = None
    error: Optional[str] = None
    trace_id: Optional[str] = None

    @property
    def redirected(self) -> bool:
        return self.status == CheckoutStatus.REDIRECTED


__all__ = [
    "PurchaseToken",
    "CheckoutRequest",
    "CheckoutSession",
    "CheckoutStatus",
    "CtaState",
    "CheckoutOutcome",
]
