from .checkout import (
    CheckoutOutcome,
    CheckoutRequest,
    CheckoutSession,
    CheckoutStatus,
    CtaState,
    PurchaseToken,
)
from .offer import DisplayMode, OfferColors, OfferConfig, parse_flag

__all__ = [
    "CheckoutOutcome",
    "CheckoutRequest",
    "CheckoutSession",
    "CheckoutStatus",
    "CtaState",
    "PurchaseToken",
    "DisplayMode",
    "OfferColors",
    "OfferConfig",
    "parse_flag",
]
