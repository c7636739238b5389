__version__ = "0.1.0"

from .checkout import CheckoutHandoff, direct_checkout
from .client import SellKitClient
from .clock import ManualClock, SystemClock
from .config import Settings, get_settings, refresh_settings
from .page import Page
from .storage import InMemoryPersistence, SqlPersistence
from .widget import InitOutcome, InitStatus, OfferWidget

__all__ = [
    "__version__",
    "CheckoutHandoff",
    "direct_checkout",
    "SellKitClient",
    "ManualClock",
    "SystemClock",
    "Settings",
    "get_settings",
    "refresh_settings",
    "Page",
    "InMemoryPersistence",
    "SqlPersistence",
    "InitOutcome",
    "InitStatus",
    "OfferWidget",
]
