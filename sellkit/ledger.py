from __future__ import annotations

import logging

from .storage import PersistencePort, durable_key

logger = logging.getLogger(__name__)

PURCHASED_FIELD = "purchased"


class PurchaseLedger:
    """Durable, monotonic record of offers this device has bought."""

    def __init__(self, storage: PersistencePort) -> None:
        self._storage = storage

    def has_purchased(self, offer_id: str) -> bool:
        return bool(self._storage.get_durable(durable_key(PURCHASED_FIELD, offer_id)))

    def mark_purchased(self, offer_id: str) -> None:
        if self.has_purchased(offer_id):
            return
        self._storage.set_durable(durable_key(PURCHASED_FIELD, offer_id), True)
        logger.info("Offer %s marked as purchased", offer_id)


__all__ = ["PURCHASED_FIELD", "PurchaseLedger"]
