from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from .clock import Clock
from .config import get_settings
from .storage import PersistencePort, durable_key

logger = logging.getLogger(__name__)

SESSION_KEY = durable_key("session")


class SessionIdentity(BaseModel):
    id: str
    created_at: float


def new_session_id(now: float, *, diagnostic: bool = False) -> str:
    prefix = "msk_debug" if diagnostic else "msk"
    return f"{prefix}_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"


class IdentityManager:
    """Pseudo-session identifier valid for 24h on this device."""

    def __init__(
        self,
        storage: PersistencePort,
        clock: Clock,
        *,
        diagnostic: bool = False,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self.diagnostic = diagnostic
        self._ttl_seconds = float(ttl_seconds) if ttl_seconds is not None else get_settings().session_ttl_seconds
        self._session_id: Optional[str] = None

    def get_session_id(self) -> str:
        if self._session_id:
            return self._session_id

        now = self._clock.now()
        if self.diagnostic:
            self._session_id = new_session_id(now, diagnostic=True)
            logger.debug("Diagnostic session per page load: %s", self._session_id)
            return self._session_id

        stored = self._load(self._storage.get_durable(SESSION_KEY))
        if stored is not None and now - stored.created_at < self._ttl_seconds:
            self._session_id = stored.id
            return self._session_id

        identity = SessionIdentity(id=new_session_id(now), created_at=now)
        self._storage.set_durable(SESSION_KEY, identity.model_dump())
        logger.debug("New session created: %s", identity.id)
        self._session_id = identity.id
        return self._session_id

    @staticmethod
    def _load(raw: Any) -> Optional[SessionIdentity]:
        if raw is None:
            return None
        try:
            return SessionIdentity.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session record")
            return None


__all__ = ["SESSION_KEY", "SessionIdentity", "new_session_id", "IdentityManager"]
