from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional


class Scope(str, enum.Enum):
    DURABLE = "durable"
    EPHEMERAL = "ephemeral"


class StorageKey(NamedTuple):
    scope: Scope
    offer_id: Optional[str]
    field: str

    def flat(self, prefix: str) -> str:
        """Render as ``<prefix>_<field>[_<offer>]`` for flat key-value backends."""
        if self.offer_id:
            return f"{prefix}_{self.field}_{self.offer_id}"
        return f"{prefix}_{self.field}"


def durable_key(field: str, offer_id: Optional[str] = None) -> StorageKey:
    return StorageKey(Scope.DURABLE, offer_id, field)


def ephemeral_key(field: str, offer_id: Optional[str] = None) -> StorageKey:
    return StorageKey(Scope.EPHEMERAL, offer_id, field)


def _require_scope(key: StorageKey, scope: Scope) -> None:
    if key.scope != scope:
        raise ValueError(f"{key.field!r} is a {key.scope.value} key, not {scope.value}")


class PersistencePort(ABC):
    """Durable and ephemeral key-value scopes.

    Values must be JSON-serializable. Durable values survive browsing
    sessions; ephemeral values are dropped by ``end_browsing_session``.
    """

    def get_durable(self, key: StorageKey) -> Any:
        _require_scope(key, Scope.DURABLE)
        return self._read_durable(key)

    def set_durable(self, key: StorageKey, value: Any) -> None:
        _require_scope(key, Scope.DURABLE)
        self._write_durable(key, value)

    def get_ephemeral(self, key: StorageKey) -> Any:
        _require_scope(key, Scope.EPHEMERAL)
        return self._read_ephemeral(key)

    def set_ephemeral(self, key: StorageKey, value: Any) -> None:
        _require_scope(key, Scope.EPHEMERAL)
        self._write_ephemeral(key, value)

    def delete_ephemeral(self, key: StorageKey) -> None:
        _require_scope(key, Scope.EPHEMERAL)
        self._delete_ephemeral(key)

    @abstractmethod
    def end_browsing_session(self) -> None:
        """Drop every ephemeral value, as closing the browser would."""

    @abstractmethod
    def _read_durable(self, key: StorageKey) -> Any: ...

    @abstractmethod
    def _write_durable(self, key: StorageKey, value: Any) -> None: ...

    @abstractmethod
    def _read_ephemeral(self, key: StorageKey) -> Any: ...

    @abstractmethod
    def _write_ephemeral(self, key: StorageKey, value: Any) -> None: ...

    @abstractmethod
    def _delete_ephemeral(self, key: StorageKey) -> None: ...


__all__ = [
    "Scope",
    "StorageKey",
    "durable_key",
    "ephemeral_key",
    "PersistencePort",
]
