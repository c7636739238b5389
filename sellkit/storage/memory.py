from __future__ import annotations

import copy
from typing import Any, Dict

from .ports import PersistencePort, StorageKey


class InMemoryPersistence(PersistencePort):
    """Both scopes held in process memory.

    Suitable for tests and for hosts that only need one page lifetime.
    """

    def __init__(self) -> None:
        self._durable: Dict[StorageKey, Any] = {}
        self._ephemeral: Dict[StorageKey, Any] = {}

    def end_browsing_session(self) -> None:
        self._ephemeral.clear()

    def clear(self) -> None:
        self._durable.clear()
        self._ephemeral.clear()

    def durable_snapshot(self) -> Dict[StorageKey, Any]:
        return copy.deepcopy(self._durable)

    def ephemeral_snapshot(self) -> Dict[StorageKey, Any]:
        return copy.deepcopy(self._ephemeral)

    def _read_durable(self, key: StorageKey) -> Any:
        return copy.deepcopy(self._durable.get(key))

    def _write_durable(self, key: StorageKey, value: Any) -> None:
        self._durable[key] = copy.deepcopy(value)

    def _read_ephemeral(self, key: StorageKey) -> Any:
        return copy.deepcopy(self._ephemeral.get(key))

    def _write_ephemeral(self, key: StorageKey, value: Any) -> None:
        self._ephemeral[key] = copy.deepcopy(value)

    def _delete_ephemeral(self, key: StorageKey) -> None:
        self._ephemeral.pop(key, None)


__all__ = ["InMemoryPersistence"]
