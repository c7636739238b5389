from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional

from ..config import get_settings
from ..db import Database, DurableEntry, init_db
from .ports import PersistencePort, StorageKey

logger = logging.getLogger(__name__)


class SqlPersistence(PersistencePort):
    """Durable scope in a SQL table, ephemeral scope in process memory.

    The durable table outlives the process, which is what lets a purchase
    record or session identity survive a host restart.
    """

    def __init__(self, database: Optional[Database] = None, *, key_prefix: Optional[str] = None) -> None:
        self.database = database or Database()
        self.key_prefix = key_prefix or get_settings().key_prefix
        self._ephemeral: Dict[StorageKey, Any] = {}
        init_db(self.database)

    def end_browsing_session(self) -> None:
        self._ephemeral.clear()

    def _read_durable(self, key: StorageKey) -> Any:
        with self.database.reading() as session:
            record = session.get(DurableEntry, key.flat(self.key_prefix))
            return None if record is None else record.value

    def _write_durable(self, key: StorageKey, value: Any) -> None:
        flat = key.flat(self.key_prefix)
        with self.database.writing() as session:
            record = session.get(DurableEntry, flat)
            if record is None:
                session.add(DurableEntry(key=flat, value=value))
            else:
                record.value = value
        logger.debug("Durable write: %s", flat)

    def _read_ephemeral(self, key: StorageKey) -> Any:
        return copy.deepcopy(self._ephemeral.get(key))

    def _write_ephemeral(self, key: StorageKey, value: Any) -> None:
        self._ephemeral[key] = copy.deepcopy(value)

    def _delete_ephemeral(self, key: StorageKey) -> None:
        self._ephemeral.pop(key, None)


__all__ = ["SqlPersistence"]
