from .memory import InMemoryPersistence
from .ports import PersistencePort, Scope, StorageKey, durable_key, ephemeral_key
from .sql import SqlPersistence

__all__ = [
    "InMemoryPersistence",
    "PersistencePort",
    "Scope",
    "SqlPersistence",
    "StorageKey",
    "durable_key",
    "ephemeral_key",
]
