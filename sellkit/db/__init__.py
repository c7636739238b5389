from .database import Database, init_db
from .models import Base, DurableEntry

__all__ = [
    "Base",
    "Database",
    "DurableEntry",
    "init_db",
]
