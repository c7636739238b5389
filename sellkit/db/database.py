from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_settings
from .models import Base


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_sqlite_memory(url: str) -> bool:
    return _is_sqlite(url) and (url == "sqlite://" or url.endswith(":memory:"))


def _engine_options(url: str) -> Dict[str, Any]:
    if _is_sqlite_memory(url):
        # An in-memory database exists per connection, so all sessions share one.
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    if _is_sqlite(url):
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {"pool_pre_ping": True}


def _set_busy_timeout(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA busy_timeout=30000;")
    finally:
        cursor.close()


class Database:
    """Engine and sessions for the durable key-value table.

    ``reading`` yields a session that is only closed; ``writing`` commits on
    success and rolls back on error.
    """

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or get_settings().database_url
        self.engine = create_engine(self.url, future=True, **_engine_options(self.url))
        if _is_sqlite(self.url):
            event.listen(self.engine, "connect", _set_busy_timeout)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )

    def session(self) -> DbSession:
        return self.SessionLocal()

    @contextmanager
    def reading(self) -> Generator[DbSession, None, None]:
        session = self.session()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def writing(self) -> Generator[DbSession, None, None]:
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def init_db(database: Database) -> None:
    Base.metadata.create_all(bind=database.engine)


__all__ = ["Database", "init_db"]
