from __future__ import annotations

import logging
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, _record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the engine and session factory for one process.
    Opened in the app lifespan, disposed at shutdown.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("database is not open")
        return self._engine

    def open(self) -> "Database":
        if self._engine is not None:
            return self
        kwargs: dict = {"echo": self.echo}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.url or self.url in ("sqlite://", "sqlite+pysqlite://"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        engine = sa.create_engine(self.url, **kwargs)
        if engine.dialect.name == "sqlite":
            sa.event.listen(engine, "connect", _enable_sqlite_foreign_keys)

        self._engine = engine
        self._sessionmaker = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        logger.info("database opened (%s)", engine.url.render_as_string(hide_password=True))
        return self

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("database is not open")
        return self._sessionmaker()

    def create_all(self) -> None:
        """Create tables straight from the models; used by the test fixtures, alembic owns real schemas."""
        from app.db.models import Base

        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        logger.info("database closed")
        self._engine = None
        self._sessionmaker = None
