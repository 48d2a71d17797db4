"""Database configuration and session management."""

import logging
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from sales_tracker.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine and its connection pool.

    Constructed once at startup and handed to the stores; nothing in the
    package reaches for a module-level engine.
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_recycle: int = 1800,
        pool_timeout: int = 30,
        echo: bool = False,
    ) -> None:
        self.url = make_url(url)
        kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}

        if self.is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": pool_timeout}
        if self.is_memory:
            # One shared connection, otherwise every thread sees its own empty database
            kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=pool_recycle,
                pool_timeout=pool_timeout,
            )

        self.engine: Engine = create_engine(self.url, **kwargs)
        if self.is_sqlite:
            _install_sqlite_transactions(self.engine, wal=not self.is_memory)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_recycle=settings.pool_recycle,
            pool_timeout=settings.pool_timeout,
        )

    @property
    def dialect(self) -> str:
        return self.url.get_backend_name()

    @property
    def is_sqlite(self) -> bool:
        return self.dialect == "sqlite"

    @property
    def is_postgres(self) -> bool:
        return self.dialect == "postgresql"

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and self.url.database in (None, "", ":memory:")

    def init_db(self) -> None:
        """Initialize database tables."""
        # Import models to register them with SQLModel
        from sales_tracker.models import Item  # noqa: F401

        SQLModel.metadata.create_all(self.engine)
        logger.info("Database ready (%s)", self.dialect)

    def session(self, **kwargs: Any) -> Session:
        """Get a new database session.

        Objects stay readable after commit since they outlive the session.
        """
        kwargs.setdefault("expire_on_commit", False)
        return Session(self.engine, **kwargs)

    def dispose(self) -> None:
        self.engine.dispose()


def _install_sqlite_transactions(engine: Engine, wal: bool) -> None:
    """Make pysqlite honour SQLAlchemy transaction boundaries.

    The driver only opens a transaction before DML, so SELECT-only work would
    see a fresh snapshot per statement. Emitting BEGIN ourselves pins every
    transaction, including read-only ones, to one snapshot.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            if wal:
                cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_database(settings: Optional[Settings] = None) -> Database:
    """Build a Database from settings and make sure the schema exists."""
    database = Database.from_settings(settings or Settings())
    database.init_db()
    return database
