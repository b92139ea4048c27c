"""SQLAlchemy async session setup for the GPSR registry.

Provides:
- Base: DeclarativeBase for all ORM models
- build_engine: async engine factory (SQLite gets real BEGIN/SAVEPOINT semantics)
- build_session_factory: session maker used by every service (one session per unit of work)
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    # pysqlite defers BEGIN and breaks SAVEPOINT; take over transaction control.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine; SQLite URLs get foreign keys and proper BEGIN."""
    eng = create_async_engine(url, **kwargs)
    if eng.dialect.name == "sqlite":
        _enable_sqlite_transactions(eng)
    return eng


def build_session_factory(eng: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=eng,
        class_=AsyncSession,
        expire_on_commit=False,
    )

