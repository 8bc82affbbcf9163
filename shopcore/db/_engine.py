"""
Database setup — engine and session factory.
"""

from __future__ import annotations

import asyncio
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from shopcore.db._tables import Base

SHARED_CONNECTION_LOCK = "shopcore.shared_connection_lock"
"""``Session.info`` key holding the lock that serializes units of work on one shared connection."""


def _sqlite_file_transactions(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    SQLite ignores ``FOR UPDATE``; ``BEGIN IMMEDIATE`` gives the same
    serialization for read-then-write units of work and avoids the
    lock-upgrade deadlock between two deferred transactions.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
    *,
    echo: bool = False,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """
    Create database and return (session_factory, engine).

    An in-memory SQLite database lives on a single connection, so every
    session shares it. Sessions from the returned factory then carry one
    lock under ``SHARED_CONNECTION_LOCK`` and ``transaction()`` runs one
    unit of work at a time.
    """
    parsed = make_url(url)
    is_sqlite = parsed.get_backend_name() == "sqlite"
    is_sqlite_file = is_sqlite and parsed.database not in (None, "", ":memory:")

    kwargs: dict[str, Any] = {"echo": echo}
    info: dict[str, Any] = {}
    if is_sqlite_file:
        kwargs["connect_args"] = {"timeout": 30}
    elif is_sqlite:
        kwargs["poolclass"] = StaticPool
        info[SHARED_CONNECTION_LOCK] = asyncio.Lock()

    engine = create_async_engine(url, **kwargs)
    if is_sqlite_file:
        _sqlite_file_transactions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False, info=info), engine


__all__ = ("create_database", "SHARED_CONNECTION_LOCK")
