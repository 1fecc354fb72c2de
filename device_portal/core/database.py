"""
Async engine, session factory & the `get_db` request dependency.

One AsyncSession per request: committed when the handler returns,
rolled back if anything raises.  SQLite connections get foreign keys
switched on so the ON DELETE rules in the schema are honoured, and
explicit BEGINs so per-row SAVEPOINTs in the CSV import nest properly.
"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from device_portal.core.config import settings


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine, adding SQLite pragmas where relevant."""
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    engine = create_async_engine(url, echo=False, **kwargs)

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            # Let SQLAlchemy, not the driver, decide when transactions start
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_sqlite_transaction(conn):  # noqa: ANN001
            conn.exec_driver_sql("BEGIN")

    return engine


engine = build_engine(settings.DATABASE_URL)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
