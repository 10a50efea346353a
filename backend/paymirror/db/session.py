"""Database engine and session configuration."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from paymirror.core.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_uri: Optional[str] = None) -> AsyncEngine:
    """Create the async engine for the mirror database.

    SQLite is only used for local runs and tests; foreign keys are switched on
    for it so deletes are refused the same way Postgres refuses them.

    Args:
    ----
        database_uri (Optional[str]): Overrides ``SQLALCHEMY_ASYNC_DATABASE_URI``.

    Returns:
    -------
        AsyncEngine: The configured engine.

    """
    uri = str(database_uri or settings.SQLALCHEMY_ASYNC_DATABASE_URI)
    if make_url(uri).get_backend_name() == "sqlite":
        engine = create_async_engine(uri)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        uri,
        pool_size=10,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,  # Recycle connections after 5 minutes
        pool_timeout=30,
        isolation_level="READ COMMITTED",
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``.

    Rows stay readable after commit so snapshots can be taken from them.
    """
    return async_sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


@asynccontextmanager
async def get_db_context(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session that can be used as a context manager.

    Yields:
        AsyncSession: An async database session

    Example:
    -------
        async with get_db_context(session_factory) as db:
            await db.execute(...)

    """
    async with session_factory() as db:
        try:
            yield db
        finally:
            await db.close()
