"""
Database session management.

Two engines, two connection pools, two session factories:

- command: writes, full commit/rollback semantics
- query: reads only, never commits, refuses to flush

Both point at the same database unless ``query_database_url`` says
otherwise. Callers never assume they share a backend.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session

from msdata.config import Settings
from msdata.infra.db.base import CommandBase

logger = logging.getLogger(__name__)


class ReadOnlySession(Session):
    """Sync session class backing query-side ``AsyncSession`` objects."""


@event.listens_for(ReadOnlySession, "before_flush")
def _refuse_flush(session: Session, flush_context: Any, instances: Any) -> None:
    if session.new or session.dirty or session.deleted:
        raise InvalidRequestError("Query sessions are read-only; use the command side to write")


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _create_engine(
    url: str,
    *,
    echo: bool,
    pool_size: int,
    max_overflow: int,
    pool_timeout: float,
) -> AsyncEngine:
    kwargs: dict[str, Any] = {"echo": echo}
    # SQLite picks its own pool class (static/null); sizing only applies to
    # server databases.
    if not _is_sqlite(url):
        kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **kwargs)


def _make_read_only(engine: AsyncEngine) -> AsyncEngine:
    """Ask the database itself to reject writes on query connections."""
    backend = engine.dialect.name
    if backend == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _set_query_only(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA query_only = ON")
            cursor.close()
        return engine
    if backend == "postgresql":
        return engine.execution_options(postgresql_readonly=True)
    logger.info(f"No read-only connection mode for dialect {backend}; relying on session guard")
    return engine


class Database:
    """
    Owns the command and query engines and their transaction scopes.

    Usage:
        db = Database.from_settings(settings)
        async with db.command_transaction() as session:
            ...
        async with db.query_transaction() as session:
            ...
        await db.dispose()
    """

    def __init__(
        self,
        command_url: str,
        query_url: Optional[str] = None,
        *,
        echo: bool = False,
        command_pool_size: int = 5,
        command_max_overflow: int = 0,
        query_pool_size: int = 10,
        query_max_overflow: int = 5,
        pool_timeout: float = 30.0,
    ):
        self.command_url = command_url
        self.query_url = query_url or command_url

        self.command_engine = _create_engine(
            self.command_url,
            echo=echo,
            pool_size=command_pool_size,
            max_overflow=command_max_overflow,
            pool_timeout=pool_timeout,
        )
        self.query_engine = _make_read_only(
            _create_engine(
                self.query_url,
                echo=echo,
                pool_size=query_pool_size,
                max_overflow=query_max_overflow,
                pool_timeout=pool_timeout,
            )
        )

        self._command_sessions = async_sessionmaker(
            self.command_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._query_sessions = async_sessionmaker(
            self.query_engine,
            class_=AsyncSession,
            sync_session_class=ReadOnlySession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.command_database_url,
            settings.effective_query_database_url,
            echo=settings.debug,
            command_pool_size=settings.command_pool_size,
            command_max_overflow=settings.command_max_overflow,
            query_pool_size=settings.query_pool_size,
            query_max_overflow=settings.query_max_overflow,
            pool_timeout=settings.pool_timeout_seconds,
        )

    @asynccontextmanager
    async def command_transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Write transaction scope.

        Commits on normal exit. Any other exit (exception, cancellation,
        timeout) rolls back before the error propagates.
        """
        async with self._command_sessions() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    @asynccontextmanager
    async def query_transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Read-only transaction scope. Never commits.

        Closing the session hands the connection back to the pool, which
        rolls the transaction back. ``Session.rollback()`` is not called
        directly because it would expire the instances being returned.
        """
        async with self._query_sessions() as session:
            yield session

    async def create_schema(self) -> None:
        """Create the users table through the command engine."""
        async with self.command_engine.begin() as conn:
            await conn.run_sync(CommandBase.metadata.create_all)
        logger.info("Database tables initialized")

    async def dispose(self) -> None:
        """Close both connection pools."""
        await self.command_engine.dispose()
        await self.query_engine.dispose()
