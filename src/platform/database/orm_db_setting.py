"""
SQLAlchemy async engine and session management

This module provides:
1. build_async_engine: engine factory shared by the worker and the test suite
2. AsyncEngineManager: event-loop-aware holder of the process-wide engine
3. Database: session provider handed to the Unit of Work through DI

Backends:
- PostgreSQL (asyncpg): production target. Row locks come from SELECT ... FOR UPDATE,
  and `lock_timeout` turns a stuck lock wait into a retryable error.
- SQLite (aiosqlite): tests and local runs. Every transaction opens with
  BEGIN IMMEDIATE so writers are serialised the way the row lock serialises them.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


class Base(DeclarativeBase):
    pass


def _install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
    # https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl
    @event.listens_for(engine.sync_engine, 'connect')
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        # Hand transaction control to the 'begin' hook below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine.sync_engine, 'begin')
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql('BEGIN IMMEDIATE')


def build_async_engine(url: Optional[str] = None, *, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL (defaults to settings.DATABASE_URL_ASYNC)

    SQLite engines get NullPool and the BEGIN IMMEDIATE hook; everything else gets
    the pool configuration from settings.
    """
    url = url or settings.DATABASE_URL_ASYNC
    if url.startswith('sqlite'):
        engine = create_async_engine(
            url,
            echo=echo,
            poolclass=NullPool,
            connect_args={'timeout': settings.DB_LOCK_TIMEOUT_MS / 1000},
        )
        _install_sqlite_transaction_hooks(engine)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_POOL_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
        connect_args={'server_settings': {'lock_timeout': str(settings.DB_LOCK_TIMEOUT_MS)}},
    )


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class AsyncEngineManager:
    """
    Keeps one engine per running event loop.

    Ensures the engine is always bound to the current event loop to prevent
    "Task got Future attached to a different loop" errors.
    """

    def __init__(self) -> None:
        self._engine: Optional[AsyncEngine] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    def get_engine(self) -> AsyncEngine:
        try:
            current_loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if self._engine is None or (current_loop is not None and self._loop is not current_loop):
            if self._engine is not None:
                Logger.base.warning('🔄 [DB] Event loop changed, recreating engine')
            Logger.base.info(f'🔗 [DB] Creating engine for event loop {id(current_loop)}')
            self._engine = build_async_engine()
            self._session_maker = None
            self._loop = current_loop
        return self._engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        engine = self.get_engine()
        if self._session_maker is None:
            self._session_maker = build_session_maker(engine)
        return self._session_maker

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        self._loop = None


# Global engine manager
_engine_manager = AsyncEngineManager()


def get_engine() -> AsyncEngine:
    return _engine_manager.get_engine()


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return _engine_manager.get_session_maker()


async def dispose_engine() -> None:
    await _engine_manager.dispose()


async def create_db_and_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create database tables if they don't exist"""
    # Register every model on Base.metadata
    import src.service.ticket_inventory.driven_adapter.model  # noqa: F401

    current_engine = engine or get_engine()
    async with current_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    Logger.base.info('🗄️ [DB] Tables ready')


class Database:
    """
    Session provider for the Unit of Work

    Wraps either an explicit session maker (tests, scripts) or the global
    event-loop-aware engine manager.
    """

    def __init__(self, *, session_maker: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._session_maker = session_maker

    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        return self._session_maker or get_session_maker()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_maker()() as session:
            yield session
