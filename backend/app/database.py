"""
Waterfall Manager Backend — Database Session Management
========================================================

What:  Async SQLAlchemy engine, session factory, the atomic-unit helper and
       the FastAPI session dependency.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error,
       and an `atomic()` scope used by services whose writes must land
       together.
Who:   Used by route handlers via FastAPI's dependency injection system and
       by the lifecycle engine for its two-write unit.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy:
    pool_size=20:       Persistent connections for normal load
    max_overflow=10:    Temporary connections for traffic spikes (total max = 30)
    pool_timeout=30:    Maximum wait for a free connection, then StorageError
    pool_pre_ping:      Validates connections before use
    pool_recycle=3600:  Recycles connections every hour

    SQLite URLs (tests, local development) skip the pool arguments; the
    aiosqlite dialect picks its own pool class.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import Settings, settings

logger = logging.getLogger(__name__)


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(config: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database URL.

    Pool sizing only applies to server databases; SQLite gets the dialect
    default so in-memory and file databases both work.
    """
    options = {
        # Echo SQL queries in DEBUG mode for development visibility
        "echo": config.log_level == "DEBUG",
    }
    if not config.is_sqlite:
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            pool_timeout=config.db_pool_timeout,
            pool_recycle=3600,
        )
    return create_async_engine(config.database_url, **options)


engine = build_engine(settings)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, so a
# service can build its response from the objects it just wrote.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with a single metadata
    object, which Alembic reads for migrations.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits whatever is still pending
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Services that own an atomic unit commit it themselves through
    `atomic()`; the commit here is then a no-op.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Atomic Unit ───────────────────────────────────────────────────────────
@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Scope in which every write on `session` commits together or not at all.

    Exit paths:
        - normal exit          → COMMIT
        - any exception        → ROLLBACK, exception re-raised
        - task cancellation    → ROLLBACK, CancelledError re-raised

    The transaction never outlives the `async with` block.

    Example:
        async with atomic(db):
            db.add(record)
            project.current_phase = phase
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def wait_for_database(target: AsyncEngine, attempts: int) -> None:
    """
    What:  Blocks startup until the database answers SELECT 1.
    When:  Called from the application lifespan before serving traffic.
    How:   tenacity exponential backoff with jitter; the last failure is
           re-raised so a dead database stops the process.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=1, max=10),
        retry=retry_if_exception_type((SQLAlchemyError, OSError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            async with target.connect() as conn:
                await conn.execute(text("SELECT 1"))
    logger.info("Database reachable")


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
