"""
Engine and session lifecycle.

One engine per process, created by ``init_db()`` at startup and disposed by
``close_db()``. Connectivity failures anywhere below a session surface as
StorageUnavailableError.
"""

from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from coastwatch.config import get_logger, get_settings
from coastwatch.db.models import Base
from coastwatch.exceptions import StorageUnavailableError

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None

# The database could not be reached, as opposed to a rejected statement
STORAGE_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    ConnectionError,
    TimeoutError,
)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@contextmanager
def translate_storage_errors() -> Iterator[None]:
    """
    Re-raise connectivity failures as StorageUnavailableError.

    Example:
        with translate_storage_errors():
            await session.execute(select(Report))
    """
    try:
        yield
    except StorageUnavailableError:
        raise
    except STORAGE_ERRORS as e:
        logger.error("Storage unavailable", error=str(e), error_type=type(e).__name__)
        raise StorageUnavailableError(
            "Storage is temporarily unavailable. Retry later.",
            details={"error_type": type(e).__name__},
        ) from e


async def init_db(
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
    create_tables: bool = False,
) -> None:
    """
    Create the engine and session factory from settings.

    Args:
        pool_size: Pooled connections (ignored for SQLite).
        max_overflow: Connections allowed above ``pool_size``.
        echo: Log SQL; honoured in development only.
        create_tables: Run ``create_all`` for missing tables.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized, skipping")
        return

    settings = get_settings()
    url = settings.database_url.get_secret_value()

    options: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": echo and settings.is_development,
    }
    if not url.startswith("sqlite"):
        options.update(pool_size=pool_size, max_overflow=max_overflow)

    _engine = create_async_engine(url, **options)
    _async_session_factory = make_session_factory(_engine)

    if create_tables:
        with translate_storage_errors():
            async with _engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized", dialect=_engine.dialect.name)


async def close_db() -> None:
    global _engine, _async_session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _async_session_factory = None
    logger.info("Database connection closed")


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session that commits on clean exit and rolls back on error.

    Raises:
        RuntimeError: If ``init_db()`` has not run.
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    session = _async_session_factory()
    try:
        with translate_storage_errors():
            yield session
            await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def health_check() -> bool:
    """True when a trivial query round-trips."""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
    except (StorageUnavailableError, RuntimeError) as e:
        logger.error("Database health check failed", error=str(e))
        return False
    return True
