"""
Zoo Registry API: Database Connection Handle & Session Management
===================================================================

What:  An explicitly owned connection handle (`Database`), the declarative
       base for ORM models, and the per-request session dependency.
How:   `Database` keeps the URL and pool options; the async engine and the
       session factory are created lazily on first use. Connectivity checks
       run under a tenacity retry policy taken from settings.
Who:   `get_db_session` is injected into route handlers through FastAPI's
       dependency system; the lifespan handler pings, creates tables and
       disposes the engine.

Unit of work:
    One AsyncSession per request. Services only flush; the session is
    committed once when the request finishes and rolled back if anything
    raised. Multi-document habitat writes (animal insert + zoo append,
    zoo filter + animal delete) therefore land together or not at all.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

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
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from zoo_api.config import Settings, settings
from zoo_api.exceptions import StoreError

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with this metadata; `Database.create_all()` uses it
    to create the users, zoos and animals tables.
    """
    pass


class Database:
    """
    Lazily-acquired connection handle for the document store.

    Attributes:
        url:            Async SQLAlchemy URL (postgresql+asyncpg / sqlite+aiosqlite)
        retry_attempts: Maximum connection attempts in `ping()`
        retry_min_wait: Initial backoff in seconds
        retry_max_wait: Backoff ceiling in seconds

    Nothing touches the network until `engine` is first accessed, so creating
    a Database (including the module-level one below) is free.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        retry_attempts: int = 5,
        retry_min_wait: float = 1.0,
        retry_max_wait: float = 10.0,
    ):
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_pre_ping = pool_pre_ping
        self.retry_attempts = retry_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, config: Settings) -> "Database":
        """Build a handle from application settings."""
        return cls(
            config.database_url,
            # SQL echo only in DEBUG mode
            echo=config.log_level == "DEBUG",
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            retry_attempts=config.store_retry_max_attempts,
            retry_min_wait=config.store_retry_min_wait,
            retry_max_wait=config.store_retry_max_wait,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def _engine_options(self) -> Dict[str, Any]:
        """
        Engine keyword arguments for the configured backend.

        SQLite pools reject the QueuePool sizing arguments, so they are only
        passed for server databases.
        """
        options: Dict[str, Any] = {"echo": self.echo}
        if not self.is_sqlite:
            options.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_pre_ping=self.pool_pre_ping,
                pool_recycle=3600,
            )
        return options

    # ── Lazy Resources ────────────────────────────────────────────────────
    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(self.url, **self._engine_options())
            logger.info("Database engine created for %s", self._safe_url())
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        # expire_on_commit=False: ORM objects stay readable after commit
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    def _safe_url(self) -> str:
        """URL with the password masked, for logging."""
        return self.engine.url.render_as_string(hide_password=True)

    # ── Connectivity ──────────────────────────────────────────────────────
    async def ping(self, attempts: Optional[int] = None) -> None:
        """
        Verify the store answers a trivial query, retrying with backoff.

        What:    Executes SELECT 1 under the configured retry policy.
        Who:     The lifespan startup hook (full policy) and the health route
                 (a single attempt).

        Args:
            attempts: Override for the number of attempts.

        Raises:
            StoreError: The store could not be reached within the retry budget.
        """
        max_attempts = attempts or self.retry_attempts
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((SQLAlchemyError, OSError)),
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(
                    multiplier=self.retry_min_wait,
                    min=self.retry_min_wait,
                    max=self.retry_max_wait,
                )
                + wait_random(0, self.retry_min_wait),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=False,
            ):
                with attempt:
                    async with self.engine.connect() as conn:
                        await conn.execute(text("SELECT 1"))
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error(
                "Store unreachable after %d attempt(s): %s",
                max_attempts,
                type(last).__name__ if last else "unknown error",
            )
            raise StoreError(
                message="The document store is unavailable.",
                context={
                    "attempts": max_attempts,
                    "error_type": type(last).__name__ if last else None,
                },
            ) from last

    async def create_all(self) -> None:
        """Create any missing tables registered on `Base.metadata`."""
        # Import models so they register with Base.metadata
        import zoo_api.models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StoreError(
                message="Could not create the document store schema.",
                context={"error_type": type(e).__name__},
            ) from e

    async def drop_all(self) -> None:
        """Drop every registered table."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    # ── Sessions ──────────────────────────────────────────────────────────
    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional session.

        How it works:
            1. Creates a new session from the factory
            2. Yields it to the caller (services flush their writes)
            3. On success: commits the transaction
            4. On error: rolls back and re-raises
            5. Always: closes the session

        Raises:
            StoreError: The commit itself failed (the transaction is rolled back).
        """
        async with self.session_factory() as session:
            try:
                try:
                    yield session
                except Exception:
                    await session.rollback()
                    raise
                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error("Commit failed: %s", type(e).__name__)
                    raise StoreError(
                        message="The transaction could not be committed.",
                        context={"operation": "commit", "error_type": type(e).__name__},
                    ) from e
            finally:
                await session.close()

    async def dispose(self) -> None:
        """Close all pooled connections (application shutdown)."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Process-wide handle; nothing connects until first use
database = Database.from_settings(settings)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Example usage in a route:
        @router.get("/zoos")
        async def list_zoos(store: DocumentStore = Depends(get_store)):
            ...

    Raises:
        Any exceptions are propagated to the global error handlers after the
        transaction has been rolled back.
    """
    async with database.session() as session:
        yield session


async def dispose_engine() -> None:
    """Gracefully close the process-wide handle's connections."""
    await database.dispose()
