"""Order Store Sessions — async engine and unit-of-work sessions for the order backend.

Invariants:
    - A session that raises is rolled back before the error leaves this module
    - A lost optimistic-version race on an order surfaces as ConcurrencyError
    - Any other SQLAlchemy failure becomes DatabaseError; driver messages stay in the log
    - Domain errors raised inside a session pass through unchanged

Design Decisions:
    - One manager per process, built in the FastAPI lifespan via init_db()
    - expire_on_commit=False: routes serialize rows after the commit
    - SQLite URLs skip pool sizing (aiosqlite in tests uses a static pool)
    - Readiness checks both connectivity and the presence of the orders table,
      so a database without migrations reports not-ready
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import inspect, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm.exc import StaleDataError

from fulfillment.core.errors import ConcurrencyError, DatabaseError, FulfillmentError

logger = logging.getLogger(__name__)

# First match wins; order from most to least specific.
_FAILURES: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Order data conflicts with an existing record", "commit"),
    (OperationalError, "Order store is unreachable", "execute"),
    (DBAPIError, "Order store driver error", "query"),
    (SQLAlchemyError, "Order store operation failed", "unknown"),
)

REQUIRED_TABLES = ("users", "orders", "order_status_events")


def _as_database_error(exc: SQLAlchemyError) -> DatabaseError:
    for exc_type, message, operation in _FAILURES:
        if isinstance(exc, exc_type):
            return DatabaseError(message, operation)
    return DatabaseError("Order store operation failed", "unknown")


class DatabaseSessionManager:
    """Owns the async engine and hands out rollback-on-error sessions."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except FulfillmentError:
            await session.rollback()
            raise
        except StaleDataError as e:
            await session.rollback()
            logger.warning("Order version check failed", extra={"error_code": "CONCURRENT_UPDATE"})
            raise ConcurrencyError(
                "Order was changed by someone else. Refresh and try again.",
            ) from e
        except SQLAlchemyError as e:
            await session.rollback()
            error = _as_database_error(e)
            logger.error(
                f"{error.message}: {e}",
                extra={"error_code": error.code},
            )
            raise error from e
        finally:
            await session.close()

    async def readiness(self) -> dict[str, str]:
        """Connectivity and schema checks for the readiness endpoint."""
        checks = {"database": "unavailable", "schema": "unknown"}
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                checks["database"] = "healthy"
                tables = await conn.run_sync(
                    lambda sync_conn: set(inspect(sync_conn).get_table_names()),
                )
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Order store readiness check failed: {e}")
            return checks
        missing = [t for t in REQUIRED_TABLES if t not in tables]
        checks["schema"] = "missing: " + ", ".join(missing) if missing else "healthy"
        return checks

    async def close(self):
        await self.engine.dispose()


# Built on startup by the lifespan; tests swap in their own manager.
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
