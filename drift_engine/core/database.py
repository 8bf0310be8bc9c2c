"""
Async PostgreSQL connection pool for the persistent snapshot store.

The scoring functions never touch the database. Only PostgresSnapshotStore
uses this module, on behalf of the batch job, to persist baseline snapshots,
drift events and recommendations.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the pool at job startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at shutdown
- execute_query() / execute_query_one(): Convenience helpers for raw SQL

Connection Pool Configuration:
- min_size: 1
- max_size: 10
- command_timeout: 60 seconds

Usage:
    await init_db()
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT * FROM drift_baseline_snapshot")
    await close_db()

Environment Variables:
    DRIFT_ENGINE_DATABASE_URL: PostgreSQL DSN. Required only when persisting.
"""

from typing import Any, List, Optional

import asyncpg
from asyncpg import Pool

from drift_engine.core.config import get_settings


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called; shared by all tasks of a batch run
_pool: Optional[Pool] = None


class DatabaseNotConfiguredError(RuntimeError):
    """Raised when persistence is requested without a database_url."""


# =============================================================================
# Pool Lifecycle Functions
# =============================================================================

async def init_db(dsn: Optional[str] = None) -> Pool:
    """
    Initialize the database connection pool.

    Idempotent: returns the existing pool if one was already created.

    Args:
        dsn: Optional DSN override. Defaults to settings.database_url.

    Raises:
        DatabaseNotConfiguredError: If no DSN is available.
        asyncpg.PostgresError: If connection to the database fails.
    """
    global _pool

    if _pool is None:
        dsn = dsn or get_settings().database_url
        if not dsn:
            raise DatabaseNotConfiguredError(
                "DRIFT_ENGINE_DATABASE_URL is not set; cannot open the snapshot store"
            )

        _pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=1,
            max_size=10,
            command_timeout=60,
        )

    return _pool


async def get_db_pool() -> Pool:
    """Get the connection pool, initializing it lazily if needed."""
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """Close the pool. Safe to call when no pool exists."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


# =============================================================================
# Query Execution Helpers
# =============================================================================

async def execute_query(query: str, *args: Any) -> List[asyncpg.Record]:
    """
    Execute a single query and return all rows.

    For multi-statement work that must be atomic, acquire a connection and
    open a transaction instead.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetch(query, *args)


async def execute_query_one(query: str, *args: Any) -> Optional[asyncpg.Record]:
    """Execute a query and return the first row or None."""
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetchrow(query, *args)
