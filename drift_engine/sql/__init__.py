"""
SQL query module for the drift scoring engine.

Provides the parameterized statements used by PostgresSnapshotStore:

    from drift_engine.sql import UPSERT_BASELINE, SELECT_CURRENT_BASELINE
"""

from drift_engine.sql.snapshot_queries import (
    INSERT_DRIFT_EVENT,
    INSERT_RECOMMENDATION,
    SELECT_BASELINE_HISTORY,
    SELECT_CURRENT_BASELINE,
    SELECT_DRIFT_EVENTS,
    SELECT_RECOMMENDATIONS,
    UPSERT_BASELINE,
    get_schema_ddl,
)

__all__ = [
    'INSERT_DRIFT_EVENT',
    'INSERT_RECOMMENDATION',
    'SELECT_BASELINE_HISTORY',
    'SELECT_CURRENT_BASELINE',
    'SELECT_DRIFT_EVENTS',
    'SELECT_RECOMMENDATIONS',
    'UPSERT_BASELINE',
    'get_schema_ddl',
]
