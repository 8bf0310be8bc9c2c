"""
Core infrastructure for the drift scoring engine.

Provides:
- Configuration management via pydantic-settings
- The engine's error taxonomy
- Async PostgreSQL connectivity via asyncpg for the snapshot store

    from drift_engine.core import get_settings, OrgConfig, UncalibratedError
"""

from drift_engine.core.config import (
    EngineSettings,
    OrgConfig,
    get_settings,
)
from drift_engine.core.database import (
    DatabaseNotConfiguredError,
    close_db,
    execute_query,
    execute_query_one,
    get_db_pool,
    init_db,
)
from drift_engine.core.errors import (
    DivideByZeroGuarded,
    DriftEngineError,
    InsufficientGroupSizeError,
    NoDataError,
    UncalibratedError,
    error_for,
)

__all__ = [
    # Configuration
    'EngineSettings',
    'OrgConfig',
    'get_settings',
    # Database
    'DatabaseNotConfiguredError',
    'close_db',
    'execute_query',
    'execute_query_one',
    'get_db_pool',
    'init_db',
    # Errors
    'DivideByZeroGuarded',
    'DriftEngineError',
    'InsufficientGroupSizeError',
    'NoDataError',
    'UncalibratedError',
    'error_for',
]
