"""
Pytest configuration and shared fixtures for the drift engine test suite.

Provides:
- Engine settings built from defaults (no environment overrides)
- Builders for daily MetricAggregate series and baselines
- Teams above and below the privacy floor
- Mock asyncpg pool fixtures for PostgresSnapshotStore tests

Dependencies:
- pytest
- pytest-asyncio
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import AsyncMock, Mock, patch

import pytest

from drift_engine.core.config import EngineSettings
from drift_engine.models import (
    Baseline,
    Confidence,
    MemberWorkloadSample,
    MetricAggregate,
    Team,
)


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Register custom markers.

    - scenario: end-to-end behavioral scenarios for the scoring engine
    - integration: tests exercising several services together
    """
    config.addinivalue_line(
        'markers',
        'scenario: end-to-end behavioral scenarios for the scoring engine'
    )
    config.addinivalue_line(
        'markers',
        'integration: tests exercising several services together'
    )


# ============================================================
# CONSTANTS
# ============================================================

TEAM_ID = 'team_platform'
ORG_ID = 'org_acme'

# Fixed reference date so tests never depend on the wall clock
AS_OF = date(2024, 3, 31)
DETECTED_AT = datetime(2024, 3, 31, tzinfo=timezone.utc)


# ============================================================
# SETTINGS
# ============================================================

@pytest.fixture
def settings() -> EngineSettings:
    """Engine settings with documented defaults, isolated from any .env file."""
    return EngineSettings(_env_file=None)


# ============================================================
# TEAMS
# ============================================================

@pytest.fixture
def team() -> Team:
    """Eight-person team, above the privacy floor."""
    return Team(teamId=TEAM_ID, orgId=ORG_ID, memberCount=8, managerId='mgr_1')


@pytest.fixture
def small_team() -> Team:
    """Four-person team, below the privacy floor of five."""
    return Team(teamId='team_tiny', orgId=ORG_ID, memberCount=4)


# ============================================================
# AGGREGATE BUILDERS
# ============================================================

def make_aggregates(
    count: int,
    team_id: str = TEAM_ID,
    end: date = AS_OF,
    **signals: Any,
) -> List[MetricAggregate]:
    """
    Build `count` consecutive daily aggregates ending on `end`.

    Signal keyword values may be a constant or a callable taking the row index.

    Example:
        make_aggregates(7, meetingLoadIndex=28.0, focusTimeRatio=lambda i: 0.5 + i / 100)
    """
    start = end - timedelta(days=count - 1)
    rows = []
    for i in range(count):
        values: Dict[str, Optional[float]] = {
            name: (value(i) if callable(value) else value)
            for name, value in signals.items()
        }
        rows.append(MetricAggregate(teamId=team_id, date=start + timedelta(days=i), **values))
    return rows


@pytest.fixture
def aggregates_factory() -> Callable[..., List[MetricAggregate]]:
    return make_aggregates


HEALTHY_SIGNALS: Dict[str, float] = {
    'meetingLoadIndex': 20.0,
    'afterHoursRate': 10.0,
    'focusTimeRatio': 0.5,
    'responseMedianMins': 30.0,
    'bdi': 40.0,
}


@pytest.fixture
def healthy_signals() -> Dict[str, float]:
    return dict(HEALTHY_SIGNALS)


def make_baseline(
    signals: Optional[Dict[str, float]] = None,
    confidence: Confidence = Confidence.HIGH,
    team_id: str = TEAM_ID,
    established_at: datetime = datetime(2024, 3, 24, tzinfo=timezone.utc),
    sample_size: int = 30,
) -> Baseline:
    return Baseline(
        teamId=team_id,
        signals=dict(HEALTHY_SIGNALS if signals is None else signals),
        confidence=confidence,
        establishedAt=established_at,
        sampleSize=sample_size,
        windowLength=30,
    )


@pytest.fixture
def baseline() -> Baseline:
    """High-confidence baseline at the healthy signal levels."""
    return make_baseline()


@pytest.fixture
def baseline_factory() -> Callable[..., Baseline]:
    return make_baseline


def make_member_samples(rows: List[tuple]) -> List[MemberWorkloadSample]:
    return [
        MemberWorkloadSample(meetingHours=m, afterHoursHours=a, responsePressure=r)
        for m, a, r in rows
    ]


# ============================================================
# DATABASE MOCK FIXTURES
# ============================================================

@pytest.fixture
def mock_connection() -> AsyncMock:
    """
    Mock asyncpg connection.

    transaction() is a plain Mock returning an async context manager, matching
    how asyncpg exposes it (`async with conn.transaction():`).
    """
    conn = AsyncMock()
    conn.execute = AsyncMock(return_value='INSERT 0 1')
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=None)

    transaction = AsyncMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=None)
    conn.transaction = Mock(return_value=transaction)

    return conn


@pytest.fixture
def mock_db_pool(mock_connection: AsyncMock) -> AsyncMock:
    """Mock asyncpg pool whose acquire() yields mock_connection."""
    pool = AsyncMock()

    acquire_context = AsyncMock()
    acquire_context.__aenter__ = AsyncMock(return_value=mock_connection)
    acquire_context.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = Mock(return_value=acquire_context)

    pool.close = AsyncMock(return_value=None)
    return pool


@pytest.fixture
def mock_database(mock_db_pool: AsyncMock) -> Generator[AsyncMock, None, None]:
    """Patch the snapshot store's get_db_pool to return the mock pool."""
    with patch(
        'drift_engine.services.snapshot_store.get_db_pool',
        AsyncMock(return_value=mock_db_pool),
    ):
        yield mock_db_pool
