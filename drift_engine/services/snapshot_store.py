"""
Baseline Snapshot Store and Drift Event Log.

Baselines are versioned, immutable snapshots keyed by (teamId, establishedAt).
Saving a snapshot is a whole-object replace: readers see either the previous
current baseline or the new one, never a partially written one. Historical
snapshots are retained for audit.

Drift events and recommendations are append-only. The engine never deletes
them; retention is an external data-governance concern.

Implementations:
    - InMemorySnapshotStore: arena dict guarded by per-team asyncio locks.
      Used by tests and single-process batch runs.
    - PostgresSnapshotStore: asyncpg-backed, using drift_engine.sql queries.

Usage:
    store = InMemorySnapshotStore()
    await store.save_baseline(baseline)
    current = await store.get_current_baseline("team_platform")
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime
from typing import DefaultDict, Dict, List, Optional, Protocol, Sequence, Set, Tuple

from drift_engine.core.database import get_db_pool
from drift_engine.models.schemas import Baseline, DriftEvent, Recommendation
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

logger = logging.getLogger(__name__)


SnapshotKey = Tuple[str, datetime]


def _rows_inserted(status: Optional[str]) -> int:
    """Row count from an asyncpg command status such as 'INSERT 0 1'."""
    if not status:
        return 0
    return int(status.rsplit(' ', 1)[-1])


class SnapshotStore(Protocol):
    """Persistence contract used by the batch job."""

    async def save_baseline(self, baseline: Baseline) -> None: ...

    async def get_current_baseline(self, team_id: str) -> Optional[Baseline]: ...

    async def list_baselines(self, team_id: str) -> List[Baseline]: ...

    async def append_drift_events(self, events: Sequence[DriftEvent]) -> int: ...

    async def list_drift_events(self, team_id: str) -> List[DriftEvent]: ...

    async def append_recommendations(
        self, run_id: str, team_id: str, recommendations: Sequence[Recommendation]
    ) -> int: ...

    async def list_recommendations(self, team_id: str) -> List[Recommendation]: ...


# =============================================================================
# In-Memory Arena
# =============================================================================


class InMemorySnapshotStore:
    """
    Snapshot arena held in process memory.

    The current baseline for a team is the snapshot with the newest
    establishedAt, so saving an older backfilled snapshot never demotes it.
    """

    def __init__(self) -> None:
        self._baselines: Dict[SnapshotKey, Baseline] = {}
        self._current: Dict[str, SnapshotKey] = {}
        self._events: List[DriftEvent] = []
        self._event_ids: Set[str] = set()
        self._recommendations: List[Tuple[str, Recommendation]] = []
        self._locks: DefaultDict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, team_id: str) -> asyncio.Lock:
        """Per-team lock serializing calibration writes with detection reads."""
        return self._locks[team_id]

    async def save_baseline(self, baseline: Baseline) -> None:
        key = (baseline.teamId, baseline.establishedAt)
        async with self.lock_for(baseline.teamId):
            self._baselines[key] = baseline
            current = self._current.get(baseline.teamId)
            if current is None or key[1] >= current[1]:
                self._current[baseline.teamId] = key
        logger.info(f"Stored baseline snapshot for team {baseline.teamId} at {baseline.establishedAt.isoformat()}")

    async def get_current_baseline(self, team_id: str) -> Optional[Baseline]:
        async with self.lock_for(team_id):
            key = self._current.get(team_id)
            return self._baselines.get(key) if key else None

    async def list_baselines(self, team_id: str) -> List[Baseline]:
        snapshots = [b for (tid, _), b in self._baselines.items() if tid == team_id]
        return sorted(snapshots, key=lambda b: b.establishedAt)

    async def append_drift_events(self, events: Sequence[DriftEvent]) -> int:
        added = 0
        for event in events:
            if event.eventId in self._event_ids:
                continue
            self._event_ids.add(event.eventId)
            self._events.append(event)
            added += 1
        if added < len(events):
            logger.warning(f"Skipped {len(events) - added} drift events already logged under the same event id")
        return added

    async def list_drift_events(self, team_id: str) -> List[DriftEvent]:
        return [e for e in self._events if e.teamId == team_id]

    async def append_recommendations(
        self, run_id: str, team_id: str, recommendations: Sequence[Recommendation]
    ) -> int:
        existing = {
            (rid, rec.teamId, rec.topic) for rid, rec in self._recommendations
        }
        added = 0
        for rec in recommendations:
            rec = rec if rec.teamId else rec.model_copy(update={'teamId': team_id})
            key = (run_id, rec.teamId, rec.topic)
            if key in existing:
                continue
            existing.add(key)
            self._recommendations.append((run_id, rec))
            added += 1
        return added

    async def list_recommendations(self, team_id: str) -> List[Recommendation]:
        return [rec for _, rec in self._recommendations if rec.teamId == team_id]


# =============================================================================
# PostgreSQL
# =============================================================================


class PostgresSnapshotStore:
    """
    asyncpg-backed snapshot store.

    Payloads are stored as JSONB serialized with pydantic, so the models are
    restored exactly as they were written.
    """

    async def ensure_schema(self) -> None:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            await conn.execute(get_schema_ddl())

    async def save_baseline(self, baseline: Baseline) -> None:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    UPSERT_BASELINE,
                    baseline.teamId,
                    baseline.establishedAt,
                    baseline.confidence.value,
                    baseline.sampleSize,
                    baseline.windowLength,
                    baseline.model_dump_json(),
                )
        logger.info(f"Persisted baseline snapshot for team {baseline.teamId}")

    async def get_current_baseline(self, team_id: str) -> Optional[Baseline]:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(SELECT_CURRENT_BASELINE, team_id)
        if row is None:
            return None
        return Baseline.model_validate_json(row['payload'])

    async def list_baselines(self, team_id: str) -> List[Baseline]:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SELECT_BASELINE_HISTORY, team_id)
        return [Baseline.model_validate_json(row['payload']) for row in rows]

    async def append_drift_events(self, events: Sequence[DriftEvent]) -> int:
        if not events:
            return 0

        inserted = 0
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                for event in events:
                    status = await conn.execute(
                        INSERT_DRIFT_EVENT,
                        event.eventId,
                        event.teamId,
                        event.signalName,
                        event.severity.value,
                        event.provisional,
                        event.detectedAt,
                        event.model_dump_json(),
                    )
                    inserted += _rows_inserted(status)
        if inserted < len(events):
            logger.warning(
                f"Skipped {len(events) - inserted} drift events already logged under the same event id"
            )
        logger.info(f"Appended {inserted} of {len(events)} drift events")
        return inserted

    async def list_drift_events(self, team_id: str) -> List[DriftEvent]:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SELECT_DRIFT_EVENTS, team_id)
        return [DriftEvent.model_validate_json(row['payload']) for row in rows]

    async def append_recommendations(
        self, run_id: str, team_id: str, recommendations: Sequence[Recommendation]
    ) -> int:
        if not recommendations:
            return 0

        inserted = 0
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                for rec in recommendations:
                    status = await conn.execute(
                        INSERT_RECOMMENDATION,
                        run_id,
                        rec.teamId or team_id,
                        rec.topic,
                        rec.priority.value,
                        rec.model_dump_json(),
                    )
                    inserted += _rows_inserted(status)
        if inserted < len(recommendations):
            logger.warning(
                f"Skipped {len(recommendations) - inserted} recommendations already logged for run {run_id}"
            )
        return inserted

    async def list_recommendations(self, team_id: str) -> List[Recommendation]:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SELECT_RECOMMENDATIONS, team_id)
        return [Recommendation.model_validate_json(row['payload']) for row in rows]
