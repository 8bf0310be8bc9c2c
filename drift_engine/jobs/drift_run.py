"""
Scheduled drift scoring run.

Fans out one analysis task per team, then gathers the results. Each team is
independent: a failure for one team is logged and recorded as a failed
TeamAnalysis while the other teams continue.

Windows (for an as_of date, inclusive):
    recent window      = the detection_window_periods days ending on as_of
    calibration window = the calibration_window_periods days immediately
                         before the recent window

Idempotency:
    The run timestamp is midnight UTC of as_of and event ids are derived from
    (team, signal, timestamp), so re-running a failed batch for the same date
    does not duplicate drift events or recommendations.
    The log keeps the first write: if late-arriving aggregates change a re-run
    for the same date, the baseline snapshot is replaced but events and
    recommendations already logged under the same keys are kept, and the store
    logs a warning for each skipped insert.

Usage:
    configure_logging()
    summary = await run_drift_batch(
        team_ids=["team_platform", "team_mobile"],
        source=my_aggregate_source,
        store=PostgresSnapshotStore(),
        as_of=date(2024, 3, 31),
    )
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Protocol, Sequence, Tuple

from drift_engine.core.config import EngineSettings, OrgConfig, get_settings
from drift_engine.models.enums import ResultStatus
from drift_engine.models.schemas import (
    CostOfDriftEstimate,
    MemberWorkloadSample,
    MetricAggregate,
    OrgCostOfDrift,
    Team,
    TeamAnalysis,
)
from drift_engine.services.cost_of_drift import aggregate_org_cost_of_drift
from drift_engine.services.sample_data import MemberSampleProvider
from drift_engine.services.snapshot_store import SnapshotStore
from drift_engine.services.team_analysis import analyze_team

logger = logging.getLogger(__name__)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class AggregateSource(Protocol):
    """Read API supplied by the metric aggregation collaborator."""

    async def fetch_team(self, team_id: str) -> Team: ...

    async def fetch_aggregates(self, team_id: str, start: date, end: date) -> List[MetricAggregate]: ...


@dataclass
class DriftRunSummary:
    """Outcome of one batch run."""
    as_of: date
    run_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    analyses: List[TeamAnalysis] = field(default_factory=list)
    org_cost: Optional[OrgCostOfDrift] = None

    @property
    def failed_team_ids(self) -> List[str]:
        return [a.teamId for a in self.analyses if a.status == ResultStatus.FAILED]

    @property
    def scored_team_ids(self) -> List[str]:
        return [a.teamId for a in self.analyses if a.status == ResultStatus.OK]


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for a scheduled run."""
    logging.basicConfig(
        level=getattr(logging, (level or get_settings().log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def compute_windows(as_of: date, settings: EngineSettings) -> Tuple[Tuple[date, date], Tuple[date, date]]:
    """
    Calibration and recent date ranges (inclusive) for a run date.

    Example:
        >>> compute_windows(date(2024, 3, 31), settings)   # 30 + 7 periods
        ((date(2024, 2, 24), date(2024, 3, 24)), (date(2024, 3, 25), date(2024, 3, 31)))
    """
    recent_start = as_of - timedelta(days=settings.detection_window_periods - 1)
    calibration_end = recent_start - timedelta(days=1)
    calibration_start = calibration_end - timedelta(days=settings.calibration_window_periods - 1)
    return (calibration_start, calibration_end), (recent_start, as_of)


async def _analyze_one(
    team_id: str,
    source: AggregateSource,
    store: Optional[SnapshotStore],
    sample_provider: Optional[MemberSampleProvider],
    settings: EngineSettings,
    as_of: date,
    analyzed_at: datetime,
    run_id: str,
) -> TeamAnalysis:
    try:
        team = await source.fetch_team(team_id)
        (cal_start, cal_end), (recent_start, recent_end) = compute_windows(as_of, settings)
        calibration_rows = await source.fetch_aggregates(team_id, cal_start, cal_end)
        recent_rows = await source.fetch_aggregates(team_id, recent_start, recent_end)

        member_samples: Optional[Sequence[MemberWorkloadSample]] = None
        if sample_provider is not None:
            member_samples = await sample_provider.get_member_samples(team)

        return await analyze_team(
            team,
            calibration_rows,
            recent_rows,
            member_samples=member_samples,
            store=store,
            settings=settings,
            analyzed_at=analyzed_at,
            run_id=run_id,
        )
    except Exception as e:
        logger.exception(f"Drift analysis failed for team {team_id}")
        return TeamAnalysis(
            teamId=team_id,
            analyzedAt=analyzed_at,
            status=ResultStatus.FAILED,
            message=str(e),
        )


async def run_drift_batch(
    team_ids: Sequence[str],
    source: AggregateSource,
    store: Optional[SnapshotStore] = None,
    sample_provider: Optional[MemberSampleProvider] = None,
    as_of: Optional[date] = None,
    org_config: Optional[OrgConfig] = None,
    settings: Optional[EngineSettings] = None,
) -> DriftRunSummary:
    """
    Analyze every team for a run date.

    Args:
        team_ids: Teams to analyze. Duplicates are analyzed once.
        source: Aggregate read API.
        store: Optional snapshot store for baselines, events, recommendations.
        sample_provider: Optional member sample provider for load balance.
        as_of: Last day of the recent window. Defaults to yesterday (UTC).
        org_config: Organization overrides.
        settings: Engine settings. Defaults to get_settings().

    Returns:
        DriftRunSummary with one TeamAnalysis per team, in input order, and
        the org cost-of-drift rollup.
    """
    settings = (settings or get_settings()).for_org(org_config)
    as_of = as_of or (datetime.now(timezone.utc).date() - timedelta(days=1))
    analyzed_at = datetime.combine(as_of, time.min, tzinfo=timezone.utc)
    run_id = f"drift-run-{as_of.isoformat()}"

    summary = DriftRunSummary(as_of=as_of, run_id=run_id, started_at=datetime.now(timezone.utc))
    unique_ids = list(dict.fromkeys(team_ids))

    logger.info(f"Starting drift run {run_id} for {len(unique_ids)} teams")

    summary.analyses = list(
        await asyncio.gather(
            *(
                _analyze_one(
                    team_id, source, store, sample_provider, settings, as_of, analyzed_at, run_id
                )
                for team_id in unique_ids
            )
        )
    )

    estimates: List[CostOfDriftEstimate] = [
        a.costOfDrift for a in summary.analyses if a.costOfDrift is not None
    ]
    summary.org_cost = aggregate_org_cost_of_drift(
        estimates,
        org_id=org_config.orgId if org_config else None,
        settings=settings,
    )
    summary.completed_at = datetime.now(timezone.utc)

    logger.info(
        f"Drift run {run_id} complete: {len(summary.scored_team_ids)} scored, "
        f"{len(summary.failed_team_ids)} failed"
    )
    return summary
