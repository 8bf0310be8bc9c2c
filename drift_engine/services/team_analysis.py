"""
Per-team analysis orchestration.

Runs the full engine for one team in order:
    calibrate -> (persist baseline) -> detect -> composite indices -> recommend

Calibration and detection for a team are serialized: the baseline is written
as one snapshot replace before detection reads the team's current baseline.
Different teams share no mutable state and can be analyzed concurrently.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from drift_engine.core.config import EngineSettings, OrgConfig, get_settings
from drift_engine.models.enums import ErrorCode, ResultStatus
from drift_engine.models.schemas import (
    MemberWorkloadSample,
    MetricAggregate,
    Team,
    TeamAnalysis,
)
from drift_engine.services.calibration import calibrate, calibrate_and_store
from drift_engine.services.capacity_index import calculate_capacity_index
from drift_engine.services.cost_of_drift import estimate_cost_of_drift
from drift_engine.services.drift_detection import detect
from drift_engine.services.load_balance import calculate_load_balance_index
from drift_engine.services.recommendations import recommend
from drift_engine.services.signals import group_size_violation
from drift_engine.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


async def analyze_team(
    team: Team,
    calibration_window: Sequence[MetricAggregate],
    recent_window: Sequence[MetricAggregate],
    member_samples: Optional[Sequence[MemberWorkloadSample]] = None,
    store: Optional[SnapshotStore] = None,
    org_config: Optional[OrgConfig] = None,
    settings: Optional[EngineSettings] = None,
    analyzed_at: Optional[datetime] = None,
    run_id: Optional[str] = None,
) -> TeamAnalysis:
    """
    Analyze one team end to end.

    Args:
        team: Team metadata (member count drives the privacy floor).
        calibration_window: Aggregates for the baseline window.
        recent_window: Aggregates for the recent detection window.
        member_samples: Anonymized member samples for load balance.
        store: Optional snapshot store. When given, the baseline snapshot,
            drift events and recommendations are persisted.
        org_config: Organization overrides merged over settings.
        settings: Engine settings. Defaults to get_settings().
        analyzed_at: Run timestamp stamped on events and scores.
        run_id: Identifier grouping persisted recommendations.

    Returns:
        TeamAnalysis. Teams below the privacy floor get status no_data and no
        scores; uncalibrated teams get status failed.
    """
    settings = (settings or get_settings()).for_org(org_config)
    analyzed_at = analyzed_at or datetime.now(timezone.utc)
    run_id = run_id or analyzed_at.isoformat()

    violation = group_size_violation(team, settings)
    if violation:
        return TeamAnalysis(
            teamId=team.teamId,
            analyzedAt=analyzed_at,
            status=ResultStatus.NO_DATA,
            error=ErrorCode.INSUFFICIENT_GROUP_SIZE,
            message=violation,
        )

    if store is not None:
        calibration = await calibrate_and_store(store, team.teamId, calibration_window, settings=settings)
        baseline = await store.get_current_baseline(team.teamId)
    else:
        calibration = calibrate(team.teamId, calibration_window, settings=settings)
        baseline = calibration.baseline

    detection = detect(team.teamId, recent_window, baseline, detected_at=analyzed_at, settings=settings)

    capacity = calculate_capacity_index(
        team, recent_window, baseline, settings=settings, calculated_at=analyzed_at
    )
    balance = calculate_load_balance_index(
        team, recent_window, baseline, member_samples=member_samples, settings=settings, calculated_at=analyzed_at
    )
    cost = estimate_cost_of_drift(
        team, recent_window, baseline, settings=settings, calculated_at=analyzed_at
    )

    recommendations = recommend(
        detection.events,
        [capacity, balance, cost],
        baseline,
        team_id=team.teamId,
        settings=settings,
    )

    if store is not None:
        await store.append_drift_events(detection.events)
        await store.append_recommendations(run_id, team.teamId, recommendations)

    if baseline is None:
        status, error, message = ResultStatus.FAILED, ErrorCode.UNCALIBRATED, calibration.message
    else:
        status, error, message = ResultStatus.OK, None, None

    logger.info(
        f"Analyzed team {team.teamId}: {len(detection.events)} events, "
        f"{len(recommendations)} recommendations"
    )

    return TeamAnalysis(
        teamId=team.teamId,
        analyzedAt=analyzed_at,
        status=status,
        error=error,
        message=message,
        calibration=calibration,
        detection=detection,
        capacity=capacity,
        balance=balance,
        costOfDrift=cost,
        recommendations=recommendations,
    )
