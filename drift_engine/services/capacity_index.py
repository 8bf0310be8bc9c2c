"""
Capacity / Burn-Down Index.

A 0-100 score where lower is healthier, built from how far each contributing
signal has moved in its unhealthy direction relative to the team's baseline.

Formula:
    adverse_i = max(0, (recent - base) / base)   for higher-is-worse signals
              = max(0, (base - recent) / base)   for focusTimeRatio
    strain_i  = min(1, adverse_i / capacity_saturation)
    index     = clamp(0, 100, 100 * sum(w_i * strain_i) / sum(w_i))

Default weights (configurable):
    meetingLoadIndex 0.30, afterHoursRate 0.25,
    focusTimeRatio 0.25, responseMedianMins 0.20

Weights are renormalized over the signals that are available (observed in
both windows, non-zero baseline). Every term is non-decreasing in its signal's
adverse change, so worsening one signal never lowers the score.

Status Bands:
    Green < 25 <= Yellow < 50 <= Red
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from drift_engine.core.config import EngineSettings, get_settings
from drift_engine.models.enums import CapacityStatus, ErrorCode, ResultStatus
from drift_engine.models.schemas import (
    Baseline,
    CapacityDriver,
    CapacityIndexScore,
    MemberWorkloadSample,
    MetricAggregate,
    Team,
)
from drift_engine.services.signals import (
    adverse_relative_change,
    group_size_violation,
    recent_means,
    relative_change,
    signal_label,
)

logger = logging.getLogger(__name__)


# Drivers reported in the explanation
MAX_DRIVERS = 3


def classify_capacity(index: float, settings: Optional[EngineSettings] = None) -> CapacityStatus:
    settings = settings or get_settings()
    if index >= settings.capacity_red_at:
        return CapacityStatus.RED
    if index >= settings.capacity_yellow_at:
        return CapacityStatus.YELLOW
    return CapacityStatus.GREEN


def _explain(status: CapacityStatus, drivers: List[CapacityDriver]) -> str:
    if not drivers:
        return "Team is operating within its normal capacity."

    lead = signal_label(drivers[0].signalName).lower()
    if status == CapacityStatus.RED:
        return f"Team is running beyond sustainable capacity, driven mainly by {lead}."
    if status == CapacityStatus.YELLOW:
        return f"Team capacity is under strain, primarily from {lead}."
    return f"Team capacity is healthy; watch {lead}."


def calculate_capacity_index(
    team: Team,
    recent_metrics: Sequence[MetricAggregate],
    baseline: Optional[Baseline],
    member_samples: Optional[Sequence[MemberWorkloadSample]] = None,
    settings: Optional[EngineSettings] = None,
    calculated_at: Optional[datetime] = None,
) -> CapacityIndexScore:
    """
    Compute the capacity/burn-down index for a team.

    member_samples is accepted for a uniform calculator signature and unused.

    Returns:
        CapacityIndexScore with hasData=True, or hasData=False with the reason
        in error/message (privacy floor, uncalibrated, no recent data).
    """
    settings = settings or get_settings()
    calculated_at = calculated_at or datetime.now(timezone.utc)

    def empty(status: ResultStatus, error: ErrorCode, message: str) -> CapacityIndexScore:
        return CapacityIndexScore(
            teamId=team.teamId,
            hasData=False,
            status=status,
            error=error,
            message=message,
            calculatedAt=calculated_at,
        )

    violation = group_size_violation(team, settings)
    if violation:
        return empty(ResultStatus.NO_DATA, ErrorCode.INSUFFICIENT_GROUP_SIZE, violation)

    if baseline is None:
        return empty(
            ResultStatus.FAILED,
            ErrorCode.UNCALIBRATED,
            "No baseline exists for this team",
        )

    rows = [row for row in recent_metrics if row.teamId == team.teamId]
    current = recent_means(rows, list(settings.capacity_weights))
    if not current:
        return empty(ResultStatus.NO_DATA, ErrorCode.NO_DATA, "No recent aggregates to score")

    weights: Dict[str, float] = {}
    contributions: Dict[str, float] = {}
    changes: Dict[str, float] = {}

    for signal_name, weight in settings.capacity_weights.items():
        base_value = baseline.signals.get(signal_name)
        recent_value = current.get(signal_name)
        if base_value is None or recent_value is None or weight <= 0:
            continue

        adverse = adverse_relative_change(signal_name, recent_value, base_value)
        if adverse is None:
            logger.warning(f"Zero baseline for {signal_name} on team {team.teamId}; excluded from capacity")
            continue

        weights[signal_name] = weight
        contributions[signal_name] = min(1.0, adverse / settings.capacity_saturation)
        changes[signal_name] = relative_change(recent_value, base_value) or 0.0

    if not weights:
        return empty(ResultStatus.NO_DATA, ErrorCode.NO_DATA, "No signal available in both baseline and recent window")

    total_weight = sum(weights.values())
    normalized = {name: w / total_weight for name, w in weights.items()}

    raw = 100.0 * sum(normalized[name] * contributions[name] for name in normalized)
    index = round(min(100.0, max(0.0, raw)), 1)
    status = classify_capacity(index, settings)

    drivers = sorted(
        (
            CapacityDriver(
                signalName=name,
                percentChange=round(changes[name], 4),
                impact=round(100.0 * normalized[name] * contributions[name], 1),
            )
            for name in normalized
            if contributions[name] > 0
        ),
        key=lambda d: d.impact,
        reverse=True,
    )[:MAX_DRIVERS]

    return CapacityIndexScore(
        teamId=team.teamId,
        hasData=True,
        calculatedAt=calculated_at,
        index=index,
        capacityStatus=status,
        drivers=drivers,
        weights={name: round(w, 4) for name, w in normalized.items()},
        explanation=_explain(status, drivers),
    )
