"""
Load-Balance Index.

Measures how evenly workload is spread across the members of a team using
anonymized per-member samples (no identifiers).

Algorithm:
    For each dimension (meetingHours, afterHoursHours, responsePressure):
        CV    = population std / mean        (mean == 0 -> CV = 0)
        score = clamp(0, 100, (1 - CV) * 100)
    index = 0.40 * meeting + 0.35 * after-hours + 0.25 * response pressure

State Classification:
    Uses the unweighted average of raw CVs, not the weighted score, so that
    changing weights never moves the state boundaries:
        balanced < 0.3 <= moderate < 0.5 <= skewed

Edge Cases:
    - Fewer than 3 samples: hasData=False, index=50, state=unknown
    - Team below the privacy floor: hasData=False, insufficient_group_size
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import numpy as np

from drift_engine.core.config import EngineSettings, get_settings
from drift_engine.models.enums import BalanceState, ErrorCode, ResultStatus
from drift_engine.models.schemas import (
    Baseline,
    DimensionDistribution,
    LoadBalanceScore,
    MemberWorkloadSample,
    MetricAggregate,
    Team,
)
from drift_engine.services.signals import group_size_violation

logger = logging.getLogger(__name__)


# Neutral index reported when the distribution cannot be measured
NEUTRAL_INDEX = 50.0

DIMENSION_LABELS: Dict[str, str] = {
    'meetingHours': "meeting load",
    'afterHoursHours': "after-hours work",
    'responsePressure': "response pressure",
}


def calculate_cv(values: Sequence[float]) -> float:
    """
    Coefficient of variation (population std / mean).

    Returns 0 for fewer than two values or a zero mean.

    Example:
        >>> calculate_cv([10, 10, 10])
        0.0
    """
    if len(values) < 2:
        return 0.0
    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    if mean == 0:
        return 0.0
    return float(arr.std() / mean)


def cv_to_score(cv: float) -> float:
    return min(100.0, max(0.0, (1.0 - cv) * 100.0))


def classify_balance(average_cv: float, settings: Optional[EngineSettings] = None) -> BalanceState:
    settings = settings or get_settings()
    if average_cv < settings.balance_balanced_below:
        return BalanceState.BALANCED
    if average_cv < settings.balance_moderate_below:
        return BalanceState.MODERATE
    return BalanceState.SKEWED


def _explain(state: BalanceState, most_skewed: Optional[str]) -> str:
    label = DIMENSION_LABELS.get(most_skewed or '', most_skewed or "workload")
    if state == BalanceState.BALANCED:
        return "Workload is evenly distributed across the team."
    if state == BalanceState.MODERATE:
        return f"Workload is moderately uneven, particularly in {label}."
    return f"Workload is highly skewed. {label.capitalize()} shows significant imbalance."


def calculate_load_balance_index(
    team: Team,
    recent_metrics: Optional[Sequence[MetricAggregate]] = None,
    baseline: Optional[Baseline] = None,
    member_samples: Optional[Sequence[MemberWorkloadSample]] = None,
    settings: Optional[EngineSettings] = None,
    calculated_at: Optional[datetime] = None,
) -> LoadBalanceScore:
    """
    Compute the load-balance index from anonymized member samples.

    recent_metrics and baseline are accepted for a uniform calculator
    signature; the distribution alone determines the score.
    """
    settings = settings or get_settings()
    calculated_at = calculated_at or datetime.now(timezone.utc)
    samples = list(member_samples or [])

    violation = group_size_violation(team, settings)
    if violation:
        return LoadBalanceScore(
            teamId=team.teamId,
            hasData=False,
            status=ResultStatus.NO_DATA,
            error=ErrorCode.INSUFFICIENT_GROUP_SIZE,
            message=violation,
            calculatedAt=calculated_at,
            sampleCount=len(samples),
        )

    if len(samples) < settings.min_member_samples:
        return LoadBalanceScore(
            teamId=team.teamId,
            hasData=False,
            status=ResultStatus.NO_DATA,
            error=ErrorCode.NO_DATA,
            message=f"At least {settings.min_member_samples} member samples are required",
            calculatedAt=calculated_at,
            sampleCount=len(samples),
        )

    distributions: List[DimensionDistribution] = []
    weighted = 0.0
    total_weight = 0.0
    cvs: Dict[str, float] = {}

    for dimension, weight in settings.balance_weights.items():
        values = [float(getattr(sample, dimension)) for sample in samples]
        cv = calculate_cv(values)
        score = cv_to_score(cv)
        cvs[dimension] = cv
        weighted += weight * score
        total_weight += weight
        distributions.append(
            DimensionDistribution(
                dimension=dimension,
                mean=round(float(np.mean(values)), 2),
                cv=round(cv, 3),
                range=round(max(values) - min(values), 2),
                score=round(score, 1),
            )
        )

    index = round(weighted / total_weight, 1) if total_weight else NEUTRAL_INDEX
    average_cv = float(np.mean(list(cvs.values())))
    state = classify_balance(average_cv, settings)
    most_skewed = max(cvs, key=cvs.get) if state != BalanceState.BALANCED else None

    logger.info(f"Load balance for team {team.teamId}: index={index}, state={state.value}")

    return LoadBalanceScore(
        teamId=team.teamId,
        hasData=True,
        calculatedAt=calculated_at,
        index=index,
        state=state,
        averageCv=round(average_cv, 3),
        mostSkewedDimension=most_skewed,
        distributions=distributions,
        sampleCount=len(samples),
        explanation=_explain(state, most_skewed),
    )
