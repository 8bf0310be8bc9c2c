"""
Cost-of-Drift Estimator.

Converts behavioral drift into a directional currency range. The output is
always a low/midpoint/high band, never a single exact figure.

Hour Components (each clamped at zero; improvement is not negative cost):
    Meeting overhead = max(0, currentMeetingHours - baselineMeetingHours) * teamSize
        meeting hours/week = meetingLoadIndex / 100 * work_hours_per_week
    Execution delay  = (max(0, baseFocus - curFocus) * 40
                        + max(0, curResponse - baseResponse) / 10 * 1h) * teamSize
    Rework           = max(0, curAfterHours - baseAfterHours) / 100 * 40 * teamSize

Costing:
    weeklyCost = totalHoursLost * avgHourlyCost      (org config, default 75)
    low = 0.8 * weeklyCost, high = 1.2 * weeklyCost
    projection = weekly * 4

Interpretation Tiers (weekly midpoint):
    0           none
    < 1,000     low
    < 5,000     moderate
    < 15,000    significant
    otherwise   critical

Key Outputs:
    - CostOfDriftEstimate per team
    - OrgCostOfDrift rollup with the top three teams and their primary driver

Example:
    >>> estimate = estimate_cost_of_drift(team, recent, baseline)
    >>> estimate.weeklyEstimate.low <= estimate.weeklyEstimate.high
    True
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from drift_engine.core.config import EngineSettings, get_settings
from drift_engine.models.enums import CostTier, ErrorCode, ResultStatus, Signal
from drift_engine.models.schemas import (
    Baseline,
    CostBreakdownItem,
    CostOfDriftEstimate,
    CostRange,
    MemberWorkloadSample,
    MetricAggregate,
    OrgCostOfDrift,
    Team,
    TeamCostSummary,
)
from drift_engine.services.signals import group_size_violation, recent_means

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

COMPONENT_MEETINGS = "meetingOverhead"
COMPONENT_EXECUTION = "executionDelay"
COMPONENT_REWORK = "rework"

# Signals that feed the hours-lost model
COST_SIGNALS = (
    Signal.MEETING_LOAD_INDEX.value,
    Signal.FOCUS_TIME_RATIO.value,
    Signal.RESPONSE_MEDIAN_MINS.value,
    Signal.AFTER_HOURS_RATE.value,
)

COMPONENT_LABELS: Dict[str, str] = {
    COMPONENT_MEETINGS: "Meeting overhead",
    COMPONENT_EXECUTION: "Execution delay",
    COMPONENT_REWORK: "Rework",
}

TIER_INTERPRETATIONS: Dict[CostTier, str] = {
    CostTier.NONE: "No significant drift detected. Team is operating efficiently.",
    CostTier.LOW: "Low organizational friction. Minor optimization opportunities exist.",
    CostTier.MODERATE: "Moderate drift impact. Consider reviewing coordination patterns.",
    CostTier.SIGNIFICANT: "Significant drift cost. Intervention recommended to prevent further escalation.",
    CostTier.CRITICAL: "Critical drift impact. Immediate attention required to restore execution efficiency.",
}

# Teams listed in the org rollup
TOP_TEAM_COUNT = 3


# =============================================================================
# Helpers
# =============================================================================


def classify_cost_tier(weekly_midpoint: float, settings: Optional[EngineSettings] = None) -> CostTier:
    settings = settings or get_settings()
    if weekly_midpoint <= 0:
        return CostTier.NONE
    if weekly_midpoint < settings.cost_tier_low_below:
        return CostTier.LOW
    if weekly_midpoint < settings.cost_tier_moderate_below:
        return CostTier.MODERATE
    if weekly_midpoint < settings.cost_tier_significant_below:
        return CostTier.SIGNIFICANT
    return CostTier.CRITICAL


def build_cost_range(midpoint: float, settings: Optional[EngineSettings] = None) -> CostRange:
    """
    Range around a midpoint using the configured low/high multipliers.

    Example:
        >>> build_cost_range(750.0)
        CostRange(low=600.0, midpoint=750.0, high=900.0)
    """
    settings = settings or get_settings()
    midpoint = max(0.0, midpoint)
    return CostRange(
        low=round(midpoint * settings.cost_range_low, 2),
        midpoint=round(midpoint, 2),
        high=round(midpoint * settings.cost_range_high, 2),
    )


def _excess(current: Dict[str, float], baseline: Baseline, signal: Signal, lower_is_worse: bool = False) -> float:
    cur = current.get(signal.value)
    base = baseline.signals.get(signal.value)
    if cur is None or base is None:
        return 0.0
    delta = base - cur if lower_is_worse else cur - base
    return max(0.0, delta)


def calculate_hours_lost(
    current: Dict[str, float],
    baseline: Baseline,
    team_size: int,
    settings: Optional[EngineSettings] = None,
) -> Dict[str, float]:
    """Weekly hours lost per component for the whole team."""
    settings = settings or get_settings()
    hours_per_week = settings.work_hours_per_week
    index_to_hours = hours_per_week / 100.0

    meeting_excess = _excess(current, baseline, Signal.MEETING_LOAD_INDEX) * index_to_hours
    focus_erosion = _excess(current, baseline, Signal.FOCUS_TIME_RATIO, lower_is_worse=True)
    response_slowdown = _excess(current, baseline, Signal.RESPONSE_MEDIAN_MINS)
    after_hours_excess = _excess(current, baseline, Signal.AFTER_HOURS_RATE)

    execution = focus_erosion * hours_per_week + response_slowdown / settings.response_minutes_per_lost_hour

    return {
        COMPONENT_MEETINGS: meeting_excess * team_size,
        COMPONENT_EXECUTION: execution * team_size,
        COMPONENT_REWORK: after_hours_excess / 100.0 * hours_per_week * team_size,
    }


def _breakdown(hours: Dict[str, float], avg_hourly_cost: float) -> Tuple[List[CostBreakdownItem], Optional[str]]:
    total = sum(hours.values())
    items = [
        CostBreakdownItem(
            component=component,
            hours=round(value, 2),
            cost=round(value * avg_hourly_cost, 2),
            percentage=round(value / total * 100.0, 1) if total > 0 else 0.0,
        )
        for component, value in hours.items()
    ]
    primary = max(hours, key=hours.get) if total > 0 else None
    return items, primary


# =============================================================================
# Estimation
# =============================================================================


def estimate_cost_from_hours(
    team_id: str,
    hours: Dict[str, float],
    avg_hourly_cost: float,
    settings: Optional[EngineSettings] = None,
    calculated_at: Optional[datetime] = None,
) -> CostOfDriftEstimate:
    """Cost ranges, breakdown and interpretation for known component hours."""
    settings = settings or get_settings()
    calculated_at = calculated_at or datetime.now(timezone.utc)

    total_hours = sum(max(0.0, h) for h in hours.values())
    weekly_cost = total_hours * avg_hourly_cost
    breakdown, primary = _breakdown(hours, avg_hourly_cost)
    tier = classify_cost_tier(weekly_cost, settings)

    return CostOfDriftEstimate(
        teamId=team_id,
        hasData=True,
        calculatedAt=calculated_at,
        weeklyEstimate=build_cost_range(weekly_cost, settings),
        projectedEstimate=build_cost_range(weekly_cost * settings.projection_weeks, settings),
        projectionWeeks=settings.projection_weeks,
        totalHoursLost=round(total_hours, 2),
        avgHourlyCost=avg_hourly_cost,
        breakdown=breakdown,
        primaryDriver=primary,
        tier=tier,
        interpretation=TIER_INTERPRETATIONS[tier],
    )


def estimate_cost_of_drift(
    team: Team,
    recent_metrics: Sequence[MetricAggregate],
    baseline: Optional[Baseline],
    member_samples: Optional[Sequence[MemberWorkloadSample]] = None,
    settings: Optional[EngineSettings] = None,
    calculated_at: Optional[datetime] = None,
) -> CostOfDriftEstimate:
    """
    Estimate the weekly and projected cost of a team's drift.

    The hourly cost comes from settings.avg_hourly_cost; apply org overrides
    with EngineSettings.for_org before calling.

    Returns:
        CostOfDriftEstimate. When no recent aggregates exist, or none of the cost
        signals is present in both the baseline and the recent window,
        hasData=False with an explicit message rather than a zero-cost result.
    """
    settings = settings or get_settings()
    calculated_at = calculated_at or datetime.now(timezone.utc)

    def empty(status: ResultStatus, error: ErrorCode, message: str) -> CostOfDriftEstimate:
        return CostOfDriftEstimate(
            teamId=team.teamId,
            hasData=False,
            status=status,
            error=error,
            message=message,
            calculatedAt=calculated_at,
            projectionWeeks=settings.projection_weeks,
        )

    violation = group_size_violation(team, settings)
    if violation:
        return empty(ResultStatus.NO_DATA, ErrorCode.INSUFFICIENT_GROUP_SIZE, violation)

    if baseline is None:
        return empty(ResultStatus.FAILED, ErrorCode.UNCALIBRATED, "No baseline exists for this team")

    rows = [row for row in recent_metrics if row.teamId == team.teamId]
    if not rows:
        return empty(
            ResultStatus.NO_DATA,
            ErrorCode.NO_DATA,
            "No recent metrics available to estimate cost of drift",
        )

    current = recent_means(rows, list(COST_SIGNALS))
    if not any(name in current and name in baseline.signals for name in COST_SIGNALS):
        return empty(
            ResultStatus.NO_DATA,
            ErrorCode.NO_DATA,
            "No cost signal available in both baseline and recent window",
        )

    hours = calculate_hours_lost(current, baseline, team.memberCount, settings)

    estimate = estimate_cost_from_hours(
        team.teamId,
        hours,
        settings.avg_hourly_cost,
        settings=settings,
        calculated_at=calculated_at,
    )

    logger.info(
        f"Cost of drift for team {team.teamId}: {estimate.totalHoursLost}h/week, "
        f"tier {estimate.tier.value}"
    )
    return estimate


def aggregate_org_cost_of_drift(
    estimates: Sequence[CostOfDriftEstimate],
    org_id: Optional[str] = None,
    settings: Optional[EngineSettings] = None,
) -> OrgCostOfDrift:
    """
    Roll team estimates up to the organization.

    Teams without data are counted but contribute nothing; they are never
    treated as zero-cost.
    """
    settings = settings or get_settings()
    with_data = [e for e in estimates if e.hasData and e.weeklyEstimate is not None]
    without_data = len(estimates) - len(with_data)

    if not with_data:
        return OrgCostOfDrift(orgId=org_id, hasData=False, teamsWithoutData=without_data)

    weekly_midpoint = sum(e.weeklyEstimate.midpoint for e in with_data)
    tier = classify_cost_tier(weekly_midpoint, settings)

    ranked = sorted(with_data, key=lambda e: e.weeklyEstimate.midpoint, reverse=True)
    top_teams = [
        TeamCostSummary(
            teamId=e.teamId,
            weeklyMidpoint=e.weeklyEstimate.midpoint,
            primaryDriver=COMPONENT_LABELS.get(e.primaryDriver, e.primaryDriver) if e.primaryDriver else None,
        )
        for e in ranked[:TOP_TEAM_COUNT]
    ]

    return OrgCostOfDrift(
        orgId=org_id,
        hasData=True,
        teamsWithData=len(with_data),
        teamsWithoutData=without_data,
        weeklyEstimate=build_cost_range(weekly_midpoint, settings),
        projectedEstimate=build_cost_range(weekly_midpoint * settings.projection_weeks, settings),
        topTeams=top_teams,
        interpretation=TIER_INTERPRETATIONS[tier],
    )
