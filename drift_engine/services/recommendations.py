"""
Recommendation Engine.

Maps detected drift patterns and composite-score anomalies to a short,
ranked, explainable action list for a team.

Rules:
    - Canned templates keyed by (signal, direction) fire only for adverse,
      non-provisional drift events.
    - Priority is high when |percentChange| > 1.3x the signal's alert
      threshold, medium otherwise.
    - Composite triggers (capacity Red, skewed load balance, significant cost
      of drift) fire only against a Medium or High confidence baseline.
    - Topics are deduplicated per run; the first occurrence wins.
    - Items are stable-sorted by priority, so equal priorities keep input order.
    - Output is capped at max_recommendations, and the last slot always holds
      exactly one low-priority recognition/check-in item, even for a healthy
      team with zero drift.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from drift_engine.core.config import EngineSettings, get_settings
from drift_engine.models.enums import (
    BalanceState,
    CapacityStatus,
    Confidence,
    CostTier,
    DriftDirection,
    Priority,
    Signal,
)
from drift_engine.models.schemas import (
    Baseline,
    CapacityIndexScore,
    CompositeScoreBase,
    CostOfDriftEstimate,
    DriftEvent,
    LoadBalanceScore,
    Recommendation,
)
from drift_engine.services.signals import signal_label

logger = logging.getLogger(__name__)


# =============================================================================
# Templates
# =============================================================================

# (signal, direction) -> (topic, action)
PLAYBOOK: Dict[Tuple[str, DriftDirection], Tuple[str, str]] = {
    (Signal.MEETING_LOAD_INDEX.value, DriftDirection.INCREASE): (
        "Meeting overload",
        "Implement a no-meeting day or consolidate recurring syncs.",
    ),
    (Signal.AFTER_HOURS_RATE.value, DriftDirection.INCREASE): (
        "After-hours activity",
        "Discuss working-hour boundaries and encourage time off.",
    ),
    (Signal.RESPONSE_MEDIAN_MINS.value, DriftDirection.INCREASE): (
        "Response latency",
        "Check workload distribution and consider reducing meeting load.",
    ),
    (Signal.FOCUS_TIME_RATIO.value, DriftDirection.DECREASE): (
        "Focus time erosion",
        "Block dedicated deep work hours and reduce interruptions.",
    ),
    (Signal.BDI.value, DriftDirection.INCREASE): (
        "Team health check",
        "Run a short retrospective on what changed in the team's working patterns.",
    ),
}

RECOGNITION_TOPIC = "Recognition & check-in"
RECOGNITION_ACTION = "Acknowledge recent wins and hold a brief check-in on workload and wellbeing."

PRIORITY_ORDER: Dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


# =============================================================================
# Rule Evaluation
# =============================================================================


def _priority_for(event: DriftEvent, settings: EngineSettings) -> Priority:
    if abs(event.percentChange) > settings.priority_high_multiplier * event.threshold:
        return Priority.HIGH
    return Priority.MEDIUM


def _from_events(
    events: Sequence[DriftEvent],
    team_id: Optional[str],
    settings: EngineSettings,
) -> List[Recommendation]:
    recommendations: List[Recommendation] = []
    for event in events:
        if event.provisional or not event.adverse:
            continue
        template = PLAYBOOK.get((event.signalName, event.direction))
        if template is None:
            continue

        topic, action = template
        rationale = (
            f"{signal_label(event.signalName)} is {event.percentChange:+.0%} versus baseline "
            f"({event.currentValue:g} vs {event.baselineValue:g}), beyond the "
            f"{event.threshold:.0%} alert threshold."
        )
        recommendations.append(
            Recommendation(
                teamId=team_id,
                topic=topic,
                action=action,
                rationale=rationale,
                priority=_priority_for(event, settings),
                triggeredBy=[event.eventId],
            )
        )
    return recommendations


def _from_composites(
    scores: Sequence[CompositeScoreBase],
    team_id: Optional[str],
) -> List[Recommendation]:
    recommendations: List[Recommendation] = []
    for score in scores:
        if not score.hasData:
            continue

        if isinstance(score, CapacityIndexScore) and score.capacityStatus == CapacityStatus.RED:
            recommendations.append(
                Recommendation(
                    teamId=team_id,
                    topic="Capacity relief",
                    action="Defer non-critical work and protect recovery time for the next cycle.",
                    rationale=f"Capacity index is {score.index:g} (Red). {score.explanation or ''}".strip(),
                    priority=Priority.HIGH,
                    triggeredBy=[score.kind.value],
                )
            )
        elif isinstance(score, LoadBalanceScore) and score.state == BalanceState.SKEWED:
            recommendations.append(
                Recommendation(
                    teamId=team_id,
                    topic="Rebalance workload",
                    action="Redistribute recurring responsibilities and review on-call and meeting ownership.",
                    rationale=f"Load-balance index is {score.index:g}. {score.explanation or ''}".strip(),
                    priority=Priority.MEDIUM,
                    triggeredBy=[score.kind.value],
                )
            )
        elif isinstance(score, CostOfDriftEstimate) and score.tier in (CostTier.SIGNIFICANT, CostTier.CRITICAL):
            weekly = score.weeklyEstimate
            recommendations.append(
                Recommendation(
                    teamId=team_id,
                    topic="Review cost of drift",
                    action="Review coordination patterns with the team and agree on one change to trial.",
                    rationale=(
                        f"Estimated drift cost is {weekly.low:,.0f}-{weekly.high:,.0f} per week. "
                        f"{score.interpretation or ''}"
                    ).strip(),
                    priority=Priority.HIGH if score.tier == CostTier.CRITICAL else Priority.MEDIUM,
                    triggeredBy=[score.kind.value],
                )
            )
    return recommendations


def _recognition(team_id: Optional[str], has_actions: bool) -> Recommendation:
    if has_actions:
        rationale = "Pair corrective actions with recognition to keep the team engaged."
    else:
        rationale = "No actionable drift detected; reinforce what is working."
    return Recommendation(
        teamId=team_id,
        topic=RECOGNITION_TOPIC,
        action=RECOGNITION_ACTION,
        rationale=rationale,
        priority=Priority.LOW,
    )


def recommend(
    drift_events: Sequence[DriftEvent],
    composite_scores: Sequence[CompositeScoreBase],
    baseline: Optional[Baseline],
    team_id: Optional[str] = None,
    settings: Optional[EngineSettings] = None,
) -> List[Recommendation]:
    """
    Build the ranked, deduplicated recommendation list for one team run.

    Args:
        drift_events: Events from the latest detection run.
        composite_scores: Capacity, balance and cost-of-drift results.
        baseline: The team's current baseline (None if uncalibrated).
        team_id: Team identifier stamped on each item. Defaults to the
            baseline's or first event's team.
        settings: Engine settings. Defaults to get_settings().

    Returns:
        List[Recommendation]: never empty; the recognition item is always last.
    """
    settings = settings or get_settings()
    if team_id is None:
        if baseline is not None:
            team_id = baseline.teamId
        elif drift_events:
            team_id = drift_events[0].teamId

    candidates = _from_events(drift_events, team_id, settings)

    # Composite anomalies need a trustworthy baseline behind them
    if baseline is not None and baseline.confidence != Confidence.LOW:
        candidates.extend(_from_composites(composite_scores, team_id))

    seen = set()
    unique: List[Recommendation] = []
    for item in candidates:
        if item.topic in seen or item.topic == RECOGNITION_TOPIC:
            continue
        seen.add(item.topic)
        unique.append(item)

    ranked = sorted(unique, key=lambda r: PRIORITY_ORDER[r.priority])
    actions = ranked[: settings.max_recommendations - 1]
    result = actions + [_recognition(team_id, bool(actions))]

    logger.info(f"Built {len(result)} recommendations for team {team_id}")
    return result
