"""
Drift Detection Service.

Compares a short recent window of aggregates against the team's current
Baseline and emits immutable DriftEvents for signals whose relative change
exceeds a per-signal threshold.

Algorithm Overview:
    recentMean    = mean of the signal over the recent window (skipping gaps)
    percentChange = (recentMean - baselineValue) / baselineValue
    emit if |percentChange| > threshold, where threshold = ratio - 1

    Thresholds are per signal because signals have different natural variance
    (meeting load 1.15x, after-hours 1.25x, response time 1.4x by default).
    A zero baseline value skips the signal rather than dividing by zero.

Severity:
    high   if |percentChange| >= (1 + severity_high_margin) * threshold
    medium otherwise
    The boundary belongs to the more severe tier.

Provisional Events:
    A Low-confidence baseline still runs detection, but every event is flagged
    provisional and must be treated as observational only.

Drift State:
    The count of adverse, non-provisional events summarizes the team:
    0-1 stable, 2 early drift, 3-4 developing drift, 5+ critical drift.

Failure Semantics:
    - No baseline: status failed, error uncalibrated. No default is substituted.
    - Empty recent window: status no_data, no events.

Usage:
    from drift_engine.services.drift_detection import detect

    result = detect("team_platform", recent_rows, baseline)
    for event in result.events:
        print(event.signalName, event.percentChange)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from drift_engine.core.config import EngineSettings, get_settings
from drift_engine.models.enums import (
    Confidence,
    DriftDirection,
    DriftState,
    ErrorCode,
    ResultStatus,
    Severity,
)
from drift_engine.models.schemas import (
    Baseline,
    DetectionResult,
    DriftDriver,
    DriftEvent,
    MetricAggregate,
)
from drift_engine.services.signals import (
    is_adverse,
    relative_change,
    signal_label,
    window_mean,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Number of largest absolute changes reported as top drivers
TOP_DRIVER_COUNT = 3

# Namespace for deterministic event ids
EVENT_ID_NAMESPACE = uuid.UUID('6f1c2b7e-4d0a-4f43-9a57-3c1f0b6e2d11')

# Scales MAD to a standard deviation under normality
MAD_SCALE = 1.4826


# =============================================================================
# Helpers
# =============================================================================


def classify_severity(percent_change: float, threshold: float, settings: Optional[EngineSettings] = None) -> Severity:
    """
    Severity tier from the magnitude of a change relative to its threshold.

    Example:
        >>> classify_severity(0.40, 0.15)   # 0.40 >= 1.5 * 0.15
        <Severity.HIGH: 'high'>
        >>> classify_severity(0.20, 0.15)
        <Severity.MEDIUM: 'medium'>
    """
    settings = settings or get_settings()
    if abs(percent_change) >= (1.0 + settings.severity_high_margin) * threshold:
        return Severity.HIGH
    return Severity.MEDIUM


def summarize_drift_state(events: Sequence[DriftEvent]) -> DriftState:
    """Team drift state from the number of adverse, actionable events."""
    negative = sum(1 for e in events if e.adverse and not e.provisional)

    if negative >= 5:
        return DriftState.CRITICAL_DRIFT
    if negative >= 3:
        return DriftState.DEVELOPING_DRIFT
    if negative == 2:
        return DriftState.EARLY_DRIFT
    return DriftState.STABLE


def _z_score(current: float, baseline: Baseline, signal_name: str) -> Optional[float]:
    stats = baseline.signalStats.get(signal_name)
    if stats is None or stats.std == 0:
        return None
    return round((current - stats.mean) / stats.std, 4)


def _robust_z_score(current: float, baseline: Baseline, signal_name: str) -> Optional[float]:
    stats = baseline.signalStats.get(signal_name)
    if stats is None or stats.mad == 0:
        return None
    return round((current - stats.median) / (MAD_SCALE * stats.mad), 4)


def _event_id(team_id: str, signal_name: str, detected_at: datetime) -> str:
    return str(uuid.uuid5(EVENT_ID_NAMESPACE, f"{team_id}|{signal_name}|{detected_at.isoformat()}"))


def _build_summary(events: Sequence[DriftEvent], state: DriftState) -> str:
    adverse = [e for e in events if e.adverse and not e.provisional]
    if not adverse:
        if events and all(e.provisional for e in events):
            return "Baseline confidence is low; changes are observational only."
        return "No signals showing negative drift."

    lead = max(adverse, key=lambda e: abs(e.percentChange))
    noun = "signal" if len(adverse) == 1 else "signals"
    return (
        f"{len(adverse)} {noun} showing negative drift, led by "
        f"{signal_label(lead.signalName)} ({lead.percentChange:+.0%})."
    )


# =============================================================================
# Detection
# =============================================================================


def detect(
    team_id: str,
    recent_window: Sequence[MetricAggregate],
    baseline: Optional[Baseline],
    detected_at: Optional[datetime] = None,
    settings: Optional[EngineSettings] = None,
) -> DetectionResult:
    """
    Detect drift of a recent window against the team's current baseline.

    Args:
        team_id: Team being evaluated.
        recent_window: Recent aggregates (recommended 7 periods).
        baseline: The team's current Baseline, or None if never calibrated.
        detected_at: Timestamp stamped on events. Defaults to now (UTC).
        settings: Engine settings. Defaults to get_settings().

    Returns:
        DetectionResult: events plus drift-state summary, or a failed/no_data
        result.
    """
    settings = settings or get_settings()

    if baseline is None:
        logger.warning(f"Detection requested for uncalibrated team {team_id}")
        return DetectionResult(
            teamId=team_id,
            status=ResultStatus.FAILED,
            error=ErrorCode.UNCALIBRATED,
            message="No baseline exists for this team; calibrate before detecting drift",
        )

    rows = [row for row in recent_window if row.teamId == team_id]
    if not rows:
        return DetectionResult(
            teamId=team_id,
            status=ResultStatus.NO_DATA,
            error=ErrorCode.NO_DATA,
            message="No aggregates in the recent window",
        )

    detected_at = detected_at or datetime.now(timezone.utc)
    provisional = baseline.confidence == Confidence.LOW

    events: List[DriftEvent] = []
    skipped: List[str] = []

    for signal_name, baseline_value in baseline.signals.items():
        threshold = settings.threshold_for(signal_name)
        if threshold is None:
            continue

        current, _ = window_mean(rows, signal_name)
        if current is None:
            continue

        percent_change = relative_change(current, baseline_value)
        if percent_change is None:
            logger.warning(f"Zero baseline for {signal_name} on team {team_id}; signal skipped")
            skipped.append(signal_name)
            continue

        if abs(percent_change) <= threshold:
            continue

        direction = DriftDirection.INCREASE if percent_change > 0 else DriftDirection.DECREASE
        events.append(
            DriftEvent(
                eventId=_event_id(team_id, signal_name, detected_at),
                teamId=team_id,
                signalName=signal_name,
                currentValue=round(current, 4),
                baselineValue=round(baseline_value, 4),
                percentChange=round(percent_change, 4),
                direction=direction,
                severity=classify_severity(percent_change, threshold, settings),
                threshold=round(threshold, 4),
                zScore=_z_score(current, baseline, signal_name),
                robustZScore=_robust_z_score(current, baseline, signal_name),
                adverse=is_adverse(signal_name, direction),
                provisional=provisional,
                detectedAt=detected_at,
            )
        )

    ranked = sorted(events, key=lambda e: abs(e.percentChange), reverse=True)
    top_drivers = [
        DriftDriver(
            signalName=e.signalName,
            percentChange=e.percentChange,
            direction=e.direction,
            adverse=e.adverse,
        )
        for e in ranked[:TOP_DRIVER_COUNT]
    ]
    state = summarize_drift_state(events)

    logger.info(
        f"Detected {len(events)} drift events for team {team_id} "
        f"(state={state.value}, provisional={provisional})"
    )

    return DetectionResult(
        teamId=team_id,
        events=events,
        skippedSignals=skipped,
        provisional=provisional,
        driftState=state,
        topDrivers=top_drivers,
        summary=_build_summary(events, state),
    )
