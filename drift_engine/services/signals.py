"""
Shared signal helpers used by the detector, calculators and recommendations.

Holds signal polarity (which direction is unhealthy), guarded relative-change
arithmetic, windowed means that skip unobserved values, and the privacy-floor
check applied before any composite score is computed.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from drift_engine.core.config import EngineSettings
from drift_engine.models.enums import DriftDirection, Signal, SignalPolarity
from drift_engine.models.schemas import MetricAggregate, Team

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Direction of change that indicates strain for each tracked signal.
# bdi is an overall drift index, so a rising value is unhealthy.
SIGNAL_POLARITY: Dict[str, SignalPolarity] = {
    Signal.MEETING_LOAD_INDEX.value: SignalPolarity.HIGHER_IS_WORSE,
    Signal.AFTER_HOURS_RATE.value: SignalPolarity.HIGHER_IS_WORSE,
    Signal.RESPONSE_MEDIAN_MINS.value: SignalPolarity.HIGHER_IS_WORSE,
    Signal.FOCUS_TIME_RATIO.value: SignalPolarity.LOWER_IS_WORSE,
    Signal.BDI.value: SignalPolarity.HIGHER_IS_WORSE,
}

# Human-readable names used in explanations and summaries
SIGNAL_LABELS: Dict[str, str] = {
    Signal.MEETING_LOAD_INDEX.value: "Meeting load",
    Signal.AFTER_HOURS_RATE.value: "After-hours activity",
    Signal.RESPONSE_MEDIAN_MINS.value: "Response time",
    Signal.FOCUS_TIME_RATIO.value: "Focus time",
    Signal.BDI.value: "Behavioral drift index",
}


def signal_label(signal_name: str) -> str:
    return SIGNAL_LABELS.get(signal_name, signal_name)


def is_adverse(signal_name: str, direction: DriftDirection) -> bool:
    """True when a change in `direction` is the unhealthy one for the signal."""
    polarity = SIGNAL_POLARITY.get(signal_name, SignalPolarity.HIGHER_IS_WORSE)
    if polarity == SignalPolarity.LOWER_IS_WORSE:
        return direction == DriftDirection.DECREASE
    return direction == DriftDirection.INCREASE


def relative_change(current: float, baseline: float) -> Optional[float]:
    """
    (current - baseline) / |baseline|, or None when baseline is zero.

    The sign always follows current - baseline. Returning None lets callers
    skip the signal instead of dividing by zero.
    """
    if baseline == 0:
        return None
    return (current - baseline) / abs(baseline)


def adverse_relative_change(signal_name: str, current: float, baseline: float) -> Optional[float]:
    """
    Relative change in the unhealthy direction, floored at zero.

    Improvements contribute 0, never a negative amount.
    """
    change = relative_change(current, baseline)
    if change is None:
        return None
    if SIGNAL_POLARITY.get(signal_name) == SignalPolarity.LOWER_IS_WORSE:
        change = -change
    return max(0.0, change)


def window_mean(rows: Sequence[MetricAggregate], signal_name: str) -> Tuple[Optional[float], int]:
    """
    Mean of a signal over the rows where it was observed.

    Returns:
        (mean, count). Mean is None when no row carries the signal.
    """
    values: List[float] = [
        v for v in (row.signal_value(signal_name) for row in rows) if v is not None
    ]
    if not values:
        return None, 0
    return float(np.mean(values)), len(values)


def recent_means(rows: Sequence[MetricAggregate], signal_names: Sequence[str]) -> Dict[str, float]:
    """Window means for every signal observed at least once."""
    means: Dict[str, float] = {}
    for name in signal_names:
        value, _ = window_mean(rows, name)
        if value is not None:
            means[name] = value
    return means


def group_size_violation(team: Team, settings: EngineSettings) -> Optional[str]:
    """
    Message describing a privacy-floor violation, or None if the team qualifies.
    """
    if team.memberCount < settings.min_group_size:
        logger.info(
            f"Team {team.teamId} has {team.memberCount} members, "
            f"below the minimum group size of {settings.min_group_size}"
        )
        return (
            f"Team has fewer than {settings.min_group_size} members; "
            "signals are withheld to protect individual privacy"
        )
    return None
