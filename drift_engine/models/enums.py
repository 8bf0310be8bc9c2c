"""
Enumeration definitions for the drift scoring engine.

All enums inherit from both `str` and `Enum` so pydantic models serialize them
as their plain string values.
"""

from enum import Enum


class Signal(str, Enum):
    """
    Tracked team-level signals carried by every MetricAggregate.

    - meetingLoadIndex: percent of the working week spent in meetings (0-100)
    - afterHoursRate: percent of activity outside working hours (0-100)
    - focusTimeRatio: share of the week available as uninterrupted focus (0-1)
    - responseMedianMins: median response latency in minutes
    - bdi: overall behavioral drift index
    """
    MEETING_LOAD_INDEX = "meetingLoadIndex"
    AFTER_HOURS_RATE = "afterHoursRate"
    FOCUS_TIME_RATIO = "focusTimeRatio"
    RESPONSE_MEDIAN_MINS = "responseMedianMins"
    BDI = "bdi"


class SignalPolarity(str, Enum):
    """Which direction of change is unhealthy for a signal."""
    HIGHER_IS_WORSE = "higher_is_worse"
    LOWER_IS_WORSE = "lower_is_worse"


class Confidence(str, Enum):
    """Baseline confidence grade derived from sample coverage of the window."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class DriftDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class Severity(str, Enum):
    """Drift event severity. High means far past the alert threshold."""
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ResultStatus(str, Enum):
    """
    Outcome of an engine entry point.

    - ok: computed from sufficient data
    - no_data: valid request, nothing to score (hasData=false)
    - failed: hard failure, e.g. no baseline exists
    """
    OK = "ok"
    NO_DATA = "no_data"
    FAILED = "failed"


class ErrorCode(str, Enum):
    NO_DATA = "no_data"
    UNCALIBRATED = "uncalibrated"
    INSUFFICIENT_GROUP_SIZE = "insufficient_group_size"
    DIVIDE_BY_ZERO_GUARDED = "divide_by_zero_guarded"


class CompositeKind(str, Enum):
    CAPACITY = "capacity"
    BALANCE = "balance"
    COST_OF_DRIFT = "cost_of_drift"


class CapacityStatus(str, Enum):
    """Capacity band: Green (<25), Yellow (<50), Red (>=50) by default."""
    GREEN = "Green"
    YELLOW = "Yellow"
    RED = "Red"


class BalanceState(str, Enum):
    BALANCED = "balanced"
    MODERATE = "moderate"
    SKEWED = "skewed"
    UNKNOWN = "unknown"


class DriftState(str, Enum):
    """
    Team-level drift summary from the count of adverse, actionable events.

    0-1 stable, 2 early drift, 3-4 developing drift, 5+ critical drift.
    """
    STABLE = "stable"
    EARLY_DRIFT = "early_drift"
    DEVELOPING_DRIFT = "developing_drift"
    CRITICAL_DRIFT = "critical_drift"


class CostTier(str, Enum):
    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    CRITICAL = "critical"
