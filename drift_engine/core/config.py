"""
Settings and configuration management for the drift scoring engine.

This module provides centralized configuration using pydantic-settings, which
loads every tunable from environment variables (prefix ``DRIFT_ENGINE_``) or a
``.env`` file. Every option the engine recognizes is enumerated here with its
default; there are no hidden option bags in the calculators.

Key Features:
- Environment variable validation and type coercion
- Immutable (frozen) settings so concurrent per-team runs share one object
- Singleton access via @lru_cache
- Per-organization overrides through OrgConfig and EngineSettings.for_org()

Default thresholds and weights are heuristics carried over from the product's
first release. They are configurable parameters, not empirically validated
constants.

Environment Variables (examples):
- DRIFT_ENGINE_DATABASE_URL: PostgreSQL DSN for the snapshot store (optional)
- DRIFT_ENGINE_MIN_GROUP_SIZE: Privacy floor for team size (default: 5)
- DRIFT_ENGINE_AVG_HOURLY_COST: Fully loaded hourly cost (default: 75.0)
- DRIFT_ENGINE_DRIFT_THRESHOLDS: JSON object of signal -> ratio

Usage:
    from drift_engine.core.config import get_settings

    settings = get_settings()
    window = settings.calibration_window_periods
    org_settings = settings.for_org(OrgConfig(avgHourlyCost=90))
"""

from functools import lru_cache
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Default Tables
# =============================================================================

# Drift alert thresholds expressed as ratios of the baseline.
# A ratio of 1.15 means a relative change beyond 15% emits an event.
# Signals with higher natural variance (response latency) get looser ratios.
DEFAULT_DRIFT_THRESHOLDS: Dict[str, float] = {
    'meetingLoadIndex': 1.15,
    'afterHoursRate': 1.25,
    'responseMedianMins': 1.40,
    'focusTimeRatio': 1.10,
    'bdi': 1.20,
}

# Capacity index weights; renormalized over the signals actually available
DEFAULT_CAPACITY_WEIGHTS: Dict[str, float] = {
    'meetingLoadIndex': 0.30,
    'afterHoursRate': 0.25,
    'focusTimeRatio': 0.25,
    'responseMedianMins': 0.20,
}

# Load-balance dimension weights (sum to 1.0)
DEFAULT_BALANCE_WEIGHTS: Dict[str, float] = {
    'meetingHours': 0.40,
    'afterHoursHours': 0.35,
    'responsePressure': 0.25,
}


class EngineSettings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Attributes:
        database_url: Optional PostgreSQL DSN used by PostgresSnapshotStore.
        log_level: Root log level used by the batch job entry point.
        calibration_window_periods: Recommended calibration window length.
        detection_window_periods: Recommended recent window length.
        confidence_high_ratio: sampleSize / window ratio for High confidence.
        confidence_medium_ratio: sampleSize / window ratio for Medium confidence.
        min_group_size: Privacy floor; teams below it never get a score.
        drift_thresholds: Per-signal ratio thresholds for drift events.
        severity_high_margin: Fraction over threshold that escalates to high.
        priority_high_multiplier: Multiple of threshold that makes a
            recommendation high priority.
        avg_hourly_cost: Default fully loaded hourly cost.
        cost_range_low / cost_range_high: Multipliers around the midpoint.
        max_recommendations: Output cap, recognition item included.
    """

    model_config = SettingsConfigDict(
        env_prefix='DRIFT_ENGINE_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
        frozen=True,
    )

    # =========================================================================
    # Infrastructure
    # =========================================================================

    # Only required when baselines/events are persisted to PostgreSQL
    database_url: Optional[str] = None

    log_level: str = 'INFO'

    # =========================================================================
    # Baseline Calibration
    # =========================================================================

    calibration_window_periods: int = Field(default=30, ge=1)
    detection_window_periods: int = Field(default=7, ge=1)

    # High if sampleSize >= 0.8 * window, Medium if >= 0.4 * window
    confidence_high_ratio: float = 0.8
    confidence_medium_ratio: float = 0.4

    # =========================================================================
    # Privacy
    # =========================================================================

    # Teams smaller than this never receive a composite score
    min_group_size: int = Field(default=5, ge=1)

    # Load-balance needs at least this many anonymized member samples
    min_member_samples: int = Field(default=3, ge=2)

    # =========================================================================
    # Drift Detection
    # =========================================================================

    drift_thresholds: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_DRIFT_THRESHOLDS)
    )

    # |percentChange| >= (1 + margin) * threshold is high severity
    severity_high_margin: float = 0.5

    # =========================================================================
    # Capacity / Burn-Down Index
    # =========================================================================

    capacity_weights: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CAPACITY_WEIGHTS)
    )

    # Adverse relative change at which a signal contributes full strain
    capacity_saturation: float = Field(default=1.0, gt=0)

    capacity_yellow_at: float = 25.0
    capacity_red_at: float = 50.0

    # =========================================================================
    # Load-Balance Index
    # =========================================================================

    balance_weights: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_BALANCE_WEIGHTS)
    )

    # Average raw CV cut-offs: < balanced_below is balanced,
    # < moderate_below is moderate, otherwise skewed
    balance_balanced_below: float = 0.3
    balance_moderate_below: float = 0.5

    # =========================================================================
    # Cost of Drift
    # =========================================================================

    avg_hourly_cost: float = Field(default=75.0, ge=0)
    work_hours_per_week: float = 40.0

    # Response slowdown converts to one lost hour per this many minutes
    response_minutes_per_lost_hour: float = 10.0

    cost_range_low: float = 0.8
    cost_range_high: float = 1.2
    projection_weeks: int = 4

    # Interpretation tiers (weekly midpoint)
    cost_tier_low_below: float = 1000.0
    cost_tier_moderate_below: float = 5000.0
    cost_tier_significant_below: float = 15000.0

    # =========================================================================
    # Recommendations
    # =========================================================================

    priority_high_multiplier: float = 1.3
    max_recommendations: int = Field(default=4, ge=1)

    def threshold_for(self, signal_name: str) -> Optional[float]:
        """Relative threshold (ratio - 1) for a signal, or None if not configured."""
        ratio = self.drift_thresholds.get(signal_name)
        if ratio is None:
            return None
        return abs(ratio - 1.0)

    def for_org(self, org_config: Optional['OrgConfig']) -> 'EngineSettings':
        """
        Return a copy of these settings with organization overrides applied.

        Threshold overrides are merged over the defaults, so an org that only
        tunes meetingLoadIndex keeps every other signal's default.
        """
        if org_config is None:
            return self

        update: Dict[str, object] = {}
        if org_config.avgHourlyCost is not None:
            update['avg_hourly_cost'] = org_config.avgHourlyCost
        if org_config.minGroupSize is not None:
            update['min_group_size'] = org_config.minGroupSize
        if org_config.driftThresholds:
            merged = dict(self.drift_thresholds)
            merged.update(org_config.driftThresholds)
            update['drift_thresholds'] = merged

        if not update:
            return self
        return self.model_copy(update=update)


class OrgConfig(BaseModel):
    """Organization-level overrides supplied by the tenant configuration collaborator."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "orgId": "org_acme",
                "avgHourlyCost": 90.0,
                "driftThresholds": {"meetingLoadIndex": 1.2},
                "minGroupSize": 6,
            }
        },
    )

    orgId: Optional[str] = None
    avgHourlyCost: Optional[float] = Field(default=None, ge=0)
    driftThresholds: Dict[str, float] = Field(default_factory=dict)
    minGroupSize: Optional[int] = Field(default=None, ge=1)


@lru_cache()
def get_settings() -> EngineSettings:
    """
    Get the engine settings singleton.

    Returns:
        EngineSettings: Cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return EngineSettings()
