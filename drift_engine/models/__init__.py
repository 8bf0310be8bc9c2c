"""
Models package for the drift scoring engine.

Re-exports enums and pydantic schemas for convenient access:

    from drift_engine.models import Baseline, DriftEvent, Confidence
"""

from drift_engine.models.enums import (
    BalanceState,
    CapacityStatus,
    CompositeKind,
    Confidence,
    CostTier,
    DriftDirection,
    DriftState,
    ErrorCode,
    Priority,
    ResultStatus,
    Severity,
    Signal,
    SignalPolarity,
)
from drift_engine.models.schemas import (
    TRACKED_SIGNALS,
    Baseline,
    CalibrationResult,
    CapacityDriver,
    CapacityIndexScore,
    CompositeScore,
    CompositeScoreBase,
    CostBreakdownItem,
    CostOfDriftEstimate,
    CostRange,
    DetectionResult,
    DimensionDistribution,
    DriftDriver,
    DriftEvent,
    EngineResult,
    LoadBalanceScore,
    MemberWorkloadSample,
    MetricAggregate,
    OrgCostOfDrift,
    Recommendation,
    SignalStats,
    Team,
    TeamAnalysis,
    TeamCostSummary,
)

__all__ = [
    # Enums
    'BalanceState',
    'CapacityStatus',
    'CompositeKind',
    'Confidence',
    'CostTier',
    'DriftDirection',
    'DriftState',
    'ErrorCode',
    'Priority',
    'ResultStatus',
    'Severity',
    'Signal',
    'SignalPolarity',
    # Schemas
    'TRACKED_SIGNALS',
    'Baseline',
    'CalibrationResult',
    'CapacityDriver',
    'CapacityIndexScore',
    'CompositeScore',
    'CompositeScoreBase',
    'CostBreakdownItem',
    'CostOfDriftEstimate',
    'CostRange',
    'DetectionResult',
    'DimensionDistribution',
    'DriftDriver',
    'DriftEvent',
    'EngineResult',
    'LoadBalanceScore',
    'MemberWorkloadSample',
    'MetricAggregate',
    'OrgCostOfDrift',
    'Recommendation',
    'SignalStats',
    'Team',
    'TeamAnalysis',
    'TeamCostSummary',
]
