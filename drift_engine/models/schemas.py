"""
Pydantic models for the drift scoring engine.

This module defines the engine's input records (Team, MetricAggregate,
MemberWorkloadSample), its persisted snapshots (Baseline, DriftEvent,
Recommendation) and the typed result envelopes returned by every entry point.

Field names are camelCase, matching the payloads exchanged with the dashboard
and coaching collaborators. All models use Pydantic v2 syntax.

Result envelopes:
- status: ok | no_data | failed
- error: ErrorCode when status is not ok
- unwrap(): returns the payload or raises the matching DriftEngineError
"""

from datetime import datetime, date as DateType
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ConfigDict

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
)


# Signal columns carried on MetricAggregate, in evaluation order
TRACKED_SIGNALS: List[str] = [s.value for s in Signal]


# =============================================================================
# Input Records
# =============================================================================


class Team(BaseModel):
    """
    Group of organization members the engine scores as a unit.

    Signals are only computed when memberCount meets the privacy floor.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "teamId": "team_platform",
                "orgId": "org_acme",
                "memberCount": 8,
                "managerId": "mgr_42",
            }
        }
    )

    teamId: str = Field(..., min_length=1, description="Team identifier")
    orgId: str = Field(..., min_length=1, description="Owning organization")
    memberCount: int = Field(..., ge=0, description="Number of members on the team")
    managerId: Optional[str] = Field(default=None, description="Manager identifier")
    name: Optional[str] = Field(default=None, description="Display name")


class MetricAggregate(BaseModel):
    """
    One pre-aggregated record per team per period. Immutable once written.

    A signal set to None was not observed for that period and is skipped,
    never treated as zero.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "teamId": "team_platform",
                "date": "2024-03-01",
                "meetingLoadIndex": 22.5,
                "afterHoursRate": 12.0,
                "focusTimeRatio": 0.55,
                "responseMedianMins": 35.0,
                "bdi": 48.0,
            }
        }
    )

    teamId: str = Field(..., min_length=1)
    date: DateType
    meetingLoadIndex: Optional[float] = Field(
        default=None, ge=0, description="Percent of the working week in meetings"
    )
    afterHoursRate: Optional[float] = Field(
        default=None, ge=0, description="Percent of activity outside working hours"
    )
    focusTimeRatio: Optional[float] = Field(
        default=None, ge=0, description="Share of the week available for focus work"
    )
    responseMedianMins: Optional[float] = Field(
        default=None, ge=0, description="Median response latency in minutes"
    )
    bdi: Optional[float] = Field(default=None, ge=0, description="Overall behavioral drift index")

    def signal_value(self, signal_name: str) -> Optional[float]:
        return getattr(self, signal_name, None)


class MemberWorkloadSample(BaseModel):
    """Anonymized per-member workload row. Carries no identifiers."""
    model_config = ConfigDict(frozen=True, extra='forbid')

    meetingHours: float = Field(..., ge=0)
    afterHoursHours: float = Field(..., ge=0)
    responsePressure: float = Field(..., ge=0)


# =============================================================================
# Snapshots
# =============================================================================


class SignalStats(BaseModel):
    """Robust summary of one signal over the calibration window."""
    model_config = ConfigDict(frozen=True)

    mean: float
    median: float
    std: float = Field(..., ge=0, description="Population standard deviation")
    p25: float
    p75: float
    mad: float = Field(default=0.0, ge=0, description="Median absolute deviation from the median")
    sampleSize: int = Field(..., ge=1)


class Baseline(BaseModel):
    """
    Versioned per-team snapshot of "normal", keyed by (teamId, establishedAt).

    A recalibration produces a new snapshot; existing snapshots are never
    modified.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "teamId": "team_platform",
                "signals": {"meetingLoadIndex": 20.0, "afterHoursRate": 10.0},
                "confidence": "High",
                "establishedAt": "2024-03-30T00:00:00Z",
                "sampleSize": 28,
                "windowLength": 30,
            }
        }
    )

    teamId: str
    signals: Dict[str, float] = Field(default_factory=dict)
    signalStats: Dict[str, SignalStats] = Field(default_factory=dict)
    confidence: Confidence
    establishedAt: datetime
    sampleSize: int = Field(..., ge=1, description="Aggregates used for calibration")
    windowLength: int = Field(..., ge=1)


class DriftEvent(BaseModel):
    """
    A single signal's deviation from baseline, emitted by one detection run.

    percentChange is a fraction: 0.40 means 40% above baseline.
    Provisional events were computed against a low-confidence baseline and
    are observational only.
    """
    model_config = ConfigDict(frozen=True)

    eventId: str
    teamId: str
    signalName: str
    currentValue: float
    baselineValue: float
    percentChange: float
    direction: DriftDirection
    severity: Severity
    threshold: float = Field(..., description="Relative threshold the change exceeded")
    zScore: Optional[float] = None
    robustZScore: Optional[float] = Field(
        default=None, description="(current - median) / (1.4826 * MAD); None when MAD is 0"
    )
    adverse: bool = Field(..., description="True when the change is in the unhealthy direction")
    provisional: bool = False
    detectedAt: datetime


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    teamId: Optional[str] = None
    topic: str
    action: str
    rationale: str
    priority: Priority
    triggeredBy: List[str] = Field(
        default_factory=list,
        description="Drift event ids or composite kinds that triggered this item",
    )


# =============================================================================
# Result Envelopes
# =============================================================================


class EngineResult(BaseModel):
    """Common status fields for every entry point result."""

    status: ResultStatus = ResultStatus.OK
    error: Optional[ErrorCode] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    def raise_for_error(self) -> None:
        if self.error is None:
            return
        from drift_engine.core.errors import error_for

        raise error_for(self.error, self.message or self.error.value, getattr(self, 'teamId', None))


class CalibrationResult(EngineResult):
    teamId: str
    baseline: Optional[Baseline] = None
    skippedRows: int = 0

    def unwrap(self) -> Baseline:
        self.raise_for_error()
        assert self.baseline is not None
        return self.baseline


class DriftDriver(BaseModel):
    signalName: str
    percentChange: float
    direction: DriftDirection
    adverse: bool


class DetectionResult(EngineResult):
    teamId: str
    events: List[DriftEvent] = Field(default_factory=list)
    skippedSignals: List[str] = Field(
        default_factory=list,
        description="Signals skipped because the baseline value was zero",
    )
    provisional: bool = False
    driftState: Optional[DriftState] = None
    topDrivers: List[DriftDriver] = Field(default_factory=list)
    summary: Optional[str] = None

    def unwrap(self) -> List[DriftEvent]:
        self.raise_for_error()
        return self.events


# =============================================================================
# Composite Scores
# =============================================================================


class CompositeScoreBase(EngineResult):
    """
    Shared fields for the three composite variants.

    When hasData is false no numeric interpretation should be rendered.
    """
    teamId: str
    hasData: bool
    calculatedAt: datetime

    def unwrap(self) -> 'CompositeScoreBase':
        self.raise_for_error()
        return self


class CapacityDriver(BaseModel):
    signalName: str
    percentChange: float
    impact: float = Field(..., ge=0, description="Index points contributed")


class CapacityIndexScore(CompositeScoreBase):
    """Capacity/burn-down index, 0-100, lower is healthier."""
    kind: Literal[CompositeKind.CAPACITY] = CompositeKind.CAPACITY
    index: Optional[float] = Field(default=None, ge=0, le=100)
    capacityStatus: Optional[CapacityStatus] = None
    drivers: List[CapacityDriver] = Field(default_factory=list)
    weights: Dict[str, float] = Field(default_factory=dict)
    explanation: Optional[str] = None


class DimensionDistribution(BaseModel):
    dimension: str
    mean: float
    cv: float = Field(..., ge=0)
    range: float = Field(..., ge=0)
    score: float = Field(..., ge=0, le=100)


class LoadBalanceScore(CompositeScoreBase):
    """Load-balance index, 0-100, higher is more balanced. Neutral 50 without data."""
    kind: Literal[CompositeKind.BALANCE] = CompositeKind.BALANCE
    index: float = Field(default=50.0, ge=0, le=100)
    state: BalanceState = BalanceState.UNKNOWN
    averageCv: Optional[float] = None
    mostSkewedDimension: Optional[str] = None
    distributions: List[DimensionDistribution] = Field(default_factory=list)
    sampleCount: int = 0
    explanation: Optional[str] = None


class CostRange(BaseModel):
    """Directional currency range. Never rendered as a single exact figure."""
    model_config = ConfigDict(frozen=True)

    low: float = Field(..., ge=0)
    midpoint: float = Field(..., ge=0)
    high: float = Field(..., ge=0)


class CostBreakdownItem(BaseModel):
    component: str
    hours: float = Field(..., ge=0)
    cost: float = Field(..., ge=0)
    percentage: float = Field(..., ge=0, le=100)


class CostOfDriftEstimate(CompositeScoreBase):
    kind: Literal[CompositeKind.COST_OF_DRIFT] = CompositeKind.COST_OF_DRIFT
    weeklyEstimate: Optional[CostRange] = None
    projectedEstimate: Optional[CostRange] = None
    projectionWeeks: int = 4
    totalHoursLost: Optional[float] = None
    avgHourlyCost: Optional[float] = None
    breakdown: List[CostBreakdownItem] = Field(default_factory=list)
    primaryDriver: Optional[str] = None
    tier: Optional[CostTier] = None
    interpretation: Optional[str] = None


CompositeScore = Annotated[
    Union[CapacityIndexScore, LoadBalanceScore, CostOfDriftEstimate],
    Field(discriminator='kind'),
]


class TeamCostSummary(BaseModel):
    teamId: str
    weeklyMidpoint: float
    primaryDriver: Optional[str] = None


class OrgCostOfDrift(BaseModel):
    """Organization rollup of per-team cost-of-drift estimates."""
    orgId: Optional[str] = None
    hasData: bool
    teamsWithData: int = 0
    teamsWithoutData: int = 0
    weeklyEstimate: Optional[CostRange] = None
    projectedEstimate: Optional[CostRange] = None
    topTeams: List[TeamCostSummary] = Field(default_factory=list)
    interpretation: Optional[str] = None


# =============================================================================
# Per-Team Analysis Bundle
# =============================================================================


class TeamAnalysis(EngineResult):
    """Everything one batch run produced for a team."""
    teamId: str
    analyzedAt: datetime
    calibration: Optional[CalibrationResult] = None
    detection: Optional[DetectionResult] = None
    capacity: Optional[CapacityIndexScore] = None
    balance: Optional[LoadBalanceScore] = None
    costOfDrift: Optional[CostOfDriftEstimate] = None
    recommendations: List[Recommendation] = Field(default_factory=list)
