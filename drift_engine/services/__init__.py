"""
Drift Engine Services

Business logic for the behavioral baseline and drift scoring engine. Every
scoring function is a pure function of its explicit inputs, so different teams
can be processed in parallel.

Services:
- calibration: Baseline snapshots with confidence grading
- drift_detection: Recent-window drift events and drift-state summary
- capacity_index: Capacity/burn-down index (0-100, lower is healthier)
- load_balance: Workload balance across members (0-100, higher is balanced)
- cost_of_drift: Monetized drift range and org rollup
- recommendations: Ranked, deduplicated action list
- snapshot_store: Versioned baseline arena and append-only event log
- sample_data: Member sample providers (synthetic provider for tests/demos)
- team_analysis: End-to-end per-team orchestration
"""

# =============================================================================
# Baseline Calibration
# =============================================================================

from drift_engine.services.calibration import (
    calibrate,
    calibrate_and_store,
    calculate_signal_stats,
    grade_confidence,
)

# =============================================================================
# Drift Detection
# =============================================================================

from drift_engine.services.drift_detection import (
    classify_severity,
    detect,
    summarize_drift_state,
)

# =============================================================================
# Composite Indices
# =============================================================================

from drift_engine.services.capacity_index import (
    calculate_capacity_index,
    classify_capacity,
)
from drift_engine.services.load_balance import (
    calculate_cv,
    calculate_load_balance_index,
    classify_balance,
)
from drift_engine.services.cost_of_drift import (
    aggregate_org_cost_of_drift,
    build_cost_range,
    classify_cost_tier,
    estimate_cost_from_hours,
    estimate_cost_of_drift,
)

# =============================================================================
# Recommendations
# =============================================================================

from drift_engine.services.recommendations import (
    RECOGNITION_TOPIC,
    recommend,
)

# =============================================================================
# Persistence, Sample Data and Orchestration
# =============================================================================

from drift_engine.services.snapshot_store import (
    InMemorySnapshotStore,
    PostgresSnapshotStore,
    SnapshotStore,
)
from drift_engine.services.sample_data import (
    MemberSampleProvider,
    StaticMemberSampleProvider,
    SyntheticMemberSampleProvider,
)
from drift_engine.services.team_analysis import analyze_team


__all__ = [
    # Calibration
    'calibrate',
    'calibrate_and_store',
    'calculate_signal_stats',
    'grade_confidence',
    # Detection
    'classify_severity',
    'detect',
    'summarize_drift_state',
    # Composite indices
    'calculate_capacity_index',
    'classify_capacity',
    'calculate_cv',
    'calculate_load_balance_index',
    'classify_balance',
    'aggregate_org_cost_of_drift',
    'build_cost_range',
    'classify_cost_tier',
    'estimate_cost_from_hours',
    'estimate_cost_of_drift',
    # Recommendations
    'RECOGNITION_TOPIC',
    'recommend',
    # Persistence, sample data and orchestration
    'InMemorySnapshotStore',
    'PostgresSnapshotStore',
    'SnapshotStore',
    'MemberSampleProvider',
    'StaticMemberSampleProvider',
    'SyntheticMemberSampleProvider',
    'analyze_team',
]
