"""
Scheduled jobs for the drift scoring engine.

- drift_run: per-team fan-out/fan-in batch that calibrates, detects, scores
  and recommends, persisting results through a snapshot store.

Re-running a batch for the same date is safe: event ids are deterministic and
persisted recommendations are unique per (run, team, topic).
"""

from drift_engine.jobs.drift_run import (
    AggregateSource,
    DriftRunSummary,
    compute_windows,
    configure_logging,
    run_drift_batch,
)

__all__ = [
    'AggregateSource',
    'DriftRunSummary',
    'compute_windows',
    'configure_logging',
    'run_drift_batch',
]
