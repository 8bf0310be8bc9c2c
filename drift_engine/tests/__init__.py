'''
Drift Engine Test Suite

Test Modules:
-------------
- test_calibration.py: Baseline calibration
  - Median/quantile statistics, confidence grading
  - Missing signals, foreign-team rows, empty windows

- test_drift_detection.py: Drift events against the current baseline
  - Threshold boundaries, severity tiers, zero-baseline guard
  - Provisional events for Low-confidence baselines

- test_capacity_index.py / test_load_balance.py / test_cost_of_drift.py:
  Composite scores, privacy floor, explicit no-data results

- test_recommendations.py: Playbook mapping, dedupe, cap, recognition item

- test_snapshot_store.py: Snapshot arena and append-only event log

- test_team_analysis.py: End-to-end team analysis and the batch run

- test_config.py: Settings, organization overrides, error taxonomy

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
