"""
Behavioral baseline and drift scoring engine.

Learns each team's normal collaboration pattern from periodic aggregates,
detects meaningful deviation from it, compresses that deviation into capacity,
load-balance and cost-of-drift scores, and maps the result to ranked
recommendations.

Subpackages:
    - core: Configuration, errors, and database connectivity
    - models: Pydantic schemas and enums
    - services: Calibration, detection, composite indices, recommendations
    - jobs: Scheduled per-team batch run
    - sql: Parameterized SQL for the snapshot store
"""

__version__ = "0.1.0"
