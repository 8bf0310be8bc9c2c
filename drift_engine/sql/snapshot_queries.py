"""
Snapshot Store Queries.

Parameterized PostgreSQL statements backing PostgresSnapshotStore:
- Baseline snapshots, keyed by (team_id, established_at). A recalibration
  inserts a new snapshot; the newest established_at is the current baseline.
- Drift events and recommendations, insert-only logs kept for trend history.

All values are passed as $n parameters; nothing is interpolated.
"""


# =============================================================================
# SCHEMA
# =============================================================================

def get_schema_ddl() -> str:
    """
    DDL for the snapshot store tables.

    Returns:
        SQL creating the three tables if they do not exist.
    """
    return """
    CREATE TABLE IF NOT EXISTS drift_baseline_snapshot (
        team_id         TEXT        NOT NULL,
        established_at  TIMESTAMPTZ NOT NULL,
        confidence      TEXT        NOT NULL,
        sample_size     INTEGER     NOT NULL,
        window_length   INTEGER     NOT NULL,
        payload         JSONB       NOT NULL,
        created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (team_id, established_at)
    );

    CREATE TABLE IF NOT EXISTS drift_event (
        event_id        TEXT        PRIMARY KEY,
        team_id         TEXT        NOT NULL,
        signal_name     TEXT        NOT NULL,
        severity        TEXT        NOT NULL,
        provisional     BOOLEAN     NOT NULL,
        detected_at     TIMESTAMPTZ NOT NULL,
        payload         JSONB       NOT NULL
    );
    CREATE INDEX IF NOT EXISTS drift_event_team_detected_idx
        ON drift_event (team_id, detected_at);

    CREATE TABLE IF NOT EXISTS drift_recommendation (
        id              BIGSERIAL   PRIMARY KEY,
        run_id          TEXT        NOT NULL,
        team_id         TEXT        NOT NULL,
        topic           TEXT        NOT NULL,
        priority        TEXT        NOT NULL,
        created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        payload         JSONB       NOT NULL,
        UNIQUE (run_id, team_id, topic)
    );
    """


# =============================================================================
# BASELINES
# =============================================================================

# Same (team_id, established_at) means the same input window; replacing the
# payload keeps recalibration idempotent
UPSERT_BASELINE = """
    INSERT INTO drift_baseline_snapshot (
        team_id,
        established_at,
        confidence,
        sample_size,
        window_length,
        payload
    ) VALUES ($1, $2, $3, $4, $5, $6::jsonb)
    ON CONFLICT (team_id, established_at)
    DO UPDATE SET
        confidence = EXCLUDED.confidence,
        sample_size = EXCLUDED.sample_size,
        window_length = EXCLUDED.window_length,
        payload = EXCLUDED.payload
"""

SELECT_CURRENT_BASELINE = """
    SELECT payload
    FROM drift_baseline_snapshot
    WHERE team_id = $1
    ORDER BY established_at DESC
    LIMIT 1
"""

SELECT_BASELINE_HISTORY = """
    SELECT payload
    FROM drift_baseline_snapshot
    WHERE team_id = $1
    ORDER BY established_at ASC
"""


# =============================================================================
# DRIFT EVENTS
# =============================================================================

# Event ids are deterministic per (team, signal, detectedAt), so re-running a
# failed batch does not duplicate events
INSERT_DRIFT_EVENT = """
    INSERT INTO drift_event (
        event_id,
        team_id,
        signal_name,
        severity,
        provisional,
        detected_at,
        payload
    ) VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
    ON CONFLICT (event_id) DO NOTHING
"""

SELECT_DRIFT_EVENTS = """
    SELECT payload
    FROM drift_event
    WHERE team_id = $1
    ORDER BY detected_at ASC, signal_name ASC
"""


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

INSERT_RECOMMENDATION = """
    INSERT INTO drift_recommendation (
        run_id,
        team_id,
        topic,
        priority,
        payload
    ) VALUES ($1, $2, $3, $4, $5::jsonb)
    ON CONFLICT (run_id, team_id, topic) DO NOTHING
"""

SELECT_RECOMMENDATIONS = """
    SELECT run_id, payload
    FROM drift_recommendation
    WHERE team_id = $1
    ORDER BY id ASC
"""
