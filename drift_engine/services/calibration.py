"""
Baseline Calibration Service.

Learns what "normal" looks like for a team from a rolling window of daily
aggregates and produces an immutable Baseline snapshot with a confidence grade.

Algorithm Overview:
    For each tracked signal, the baseline value is the arithmetic mean over the
    rows where the signal was observed. Missing days and unobserved values are
    skipped, never treated as zero. Alongside the mean, robust statistics
    (median, population std, p25, p75) are kept per signal for dashboards and
    z-scores.

Confidence Grading:
    - High:   sampleSize >= 0.8 * window length
    - Medium: sampleSize >= 0.4 * window length
    - Low:    otherwise
    Low-confidence baselines still feed the detector, but every event it emits
    against them is provisional.

Key Outputs:
    - CalibrationResult with status ok and a Baseline, or
    - CalibrationResult with status failed and error no_data when no usable row
      exists. No baseline is produced in that case; callers must treat the team
      as uncalibrated, not as baseline-zero.

Determinism:
    establishedAt defaults to midnight UTC of the newest aggregate date, so two
    calls with identical rows return identical snapshots.

Usage:
    from drift_engine.services.calibration import calibrate

    result = calibrate("team_platform", aggregates)
    if result.ok:
        baseline = result.baseline
"""

import logging
from datetime import datetime, time, timezone
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from drift_engine.core.config import EngineSettings, get_settings
from drift_engine.models.enums import Confidence, ErrorCode, ResultStatus
from drift_engine.models.schemas import (
    TRACKED_SIGNALS,
    Baseline,
    CalibrationResult,
    MetricAggregate,
    SignalStats,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def grade_confidence(
    sample_size: int,
    window_length: int,
    settings: Optional[EngineSettings] = None,
) -> Confidence:
    """
    Grade baseline confidence from sample coverage of the window.

    Monotonic non-decreasing in sample_size for a fixed window_length.

    Example:
        >>> grade_confidence(24, 30)
        <Confidence.HIGH: 'High'>
        >>> grade_confidence(3, 30)
        <Confidence.LOW: 'Low'>
    """
    settings = settings or get_settings()
    window_length = max(1, window_length)

    if sample_size >= settings.confidence_high_ratio * window_length:
        return Confidence.HIGH
    if sample_size >= settings.confidence_medium_ratio * window_length:
        return Confidence.MEDIUM
    return Confidence.LOW


def calculate_signal_stats(values: pd.Series) -> Optional[SignalStats]:
    """
    Summary statistics for one signal, skipping missing values.

    Returns None when the series has no observed value.
    """
    observed = values.dropna().astype(float)
    if observed.empty:
        return None

    return SignalStats(
        mean=float(observed.mean()),
        median=float(observed.median()),
        std=float(observed.std(ddof=0)),
        p25=float(observed.quantile(0.25)),
        p75=float(observed.quantile(0.75)),
        mad=float((observed - observed.median()).abs().median()),
        sampleSize=int(observed.size),
    )


def _aggregates_to_frame(
    team_id: str,
    window: Iterable[MetricAggregate],
) -> Tuple[pd.DataFrame, int]:
    """
    Build a date-ordered frame of the team's rows.

    Rows belonging to another team are dropped and counted.
    """
    records: List[dict] = []
    skipped = 0
    for aggregate in window:
        if aggregate.teamId != team_id:
            skipped += 1
            continue
        records.append(aggregate.model_dump(include={'date', *TRACKED_SIGNALS}))

    frame = pd.DataFrame.from_records(records, columns=['date', *TRACKED_SIGNALS])
    frame[TRACKED_SIGNALS] = frame[TRACKED_SIGNALS].astype(float)

    # Rows with no observed signal contribute nothing to the sample
    frame = frame.dropna(subset=TRACKED_SIGNALS, how='all')
    frame = frame.sort_values('date', kind='stable').reset_index(drop=True)

    return frame, skipped


def _default_established_at(frame: pd.DataFrame) -> datetime:
    latest = max(frame['date'])
    return datetime.combine(latest, time.min, tzinfo=timezone.utc)


# =============================================================================
# Calibration
# =============================================================================


def calibrate(
    team_id: str,
    window: Iterable[MetricAggregate],
    window_length: Optional[int] = None,
    established_at: Optional[datetime] = None,
    settings: Optional[EngineSettings] = None,
) -> CalibrationResult:
    """
    Calibrate a team's baseline from a window of aggregates.

    Args:
        team_id: Team being calibrated. Rows for other teams are ignored.
        window: Aggregates inside the calibration window, any order.
        window_length: Number of periods the window spans. Defaults to
            settings.calibration_window_periods.
        established_at: Snapshot timestamp. Defaults to midnight UTC of the
            newest aggregate date.
        settings: Engine settings. Defaults to get_settings().

    Returns:
        CalibrationResult: ok with a Baseline, or failed with error no_data.

    Example:
        >>> result = calibrate("team_a", rows, window_length=30)
        >>> result.baseline.signals["meetingLoadIndex"]
        20.0
    """
    settings = settings or get_settings()
    window_length = window_length or settings.calibration_window_periods

    frame, skipped = _aggregates_to_frame(team_id, window)
    if skipped:
        logger.warning(f"Ignored {skipped} aggregates not belonging to team {team_id}")

    sample_size = len(frame)
    if sample_size == 0:
        logger.info(f"No usable aggregates for team {team_id}; baseline not established")
        return CalibrationResult(
            teamId=team_id,
            status=ResultStatus.FAILED,
            error=ErrorCode.NO_DATA,
            message="No aggregates available in the calibration window",
            skippedRows=skipped,
        )

    signal_stats = {}
    for signal_name in TRACKED_SIGNALS:
        stats = calculate_signal_stats(frame[signal_name])
        if stats is not None:
            signal_stats[signal_name] = stats

    baseline = Baseline(
        teamId=team_id,
        signals={name: stats.mean for name, stats in signal_stats.items()},
        signalStats=signal_stats,
        confidence=grade_confidence(sample_size, window_length, settings),
        establishedAt=established_at or _default_established_at(frame),
        sampleSize=sample_size,
        windowLength=window_length,
    )

    logger.info(
        f"Calibrated team {team_id}: {sample_size}/{window_length} periods, "
        f"confidence {baseline.confidence.value}, {len(baseline.signals)} signals"
    )

    return CalibrationResult(teamId=team_id, baseline=baseline, skippedRows=skipped)


async def calibrate_and_store(
    store,
    team_id: str,
    window: Iterable[MetricAggregate],
    window_length: Optional[int] = None,
    established_at: Optional[datetime] = None,
    settings: Optional[EngineSettings] = None,
) -> CalibrationResult:
    """
    Calibrate and persist the new snapshot as the team's current baseline.

    The store writes the snapshot as a single replace; historical snapshots
    are left untouched. Nothing is written when calibration fails.
    """
    result = calibrate(
        team_id,
        window,
        window_length=window_length,
        established_at=established_at,
        settings=settings,
    )
    if result.baseline is not None:
        await store.save_baseline(result.baseline)
    return result
