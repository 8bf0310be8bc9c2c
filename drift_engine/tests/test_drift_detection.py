"""
Tests for the Drift Detection service.

Covers the percent-change rule against per-signal thresholds, severity tiers,
provisional flagging for low-confidence baselines, zero-baseline guarding,
failure semantics and the drift-state summary.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from drift_engine.core.errors import UncalibratedError
from drift_engine.models import (
    Confidence,
    DriftDirection,
    DriftState,
    ErrorCode,
    MetricAggregate,
    ResultStatus,
    Severity,
    SignalStats,
)
from drift_engine.services.calibration import calibrate
from drift_engine.services.drift_detection import (
    classify_severity,
    detect,
    summarize_drift_state,
)
from drift_engine.services.signals import relative_change
from drift_engine.tests.conftest import (
    DETECTED_AT,
    HEALTHY_SIGNALS,
    TEAM_ID,
    make_aggregates,
    make_baseline,
)


def _events_by_signal(result):
    return {e.signalName: e for e in result.events}


class TestClassifySeverity:

    def test_far_over_threshold_is_high(self, settings) -> None:
        assert classify_severity(0.40, 0.15, settings) == Severity.HIGH

    def test_just_over_threshold_is_medium(self, settings) -> None:
        assert classify_severity(0.20, 0.15, settings) == Severity.MEDIUM

    def test_boundary_goes_to_more_severe_tier(self, settings) -> None:
        assert classify_severity(0.375, 0.25, settings) == Severity.HIGH

    def test_negative_changes_use_magnitude(self, settings) -> None:
        assert classify_severity(-0.40, 0.10, settings) == Severity.HIGH


class TestDetect:

    @pytest.mark.scenario
    def test_meeting_load_scenario_emits_increase_event(self, settings) -> None:
        """
        Three calibration rows averaging 20 and a recent week averaging 28
        give percentChange 0.40, beyond the 1.15x meeting-load threshold.
        """
        calibration_rows = make_aggregates(
            3, end=datetime(2024, 3, 24).date(), meetingLoadIndex=lambda i: [19.0, 20.0, 21.0][i]
        )
        baseline = calibrate(TEAM_ID, calibration_rows, settings=settings).unwrap()
        recent = make_aggregates(7, meetingLoadIndex=lambda i: 28.0 + (i - 3) * 0.5)

        result = detect(TEAM_ID, recent, baseline, detected_at=DETECTED_AT, settings=settings)

        event = _events_by_signal(result)['meetingLoadIndex']
        assert event.percentChange == pytest.approx(0.40)
        assert event.direction == DriftDirection.INCREASE
        assert event.currentValue == pytest.approx(28.0)
        assert event.baselineValue == pytest.approx(20.0)
        assert event.provisional is True, "Three rows in a 30-period window is a Low confidence baseline"

    def test_change_within_threshold_emits_nothing(self, settings, baseline) -> None:
        recent = make_aggregates(7, meetingLoadIndex=22.0, afterHoursRate=12.0)

        result = detect(TEAM_ID, recent, baseline, detected_at=DETECTED_AT, settings=settings)

        assert result.ok
        assert result.events == []
        assert result.driftState == DriftState.STABLE

    def test_thresholds_are_per_signal(self, settings, baseline) -> None:
        """+20% breaches meeting load (15%) but not after-hours (25%)."""
        recent = make_aggregates(7, meetingLoadIndex=24.0, afterHoursRate=12.0)

        events = _events_by_signal(detect(TEAM_ID, recent, baseline, settings=settings))

        assert 'meetingLoadIndex' in events
        assert 'afterHoursRate' not in events

    def test_focus_drop_is_adverse_decrease(self, settings, baseline) -> None:
        recent = make_aggregates(7, focusTimeRatio=0.3)

        event = _events_by_signal(detect(TEAM_ID, recent, baseline, settings=settings))['focusTimeRatio']

        assert event.direction == DriftDirection.DECREASE
        assert event.adverse is True
        assert event.percentChange == pytest.approx(-0.4)

    def test_improvement_is_not_adverse(self, settings, baseline) -> None:
        recent = make_aggregates(7, responseMedianMins=10.0)

        event = _events_by_signal(detect(TEAM_ID, recent, baseline, settings=settings))['responseMedianMins']

        assert event.direction == DriftDirection.DECREASE
        assert event.adverse is False

    def test_zero_baseline_signal_is_skipped(self, settings, baseline_factory) -> None:
        baseline = baseline_factory(signals={**HEALTHY_SIGNALS, 'afterHoursRate': 0.0})
        recent = make_aggregates(7, afterHoursRate=15.0, meetingLoadIndex=30.0)

        result = detect(TEAM_ID, recent, baseline, settings=settings)

        assert 'afterHoursRate' in result.skippedSignals
        assert 'afterHoursRate' not in _events_by_signal(result)
        assert 'meetingLoadIndex' in _events_by_signal(result)

    def test_negative_baseline_keeps_direction_of_change(self, settings, baseline_factory) -> None:
        """bdi rising from -10 to 0 is an increase of 100%, not a decrease."""
        baseline = baseline_factory(signals={'bdi': -10.0})
        recent = make_aggregates(7, bdi=0.0)

        event = _events_by_signal(detect(TEAM_ID, recent, baseline, settings=settings))['bdi']

        assert event.percentChange == pytest.approx(1.0)
        assert event.direction == DriftDirection.INCREASE
        assert event.adverse is True

    def test_robust_z_score_uses_median_and_mad(self, settings, baseline) -> None:
        stats = SignalStats(mean=20.0, median=20.0, std=2.0, p25=19.0, p75=21.0, mad=1.0, sampleSize=30)
        baseline = baseline.model_copy(update={'signalStats': {'meetingLoadIndex': stats}})

        event = detect(TEAM_ID, make_aggregates(7, meetingLoadIndex=30.0), baseline, settings=settings).events[0]

        assert event.zScore == pytest.approx(5.0)
        assert event.robustZScore == pytest.approx(10.0 / 1.4826, abs=1e-4)

    def test_robust_z_score_absent_when_mad_is_zero(self, settings, baseline) -> None:
        stats = SignalStats(mean=20.0, median=20.0, std=0.0, p25=20.0, p75=20.0, mad=0.0, sampleSize=30)
        baseline = baseline.model_copy(update={'signalStats': {'meetingLoadIndex': stats}})

        event = detect(TEAM_ID, make_aggregates(7, meetingLoadIndex=30.0), baseline, settings=settings).events[0]

        assert event.zScore is None
        assert event.robustZScore is None

    def test_signal_missing_from_recent_window_is_not_evaluated(self, settings, baseline) -> None:
        recent = make_aggregates(7, meetingLoadIndex=30.0)

        result = detect(TEAM_ID, recent, baseline, settings=settings)

        assert set(_events_by_signal(result)) == {'meetingLoadIndex'}

    def test_low_confidence_marks_every_event_provisional(self, settings, baseline_factory) -> None:
        baseline = baseline_factory(confidence=Confidence.LOW, sample_size=3)
        recent = make_aggregates(
            7, meetingLoadIndex=40.0, afterHoursRate=30.0, focusTimeRatio=0.1, responseMedianMins=90.0
        )

        result = detect(TEAM_ID, recent, baseline, settings=settings)

        assert len(result.events) == 4
        assert all(e.provisional for e in result.events)
        assert result.provisional is True
        assert result.driftState == DriftState.STABLE, "Provisional events are not actionable"

    def test_medium_confidence_events_are_actionable(self, settings, baseline_factory) -> None:
        baseline = baseline_factory(confidence=Confidence.MEDIUM, sample_size=15)
        recent = make_aggregates(7, meetingLoadIndex=40.0)

        result = detect(TEAM_ID, recent, baseline, settings=settings)

        assert all(not e.provisional for e in result.events)

    def test_missing_baseline_fails_uncalibrated(self, settings) -> None:
        result = detect(TEAM_ID, make_aggregates(7, meetingLoadIndex=28.0), None, settings=settings)

        assert result.status == ResultStatus.FAILED
        assert result.error == ErrorCode.UNCALIBRATED
        with pytest.raises(UncalibratedError):
            result.unwrap()

    def test_empty_recent_window_is_no_data(self, settings, baseline) -> None:
        result = detect(TEAM_ID, [], baseline, settings=settings)

        assert result.status == ResultStatus.NO_DATA
        assert result.events == []

    def test_threshold_override_changes_sensitivity(self, settings, baseline) -> None:
        strict = settings.model_copy(update={'drift_thresholds': {'meetingLoadIndex': 1.05}})
        recent = make_aggregates(7, meetingLoadIndex=22.0)

        assert detect(TEAM_ID, recent, baseline, settings=settings).events == []
        assert len(detect(TEAM_ID, recent, baseline, settings=strict).events) == 1

    def test_repeated_runs_create_new_event_objects(self, settings, baseline) -> None:
        recent = make_aggregates(7, meetingLoadIndex=30.0)

        first = detect(TEAM_ID, recent, baseline, detected_at=DETECTED_AT, settings=settings)
        later = detect(
            TEAM_ID, recent, baseline, detected_at=datetime(2024, 4, 7, tzinfo=timezone.utc), settings=settings
        )

        assert first.events[0].eventId != later.events[0].eventId
        assert first.events[0].detectedAt == DETECTED_AT

    def test_same_run_timestamp_gives_stable_event_ids(self, settings, baseline) -> None:
        recent = make_aggregates(7, meetingLoadIndex=30.0)

        a = detect(TEAM_ID, recent, baseline, detected_at=DETECTED_AT, settings=settings)
        b = detect(TEAM_ID, recent, baseline, detected_at=DETECTED_AT, settings=settings)

        assert [e.eventId for e in a.events] == [e.eventId for e in b.events]


class TestDriftState:

    def _result_with_adverse(self, settings, count: int):
        baseline = make_baseline()
        worsened = {
            'meetingLoadIndex': 40.0,
            'afterHoursRate': 30.0,
            'focusTimeRatio': 0.1,
            'responseMedianMins': 90.0,
            'bdi': 80.0,
        }
        chosen = dict(list(worsened.items())[:count])
        return detect(TEAM_ID, make_aggregates(7, **chosen), baseline, settings=settings)

    @pytest.mark.parametrize(
        'count,expected',
        [
            (1, DriftState.STABLE),
            (2, DriftState.EARLY_DRIFT),
            (3, DriftState.DEVELOPING_DRIFT),
            (4, DriftState.DEVELOPING_DRIFT),
            (5, DriftState.CRITICAL_DRIFT),
        ],
    )
    def test_state_from_adverse_event_count(self, settings, count, expected) -> None:
        result = self._result_with_adverse(settings, count)
        assert result.driftState == expected
        assert summarize_drift_state(result.events) == expected

    def test_top_drivers_are_largest_changes(self, settings) -> None:
        result = self._result_with_adverse(settings, 5)

        assert len(result.topDrivers) == 3
        magnitudes = [abs(d.percentChange) for d in result.topDrivers]
        assert magnitudes == sorted(magnitudes, reverse=True)
        assert result.topDrivers[0].signalName == 'afterHoursRate'

    def test_summary_names_leading_signal(self, settings) -> None:
        result = self._result_with_adverse(settings, 2)
        assert result.summary.startswith("2 signals showing negative drift, led by After-hours activity")


class TestRelativeChange:

    @pytest.mark.parametrize('current,baseline,expected', [
        (28.0, 20.0, 0.4),
        (-5.0, -10.0, 0.5),
        (-15.0, -10.0, -0.5),
    ])
    def test_sign_follows_difference(self, current, baseline, expected) -> None:
        assert relative_change(current, baseline) == pytest.approx(expected)

    def test_zero_baseline_is_none(self) -> None:
        assert relative_change(5.0, 0.0) is None

    def test_negative_bdi_aggregate_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MetricAggregate(teamId=TEAM_ID, date=DETECTED_AT.date(), bdi=-1.0)
