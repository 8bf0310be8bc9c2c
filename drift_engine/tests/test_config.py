"""
Tests for engine settings, organization overrides and the error taxonomy.
"""

import pytest

from drift_engine.core.config import DEFAULT_DRIFT_THRESHOLDS, EngineSettings, OrgConfig
from drift_engine.core.errors import (
    DriftEngineError,
    InsufficientGroupSizeError,
    NoDataError,
    UncalibratedError,
    error_for,
)
from drift_engine.models import ErrorCode
from drift_engine.services.calibration import calibrate
from drift_engine.services.drift_detection import detect
from drift_engine.tests.conftest import TEAM_ID, make_aggregates


class TestEngineSettings:

    def test_defaults(self, settings) -> None:
        assert settings.min_group_size == 5
        assert settings.avg_hourly_cost == 75.0
        assert settings.drift_thresholds == DEFAULT_DRIFT_THRESHOLDS

    @pytest.mark.parametrize('signal_name,expected', [
        ('meetingLoadIndex', 0.15),
        ('responseMedianMins', 0.40),
        ('focusTimeRatio', 0.10),
    ])
    def test_threshold_for(self, settings, signal_name, expected) -> None:
        assert settings.threshold_for(signal_name) == pytest.approx(expected)

    def test_threshold_for_unknown_signal(self, settings) -> None:
        assert settings.threshold_for('slackMessages') is None

    def test_environment_override(self, monkeypatch) -> None:
        monkeypatch.setenv('DRIFT_ENGINE_MIN_GROUP_SIZE', '7')
        monkeypatch.setenv('DRIFT_ENGINE_AVG_HOURLY_COST', '90')

        settings = EngineSettings(_env_file=None)

        assert settings.min_group_size == 7
        assert settings.avg_hourly_cost == 90.0


class TestForOrg:

    def test_none_returns_same_settings(self, settings) -> None:
        assert settings.for_org(None) is settings

    def test_threshold_overrides_merge_over_defaults(self, settings) -> None:
        org_settings = settings.for_org(OrgConfig(driftThresholds={'meetingLoadIndex': 1.30}))

        assert org_settings.threshold_for('meetingLoadIndex') == pytest.approx(0.30)
        assert org_settings.threshold_for('afterHoursRate') == pytest.approx(0.25)
        assert settings.threshold_for('meetingLoadIndex') == pytest.approx(0.15), "Base settings must not change"

    def test_scalar_overrides(self, settings) -> None:
        org_settings = settings.for_org(OrgConfig(avgHourlyCost=120.0, minGroupSize=8))

        assert org_settings.avg_hourly_cost == 120.0
        assert org_settings.min_group_size == 8

    def test_org_threshold_changes_detection(self, settings, baseline) -> None:
        """+20% meeting load is drift by default but not under a 1.30 ratio."""
        recent = make_aggregates(7, meetingLoadIndex=24.0)
        org_settings = settings.for_org(OrgConfig(driftThresholds={'meetingLoadIndex': 1.30}))

        assert len(detect(TEAM_ID, recent, baseline, settings=settings).events) == 1
        assert detect(TEAM_ID, recent, baseline, settings=org_settings).events == []


class TestErrors:

    @pytest.mark.parametrize('code,cls', [
        (ErrorCode.NO_DATA, NoDataError),
        (ErrorCode.UNCALIBRATED, UncalibratedError),
        (ErrorCode.INSUFFICIENT_GROUP_SIZE, InsufficientGroupSizeError),
    ])
    def test_error_for_maps_codes(self, code, cls) -> None:
        err = error_for(code, "boom", team_id=TEAM_ID)

        assert isinstance(err, cls)
        assert isinstance(err, DriftEngineError)
        assert err.code == code
        assert err.team_id == TEAM_ID

    def test_unwrap_raises_typed_error(self, settings) -> None:
        result = calibrate(TEAM_ID, [], settings=settings)

        with pytest.raises(NoDataError) as exc_info:
            result.unwrap()
        assert exc_info.value.team_id == TEAM_ID

    def test_unwrap_detection_without_baseline(self, settings) -> None:
        result = detect(TEAM_ID, make_aggregates(7, meetingLoadIndex=30.0), None, settings=settings)

        with pytest.raises(UncalibratedError):
            result.unwrap()

    def test_unwrap_returns_value_on_success(self, settings) -> None:
        result = calibrate(TEAM_ID, make_aggregates(30, meetingLoadIndex=20.0), settings=settings)

        assert result.unwrap().signals['meetingLoadIndex'] == 20.0
