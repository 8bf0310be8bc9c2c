"""
Tests for the Cost-of-Drift Estimator and the organization rollup.
"""

import pytest

from drift_engine.core.config import OrgConfig
from drift_engine.models import CostTier, ErrorCode
from drift_engine.services.cost_of_drift import (
    COMPONENT_EXECUTION,
    COMPONENT_MEETINGS,
    COMPONENT_REWORK,
    TIER_INTERPRETATIONS,
    aggregate_org_cost_of_drift,
    build_cost_range,
    classify_cost_tier,
    estimate_cost_from_hours,
    estimate_cost_of_drift,
)
from drift_engine.tests.conftest import HEALTHY_SIGNALS, TEAM_ID, make_aggregates


def _recent(**overrides):
    values = dict(HEALTHY_SIGNALS)
    values.update(overrides)
    return make_aggregates(7, **values)


def _breakdown(estimate):
    return {item.component: item for item in estimate.breakdown}


class TestCostRange:

    @pytest.mark.scenario
    def test_seventy_five_per_hour_ten_hours(self, settings) -> None:
        """avgHourlyCost=75 and 10 hours lost -> 600 / 750 / 900."""
        estimate = estimate_cost_from_hours(TEAM_ID, {COMPONENT_MEETINGS: 10.0}, 75.0, settings=settings)

        assert estimate.weeklyEstimate.midpoint == pytest.approx(750.0)
        assert estimate.weeklyEstimate.low == pytest.approx(600.0)
        assert estimate.weeklyEstimate.high == pytest.approx(900.0)
        assert estimate.projectedEstimate.midpoint == pytest.approx(3000.0)

    @pytest.mark.parametrize('midpoint', [0.0, 0.01, 75.0, 1234.56, 98765.4])
    def test_range_is_ordered_and_non_negative(self, settings, midpoint) -> None:
        cost_range = build_cost_range(midpoint, settings)

        assert 0.0 <= cost_range.low <= cost_range.midpoint <= cost_range.high

    def test_negative_midpoint_is_clamped(self, settings) -> None:
        assert build_cost_range(-50.0, settings).midpoint == 0.0


class TestClassifyCostTier:

    @pytest.mark.parametrize('midpoint,expected', [
        (0.0, CostTier.NONE),
        (999.0, CostTier.LOW),
        (1000.0, CostTier.MODERATE),
        (4999.0, CostTier.MODERATE),
        (5000.0, CostTier.SIGNIFICANT),
        (14999.0, CostTier.SIGNIFICANT),
        (15000.0, CostTier.CRITICAL),
    ])
    def test_tiers(self, settings, midpoint, expected) -> None:
        assert classify_cost_tier(midpoint, settings) == expected


class TestEstimateCostOfDrift:

    def test_meeting_overhead_hours(self, settings, team, baseline) -> None:
        """+5 index points of a 40h week is 2h per person, 16h for eight people."""
        estimate = estimate_cost_of_drift(team, _recent(meetingLoadIndex=25.0), baseline, settings=settings)

        assert estimate.hasData is True
        assert _breakdown(estimate)[COMPONENT_MEETINGS].hours == pytest.approx(16.0)
        assert estimate.totalHoursLost == pytest.approx(16.0)
        assert estimate.weeklyEstimate.midpoint == pytest.approx(1200.0)
        assert estimate.tier == CostTier.MODERATE
        assert estimate.primaryDriver == COMPONENT_MEETINGS

    def test_execution_delay_hours(self, settings, team, baseline) -> None:
        """Focus -0.1 is 4h and response +20 min is 2h per person."""
        recent = _recent(focusTimeRatio=0.4, responseMedianMins=50.0)

        estimate = estimate_cost_of_drift(team, recent, baseline, settings=settings)

        assert _breakdown(estimate)[COMPONENT_EXECUTION].hours == pytest.approx(48.0)

    def test_rework_hours(self, settings, team, baseline) -> None:
        estimate = estimate_cost_of_drift(team, _recent(afterHoursRate=15.0), baseline, settings=settings)

        assert _breakdown(estimate)[COMPONENT_REWORK].hours == pytest.approx(16.0)

    def test_breakdown_percentages_sum_to_one_hundred(self, settings, team, baseline) -> None:
        recent = _recent(meetingLoadIndex=25.0, focusTimeRatio=0.4, responseMedianMins=50.0, afterHoursRate=15.0)

        estimate = estimate_cost_of_drift(team, recent, baseline, settings=settings)

        assert sum(item.percentage for item in estimate.breakdown) == pytest.approx(100.0, abs=0.2)
        assert estimate.primaryDriver == COMPONENT_EXECUTION

    def test_improvement_is_not_negative_cost(self, settings, team, baseline) -> None:
        recent = _recent(meetingLoadIndex=10.0, afterHoursRate=2.0, focusTimeRatio=0.8, responseMedianMins=5.0)

        estimate = estimate_cost_of_drift(team, recent, baseline, settings=settings)

        assert estimate.hasData is True
        assert estimate.weeklyEstimate.low == 0.0
        assert estimate.weeklyEstimate.high == 0.0
        assert estimate.tier == CostTier.NONE
        assert estimate.interpretation == TIER_INTERPRETATIONS[CostTier.NONE]
        assert estimate.primaryDriver is None

    def test_no_recent_data_is_explicit(self, settings, team, baseline) -> None:
        estimate = estimate_cost_of_drift(team, [], baseline, settings=settings)

        assert estimate.hasData is False
        assert estimate.weeklyEstimate is None
        assert estimate.error == ErrorCode.NO_DATA
        assert estimate.message

    @pytest.mark.scenario
    def test_rows_without_cost_signals_are_no_data(self, settings, team, baseline) -> None:
        """Only bdi observed: nothing to convert into hours, so no zero-cost verdict."""
        estimate = estimate_cost_of_drift(team, make_aggregates(7, bdi=80.0), baseline, settings=settings)

        assert estimate.hasData is False
        assert estimate.error == ErrorCode.NO_DATA
        assert estimate.tier is None
        assert estimate.weeklyEstimate is None

    def test_baseline_without_cost_signals_is_no_data(self, settings, team, baseline_factory) -> None:
        baseline = baseline_factory(signals={'bdi': 40.0})

        estimate = estimate_cost_of_drift(team, _recent(meetingLoadIndex=30.0), baseline, settings=settings)

        assert estimate.hasData is False
        assert estimate.error == ErrorCode.NO_DATA

    def test_below_privacy_floor_has_no_data(self, settings, small_team, baseline) -> None:
        recent = make_aggregates(7, team_id=small_team.teamId, meetingLoadIndex=90.0)

        estimate = estimate_cost_of_drift(small_team, recent, baseline, settings=settings)

        assert estimate.hasData is False
        assert estimate.error == ErrorCode.INSUFFICIENT_GROUP_SIZE

    def test_org_hourly_cost_override(self, settings, team, baseline) -> None:
        org_settings = settings.for_org(OrgConfig(avgHourlyCost=100.0))

        estimate = estimate_cost_of_drift(team, _recent(meetingLoadIndex=25.0), baseline, settings=org_settings)

        assert estimate.avgHourlyCost == 100.0
        assert estimate.weeklyEstimate.midpoint == pytest.approx(1600.0)


class TestAggregateOrgCostOfDrift:

    def _estimate(self, settings, team_id, hours):
        return estimate_cost_from_hours(team_id, hours, 75.0, settings=settings)

    def test_rollup_sums_teams_and_lists_top_three(self, settings, team) -> None:
        estimates = [
            self._estimate(settings, 'team_a', {COMPONENT_MEETINGS: 10.0}),
            self._estimate(settings, 'team_b', {COMPONENT_REWORK: 40.0}),
            self._estimate(settings, 'team_c', {COMPONENT_EXECUTION: 20.0}),
            self._estimate(settings, 'team_d', {COMPONENT_MEETINGS: 1.0}),
            estimate_cost_of_drift(team, [], None, settings=settings),
        ]

        rollup = aggregate_org_cost_of_drift(estimates, org_id='org_acme', settings=settings)

        assert rollup.hasData is True
        assert rollup.teamsWithData == 4
        assert rollup.teamsWithoutData == 1
        assert rollup.weeklyEstimate.midpoint == pytest.approx(75.0 * 71.0)
        assert [t.teamId for t in rollup.topTeams] == ['team_b', 'team_c', 'team_a']
        assert rollup.topTeams[0].primaryDriver == "Rework"

    def test_rollup_without_data(self, settings, team) -> None:
        rollup = aggregate_org_cost_of_drift([estimate_cost_of_drift(team, [], None, settings=settings)])

        assert rollup.hasData is False
        assert rollup.weeklyEstimate is None
