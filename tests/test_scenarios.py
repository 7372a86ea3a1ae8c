"""
Unit Tests for the Scenario Simulator.

Tests cover:
1. Synthetic event generation per adjustment type
2. Re-projection and impact against the baseline
3. Idempotence of an empty adjustment list
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from pydantic import ValidationError

from fluxo.forecast.engine import run_projection
from fluxo.forecast.events import EventOrigin
from fluxo.forecast.schemas import ForecastSources
from fluxo.scenarios import (
    AdjustmentType,
    ScenarioAdjustment,
    build_adjustment_events,
    simulate_scenario,
)

from tests.conftest import CHECKING, SAVINGS


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def flat_baseline(june_horizon):
    """Baseline flat at 1000 for the 30 days of June."""
    return run_projection(ForecastSources(), [CHECKING], {CHECKING: Decimal("1000")}, *june_horizon)


@pytest.fixture
def busy_baseline():
    """A multi-account baseline with income and expenses over two months."""
    sources = ForecastSources(transactions=[
        {"account_id": CHECKING, "amount": "2500", "date": "2024-06-05",
         "status": "pendente", "type": "receita"},
        {"account_id": CHECKING, "amount": "3200", "date": "2024-06-10",
         "status": "pendente", "type": "despesa"},
        {"account_id": SAVINGS, "amount": "100", "date": "2024-07-02",
         "status": "pendente", "type": "despesa"},
    ])
    return run_projection(
        sources,
        [CHECKING, SAVINGS],
        {CHECKING: Decimal("500"), SAVINGS: Decimal("200")},
        date(2024, 6, 1),
        date(2024, 7, 31),
    )


def _adjustment(type_, amount, **kwargs):
    return ScenarioAdjustment(type=type_, amount=Decimal(str(amount)), **kwargs)


# =============================================================================
# TEST: SYNTHETIC EVENTS
# =============================================================================

class TestBuildAdjustmentEvents:
    """Tests for adjustment → CashEvent synthesis."""

    def test_monthly_adjustment_on_first_of_each_month(self):
        adjustment = _adjustment(AdjustmentType.INCOME_INCREASE, 300)

        events = build_adjustment_events(adjustment, date(2024, 6, 15), date(2024, 8, 10), CHECKING)

        assert [e.date for e in events] == [date(2024, 7, 1), date(2024, 8, 1)]
        assert all(e.amount == Decimal("300") for e in events)
        assert all(e.origin == EventOrigin.SCENARIO for e in events)

    def test_horizon_without_a_first_gets_no_monthly_events(self):
        adjustment = _adjustment(AdjustmentType.SAVINGS_GOAL, 300)

        assert build_adjustment_events(adjustment, date(2024, 6, 5), date(2024, 6, 28), CHECKING) == []

    def test_expense_reduction_is_positive(self):
        adjustment = _adjustment(AdjustmentType.EXPENSE_REDUCTION, 200)

        events = build_adjustment_events(adjustment, date(2024, 6, 1), date(2024, 6, 30), CHECKING)

        assert [(e.date, e.amount) for e in events] == [(date(2024, 6, 1), Decimal("200"))]

    def test_savings_goal_is_negative(self):
        adjustment = _adjustment(AdjustmentType.SAVINGS_GOAL, 150)

        events = build_adjustment_events(adjustment, date(2024, 6, 1), date(2024, 7, 31), CHECKING)

        assert [e.amount for e in events] == [Decimal("-150"), Decimal("-150")]

    def test_extra_payment_applies_once_on_horizon_start(self):
        adjustment = _adjustment(AdjustmentType.EXTRA_PAYMENT, 900)

        events = build_adjustment_events(adjustment, date(2024, 6, 1), date(2024, 12, 31), CHECKING)

        assert [(e.date, e.amount) for e in events] == [(date(2024, 6, 1), Decimal("-900"))]

    def test_adjustment_window_narrows_the_horizon(self):
        adjustment = _adjustment(
            AdjustmentType.INCOME_INCREASE, 100,
            start_date=date(2024, 7, 1), end_date=date(2024, 8, 31),
        )

        events = build_adjustment_events(adjustment, date(2024, 6, 1), date(2024, 12, 31), CHECKING)

        assert [e.date for e in events] == [date(2024, 7, 1), date(2024, 8, 1)]

    def test_window_outside_horizon_produces_nothing(self):
        adjustment = _adjustment(AdjustmentType.EXTRA_PAYMENT, 100, start_date=date(2025, 1, 1))

        assert build_adjustment_events(adjustment, date(2024, 6, 1), date(2024, 6, 30), CHECKING) == []

    @pytest.mark.parametrize("amount", ["0", "-10", "NaN"])
    def test_invalid_amounts_are_rejected(self, amount):
        with pytest.raises(ValidationError):
            ScenarioAdjustment(type="income_increase", amount=amount)


# =============================================================================
# TEST: SIMULATION
# =============================================================================

class TestSimulateScenario:
    """Tests for re-projection and impact."""

    def test_expense_reduction_worked_example(self, flat_baseline):
        adjustment = _adjustment(AdjustmentType.EXPENSE_REDUCTION, 200, description="Cortar delivery")

        result = simulate_scenario(flat_baseline, [adjustment])

        assert result.scenario_data_points[0].total == Decimal("1200")
        assert result.scenario_data_points[-1].total == Decimal("1200")
        assert result.impact.total_improvement == Decimal("200")
        assert result.impact.worst_day_improvement == Decimal("200")
        assert result.impact.days_above_zero_gained == 0

    def test_mid_month_horizon_gets_one_event_per_first(self):
        start = date(2024, 1, 15)
        baseline = run_projection(
            ForecastSources(), [CHECKING], {CHECKING: Decimal("1000")}, start, start + timedelta(days=29)
        )

        result = simulate_scenario(baseline, [_adjustment(AdjustmentType.EXPENSE_REDUCTION, 200)])

        by_date = {p.date: p.total for p in result.scenario_data_points}
        assert by_date[date(2024, 1, 15)] == Decimal("1000")
        assert by_date[date(2024, 1, 31)] == Decimal("1000")
        assert by_date[date(2024, 2, 1)] == Decimal("1200")
        assert result.impact.total_improvement == Decimal("200")
        assert result.impact.worst_day_improvement == 0

    def test_empty_adjustments_are_idempotent(self, busy_baseline):
        result = simulate_scenario(busy_baseline, [])

        assert result.scenario_data_points == busy_baseline.data_points
        assert result.impact.total_improvement == 0
        assert result.impact.worst_day_improvement == 0
        assert result.impact.days_above_zero_gained == 0

    def test_savings_goal_can_lose_days_above_zero(self, june_horizon):
        baseline = run_projection(ForecastSources(), [CHECKING], {CHECKING: Decimal("100")}, *june_horizon)

        result = simulate_scenario(baseline, [_adjustment(AdjustmentType.SAVINGS_GOAL, 150)])

        assert result.impact.days_above_zero_gained == -30
        assert result.impact.total_improvement == Decimal("-150")

    def test_adjustments_flow_through_the_sweep(self, busy_baseline):
        adjustments = [
            _adjustment(AdjustmentType.INCOME_INCREASE, 1000),
            _adjustment(AdjustmentType.EXTRA_PAYMENT, 300),
        ]

        result = simulate_scenario(busy_baseline, adjustments)

        baseline_by_date = {p.date: p.total for p in busy_baseline.data_points}
        scenario_by_date = {p.date: p.total for p in result.scenario_data_points}
        assert scenario_by_date[date(2024, 6, 1)] - baseline_by_date[date(2024, 6, 1)] == Decimal("700")
        assert scenario_by_date[date(2024, 7, 1)] - baseline_by_date[date(2024, 7, 1)] == Decimal("1700")
        assert result.impact.total_improvement == Decimal("1700")

    def test_synthetic_events_hit_first_selected_account(self, busy_baseline):
        result = simulate_scenario(busy_baseline, [_adjustment(AdjustmentType.INCOME_INCREASE, 50)])

        last = result.scenario_data_points[-1]
        baseline_last = busy_baseline.data_points[-1]
        assert last.per_account[CHECKING] - baseline_last.per_account[CHECKING] == Decimal("100")
        assert last.per_account[SAVINGS] == baseline_last.per_account[SAVINGS]

    def test_worst_day_improvement(self, busy_baseline):
        result = simulate_scenario(busy_baseline, [_adjustment(AdjustmentType.INCOME_INCREASE, 400)])

        # Baseline bottoms out at -100 from Jul 2; the scenario's worst day is
        # Jun 10 at 0 + 400
        assert min(p.total for p in busy_baseline.data_points) == Decimal("-100")
        assert min(p.total for p in result.scenario_data_points) == Decimal("400")
        assert result.impact.worst_day_improvement == Decimal("500")

    def test_baseline_is_not_modified(self, busy_baseline):
        events_before = tuple(busy_baseline.events)
        points_before = [p.total for p in busy_baseline.data_points]

        simulate_scenario(busy_baseline, [_adjustment(AdjustmentType.EXTRA_PAYMENT, 10_000)])

        assert busy_baseline.events == events_before
        assert [p.total for p in busy_baseline.data_points] == points_before

    def test_accepts_raw_dicts(self, flat_baseline):
        result = simulate_scenario(flat_baseline, [{"type": "income_increase", "amount": "50"}])

        assert result.impact.total_improvement == Decimal("50")

    def test_no_accounts_skips_adjustments(self, june_horizon):
        baseline = run_projection(ForecastSources(), [], {}, *june_horizon)

        result = simulate_scenario(baseline, [_adjustment(AdjustmentType.INCOME_INCREASE, 50)])

        assert result.scenario_data_points == baseline.data_points
        assert result.impact.total_improvement == 0

    def test_empty_baseline(self):
        baseline = run_projection(ForecastSources(), [CHECKING], {CHECKING: 10}, date(2024, 6, 2), date(2024, 6, 1))

        result = simulate_scenario(baseline, [_adjustment(AdjustmentType.INCOME_INCREASE, 50)])

        assert result.scenario_data_points == ()
        assert result.impact.days_above_zero_gained == 0

    def test_to_dict(self, flat_baseline):
        data = simulate_scenario(flat_baseline, [_adjustment(AdjustmentType.EXTRA_PAYMENT, 1)]).to_dict()

        assert data["impact"]["total_improvement"] == "-1"
        assert len(data["scenario_data_points"]) == 30
        assert data["scenario_data_points"][0]["total"] == "999"
