"""
Scenario Simulator - overlays what-if adjustments on a baseline projection.

Adjustments become synthetic CashEvents that are appended to the baseline's
own events; the union is swept again by the projection engine from the
same starting balances. Baseline data is never modified.
"""
import logging
from datetime import date
from typing import List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from fluxo.forecast.engine import CashFlowDataPoint, Projection, project_cash_flow
from fluxo.forecast.events import CashEvent, EventOrigin, make_event
from fluxo.forecast.metrics import days_at_or_above_zero, worst_day
from fluxo.scenarios.types import (
    AdjustmentType,
    ScenarioAdjustment,
    ScenarioImpact,
    SimulationResult,
)

logger = logging.getLogger(__name__)


def _adjustment_window(
    adjustment: ScenarioAdjustment,
    start_date: date,
    end_date: date,
) -> Optional[tuple]:
    """Intersect the adjustment's own window with the horizon (None if empty)."""
    window_start = max(adjustment.start_date or start_date, start_date)
    window_end = min(adjustment.end_date or end_date, end_date)
    if window_end < window_start:
        return None
    return window_start, window_end


def _monthly_dates(window_start: date, window_end: date) -> List[date]:
    """Every 1st of a calendar month inside the window."""
    dates = []
    cursor = window_start.replace(day=1)
    if cursor < window_start:
        cursor += relativedelta(months=1)
    while cursor <= window_end:
        dates.append(cursor)
        cursor += relativedelta(months=1)
    return dates


def build_adjustment_events(
    adjustment: ScenarioAdjustment,
    start_date: date,
    end_date: date,
    account_id: str,
) -> List[CashEvent]:
    """
    Synthesize the cash events an adjustment stands for.

    expense_reduction and income_increase add +amount per month,
    savings_goal sets aside -amount per month and extra_payment is a single
    -amount on the first day of the window.
    """
    window = _adjustment_window(adjustment, start_date, end_date)
    if window is None:
        return []
    window_start, window_end = window

    if adjustment.type == AdjustmentType.EXTRA_PAYMENT:
        dates = [window_start]
        amount = -adjustment.amount
    elif adjustment.type == AdjustmentType.SAVINGS_GOAL:
        dates = _monthly_dates(window_start, window_end)
        amount = -adjustment.amount
    else:
        dates = _monthly_dates(window_start, window_end)
        amount = adjustment.amount

    events = []
    for event_date in dates:
        event = make_event(
            event_date,
            account_id,
            amount,
            EventOrigin.SCENARIO,
            description=adjustment.description or adjustment.type.value,
        )
        if event is not None:
            events.append(event)
    return events


def calculate_impact(
    baseline: Sequence[CashFlowDataPoint],
    scenario: Sequence[CashFlowDataPoint],
) -> ScenarioImpact:
    """Diff a scenario series against its baseline."""
    if not baseline or not scenario:
        return ScenarioImpact()

    return ScenarioImpact(
        total_improvement=scenario[-1].total - baseline[-1].total,
        worst_day_improvement=worst_day(scenario).total - worst_day(baseline).total,
        days_above_zero_gained=days_at_or_above_zero(scenario) - days_at_or_above_zero(baseline),
    )


def simulate_scenario(
    baseline: Projection,
    adjustments: Sequence[ScenarioAdjustment],
) -> SimulationResult:
    """
    Re-project the baseline with every adjustment's synthetic events added.

    Synthetic events are booked to the first selected account. An empty
    adjustment list gives a series equal to the baseline and zero impact.

    Args:
        baseline: Projection returned by run_projection
        adjustments: Scenario adjustments (validated ScenarioAdjustment or dicts)

    Returns:
        SimulationResult with the scenario series and its impact
    """
    if adjustments is None:
        raise TypeError("adjustments must be a sequence, got None")

    adjustments = [
        a if isinstance(a, ScenarioAdjustment) else ScenarioAdjustment.model_validate(a)
        for a in adjustments
    ]

    if not baseline.data_points:
        return SimulationResult(original_data_points=[], scenario_data_points=[])

    synthetic: List[CashEvent] = []
    if adjustments and not baseline.account_ids:
        logger.warning("Scenario has no account to book adjustments to, skipping adjustments")
    elif adjustments:
        account_id = baseline.account_ids[0]
        for adjustment in adjustments:
            synthetic.extend(build_adjustment_events(
                adjustment, baseline.start_date, baseline.end_date, account_id
            ))

    scenario_points = project_cash_flow(
        list(baseline.events) + synthetic,
        baseline.starting_balances,
        baseline.start_date,
        baseline.end_date,
    )

    logger.info(
        f"Simulated {len(adjustments)} adjustments as {len(synthetic)} synthetic events "
        f"over {len(scenario_points)} days"
    )
    return SimulationResult(
        original_data_points=baseline.data_points,
        scenario_data_points=scenario_points,
        impact=calculate_impact(baseline.data_points, scenario_points),
    )
