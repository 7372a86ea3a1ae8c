"""
Forecast service - composes the pure forecast stages behind one cache.

The caller fetches the raw rows (an async, externally owned concern) and
hands them over as a snapshot; this service only derives from them.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from fluxo.forecast.cache import ProjectionCache, make_cache_key
from fluxo.forecast.engine import Projection, run_projection
from fluxo.forecast.metrics import CashFlowMetrics, calculate_metrics, weekly_spend_threshold
from fluxo.forecast.provisioned import ProvisionedTotals, split_provisioned_totals
from fluxo.forecast.schemas import ForecastOptions, ForecastSources
from fluxo.scenarios.engine import simulate_scenario
from fluxo.scenarios.types import ScenarioAdjustment, SimulationResult

logger = logging.getLogger(__name__)


class CashFlowForecaster:
    """
    Memoizing front for projection, metrics and scenario simulation.

    Results are keyed by a hash of every input, so re-invoking with
    unchanged inputs is served from the cache and any change recomputes.
    """

    def __init__(self, cache: Optional[ProjectionCache] = None):
        self.cache = cache or ProjectionCache()

    def project(
        self,
        sources: ForecastSources,
        selected_account_ids: Sequence[str],
        starting_balances: Mapping[str, Decimal],
        start_date: date,
        end_date: date,
        options: Optional[ForecastOptions] = None,
    ) -> Projection:
        options = options or ForecastOptions()
        key = make_cache_key(
            stage="projection",
            sources=sources,
            accounts=list(selected_account_ids),
            balances=dict(starting_balances),
            start=start_date,
            end=end_date,
            options=options,
        )
        return self.cache.get_or_compute(
            key,
            lambda: run_projection(
                sources, selected_account_ids, starting_balances, start_date, end_date, options
            ),
        )

    def metrics(
        self,
        projection: Projection,
        low_balance_threshold: Optional[Decimal] = None,
    ) -> CashFlowMetrics:
        """
        Risk summary of a projection.

        Without an explicit threshold, one week of average posted spend is
        used when the projection carries posted expenses.
        """
        if low_balance_threshold is None:
            low_balance_threshold = weekly_spend_threshold(projection.events)
        return calculate_metrics(projection.data_points, low_balance_threshold)

    def simulate(
        self,
        projection: Projection,
        adjustments: Sequence[ScenarioAdjustment],
    ) -> SimulationResult:
        key = make_cache_key(
            stage="scenario",
            start=projection.start_date,
            end=projection.end_date,
            balances=projection.starting_balances,
            events=[e.to_dict() for e in projection.events],
            adjustments=list(adjustments),
        )
        return self.cache.get_or_compute(key, lambda: simulate_scenario(projection, adjustments))

    def provisioned_totals(
        self,
        sources: ForecastSources,
        selected_account_ids: Sequence[str],
        start_date: date,
        end_date: date,
        today: Optional[date] = None,
    ) -> ProvisionedTotals:
        return split_provisioned_totals(
            sources.transactions, selected_account_ids, start_date, end_date, today
        )
