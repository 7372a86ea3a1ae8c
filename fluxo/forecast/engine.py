"""
Cash-flow projection engine.

Turns a flat list of CashEvents plus per-account starting balances into a
daily balance timeline, one point per calendar day of the horizon.

The sweep is a single forward pass over the sorted events: the balance on
day n only depends on day n-1's balances and day n's events. Scenario
simulation reuses the same sweep with synthetic events appended, so this
module stays the single source of truth for balance arithmetic.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from fluxo.config import settings
from fluxo.forecast.events import CashEvent
from fluxo.forecast.normalizer import build_forecast_events, settled_card_account_ids
from fluxo.forecast.schemas import ForecastOptions, ForecastSources

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CashFlowDataPoint:
    """Projected state of the selected accounts at the end of one day (read-only)."""
    date: date
    total: Decimal
    per_account: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "per_account", MappingProxyType(dict(self.per_account)))

    def to_dict(self) -> Dict[str, str]:
        """Flatten into the chart-friendly shape: date, total, one key per account."""
        data = {"date": self.date.isoformat(), "total": str(self.total)}
        for account_id, balance in self.per_account.items():
            data[account_id] = str(balance)
        return data


@dataclass(frozen=True)
class Projection:
    """
    A projected series together with the inputs that produced it.

    The scenario simulator re-runs the sweep from these same inputs.
    Immutable once built; events and data_points are stored as tuples.
    """
    start_date: date
    end_date: date
    starting_balances: Mapping[str, Decimal]
    events: Tuple[CashEvent, ...]
    data_points: Tuple[CashFlowDataPoint, ...]

    def __post_init__(self):
        object.__setattr__(self, "starting_balances", MappingProxyType(dict(self.starting_balances)))
        object.__setattr__(self, "events", tuple(self.events))
        object.__setattr__(self, "data_points", tuple(self.data_points))

    @property
    def account_ids(self) -> List[str]:
        return list(self.starting_balances.keys())


def date_range(start_date: date, end_date: date) -> List[date]:
    """Every calendar day from start_date to end_date inclusive (empty if reversed)."""
    if end_date < start_date:
        return []
    return [start_date + timedelta(days=offset) for offset in range((end_date - start_date).days + 1)]


def _coerce_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def parse_horizon(
    start: Union[str, date, None] = None,
    end: Union[str, date, None] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Resolve the horizon bounds from ISO strings at the boundary.

    Defaults to today .. today + DEFAULT_HORIZON_DAYS. Raises ValueError on an
    unparseable bound since the horizon is caller input, not a data row.
    """
    start_date = _coerce_date(start) or today or date.today()
    end_date = _coerce_date(end) or start_date + timedelta(days=settings.DEFAULT_HORIZON_DAYS)
    return start_date, end_date


def project_cash_flow(
    events: Sequence[CashEvent],
    starting_balances: Mapping[str, Decimal],
    start_date: date,
    end_date: date,
) -> List[CashFlowDataPoint]:
    """
    Sweep the horizon once, applying each day's events to running balances.

    Args:
        events: Cash events from every source (any order)
        starting_balances: Balance per selected account as of start_date,
            before that day's events
        start_date: First day of the horizon (inclusive)
        end_date: Last day of the horizon (inclusive)

    Returns:
        One CashFlowDataPoint per day; empty if end_date < start_date
    """
    if events is None or starting_balances is None:
        raise TypeError("events and starting_balances are required")

    days = date_range(start_date, end_date)
    if not days:
        return []

    balances = {account_id: Decimal(str(balance)) for account_id, balance in starting_balances.items()}

    # sorted() is stable, so same-day events keep their normalization order
    ordered = sorted(events, key=lambda e: e.date)
    cursor = 0
    while cursor < len(ordered) and ordered[cursor].date < start_date:
        cursor += 1
    if cursor:
        logger.debug(f"{cursor} events before {start_date} are already in the starting balances")

    data_points = []
    ignored = 0
    for day in days:
        while cursor < len(ordered) and ordered[cursor].date == day:
            event = ordered[cursor]
            cursor += 1
            if event.account_id not in balances:
                ignored += 1
                continue
            balances[event.account_id] += event.amount

        data_points.append(CashFlowDataPoint(
            date=day,
            total=sum(balances.values(), Decimal("0")),
            per_account=dict(balances),
        ))

    if ignored:
        logger.debug(f"Ignored {ignored} events for accounts outside the selection")

    return data_points


def run_projection(
    sources: ForecastSources,
    selected_account_ids: Sequence[str],
    starting_balances: Mapping[str, Decimal],
    start_date: date,
    end_date: date,
    options: Optional[ForecastOptions] = None,
) -> Projection:
    """
    Normalize every source and project the daily balance timeline.

    Selected accounts without a starting balance start at zero, and so do
    credit card accounts whose debt is booked as a simulated payment.
    """
    events = build_forecast_events(sources, selected_account_ids, start_date, end_date, options)
    settled_cards = settled_card_account_ids(sources, selected_account_ids, options)
    balances = {
        account_id: Decimal("0") if account_id in settled_cards
        else Decimal(str(starting_balances.get(account_id, 0)))
        for account_id in selected_account_ids
    }
    if settled_cards:
        logger.debug(f"Starting {len(settled_cards)} credit card accounts at zero for payment simulation")
    data_points = project_cash_flow(events, balances, start_date, end_date)

    logger.info(
        f"Projected {len(data_points)} days from {len(events)} events "
        f"across {len(balances)} accounts"
    )
    return Projection(
        start_date=start_date,
        end_date=end_date,
        starting_balances=balances,
        events=events,
        data_points=data_points,
    )


def sample_data_points(data_points: Sequence[CashFlowDataPoint], sample_size: Optional[int]) -> List[CashFlowDataPoint]:
    """
    Thin a long series for charting, always keeping the last point.

    Only for display: metrics must be computed on the full series.
    """
    if not sample_size or sample_size <= 0 or len(data_points) <= sample_size:
        return list(data_points)

    step = len(data_points) // sample_size
    sampled = list(data_points[::step])
    if sampled[-1] is not data_points[-1]:
        sampled.append(data_points[-1])
    return sampled
