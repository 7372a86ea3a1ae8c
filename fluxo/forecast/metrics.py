"""
Cash-flow metrics - risk indicators derived from a projected series.

Every metric is a pure function of the CashFlowDataPoint list; nothing here
looks at the events that produced it.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from fluxo.config import settings
from fluxo.forecast.engine import CashFlowDataPoint
from fluxo.forecast.events import CashEvent, EventOrigin


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class RiskScore(str, Enum):
    """Coarse risk tier of a forecast."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class KeyEventType(str, Enum):
    SALARY = "salary"
    LARGE_EXPENSE = "large_expense"
    MONTH_START = "month_start"
    LOW_BALANCE = "low_balance"


@dataclass
class CashFlowMetrics:
    """Derived risk summary of a projected series."""
    liquidity_now: Decimal
    worst_day_balance: Decimal
    worst_day_date: Optional[date]
    projected_end_balance: Decimal
    days_below_zero: int
    average_balance: Decimal
    volatility: Decimal
    trend_direction: TrendDirection
    risk_score: RiskScore

    def to_dict(self) -> Dict[str, Any]:
        return {
            "liquidity_now": str(self.liquidity_now),
            "worst_day_balance": str(self.worst_day_balance),
            "worst_day_date": self.worst_day_date.isoformat() if self.worst_day_date else None,
            "projected_end_balance": str(self.projected_end_balance),
            "days_below_zero": self.days_below_zero,
            "average_balance": str(self.average_balance),
            "volatility": str(self.volatility),
            "trend_direction": self.trend_direction.value,
            "risk_score": self.risk_score.value,
        }


@dataclass
class KeyEvent:
    """A notable day in the series, used to annotate charts."""
    date: date
    type: KeyEventType
    description: str
    amount: Optional[Decimal] = None


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, Decimal("0")) / len(values)


def worst_day(data_points: Sequence[CashFlowDataPoint]) -> CashFlowDataPoint:
    """Lowest-total point; the earliest one wins ties."""
    worst = data_points[0]
    for point in data_points[1:]:
        if point.total < worst.total:
            worst = point
    return worst


def days_below_zero(data_points: Sequence[CashFlowDataPoint]) -> int:
    return sum(1 for point in data_points if point.total < 0)


def days_at_or_above_zero(data_points: Sequence[CashFlowDataPoint]) -> int:
    return sum(1 for point in data_points if point.total >= 0)


def trend_direction(
    data_points: Sequence[CashFlowDataPoint],
    tolerance: Optional[Decimal] = None,
    window_fraction: Optional[Decimal] = None,
) -> TrendDirection:
    """
    Compare the mean of the last window of points against the first.

    The window is TREND_WINDOW_FRACTION of the series (at least one point).
    A move within TREND_TOLERANCE of the earlier mean counts as flat.
    """
    if not data_points:
        return TrendDirection.FLAT

    tolerance = settings.TREND_TOLERANCE if tolerance is None else tolerance
    window_fraction = settings.TREND_WINDOW_FRACTION if window_fraction is None else window_fraction

    window = max(1, int(len(data_points) * window_fraction))
    earlier = _mean([p.total for p in data_points[:window]])
    later = _mean([p.total for p in data_points[-window:]])

    threshold = abs(earlier) * tolerance
    if later - earlier > threshold:
        return TrendDirection.UP
    if earlier - later > threshold:
        return TrendDirection.DOWN
    return TrendDirection.FLAT


def weekly_spend_threshold(events: Sequence[CashEvent]) -> Optional[Decimal]:
    """
    One week of average historical spend, from posted expenses.

    Returns None when there is no posted spend to average over, in which
    case callers fall back to LOW_BALANCE_THRESHOLD.
    """
    spend = [e for e in events if e.origin == EventOrigin.POSTED and e.amount < 0]
    if not spend:
        return None

    first = min(e.date for e in spend)
    last = max(e.date for e in spend)
    span_days = (last - first).days + 1
    total_spend = -sum((e.amount for e in spend), Decimal("0"))
    return total_spend / span_days * 7


def calculate_metrics(
    data_points: Sequence[CashFlowDataPoint],
    low_balance_threshold: Optional[Decimal] = None,
) -> CashFlowMetrics:
    """
    Derive the risk summary of a projected series.

    Args:
        data_points: Daily series from the projection engine
        low_balance_threshold: Worst-day floor below which the forecast is
            medium risk. Defaults to settings.LOW_BALANCE_THRESHOLD.

    Returns:
        CashFlowMetrics; an empty series gives zeros, flat trend, low risk
    """
    if not data_points:
        zero = Decimal("0")
        return CashFlowMetrics(
            liquidity_now=zero,
            worst_day_balance=zero,
            worst_day_date=None,
            projected_end_balance=zero,
            days_below_zero=0,
            average_balance=zero,
            volatility=zero,
            trend_direction=TrendDirection.FLAT,
            risk_score=RiskScore.LOW,
        )

    if low_balance_threshold is None:
        low_balance_threshold = settings.LOW_BALANCE_THRESHOLD

    totals = [p.total for p in data_points]
    worst = worst_day(data_points)
    below_zero = days_below_zero(data_points)
    average = _mean(totals)
    variance = _mean([(t - average) ** 2 for t in totals])

    if below_zero > 0:
        risk = RiskScore.HIGH
    elif worst.total < low_balance_threshold:
        risk = RiskScore.MEDIUM
    else:
        risk = RiskScore.LOW

    return CashFlowMetrics(
        liquidity_now=totals[0],
        worst_day_balance=worst.total,
        worst_day_date=worst.date,
        projected_end_balance=totals[-1],
        days_below_zero=below_zero,
        average_balance=average,
        volatility=variance.sqrt(),
        trend_direction=trend_direction(data_points),
        risk_score=risk,
    )


def identify_key_events(data_points: Sequence[CashFlowDataPoint]) -> List[KeyEvent]:
    """
    Flag salary-like inflows, large expenses, month starts and low balances.

    The first point has no previous day and is never flagged.
    """
    events = []
    salary_threshold = settings.KEY_EVENT_SALARY_THRESHOLD
    expense_threshold = settings.KEY_EVENT_LARGE_EXPENSE_THRESHOLD

    for previous, current in zip(data_points, data_points[1:]):
        change = current.total - previous.total

        if change > salary_threshold:
            events.append(KeyEvent(current.date, KeyEventType.SALARY, "Possível salário", change))

        if change < -expense_threshold:
            events.append(KeyEvent(current.date, KeyEventType.LARGE_EXPENSE, "Grande despesa", abs(change)))

        if current.date.day == 1:
            events.append(KeyEvent(current.date, KeyEventType.MONTH_START, "Início do mês"))

        if 0 < current.total < settings.LOW_BALANCE_THRESHOLD:
            events.append(KeyEvent(current.date, KeyEventType.LOW_BALANCE, "Saldo baixo", current.total))

    return events
