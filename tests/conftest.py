"""Shared test fixtures and configuration for fluxo tests."""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from fluxo.forecast.engine import CashFlowDataPoint


CHECKING = "acc_checking"
SAVINGS = "acc_savings"


def make_series(totals, start=date(2024, 6, 1), account_id=CHECKING):
    """Build a daily single-account series from a list of totals."""
    return [
        CashFlowDataPoint(
            date=start + timedelta(days=i),
            total=Decimal(str(total)),
            per_account={account_id: Decimal(str(total))},
        )
        for i, total in enumerate(totals)
    ]


@pytest.fixture
def june_horizon():
    """The whole of June 2024."""
    return date(2024, 6, 1), date(2024, 6, 30)


@pytest.fixture
def accounts():
    return [CHECKING, SAVINGS]
