"""
Provisioned totals - where the selected accounts stand right now.

Splits known transactions into completed (posted up to today) and
provisioned (pending) income and expense. No projection is involved.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Sequence

from fluxo.forecast.events import EventOrigin, normalize_transactions


@dataclass
class ProvisionedTotals:
    """Completed vs. pending breakdown of the current liquidity."""
    completed_balance: Decimal
    pending_income: Decimal
    pending_expense: Decimal  # negative or zero
    provisions_amount: Decimal
    start_date: date
    end_date: date

    @property
    def pending_net(self) -> Decimal:
        return self.pending_income + self.pending_expense

    @property
    def total_balance(self) -> Decimal:
        return self.completed_balance + self.provisions_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed_balance": str(self.completed_balance),
            "pending_income": str(self.pending_income),
            "pending_expense": str(self.pending_expense),
            "pending_net": str(self.pending_net),
            "provisions_amount": str(self.provisions_amount),
            "total_balance": str(self.total_balance),
            "date_range": {
                "start_date": self.start_date.isoformat(),
                "end_date": self.end_date.isoformat(),
            },
        }


def split_provisioned_totals(
    transactions: Iterable,
    selected_account_ids: Sequence[str],
    start_date: date,
    end_date: date,
    today: Optional[date] = None,
) -> ProvisionedTotals:
    """
    Partition the selection's transactions inside the horizon.

    completed_balance sums posted transactions dated up to today;
    pending_income / pending_expense sum the positive / negative pending
    ones, and provisions_amount is their sum.
    """
    today = today or date.today()
    completed = Decimal("0")
    pending_income = Decimal("0")
    pending_expense = Decimal("0")

    for event in normalize_transactions(transactions, selected_account_ids):
        if not start_date <= event.date <= end_date:
            continue

        if event.origin == EventOrigin.POSTED:
            if event.date <= today:
                completed += event.amount
        elif event.amount > 0:
            pending_income += event.amount
        else:
            pending_expense += event.amount

    return ProvisionedTotals(
        completed_balance=completed,
        pending_income=pending_income,
        pending_expense=pending_expense,
        provisions_amount=pending_income + pending_expense,
        start_date=start_date,
        end_date=end_date,
    )
