"""
Cash events - the common record every forecast source is reduced to.

Posted and pending transactions map 1:1 onto events here. Expanded sources
(recurring templates, installment groups, plans) build their events with
`make_event` from the occurrence expander.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from fluxo.forecast.schemas import TransactionRow, TransactionStatus

logger = logging.getLogger(__name__)

RowModel = TypeVar("RowModel", bound=BaseModel)


class EventOrigin(str, Enum):
    """Where a cash event came from."""
    POSTED = "posted"
    PENDING = "pending"
    RECURRING = "recurring"
    INSTALLMENT = "installment"
    PLAN = "plan"
    CREDIT_CARD = "credit_card"
    SCENARIO = "scenario"


@dataclass(frozen=True)
class CashEvent:
    """One dated, signed amount affecting one account."""
    date: date
    account_id: str
    amount: Decimal  # income positive, expense negative
    origin: EventOrigin
    description: str = ""
    source_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "account_id": self.account_id,
            "amount": str(self.amount),
            "origin": self.origin.value,
            "description": self.description,
            "source_id": self.source_id,
        }


def make_event(
    event_date: date,
    account_id: str,
    amount: Decimal,
    origin: EventOrigin,
    description: str = "",
    source_id: Optional[str] = None,
) -> Optional[CashEvent]:
    """
    Build a CashEvent, or return None when the amount carries no cash.

    Zero and non-finite amounts never become events.
    """
    if not amount.is_finite() or amount == 0:
        return None
    return CashEvent(
        date=event_date,
        account_id=account_id,
        amount=amount,
        origin=origin,
        description=description,
        source_id=source_id,
    )


def parse_rows(rows: Iterable, model: Type[RowModel], source: str) -> List[RowModel]:
    """
    Validate raw rows one by one, dropping the ones that fail.

    A bad row (unparseable date, missing amount...) is logged and skipped so
    it never takes the rest of the batch down with it.
    """
    if rows is None:
        raise TypeError(f"{source} rows must be an iterable, got None")

    parsed = []
    for index, row in enumerate(rows):
        if isinstance(row, model):
            parsed.append(row)
            continue
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {source} row #{index}: {e.error_count()} error(s)")
    return parsed


def normalize_transactions(
    rows: Iterable,
    selected_account_ids: Sequence[str],
) -> List[CashEvent]:
    """
    Map posted and pending transaction rows onto cash events.

    Rows for accounts outside the selection are dropped.
    """
    selected = set(selected_account_ids)
    events = []

    for row in parse_rows(rows, TransactionRow, "transaction"):
        if row.account_id not in selected:
            continue

        origin = EventOrigin.POSTED if row.status == TransactionStatus.COMPLETED else EventOrigin.PENDING
        event = make_event(
            row.date,
            row.account_id,
            row.signed,
            origin,
            description=row.description,
            source_id=row.id,
        )
        if event is not None:
            events.append(event)

    return events
