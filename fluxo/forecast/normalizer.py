"""
Event normalizer - composes every forecast source into one flat event list.

Each expanded source can be switched off with a ForecastOptions flag so
the caller can build different forecast views from the same fetched rows.
"""
import logging
from datetime import date
from typing import List, Optional, Sequence, Set

from fluxo.forecast.events import (
    CashEvent,
    EventOrigin,
    make_event,
    normalize_transactions,
    parse_rows,
)
from fluxo.forecast.expansion import expand_installments, expand_plan, expand_recurring
from fluxo.forecast.schemas import (
    CreditCardRow,
    ForecastOptions,
    ForecastSources,
    InstallmentGroupRow,
    InstallmentKind,
    PlanRow,
    RecurringTemplateRow,
)

logger = logging.getLogger(__name__)


def _resolve_account(
    account_id: Optional[str],
    selected_account_ids: Sequence[str],
) -> Optional[str]:
    """
    Pick the account an expanded event is booked to.

    Rows without an account fall back to the first selected account; rows
    pointing outside the selection are dropped (None).
    """
    if account_id is None:
        return selected_account_ids[0] if selected_account_ids else None
    if account_id in selected_account_ids:
        return account_id
    return None


def _recurring_events(
    rows: list,
    selected_account_ids: Sequence[str],
    start_date: date,
    end_date: date,
) -> List[CashEvent]:
    events = []
    for template in parse_rows(rows, RecurringTemplateRow, "recurring template"):
        account_id = _resolve_account(template.account_id, selected_account_ids)
        if account_id is None:
            continue
        events.extend(expand_recurring(template, start_date, end_date, account_id))
    return events


def _installment_events(
    rows: list,
    selected_account_ids: Sequence[str],
    start_date: date,
    end_date: date,
    options: ForecastOptions,
) -> List[CashEvent]:
    events = []
    for group in parse_rows(rows, InstallmentGroupRow, "installment group"):
        if group.credit_card_id and not options.include_credit_cards:
            continue
        if group.kind == InstallmentKind.LOAN and not options.include_loans:
            continue

        account_id = _resolve_account(group.account_id, selected_account_ids)
        if account_id is None:
            continue
        events.extend(expand_installments(group, start_date, end_date, account_id))
    return events


def _plan_events(
    rows: list,
    selected_account_ids: Sequence[str],
    start_date: date,
    end_date: date,
    options: ForecastOptions,
) -> List[CashEvent]:
    events = []
    if not options.selected_plan_ids or not selected_account_ids:
        return events

    # Plans are not tied to an account; they hit the first selected one
    account_id = selected_account_ids[0]
    for plan in parse_rows(rows, PlanRow, "plan"):
        events.extend(expand_plan(plan, start_date, end_date, account_id, options.selected_plan_ids))
    return events


def _credit_card_payment_events(
    rows: list,
    selected_account_ids: Sequence[str],
    start_date: date,
    end_date: date,
) -> List[CashEvent]:
    """
    Simulate the next statement payment of every card carrying debt.

    The payment is an expense of the outstanding balance on the card's next
    due date, debited from the first selected account.
    """
    events = []
    if not selected_account_ids:
        return events

    paying_account_id = selected_account_ids[0]
    for card in parse_rows(rows, CreditCardRow, "credit card"):
        if card.next_due_date is None or not start_date <= card.next_due_date <= end_date:
            continue
        if card.balance >= 0:
            continue

        event = make_event(
            card.next_due_date,
            paying_account_id,
            card.balance,
            EventOrigin.CREDIT_CARD,
            description=f"[Pagamento Fatura] {card.name}",
            source_id=card.id,
        )
        if event is not None:
            events.append(event)
    return events


def settled_card_account_ids(
    sources: ForecastSources,
    selected_account_ids: Sequence[str],
    options: Optional[ForecastOptions] = None,
) -> Set[str]:
    """
    Selected accounts that are credit cards settled by a simulated payment.

    With include_credit_cards on, a card's debt is re-booked as a statement
    payment from the first selected account, so the card account itself
    must start the horizon at zero or the debt is counted twice.
    """
    options = options or ForecastOptions()
    if not options.include_credit_cards:
        return set()

    card_ids = set()
    for row in sources.credit_cards:
        if isinstance(row, CreditCardRow):
            card_ids.add(row.id)
        elif isinstance(row, dict) and row.get("id") is not None:
            card_ids.add(str(row["id"]))
    return {account_id for account_id in selected_account_ids if account_id in card_ids}


def build_forecast_events(
    sources: ForecastSources,
    selected_account_ids: Sequence[str],
    start_date: date,
    end_date: date,
    options: Optional[ForecastOptions] = None,
) -> List[CashEvent]:
    """
    Normalize every source into one append-only list of cash events.

    Order is transactions, recurring, installments, plans, credit card
    payments; the projection sort is stable so this order breaks same-day
    ties.
    """
    if selected_account_ids is None:
        raise TypeError("selected_account_ids must be a sequence, got None")

    options = options or ForecastOptions()
    selected_account_ids = list(selected_account_ids)

    events: List[CashEvent] = []
    events.extend(normalize_transactions(sources.transactions, selected_account_ids))

    if options.include_recurring:
        events.extend(_recurring_events(
            sources.recurring_templates, selected_account_ids, start_date, end_date
        ))

    events.extend(_installment_events(
        sources.installment_groups, selected_account_ids, start_date, end_date, options
    ))

    if options.include_plans:
        events.extend(_plan_events(
            sources.plans, selected_account_ids, start_date, end_date, options
        ))

    if options.include_credit_cards:
        events.extend(_credit_card_payment_events(
            sources.credit_cards, selected_account_ids, start_date, end_date
        ))

    logger.debug(
        f"Normalized {len(events)} events for {len(selected_account_ids)} accounts "
        f"between {start_date} and {end_date}"
    )
    return events
