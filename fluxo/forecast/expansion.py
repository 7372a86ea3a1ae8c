"""
Occurrence expansion for recurring templates, installment groups and plans.

Each expander is a pure function: one source row in, the dated CashEvents
that fall inside [start_date, end_date] out.
"""
import calendar
import logging
from datetime import date, timedelta
from typing import List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from fluxo.forecast.events import CashEvent, EventOrigin, make_event
from fluxo.forecast.schemas import (
    InstallmentGroupRow,
    PlanPaymentType,
    PlanRow,
    RecurrenceFrequency,
    RecurringStatus,
    RecurringTemplateRow,
    TransactionStatus,
    signed_amount,
)

logger = logging.getLogger(__name__)


# Month-based step sizes; weekly templates step in days instead
MONTHS_PER_PERIOD = {
    RecurrenceFrequency.MONTHLY: 1,
    RecurrenceFrequency.QUARTERLY: 3,
    RecurrenceFrequency.YEARLY: 12,
}

_PENDING_PLAN_STATUSES = {TransactionStatus.PENDING.value, "pending"}


def add_months_clamped(anchor: date, months: int, day_of_month: int) -> date:
    """
    Move `months` calendar months from anchor's month and land on day_of_month.

    The day is clamped to the target month's last day, e.g. day 31 in
    February gives the 28th (29th in leap years).
    """
    target = anchor.replace(day=1) + relativedelta(months=months)
    last_day = calendar.monthrange(target.year, target.month)[1]
    return target.replace(day=min(day_of_month, last_day))


def recurring_dates(template: RecurringTemplateRow, start_date: date, end_date: date) -> List[date]:
    """
    Dates on which a recurring template falls due inside the horizon.

    Month-based occurrences are always derived from the anchor
    (next_due_date) so a clamped February never drags later months back.
    """
    anchor = template.next_due_date
    day_of_month = template.day_of_month or anchor.day
    dates = []

    step = 0
    cursor = anchor
    while cursor <= end_date:
        if cursor >= start_date:
            dates.append(cursor)

        step += 1
        if template.frequency == RecurrenceFrequency.WEEKLY:
            cursor = anchor + timedelta(days=7 * step)
        else:
            months = MONTHS_PER_PERIOD[template.frequency] * step
            cursor = add_months_clamped(anchor, months, day_of_month)

    return dates


def expand_recurring(
    template: RecurringTemplateRow,
    start_date: date,
    end_date: date,
    account_id: str,
) -> List[CashEvent]:
    """
    Expand a recurring template into its occurrences.

    Only active templates with a positive expected amount produce events.
    Every occurrence uses the template's current expected amount.
    """
    events = []

    if template.status != RecurringStatus.ACTIVE:
        return events

    if template.expected_amount <= 0:
        logger.debug(f"Recurring template {template.id} has non-positive amount, skipping")
        return events

    amount = signed_amount(template.expected_amount, template.type)
    for occurrence in recurring_dates(template, start_date, end_date):
        event = make_event(
            occurrence,
            account_id,
            amount,
            EventOrigin.RECURRING,
            description=f"[Recorrente] {template.template_name}".strip(),
            source_id=template.id,
        )
        if event is not None:
            events.append(event)

    return events


def expand_installments(
    group: InstallmentGroupRow,
    start_date: date,
    end_date: date,
    account_id: str,
) -> List[CashEvent]:
    """
    Expand an installment group into its monthly charges.

    Installment i (1-based) falls on first_effective_date + (i - 1) months.
    Installments outside the horizon are simply not emitted.
    """
    events = []

    if group.total_installments <= 0 or group.amount <= 0:
        logger.debug(f"Installment group {group.installment_id} has no payable installments, skipping")
        return events

    amount = signed_amount(group.amount, group.type)
    first = group.first_effective_date

    for number in range(1, group.total_installments + 1):
        due = first + relativedelta(months=number - 1)
        if due > end_date:
            break
        if due < start_date:
            continue

        event = make_event(
            due,
            account_id,
            amount,
            EventOrigin.INSTALLMENT,
            description=f"{group.description} ({number}/{group.total_installments})".strip(),
            source_id=group.installment_id,
        )
        if event is not None:
            events.append(event)

    return events


def expand_plan(
    plan: PlanRow,
    start_date: date,
    end_date: date,
    account_id: str,
    selected_plan_ids: Optional[Sequence[str]] = None,
) -> List[CashEvent]:
    """
    Expand a plan into events on its scheduled installment due dates.

    Lump-sum plans pay their total once on start_date. A plan missing from
    selected_plan_ids contributes nothing.
    """
    events = []

    if selected_plan_ids is not None and plan.plan_id not in selected_plan_ids:
        return events

    type_ = plan.transaction_type

    if plan.payment_type == PlanPaymentType.LUMP_SUM:
        if plan.start_date and start_date <= plan.start_date <= end_date and plan.total_amount > 0:
            event = make_event(
                plan.start_date,
                account_id,
                signed_amount(plan.total_amount, type_),
                EventOrigin.PLAN,
                description=f"[Plano] {plan.name}",
                source_id=plan.plan_id,
            )
            if event is not None:
                events.append(event)
        return events

    for installment in plan.installments:
        if installment.status not in _PENDING_PLAN_STATUSES:
            continue
        if not start_date <= installment.due_date <= end_date:
            continue
        if installment.planned_amount <= 0:
            continue

        event = make_event(
            installment.due_date,
            account_id,
            signed_amount(installment.planned_amount, type_),
            EventOrigin.PLAN,
            description=f"[Plano] {plan.name} - Parcela",
            source_id=plan.plan_id,
        )
        if event is not None:
            events.append(event)

    return events
