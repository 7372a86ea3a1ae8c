"""
Input row schemas for the forecast engine.

These describe the read-only rows handed over by the data-access layer.
Rows arrive as plain dicts and are validated one at a time so that a single
malformed row can be dropped without blanking out the whole projection.
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class TransactionType(str, Enum):
    """Transaction direction as stored by the ledger."""
    INCOME = "receita"
    EXPENSE = "despesa"


class TransactionStatus(str, Enum):
    """Ledger status of a transaction."""
    COMPLETED = "concluido"
    PENDING = "pendente"


class RecurrenceFrequency(str, Enum):
    """Supported recurrence periods for recurring templates."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class RecurringStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class InstallmentKind(str, Enum):
    PURCHASE = "purchase"
    LOAN = "loan"


class PlanPaymentType(str, Enum):
    INSTALLMENTS = "installments"
    LUMP_SUM = "lump_sum"


# Status aliases accepted from older imports
_STATUS_ALIASES = {
    "posted": TransactionStatus.COMPLETED.value,
    "completed": TransactionStatus.COMPLETED.value,
    "pending": TransactionStatus.PENDING.value,
}


def signed_amount(amount: Decimal, type_: Optional[TransactionType]) -> Decimal:
    """Apply the ledger sign convention: income positive, expense negative."""
    if type_ == TransactionType.INCOME:
        return abs(amount)
    if type_ == TransactionType.EXPENSE:
        return -abs(amount)
    return amount


class TransactionRow(BaseModel):
    """A posted or pending transaction."""
    id: Optional[str] = None
    account_id: str
    amount: Decimal = Field(..., allow_inf_nan=False)
    date: date
    status: TransactionStatus
    type: Optional[TransactionType] = None
    description: str = ""

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        if isinstance(value, str):
            return _STATUS_ALIASES.get(value, value)
        return value

    @property
    def signed(self) -> Decimal:
        return signed_amount(self.amount, self.type)


class RecurringTemplateRow(BaseModel):
    """A recurring bill or income definition."""
    id: str
    frequency: RecurrenceFrequency = RecurrenceFrequency.MONTHLY
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    expected_amount: Decimal = Field(..., allow_inf_nan=False)
    next_due_date: date
    status: RecurringStatus = RecurringStatus.ACTIVE
    type: TransactionType
    account_id: Optional[str] = None
    template_name: str = ""


class InstallmentGroupRow(BaseModel):
    """A fixed-count series of equal charges."""
    installment_id: str
    total_installments: int
    amount: Decimal = Field(..., allow_inf_nan=False)
    first_effective_date: date
    type: TransactionType = TransactionType.EXPENSE
    account_id: Optional[str] = None
    credit_card_id: Optional[str] = None
    kind: InstallmentKind = InstallmentKind.PURCHASE
    description: str = ""


class PlanInstallmentRow(BaseModel):
    """One scheduled installment of a plan."""
    id: Optional[str] = None
    due_date: date
    planned_amount: Decimal = Field(..., allow_inf_nan=False)
    status: str = TransactionStatus.PENDING.value


class PlanRow(BaseModel):
    """A savings goal or earmarked spend with its installment schedule."""
    plan_id: str
    name: str = ""
    type: str = "despesa_planejada"
    payment_type: PlanPaymentType = PlanPaymentType.INSTALLMENTS
    total_amount: Decimal = Field(Decimal("0"), allow_inf_nan=False)
    start_date: Optional[date] = None
    installments: List[PlanInstallmentRow] = Field(default_factory=list)

    @property
    def transaction_type(self) -> TransactionType:
        # Planned expenses are outflows, savings plans are treated as income
        if self.type == "despesa_planejada":
            return TransactionType.EXPENSE
        return TransactionType.INCOME


class CreditCardRow(BaseModel):
    """A credit card with its current statement balance."""
    id: str
    name: str = ""
    balance: Decimal = Field(Decimal("0"), allow_inf_nan=False)
    next_due_date: Optional[date] = None


class ForecastOptions(BaseModel):
    """Flags the caller uses to compose different forecast views."""
    include_recurring: bool = False
    include_credit_cards: bool = False
    include_loans: bool = False
    include_plans: bool = False
    selected_plan_ids: List[str] = Field(default_factory=list)


class ForecastSources(BaseModel):
    """Raw rows for every event source, as fetched by the caller."""
    transactions: List[Any] = Field(default_factory=list)
    recurring_templates: List[Any] = Field(default_factory=list)
    installment_groups: List[Any] = Field(default_factory=list)
    plans: List[Any] = Field(default_factory=list)
    credit_cards: List[Any] = Field(default_factory=list)
