"""
Scenario Types - what-if adjustments and simulation results.

Scenarios are never persisted: an adjustment list is overlaid on a baseline
projection and the outcome is diffed against it.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from fluxo.forecast.engine import CashFlowDataPoint


# =============================================================================
# ENUMS
# =============================================================================

class AdjustmentType(str, Enum):
    """All supported adjustment types."""
    # Applied once per calendar month
    EXPENSE_REDUCTION = "expense_reduction"
    INCOME_INCREASE = "income_increase"
    SAVINGS_GOAL = "savings_goal"

    # Applied once
    EXTRA_PAYMENT = "extra_payment"


MONTHLY_ADJUSTMENTS = {
    AdjustmentType.EXPENSE_REDUCTION,
    AdjustmentType.INCOME_INCREASE,
    AdjustmentType.SAVINGS_GOAL,
}


# =============================================================================
# ADJUSTMENT
# =============================================================================

class ScenarioAdjustment(BaseModel):
    """
    A user hypothesis overlaid on the baseline forecast.

    start_date/end_date narrow the window the adjustment applies to; by
    default it covers the whole horizon.
    """
    type: AdjustmentType = Field(..., description="Kind of adjustment")
    amount: Decimal = Field(..., gt=0, allow_inf_nan=False, description="Monthly (or one-off) amount")
    description: str = Field("", description="Label shown next to the scenario")
    start_date: Optional[date] = Field(None, description="First day the adjustment applies")
    end_date: Optional[date] = Field(None, description="Last day the adjustment applies")

    @property
    def is_monthly(self) -> bool:
        return self.type in MONTHLY_ADJUSTMENTS


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class ScenarioImpact:
    """Scenario minus baseline."""
    total_improvement: Decimal = Decimal("0")
    worst_day_improvement: Decimal = Decimal("0")
    days_above_zero_gained: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_improvement": str(self.total_improvement),
            "worst_day_improvement": str(self.worst_day_improvement),
            "days_above_zero_gained": self.days_above_zero_gained,
        }


@dataclass(frozen=True)
class SimulationResult:
    """Output of applying adjustments to a baseline projection."""
    original_data_points: Tuple[CashFlowDataPoint, ...]
    scenario_data_points: Tuple[CashFlowDataPoint, ...]
    impact: ScenarioImpact = field(default_factory=ScenarioImpact)

    def __post_init__(self):
        object.__setattr__(self, "original_data_points", tuple(self.original_data_points))
        object.__setattr__(self, "scenario_data_points", tuple(self.scenario_data_points))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_data_points": [p.to_dict() for p in self.original_data_points],
            "scenario_data_points": [p.to_dict() for p in self.scenario_data_points],
            "impact": self.impact.to_dict(),
        }
