# Scenario Module
# What-if adjustments overlaid on a baseline projection
#
# Components:
# - types.py: ScenarioAdjustment, SimulationResult, ScenarioImpact
# - engine.py: synthetic event generation and re-projection

from .types import (
    AdjustmentType,
    ScenarioAdjustment,
    ScenarioImpact,
    SimulationResult,
)
from .engine import build_adjustment_events, calculate_impact, simulate_scenario

__all__ = [
    "AdjustmentType",
    "ScenarioAdjustment",
    "ScenarioImpact",
    "SimulationResult",
    "build_adjustment_events",
    "calculate_impact",
    "simulate_scenario",
]
