"""
Reconciliation result models.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mealguard.domain.plan.models import Meal

FACTOR_MIN = 0.5
FACTOR_MAX = 2.0


class ReconciliationScope(str, Enum):
    MEAL = "meal"
    DAY = "day"


class SkipReason(str, Enum):
    """Why a reconciliation pass left quantities untouched."""

    WITHIN_TOLERANCE = "within_tolerance"
    PROTEIN_FLOOR = "protein_floor"
    EMPTY = "empty"
    NO_ENERGY = "no_energy"


class ReconciliationOutcome(BaseModel):
    """What one reconciliation pass decided.

    ``factor`` is the applied factor, always inside [0.5, 2.0];
    ``raw_factor`` is the unclamped value. ``clamped`` marks a safety
    event that must be reported even though the applied factor is legal.
    """

    model_config = ConfigDict(frozen=True)

    scope: ReconciliationScope
    adjusted: bool
    factor: Optional[float] = Field(default=None, ge=FACTOR_MIN, le=FACTOR_MAX)
    raw_factor: Optional[float] = None
    clamped: bool = False
    reason: Optional[SkipReason] = None
    protein_factor: Optional[float] = None
    meal_name: Optional[str] = None
    kcal_before: float = 0.0


class MealReconciliation(BaseModel):
    model_config = ConfigDict(frozen=True)

    meal: Meal
    outcome: ReconciliationOutcome


class DayReconciliation(BaseModel):
    model_config = ConfigDict(frozen=True)

    meals: list[Meal]
    outcome: ReconciliationOutcome
