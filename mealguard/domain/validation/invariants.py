"""
Hard invariant assertions.

Each helper raises InvariantViolationError with a stable identifier.
``soft_assert`` turns a violation into a record for soft-mode callers.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Optional

import structlog

from mealguard.domain.nutrition.macros import DEFAULT_MACRO_TOLERANCE, kcal_deviation, macro_kcal
from mealguard.domain.nutrition.models import ItemMacros, MacroTotals
from mealguard.domain.plan.models import Meal, PlannedMeal
from mealguard.domain.reconciliation.models import FACTOR_MAX, FACTOR_MIN
from mealguard.domain.shared.errors import InvariantViolationError

logger = structlog.get_logger(__name__)

MACRO_CALORIE_CONSISTENCY = "MACRO_CALORIE_CONSISTENCY"
POSITIVE_QUANTITY = "POSITIVE_QUANTITY"
RECONCILIATION_BOUNDS = "RECONCILIATION_BOUNDS"
MEAL_HAS_ITEMS = "MEAL_HAS_ITEMS"
NON_NEGATIVE_TOTALS = "NON_NEGATIVE_TOTALS"


def assert_macro_calorie_consistency(
    macros: ItemMacros | MacroTotals,
    tolerance: float = DEFAULT_MACRO_TOLERANCE,
) -> None:
    """kcal must match 4p + 4c + 9f within ``tolerance``.

    Zero kcal is not checked.
    """
    if macros.kcal == 0:
        return
    deviation = kcal_deviation(macros.kcal, macros.protein, macros.carbs, macros.fat)
    if deviation > tolerance:
        expected = macro_kcal(macros.protein, macros.carbs, macros.fat)
        raise InvariantViolationError(
            MACRO_CALORIE_CONSISTENCY,
            f"Reported {macros.kcal} kcal but macros suggest {expected:.0f} kcal "
            f"({deviation * 100:.1f}% deviation, tolerance {tolerance * 100:.0f}%)",
            {"reported_kcal": macros.kcal, "expected_kcal": expected, "deviation": deviation},
        )


def assert_positive_quantity(key: str, quantity: Any) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
        raise InvariantViolationError(
            POSITIVE_QUANTITY,
            f"Quantity must be a number for item {key!r}, got {type(quantity).__name__}",
            {"key": key, "quantity": quantity},
        )
    if not math.isfinite(quantity) or quantity <= 0:
        raise InvariantViolationError(
            POSITIVE_QUANTITY,
            f"Quantity must be positive and finite for item {key!r}, got {quantity}",
            {"key": key, "quantity": quantity},
        )


def assert_reconciliation_bounds(
    factor: Optional[float],
    low: float = FACTOR_MIN,
    high: float = FACTOR_MAX,
) -> None:
    if factor is None:
        return
    if not math.isfinite(factor) or factor < low or factor > high:
        raise InvariantViolationError(
            RECONCILIATION_BOUNDS,
            f"Reconciliation factor {factor} outside [{low}, {high}]",
            {"factor": factor, "min": low, "max": high},
        )


def assert_meal_has_items(meal: Meal | PlannedMeal) -> None:
    if not meal.items:
        raise InvariantViolationError(
            MEAL_HAS_ITEMS,
            f"Meal {meal.name or meal.type!r} has no items",
            {"meal_name": meal.name, "meal_type": meal.type},
        )


def assert_non_negative_totals(totals: MacroTotals) -> None:
    if min(totals.kcal, totals.protein, totals.fat, totals.carbs) < 0:
        raise InvariantViolationError(
            NON_NEGATIVE_TOTALS,
            "Day totals contain negative values",
            {"totals": totals.model_dump()},
        )


def soft_assert(check: Callable[..., None], *args: Any) -> Optional[InvariantViolationError]:
    """Run ``check`` and return the violation instead of raising it."""
    try:
        check(*args)
    except InvariantViolationError as exc:
        logger.warning("Soft invariant violation", invariant=exc.invariant_id, error=str(exc))
        return exc
    return None
