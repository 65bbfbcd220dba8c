"""
Macro reconciliation solver.

Scales item quantities so meals and the day land near their calorie
targets. Two passes:

1. Per meal: scale every item by target/current, unless a downscale
   would starve the meal of protein.
2. Per day: scale only non-protein-dominant items so that protein energy
   stays fixed while the day total approaches the target.

Every factor is hard-clamped to [0.5, 2.0]; a clamp is reported on the
outcome so callers can surface it.
"""

from __future__ import annotations

import math
from typing import Callable, Sequence

import structlog

from mealguard.domain.nutrition.models import ItemMacros
from mealguard.domain.plan.models import Meal, MealItem
from mealguard.domain.reconciliation.models import (
    FACTOR_MAX,
    FACTOR_MIN,
    DayReconciliation,
    MealReconciliation,
    ReconciliationOutcome,
    ReconciliationScope,
    SkipReason,
)
from mealguard.domain.transform.models import QuantityUnit, UnitKind

logger = structlog.get_logger(__name__)

MacrosFor = Callable[[MealItem], ItemMacros]

DEFAULT_MEAL_TOLERANCE = 0.10
DEFAULT_DAY_TOLERANCE = 0.15
MIN_PROTEIN_RATIO = 0.80
PROTEIN_EXCESS_RATIO = 1.30
MIN_PROTEIN_FACTOR = 0.70
_EPSILON = 1e-4


def _round_half_up(value: float, step: float = 1.0) -> float:
    return math.floor(value / step + 0.5) * step


def clamp_factor(raw: float) -> tuple[float, bool]:
    """Clamp a scaling factor to [0.5, 2.0].

    Returns:
        (applied factor, whether clamping happened)
    """
    if not math.isfinite(raw):
        return FACTOR_MAX, True
    applied = min(max(raw, FACTOR_MIN), FACTOR_MAX)
    return applied, applied != raw


def scale_quantity(quantity: float, unit: QuantityUnit, factor: float) -> float:
    """Scale and round a quantity.

    Millilitres round to the nearest 5, grams and counts to the nearest
    whole unit, other direct units to 2 decimals. A positive quantity never
    rounds down to nothing.

    Example:
        >>> scale_quantity(150, QuantityUnit.G, 1.333)
        200.0
        >>> scale_quantity(250, QuantityUnit.ML, 0.51)
        130.0
    """
    scaled = quantity * factor
    if unit == QuantityUnit.ML:
        new_quantity = _round_half_up(scaled, 5.0)
        floor = 1.0
    elif unit == QuantityUnit.G or unit.kind == UnitKind.COUNT:
        new_quantity = _round_half_up(scaled)
        floor = 1.0
    else:
        new_quantity = round(scaled, 2)
        floor = 0.01
    if quantity > 0 and new_quantity < floor:
        new_quantity = floor
    return float(new_quantity)


def _scale_item(item: MealItem, factor: float) -> MealItem:
    if factor == 1.0:
        return item
    return item.with_quantity(scale_quantity(item.quantity_value, item.quantity_unit, factor))


def reconcile_meal(
    meal: Meal,
    target_kcal: float,
    target_protein: float,
    macros_for: MacrosFor,
    tolerance: float = DEFAULT_MEAL_TOLERANCE,
) -> MealReconciliation:
    """Scale a whole meal toward its calorie target.

    Args:
        meal: Meal to reconcile
        target_kcal: Calorie target for this meal
        target_protein: Protein target for this meal (grams)
        macros_for: Computes an item's macros at its current quantity
        tolerance: Relative tolerance around the target

    Returns:
        MealReconciliation with the (possibly) scaled meal
    """
    if not meal.items or target_kcal <= 0:
        return MealReconciliation(
            meal=meal,
            outcome=ReconciliationOutcome(
                scope=ReconciliationScope.MEAL,
                adjusted=False,
                reason=SkipReason.EMPTY,
                meal_name=meal.name,
            ),
        )

    macros = [macros_for(item) for item in meal.items]
    current_kcal = sum(m.kcal for m in macros)
    current_protein = sum(m.protein for m in macros)

    def skipped(reason: SkipReason, **extra: object) -> MealReconciliation:
        return MealReconciliation(
            meal=meal,
            outcome=ReconciliationOutcome(
                scope=ReconciliationScope.MEAL,
                adjusted=False,
                reason=reason,
                meal_name=meal.name,
                kcal_before=round(current_kcal, 1),
                **extra,
            ),
        )

    if abs(current_kcal - target_kcal) <= target_kcal * tolerance:
        return skipped(SkipReason.WITHIN_TOLERANCE)

    if current_kcal <= 0:
        return skipped(SkipReason.NO_ENERGY)

    raw_factor = target_kcal / max(current_kcal, _EPSILON)
    factor, clamped = clamp_factor(raw_factor)

    if factor < 1.0:
        predicted_protein = current_protein * factor
        protein_guard = target_protein * MIN_PROTEIN_RATIO
        if predicted_protein < protein_guard:
            logger.warning(
                "Meal downscale aborted by protein floor",
                meal=meal.name,
                factor=round(factor, 3),
                predicted_protein=round(predicted_protein, 1),
                protein_guard=round(protein_guard, 1),
            )
            return skipped(
                SkipReason.PROTEIN_FLOOR,
                raw_factor=raw_factor,
                clamped=clamped,
            )

    if clamped:
        logger.warning(
            "Meal scaling factor clamped",
            meal=meal.name,
            raw_factor=round(raw_factor, 3),
            factor=factor,
        )

    scaled = meal.model_copy(update={"items": [_scale_item(i, factor) for i in meal.items]})
    logger.info("Scaled meal", meal=meal.name, factor=round(factor, 3))

    return MealReconciliation(
        meal=scaled,
        outcome=ReconciliationOutcome(
            scope=ReconciliationScope.MEAL,
            adjusted=True,
            factor=factor,
            raw_factor=raw_factor,
            clamped=clamped,
            meal_name=meal.name,
            kcal_before=round(current_kcal, 1),
        ),
    )


def reconcile_day(
    meals: Sequence[Meal],
    target_kcal: float,
    macros_for: MacrosFor,
    tolerance: float = DEFAULT_DAY_TOLERANCE,
    allow_protein_scaling: bool = False,
    target_protein: float = 0.0,
) -> DayReconciliation:
    """Scale non-protein items so the day approaches its calorie target.

    Protein-dominant items (4p >= max(4c, 9f)) keep their quantity, or
    take the protein factor when aggressive protein scaling applies.

    Args:
        meals: Meals of the day
        target_kcal: Daily calorie target
        macros_for: Computes an item's macros at its current quantity
        tolerance: Relative tolerance around the target
        allow_protein_scaling: Scale protein items down when protein
            exceeds 130% of target
        target_protein: Daily protein target (grams)

    Returns:
        DayReconciliation with the (possibly) scaled meals
    """
    meals = list(meals)
    item_macros = {
        (mi, ii): macros_for(item)
        for mi, meal in enumerate(meals)
        for ii, item in enumerate(meal.items)
    }

    protein_kcal = 0.0
    non_protein_kcal = 0.0
    actual_protein = 0.0
    for m in item_macros.values():
        pk = m.protein * 4
        protein_kcal += pk
        non_protein_kcal += max(m.kcal - pk, 0.0)
        actual_protein += m.protein

    kcal_now = protein_kcal + non_protein_kcal
    kcal_before = round(kcal_now, 1)
    protein_factor = 1.0

    if (
        allow_protein_scaling
        and target_protein > 0
        and actual_protein > target_protein * PROTEIN_EXCESS_RATIO
    ):
        protein_factor = max(target_protein / actual_protein, MIN_PROTEIN_FACTOR)
        logger.warning(
            "Aggressive protein scaling",
            target_protein=target_protein,
            actual_protein=round(actual_protein, 1),
            protein_factor=round(protein_factor, 3),
        )
        protein_kcal = actual_protein * protein_factor * 4
        kcal_now = protein_kcal + non_protein_kcal

    if abs(kcal_now - target_kcal) <= target_kcal * tolerance:
        return DayReconciliation(
            meals=meals,
            outcome=ReconciliationOutcome(
                scope=ReconciliationScope.DAY,
                adjusted=False,
                reason=SkipReason.WITHIN_TOLERANCE,
                kcal_before=kcal_before,
            ),
        )

    if non_protein_kcal <= 0 and protein_factor == 1.0:
        return DayReconciliation(
            meals=meals,
            outcome=ReconciliationOutcome(
                scope=ReconciliationScope.DAY,
                adjusted=False,
                reason=SkipReason.NO_ENERGY,
                kcal_before=kcal_before,
            ),
        )

    desired = max(target_kcal - protein_kcal, 0.0)
    raw_factor = desired / max(non_protein_kcal, _EPSILON)
    factor, clamped = clamp_factor(raw_factor)
    if clamped:
        logger.warning(
            "Day scaling factor clamped",
            raw_factor=round(raw_factor, 3),
            factor=factor,
        )

    out: list[Meal] = []
    for mi, meal in enumerate(meals):
        items = []
        for ii, item in enumerate(meal.items):
            if item_macros[(mi, ii)].is_protein_dominant:
                items.append(_scale_item(item, protein_factor))
            else:
                items.append(_scale_item(item, factor))
        out.append(meal.model_copy(update={"items": items}))

    logger.info(
        "Scaled non-protein items",
        factor=round(factor, 3),
        protein_factor=round(protein_factor, 3),
    )

    return DayReconciliation(
        meals=out,
        outcome=ReconciliationOutcome(
            scope=ReconciliationScope.DAY,
            adjusted=True,
            factor=factor,
            raw_factor=raw_factor,
            clamped=clamped,
            protein_factor=protein_factor if protein_factor != 1.0 else None,
            kcal_before=kcal_before,
        ),
    )
