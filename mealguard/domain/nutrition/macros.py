"""
Item macro computation.

Scales per-100g facts to the as-sold weight and enforces energy/macro
consistency: kcal must match 4·protein + 4·carbs + 9·fat within a
tolerance, otherwise the item is flagged and the macro-derived value is
used.
"""

from __future__ import annotations

import math
from typing import Optional

from mealguard.domain.nutrition.models import ItemMacros, NutritionFact

KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_CARBS = 4
KCAL_PER_G_FAT = 9

DEFAULT_MACRO_TOLERANCE = 0.05

NUTRITION_NOT_FOUND = "NUTRITION_NOT_FOUND"
NUTRITION_LOOKUP_FAILED = "NUTRITION_LOOKUP_FAILED"
GRAMS_AS_SOLD_INVALID = "GRAMS_AS_SOLD_INVALID"


def macro_kcal(protein: float, carbs: float, fat: float) -> float:
    """Energy implied by the macros."""
    return protein * KCAL_PER_G_PROTEIN + carbs * KCAL_PER_G_CARBS + fat * KCAL_PER_G_FAT


def kcal_deviation(kcal: float, protein: float, carbs: float, fat: float) -> float:
    """Relative deviation of ``kcal`` from the macro-derived energy.

    Returns 0 when both are zero and 1.0 when only ``kcal`` is non-zero.
    """
    expected = macro_kcal(protein, carbs, fat)
    if expected > 0:
        return abs(kcal - expected) / expected
    return 1.0 if kcal > 0 else 0.0


def compute_item_macros(
    grams_as_sold: float,
    fact: Optional[NutritionFact],
    tolerance: float = DEFAULT_MACRO_TOLERANCE,
    grams_band: Optional[tuple[float, float]] = None,
    missing_error: str = NUTRITION_NOT_FOUND,
) -> ItemMacros:
    """Compute macros for an as-sold weight.

    Args:
        grams_as_sold: As-sold weight in grams
        fact: Per-100g facts, None when the lookup had no data
        tolerance: Allowed relative kcal/macro deviation
        grams_band: (min, max) as-sold grams for the kcal band
        missing_error: Error code recorded when ``fact`` is None

    Returns:
        ItemMacros (kcal 1 decimal, macros 2 decimals)

    Example:
        >>> fact = NutritionFact(
        ...     kcal_per_100g=100, protein_per_100g=10,
        ...     fat_per_100g=0, carbs_per_100g=10,
        ... )
        >>> macros = compute_item_macros(100, fact)
        >>> (macros.kcal, macros.flagged)
        (80.0, True)
    """
    if not math.isfinite(grams_as_sold) or grams_as_sold < 0:
        return ItemMacros.zero(error=GRAMS_AS_SOLD_INVALID)

    if fact is None:
        return ItemMacros.zero(error=missing_error)

    factor = grams_as_sold / 100
    kcal = round(fact.kcal_per_100g * factor, 1)
    protein = round(fact.protein_per_100g * factor, 2)
    fat = round(fact.fat_per_100g * factor, 2)
    carbs = round(fact.carbs_per_100g * factor, 2)

    deviation = kcal_deviation(kcal, protein, carbs, fat)
    flagged = deviation > tolerance
    reported_kcal: Optional[float] = None
    if flagged:
        reported_kcal = kcal
        kcal = round(macro_kcal(protein, carbs, fat), 1)

    kcal_min = kcal_max = None
    if grams_band is not None and grams_as_sold > 0:
        per_gram = kcal / grams_as_sold
        kcal_min = round(per_gram * grams_band[0], 1)
        kcal_max = round(per_gram * grams_band[1], 1)

    return ItemMacros(
        kcal=kcal,
        protein=protein,
        fat=fat,
        carbs=carbs,
        flagged=flagged,
        source=fact.source,
        is_fallback=fact.is_fallback,
        reported_kcal=reported_kcal,
        deviation_pct=round(deviation * 100, 1) if flagged else None,
        kcal_min=kcal_min,
        kcal_max=kcal_max,
    )
