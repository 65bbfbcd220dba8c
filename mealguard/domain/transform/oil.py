"""
Cooking oil absorption.

Only part of the oil listed in a meal ends up in the food. The absorbed
share depends on the cooking method and is attributed to the fried and
roasted items by as-sold weight.
"""

import re
from typing import Optional, Sequence

from mealguard.domain.plan.models import MealItem
from mealguard.domain.resolution.models import CookingMethod
from mealguard.domain.resolution.resolver import prepare_key

ABSORPTION_RATES: dict[CookingMethod, float] = {
    CookingMethod.FRIED: 0.30,
    CookingMethod.ROASTED: 0.15,
    CookingMethod.BAKED: 0.05,
}

OIL_DENSITY = 0.92

# Methods whose items share the meal's oil
OIL_SHARING_METHODS = frozenset({CookingMethod.FRIED, CookingMethod.ROASTED})

_OIL_PATTERN = re.compile(r"\boil\b")


def absorption_rate(method: Optional[CookingMethod]) -> float:
    """Fraction of the meal's oil absorbed by an item cooked with ``method``."""
    if method is None:
        return 0.0
    return ABSORPTION_RATES.get(method, 0.0)


def is_oil(key: str) -> bool:
    return bool(_OIL_PATTERN.search(prepare_key(key)))


def distribute_oil(
    items: Sequence[MealItem],
    grams: Sequence[float],
    as_sold: Sequence[float],
) -> list[float]:
    """Absorbed oil grams for each item of one meal.

    Args:
        items: Meal items, oil items included
        grams: Normalized grams per item (oil grams are read from here)
        as_sold: As-sold grams per item (weights the share)

    Returns:
        Absorbed oil grams aligned with ``items``; zero for oil and for
        items not fried or roasted
    """
    oil_grams = sum(g for item, g in zip(items, grams) if is_oil(item.key))
    absorbed = [0.0] * len(items)
    if oil_grams <= 0:
        return absorbed

    pool = [
        i
        for i, item in enumerate(items)
        if not is_oil(item.key) and item.effective_method in OIL_SHARING_METHODS
    ]
    pool_weight = sum(as_sold[i] for i in pool)
    if pool_weight <= 0:
        return absorbed

    for i in pool:
        share = as_sold[i] / pool_weight
        absorbed[i] = round(oil_grams * absorption_rate(items[i].effective_method) * share, 2)
    return absorbed
