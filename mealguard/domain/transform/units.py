"""
Unit normalisation.

Converts any proposed quantity into grams: weight units by fixed ratio,
volume units through an ingredient density table, count units through a
size-aware weight table.
"""

from __future__ import annotations

import re
from typing import Optional

import structlog

from mealguard.domain.plan.models import MealItem
from mealguard.domain.resolution.resolver import prepare_key, word_pattern
from mealguard.domain.transform.models import (
    ConversionMethod,
    GramConversion,
    QuantityUnit,
    UnitKind,
)

logger = structlog.get_logger(__name__)

U = QuantityUnit

GRAMS_PER_WEIGHT_UNIT: dict[QuantityUnit, float] = {
    U.G: 1.0,
    U.KG: 1000.0,
    U.OZ: 28.3495,
    U.LB: 453.592,
}

ML_PER_VOLUME_UNIT: dict[QuantityUnit, float] = {
    U.ML: 1.0,
    U.L: 1000.0,
    U.TSP: 5.0,
    U.TBSP: 15.0,
    U.CUP: 240.0,
    U.FL_OZ: 29.5735,
}

# g/ml, matched by the longest name contained in the key
DENSITIES: dict[str, float] = {
    "water": 1.0,
    "milk": 1.03,
    "cream": 1.01,
    "oil": 0.92,
    "sauce": 1.05,
    "soy sauce": 1.2,
    "juice": 1.04,
    "yogurt": 1.05,
    "wine": 0.98,
    "beer": 1.01,
    "honey": 1.42,
    "syrup": 1.33,
    "vinegar": 1.01,
    "stock": 1.0,
    "broth": 1.0,
    "butter": 0.96,
    "peanut butter": 1.09,
    "flour": 0.53,
    "sugar": 0.85,
    "rice": 0.85,
    "oats": 0.41,
}
DEFAULT_DENSITY = 1.0

SIZE_DESCRIPTORS = ("extra large", "xl", "jumbo", "large", "medium", "small", "mini")
_SIZE_ALIASES = {"xl": "extra large"}
_SIZE_FALLBACK = {"extra large": "large", "jumbo": "large", "mini": "small"}
DEFAULT_SIZE = "medium"

# Whole-item weights in grams by size
SIZE_WEIGHTS: dict[str, dict[str, float]] = {
    "egg": {"small": 45, "medium": 50, "large": 55, "extra large": 60, "jumbo": 70},
    "potato": {"small": 120, "medium": 170, "large": 280},
    "sweet potato": {"small": 130, "medium": 200, "large": 300},
    "onion": {"small": 70, "medium": 110, "large": 150},
    "tomato": {"small": 75, "medium": 120, "large": 180},
    "carrot": {"small": 50, "medium": 70, "large": 100},
    "apple": {"small": 100, "medium": 150, "large": 200},
    "banana": {"small": 80, "medium": 120, "large": 150},
    "orange": {"small": 100, "medium": 140, "large": 190},
    "avocado": {"small": 120, "medium": 170, "large": 230},
    "capsicum": {"small": 120, "medium": 160, "large": 200},
    "zucchini": {"small": 120, "medium": 200, "large": 300},
    "chicken breast": {"small": 150, "medium": 200, "large": 250},
    "chicken thigh": {"small": 90, "medium": 120, "large": 150},
    "tortilla": {"small": 30, "medium": 45, "large": 65},
}

# Grams per portion/container unit
UNIT_WEIGHTS: dict[QuantityUnit, float] = {
    U.SLICE: 35,
    U.CLOVE: 5,
    U.CAN: 400,
    U.JAR: 400,
    U.PACKET: 100,
    U.SACHET: 10,
    U.SERVING: 100,
    U.RASHER: 25,
    U.STRIP: 25,
    U.HEAD: 500,
    U.BUNCH: 150,
    U.STALK: 40,
    U.SPRIG: 1,
    U.LEAF: 1,
    U.EGG: 50,
    U.FILLET: 150,
    U.BREAST: 200,
    U.THIGH: 120,
}

# Units naming the whole ingredient; the ingredient's own row wins for these
WHOLE_ITEM_UNITS = frozenset({U.PIECE, U.WHOLE, U.EGG, U.FILLET, U.BREAST, U.THIGH})

GENERIC_SIZE_WEIGHTS: dict[str, float] = {
    "mini": 40,
    "small": 75,
    "medium": 120,
    "large": 180,
    "extra large": 220,
    "jumbo": 250,
}
DEFAULT_COUNT_WEIGHT = 150.0

UNIT_ALIASES: dict[str, QuantityUnit] = {
    "g": U.G,
    "gm": U.G,
    "gram": U.G,
    "grams": U.G,
    "gr": U.G,
    "kg": U.KG,
    "kilogram": U.KG,
    "kilograms": U.KG,
    "oz": U.OZ,
    "ounce": U.OZ,
    "ounces": U.OZ,
    "lb": U.LB,
    "lbs": U.LB,
    "pound": U.LB,
    "pounds": U.LB,
    "ml": U.ML,
    "milliliter": U.ML,
    "milliliters": U.ML,
    "millilitre": U.ML,
    "millilitres": U.ML,
    "l": U.L,
    "liter": U.L,
    "liters": U.L,
    "litre": U.L,
    "litres": U.L,
    "tsp": U.TSP,
    "teaspoon": U.TSP,
    "teaspoons": U.TSP,
    "tbsp": U.TBSP,
    "tablespoon": U.TBSP,
    "tablespoons": U.TBSP,
    "cup": U.CUP,
    "cups": U.CUP,
    "fl oz": U.FL_OZ,
    "fl_oz": U.FL_OZ,
    "fluid ounce": U.FL_OZ,
    "fluid ounces": U.FL_OZ,
    "piece": U.PIECE,
    "pieces": U.PIECE,
    "pc": U.PIECE,
    "pcs": U.PIECE,
    "unit": U.PIECE,
    "units": U.PIECE,
    "whole": U.WHOLE,
    "slice": U.SLICE,
    "slices": U.SLICE,
    "clove": U.CLOVE,
    "cloves": U.CLOVE,
    "egg": U.EGG,
    "eggs": U.EGG,
    "can": U.CAN,
    "cans": U.CAN,
    "tin": U.CAN,
    "tins": U.CAN,
    "fillet": U.FILLET,
    "fillets": U.FILLET,
    "breast": U.BREAST,
    "breasts": U.BREAST,
    "thigh": U.THIGH,
    "thighs": U.THIGH,
    "rasher": U.RASHER,
    "rashers": U.RASHER,
    "strip": U.STRIP,
    "strips": U.STRIP,
    "serve": U.SERVING,
    "serves": U.SERVING,
    "serving": U.SERVING,
    "servings": U.SERVING,
    "head": U.HEAD,
    "heads": U.HEAD,
    "bunch": U.BUNCH,
    "bunches": U.BUNCH,
    "stalk": U.STALK,
    "stalks": U.STALK,
    "sprig": U.SPRIG,
    "sprigs": U.SPRIG,
    "leaf": U.LEAF,
    "leaves": U.LEAF,
    "jar": U.JAR,
    "jars": U.JAR,
    "packet": U.PACKET,
    "packets": U.PACKET,
    "sachet": U.SACHET,
    "sachets": U.SACHET,
}


def parse_unit(raw: object) -> Optional[QuantityUnit]:
    """Map a free-form unit string to a canonical unit, or None."""
    if isinstance(raw, QuantityUnit):
        return raw
    if not isinstance(raw, str):
        return None
    text = " ".join(raw.lower().replace(".", "").split())
    return UNIT_ALIASES.get(text)


def parse_size(text: str) -> Optional[str]:
    """Return the canonical size descriptor contained in ``text``."""
    prepared = prepare_key(text)
    for size in SIZE_DESCRIPTORS:
        if re.search(rf"\b{size}\b", prepared):
            return _SIZE_ALIASES.get(size, size)
    return None


def _longest_match(prepared_key: str, names: list[str]) -> Optional[str]:
    best: Optional[str] = None
    for name in names:
        if word_pattern(name).search(prepared_key) and (
            best is None or len(name) > len(best)
        ):
            best = name
    return best


def density_for(key: str) -> float:
    """Density in g/ml for an ingredient key."""
    name = _longest_match(prepare_key(key), list(DENSITIES))
    return DENSITIES[name] if name else DEFAULT_DENSITY


def _row_weight(row: dict[str, float], size: Optional[str]) -> float:
    wanted = size or DEFAULT_SIZE
    while wanted not in row:
        fallback = _SIZE_FALLBACK.get(wanted)
        if fallback is None:
            return row[DEFAULT_SIZE]
        wanted = fallback
    return row[wanted]


def count_weight(
    key: str,
    unit: QuantityUnit = QuantityUnit.PIECE,
    size: Optional[str] = None,
) -> GramConversion:
    """Grams for one counted unit of ``key``.

    Args:
        key: Ingredient key
        unit: Count unit
        size: Size descriptor; parsed from the key when omitted

    Returns:
        GramConversion for a single unit
    """
    prepared = prepare_key(key)
    size = size or parse_size(prepared)
    name = "egg" if unit == U.EGG else _longest_match(prepared, list(SIZE_WEIGHTS))

    if unit not in WHOLE_ITEM_UNITS and unit in UNIT_WEIGHTS:
        return GramConversion(grams=UNIT_WEIGHTS[unit], method=ConversionMethod.COUNT)

    if name is not None:
        return GramConversion(
            grams=_row_weight(SIZE_WEIGHTS[name], size), method=ConversionMethod.COUNT
        )

    if unit in UNIT_WEIGHTS:
        return GramConversion(grams=UNIT_WEIGHTS[unit], method=ConversionMethod.COUNT)

    if size is not None:
        warning = f"No count weight for {key!r}; using generic {size} size"
        grams = GENERIC_SIZE_WEIGHTS[size]
    else:
        warning = f"No count weight for {key!r}; using {DEFAULT_COUNT_WEIGHT:g}g default"
        grams = DEFAULT_COUNT_WEIGHT

    logger.warning("Count weight heuristic", key=key, unit=unit.value, grams=grams)
    return GramConversion(
        grams=grams,
        method=ConversionMethod.COUNT,
        heuristic=True,
        warning=warning,
    )


def to_millilitres(quantity: float, unit: QuantityUnit) -> float:
    if unit not in ML_PER_VOLUME_UNIT:
        raise ValueError(f"{unit.value} is not a volume unit")
    return quantity * ML_PER_VOLUME_UNIT[unit]


def normalize_to_grams(item: MealItem) -> GramConversion:
    """Convert an item's quantity to grams.

    Args:
        item: Meal item with quantity and unit

    Returns:
        GramConversion with the weight and how it was derived

    Example:
        >>> item = MealItem(key="milk", quantity_value=1, quantity_unit=QuantityUnit.CUP)
        >>> round(normalize_to_grams(item).grams, 1)
        247.2
    """
    unit = item.quantity_unit
    kind = unit.kind

    if kind == UnitKind.WEIGHT:
        grams = item.quantity_value * GRAMS_PER_WEIGHT_UNIT[unit]
        return GramConversion(grams=round(grams, 2), method=ConversionMethod.DIRECT)

    if kind == UnitKind.VOLUME:
        ml = to_millilitres(item.quantity_value, unit)
        grams = ml * density_for(item.key)
        return GramConversion(grams=round(grams, 2), method=ConversionMethod.DENSITY)

    per_unit = count_weight(item.key, unit)
    return GramConversion(
        grams=round(per_unit.grams * item.quantity_value, 2),
        method=ConversionMethod.COUNT,
        heuristic=per_unit.heuristic,
        warning=per_unit.warning,
    )
