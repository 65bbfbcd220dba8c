"""
Cooking yield transform.

Nutrition facts are stored per 100 g *as sold*. A quantity expressed as
cooked weight is converted back using the cooked/as-sold yield factor:
``grams_as_sold = cooked_grams / yield``. Dry grains gain weight (factor
> 1), meat and vegetables lose water (factor < 1).
"""

from __future__ import annotations

from typing import Iterable, Optional

import structlog

from mealguard.domain.plan.models import MealItem
from mealguard.domain.resolution.models import IngredientState
from mealguard.domain.resolution.resolver import prepare_key, word_pattern
from mealguard.domain.shared.ports import AlertLevel, IAlertSink
from mealguard.domain.shared.value_objects import Confidence
from mealguard.domain.transform.models import YieldEntry, YieldResolution

logger = structlog.get_logger(__name__)

YIELD_UNMAPPED = "YIELD_UNMAPPED"


def _y(
    name: str,
    typical: float,
    low: float,
    high: float,
    confidence: Confidence = Confidence.HIGH,
) -> YieldEntry:
    return YieldEntry(
        name=name, typical=typical, min_factor=low, max_factor=high, confidence=confidence
    )


DEFAULT_YIELD_ENTRIES: tuple[YieldEntry, ...] = (
    # Grains and legumes, dry -> cooked
    _y("rice", 3.0, 2.5, 3.3),
    _y("brown rice", 2.6, 2.3, 3.0),
    _y("wild rice", 3.2, 2.8, 3.5),
    _y("pasta", 2.5, 2.2, 2.8),
    _y("spaghetti", 2.5, 2.2, 2.8),
    _y("penne", 2.5, 2.2, 2.8),
    _y("macaroni", 2.5, 2.2, 2.8),
    _y("fusilli", 2.5, 2.2, 2.8),
    _y("noodle", 2.5, 2.0, 3.0, Confidence.MEDIUM),
    _y("oats", 3.5, 3.0, 4.0),
    _y("oatmeal", 3.5, 3.0, 4.0),
    _y("quinoa", 3.0, 2.6, 3.2),
    _y("couscous", 2.5, 2.2, 2.8),
    _y("barley", 3.2, 2.8, 3.5),
    _y("lentil", 2.8, 2.4, 3.0),
    _y("chickpea", 2.4, 2.1, 2.7),
    _y("black bean", 2.4, 2.1, 2.7),
    _y("kidney bean", 2.4, 2.1, 2.7),
    # Proteins, raw -> cooked
    _y("chicken", 0.75, 0.70, 0.80),
    _y("chicken breast", 0.75, 0.70, 0.80),
    _y("chicken thigh", 0.72, 0.67, 0.78),
    _y("turkey", 0.75, 0.70, 0.80),
    _y("beef", 0.70, 0.65, 0.75),
    _y("steak", 0.72, 0.68, 0.78),
    _y("beef mince", 0.68, 0.62, 0.75),
    _y("ground beef", 0.68, 0.62, 0.75),
    _y("pork", 0.72, 0.67, 0.78),
    _y("lamb", 0.70, 0.65, 0.75),
    _y("bacon", 0.45, 0.35, 0.55, Confidence.MEDIUM),
    _y("salmon", 0.80, 0.75, 0.85),
    _y("tuna", 0.80, 0.75, 0.85),
    _y("cod", 0.85, 0.80, 0.90),
    _y("fish", 0.85, 0.80, 0.90, Confidence.MEDIUM),
    _y("prawn", 0.80, 0.75, 0.85),
    _y("shrimp", 0.80, 0.75, 0.85),
    _y("egg", 0.98, 0.95, 1.0),
    _y("tofu", 0.90, 0.85, 0.95, Confidence.MEDIUM),
    # Vegetables
    _y("potato", 0.90, 0.85, 0.95),
    _y("sweet potato", 0.90, 0.85, 0.95),
    _y("carrot", 0.95, 0.90, 1.0, Confidence.MEDIUM),
    _y("broccoli", 0.90, 0.85, 0.95, Confidence.MEDIUM),
    _y("cauliflower", 0.90, 0.85, 0.95, Confidence.MEDIUM),
    _y("green bean", 0.95, 0.90, 1.0, Confidence.MEDIUM),
    _y("spinach", 0.85, 0.75, 0.90, Confidence.MEDIUM),
    _y("mushroom", 0.80, 0.70, 0.85, Confidence.MEDIUM),
    _y("zucchini", 0.85, 0.80, 0.90, Confidence.MEDIUM),
    _y("onion", 0.85, 0.80, 0.90, Confidence.MEDIUM),
    _y("capsicum", 0.85, 0.80, 0.90, Confidence.MEDIUM),
    _y("squash", 0.90, 0.85, 0.95, Confidence.MEDIUM),
    _y("spaghetti squash", 0.90, 0.85, 0.95, Confidence.MEDIUM),
)


class YieldTable:
    """Yield entries matched most-specific-first.

    Among the entry names contained in a key, the longest wins, so
    "chicken breast" beats "chicken".

    Example:
        >>> table = YieldTable()
        >>> table.find("grilled chicken breast").name
        'chicken breast'
    """

    def __init__(self, entries: Optional[Iterable[YieldEntry]] = None) -> None:
        self.entries: tuple[YieldEntry, ...] = tuple(
            entries if entries is not None else DEFAULT_YIELD_ENTRIES
        )
        self._patterns = [
            (entry, word_pattern(entry.name))
            for entry in sorted(self.entries, key=lambda e: len(e.name), reverse=True)
        ]

    def find(self, key: str) -> Optional[YieldEntry]:
        prepared = prepare_key(key)
        for entry, pattern in self._patterns:
            if pattern.search(prepared):
                return entry
        return None


def to_as_sold(
    item: MealItem,
    grams: float,
    state: Optional[IngredientState] = None,
    table: Optional[YieldTable] = None,
    alert_sink: Optional[IAlertSink] = None,
    trace_id: Optional[str] = None,
) -> YieldResolution:
    """Convert an expressed weight into as-sold weight.

    Args:
        item: Meal item being converted
        grams: Weight in grams as expressed in the proposal
        state: State the weight refers to (defaults to item.effective_state)
        table: Yield table (defaults to the built-in table)
        alert_sink: Receives a critical alert for unmapped cooked items
        trace_id: Pipeline trace id for alert context

    Returns:
        YieldResolution with the as-sold weight and its band

    Example:
        >>> item = MealItem(key="chicken breast", quantity_value=200, quantity_unit="g")
        >>> to_as_sold(item, 200.0, IngredientState.COOKED).grams_as_sold
        266.67
    """
    state = state or item.effective_state

    if state != IngredientState.COOKED:
        return YieldResolution(
            grams_as_sold=grams,
            grams_as_sold_min=grams,
            grams_as_sold_max=grams,
            confidence=Confidence.EXACT,
        )

    entry = (table or YieldTable()).find(item.key)

    if entry is None:
        logger.error(
            "No yield entry for cooked item, using 1:1",
            key=item.key,
            grams=grams,
            trace_id=trace_id,
        )
        if alert_sink is not None:
            alert_sink.emit(
                AlertLevel.CRITICAL,
                "yield_unmapped",
                {"key": item.key, "grams": grams, "trace_id": trace_id},
            )
        return YieldResolution(
            grams_as_sold=grams,
            grams_as_sold_min=grams,
            grams_as_sold_max=grams,
            confidence=Confidence.NONE,
            error=YIELD_UNMAPPED,
        )

    return YieldResolution(
        grams_as_sold=round(grams / entry.typical, 2),
        grams_as_sold_min=round(grams / entry.max_factor, 2),
        grams_as_sold_max=round(grams / entry.min_factor, 2),
        yield_factor=entry.typical,
        confidence=entry.confidence,
        yield_key=entry.name,
    )
