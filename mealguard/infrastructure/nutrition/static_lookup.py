"""
Dict-backed nutrition lookup.

Serves per-100g facts from an in-memory table. Used for local runs and
tests; production callers plug in their own ``INutritionLookup``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

import structlog

from mealguard.domain.nutrition.models import NutritionFact
from mealguard.domain.transform.keys import fuzzy_candidates

logger = structlog.get_logger(__name__)


class StaticNutritionLookup:
    """
    Nutrition lookup over a fixed table.

    Example:
        >>> lookup = StaticNutritionLookup({
        ...     "chicken_breast": {
        ...         "kcal_per_100g": 120,
        ...         "protein_per_100g": 22.5,
        ...         "fat_per_100g": 2.6,
        ...         "carbs_per_100g": 0,
        ...     },
        ... })
        >>> fact = await lookup.lookup("chicken_breast")
        >>> assert fact.protein_per_100g == 22.5
    """

    def __init__(
        self,
        facts: Mapping[str, Union[NutritionFact, Mapping[str, Any]]],
        use_fuzzy: bool = True,
        source: str = "static",
    ) -> None:
        """
        Initialize lookup.

        Args:
            facts: normalized key -> fact (model or plain mapping)
            use_fuzzy: Try shorter keys when the exact key misses
            source: Source label for facts given as mappings
        """
        self.use_fuzzy = use_fuzzy
        self._facts: dict[str, NutritionFact] = {}
        for key, fact in facts.items():
            if not isinstance(fact, NutritionFact):
                fact = NutritionFact(**{"source": source, **fact})
            self._facts[key] = fact

    async def lookup(
        self, normalized_key: str, store_context: Optional[dict[str, Any]] = None
    ) -> Optional[NutritionFact]:
        fact = self._facts.get(normalized_key)
        if fact is not None or not self.use_fuzzy:
            return fact

        for candidate in fuzzy_candidates(normalized_key)[1:]:
            fact = self._facts.get(candidate)
            if fact is not None:
                logger.debug("Fuzzy lookup hit", key=normalized_key, matched=candidate)
                return fact.model_copy(update={"is_fallback": True})

        return None

    def __len__(self) -> int:
        return len(self._facts)
