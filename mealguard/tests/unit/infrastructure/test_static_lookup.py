"""
Unit tests for StaticNutritionLookup.
"""

import pytest

from mealguard.domain.nutrition.models import NutritionFact
from mealguard.domain.shared.ports import INutritionLookup
from mealguard.infrastructure.nutrition.static_lookup import StaticNutritionLookup

TABLE = {
    "rice": {"kcal_per_100g": 130, "protein_per_100g": 2.7, "fat_per_100g": 0.3, "carbs_per_100g": 28},
    "chicken_breast": NutritionFact(
        kcal_per_100g=114, protein_per_100g=22.5, fat_per_100g=2.6, carbs_per_100g=0, source="usda"
    ),
}


class TestStaticNutritionLookup:
    @pytest.mark.asyncio
    async def test_exact_match(self) -> None:
        lookup = StaticNutritionLookup(TABLE)
        fact = await lookup.lookup("chicken_breast")
        assert fact.source == "usda"
        assert not fact.is_fallback

    @pytest.mark.asyncio
    async def test_mapping_facts_get_source(self) -> None:
        lookup = StaticNutritionLookup(TABLE, source="local")
        assert (await lookup.lookup("rice")).source == "local"
        assert len(lookup) == 2

    @pytest.mark.asyncio
    async def test_fuzzy_match_is_fallback(self) -> None:
        """Test a shorter key match is returned as fallback data."""
        lookup = StaticNutritionLookup(TABLE)

        fact = await lookup.lookup("wild_rice")

        assert fact.kcal_per_100g == 130
        assert fact.is_fallback
        assert not (await lookup.lookup("rice")).is_fallback

    @pytest.mark.asyncio
    async def test_fuzzy_disabled(self) -> None:
        lookup = StaticNutritionLookup(TABLE, use_fuzzy=False)
        assert await lookup.lookup("wild_rice") is None

    @pytest.mark.asyncio
    async def test_miss(self) -> None:
        assert await StaticNutritionLookup(TABLE).lookup("dragonfruit") is None

    def test_satisfies_port(self) -> None:
        assert isinstance(StaticNutritionLookup(TABLE), INutritionLookup)
