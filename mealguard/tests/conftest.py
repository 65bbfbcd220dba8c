"""
Shared fixtures for mealguard tests.

Fact values are chosen so that kcal agrees with 4p + 4c + 9f within 5%,
except for ``mystery_bar`` which is deliberately inconsistent.
"""

from typing import Any

import pytest

from mealguard.application.pipeline.config import PipelineConfig
from mealguard.domain.nutrition.models import MacroTargets, NutritionFact
from mealguard.domain.plan.calculator import PlanCalculator
from mealguard.infrastructure.alerting.alert_sink import InMemoryAlertSink
from mealguard.infrastructure.nutrition.static_lookup import StaticNutritionLookup


# ═══════════════════════════════════════════════════════════
# NUTRITION FIXTURES
# ═══════════════════════════════════════════════════════════


def _fact(kcal: float, protein: float, fat: float, carbs: float) -> NutritionFact:
    return NutritionFact(
        kcal_per_100g=kcal,
        protein_per_100g=protein,
        fat_per_100g=fat,
        carbs_per_100g=carbs,
        source="test",
    )


@pytest.fixture
def sample_facts() -> dict[str, NutritionFact]:
    """Per-100g facts keyed by normalized key."""
    return {
        "chicken_breast": _fact(114, 22.5, 2.6, 0),
        "white_rice": _fact(360, 6.6, 0.6, 80),
        "olive_oil": _fact(884, 0, 100, 0),
        "broccoli": _fact(41, 2.8, 0.4, 6.6),
        "egg": _fact(143, 12.6, 9.5, 0.7),
        "milk": _fact(64, 3.4, 3.6, 4.8),
        "banana": _fact(97, 1.1, 0.3, 22.8),
        "granola": _fact(400, 10, 12, 63),
        "rolled_oats": _fact(360, 13, 7, 60),
        "salmon": _fact(197, 20, 13, 0),
        "yogurt": _fact(97, 9, 5, 3.6),
        "mystery_bar": _fact(500, 10, 10, 10),
    }


@pytest.fixture
def nutrition_lookup(sample_facts: dict[str, NutritionFact]) -> StaticNutritionLookup:
    """Lookup over the sample facts (exact keys only)."""
    return StaticNutritionLookup(sample_facts, use_fuzzy=False)


@pytest.fixture
def calculator(sample_facts: dict[str, NutritionFact]) -> PlanCalculator:
    """Plan calculator over the sample facts."""
    return PlanCalculator(sample_facts)


# ═══════════════════════════════════════════════════════════
# PIPELINE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def alert_sink() -> InMemoryAlertSink:
    """Fresh in-memory alert sink."""
    return InMemoryAlertSink()


@pytest.fixture
def daily_targets() -> MacroTargets:
    """2000 kcal / 150 g protein day."""
    return MacroTargets(kcal=2000, protein=150, fat=70, carbs=200)


@pytest.fixture
def soft_config() -> PipelineConfig:
    """Non-blocking config with a fixed trace id."""
    return PipelineConfig(enable_blocking_validation=False, trace_id="test-trace")


@pytest.fixture
def sample_raw_meals() -> list[dict[str, Any]]:
    """Generated proposal for a full day, with typical generator quirks."""
    return [
        {
            "name": "Oats and banana",
            "type": "breakfast",
            "items": [
                {"key": "rolled oats", "qty_value": 80, "qty_unit": "g", "state_hint": "dry"},
                {"key": "milk", "qty_value": "250", "qty_unit": "ml"},
                {"key": "banana", "qty_value": 1, "qty_unit": "medium"},
            ],
        },
        {
            "name": "Chicken and rice",
            "type": "lunch",
            "items": [
                {
                    "key": "chicken breast",
                    "qty_value": 200,
                    "qty_unit": "grams",
                    "state_hint": "cooked",
                    "method_hint": "grilled",
                },
                {"key": "white rice", "qty_value": 180, "qty_unit": "g", "state_hint": "cooked"},
                {"key": "broccoli", "qty_value": 100, "qty_unit": "g"},
            ],
        },
        {
            "type": "dinner",
            "items": [
                {"key": "salmon", "qty_value": 180, "qty_unit": "g", "state_hint": "raw"},
                {"key": "olive oil", "qty_value": 1, "qty_unit": "tbsp"},
                {"key": "broccoli", "qty_value": 150, "qty_unit": "g"},
            ],
        },
    ]
