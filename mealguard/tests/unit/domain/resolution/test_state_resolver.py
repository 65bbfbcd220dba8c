"""
Unit tests for the ingredient state resolver.
"""

import pytest

from mealguard.domain.resolution.models import (
    CookingMethod,
    IngredientCategory,
    IngredientState,
    StateRule,
)
from mealguard.domain.resolution.resolver import (
    INVALID_KEY_RULE_ID,
    StateResolver,
    is_valid_method,
    is_valid_state,
    prepare_key,
)
from mealguard.domain.resolution.rules import STATE_RULES
from mealguard.domain.shared.value_objects import Confidence


@pytest.fixture
def resolver() -> StateResolver:
    return StateResolver()


class TestCookingKeywords:
    """Cooking keywords force the cooked state."""

    @pytest.mark.parametrize(
        "key",
        [
            "grilled chicken breast",
            "fried rice",
            "pan-fried tofu",
            "hard-boiled eggs",
            "steamed broccoli",
            "cooked white rice",
            "Roasted_Sweet_Potato",
        ],
    )
    def test_keyword_wins(self, resolver: StateResolver, key: str) -> None:
        """Any key containing a cooking keyword resolves to cooked."""
        resolution = resolver.resolve(key)
        assert resolution.state == IngredientState.COOKED
        assert resolution.rule_id.startswith("COOKING_KEYWORD_")
        assert resolution.confidence == Confidence.HIGH

    def test_multi_word_keyword_before_suffix(self, resolver: StateResolver) -> None:
        """'pan-fried' is reported as itself, not as 'fried'."""
        resolution = resolver.resolve("pan-fried tofu")
        assert resolution.rule_id == "COOKING_KEYWORD_PAN_FRIED"
        assert resolution.method == CookingMethod.FRIED

    def test_hard_boiled(self, resolver: StateResolver) -> None:
        resolution = resolver.resolve("hard-boiled eggs")
        assert resolution.rule_id == "COOKING_KEYWORD_HARD_BOILED"
        assert resolution.method == CookingMethod.BOILED

    def test_word_boundary(self, resolver: StateResolver) -> None:
        """'boiled' inside another word is not a keyword."""
        assert resolver.detect_cooking_keyword("parboiledish snack") is None
        assert resolver.detect_cooking_keyword("boiled potato") == ("boiled", CookingMethod.BOILED)


class TestRuleTable:
    """Ordered rule evaluation."""

    @pytest.mark.parametrize(
        "key,rule_id,state",
        [
            ("goat cheese", "COMPOUND_GOAT_CHEESE", IngredientState.AS_PACK),
            ("goat milk", "COMPOUND_GOAT_MILK", IngredientState.AS_PACK),
            ("goat's milk", "COMPOUND_GOAT_MILK", IngredientState.AS_PACK),
            ("oat milk", "COMPOUND_OAT_MILK", IngredientState.AS_PACK),
            ("oats", "GRAINS_OATS", IngredientState.DRY),
            ("rice", "GRAINS_RICE_GENERIC", IngredientState.DRY),
            ("brown rice", "GRAINS_RICE_BROWN", IngredientState.DRY),
            ("rice noodles", "COMPOUND_RICE_NOODLES", IngredientState.DRY),
            ("chicken breast", "PROTEINS_CHICKEN_BREAST", IngredientState.RAW),
            ("chicken_breast", "PROTEINS_CHICKEN_BREAST", IngredientState.RAW),
            ("firm tofu", "PROTEINS_TOFU", IngredientState.AS_PACK),
            ("peanut butter", "COMPOUND_PEANUT_BUTTER", IngredientState.AS_PACK),
        ],
    )
    def test_specific_rules(
        self, resolver: StateResolver, key: str, rule_id: str, state: IngredientState
    ) -> None:
        resolution = resolver.resolve(key)
        assert resolution.rule_id == rule_id
        assert resolution.state == state

    @pytest.mark.parametrize("key", ["goat cheese", "goat milk", "goat's milk", "goat yogurt", "goat"])
    def test_goat_never_routes_through_oat(self, resolver: StateResolver, key: str) -> None:
        """'goat' contains 'oat' but must never hit an oat rule."""
        rule_id = resolver.resolve(key).rule_id
        assert rule_id not in {"COMPOUND_OAT_MILK", "GRAINS_OATS"}

    def test_catch_all(self, resolver: StateResolver) -> None:
        """Unmatched keys degrade to a low-confidence as-pack result."""
        resolution = resolver.resolve("dragonfruit")
        assert resolution.rule_id == "CATCHALL_UNMAPPED"
        assert resolution.state == IngredientState.AS_PACK
        assert resolution.confidence == Confidence.LOW

    @pytest.mark.parametrize("key", ["", "   ", None, 42])
    def test_invalid_key_never_raises(self, resolver: StateResolver, key: object) -> None:
        resolution = resolver.resolve(key)
        assert resolution.rule_id == INVALID_KEY_RULE_ID
        assert resolution.state == IngredientState.AS_PACK
        assert resolution.confidence == Confidence.LOW

    def test_rules_sorted_by_priority(self, resolver: StateResolver) -> None:
        priorities = [rule.priority for rule in resolver.rules]
        assert priorities == sorted(priorities)

    def test_custom_rule_table(self) -> None:
        """The table is swappable data."""
        resolver = StateResolver(
            [
                StateRule(
                    id="BEVERAGES_KOMBUCHA",
                    pattern=r"kombucha",
                    category=IngredientCategory.BEVERAGES,
                    state=IngredientState.AS_PACK,
                    priority=1,
                )
            ]
        )
        assert resolver.resolve("ginger kombucha").rule_id == "BEVERAGES_KOMBUCHA"
        assert resolver.resolve("tea").confidence == Confidence.LOW


class TestDiagnostics:
    """Debug helpers."""

    def test_find_matching_rules_marks_winner(self, resolver: StateResolver) -> None:
        matches = resolver.find_matching_rules("goat cheese")
        assert matches[0].rule_id == "COMPOUND_GOAT_CHEESE"
        assert matches[0].is_winner
        assert matches[-1].rule_id == "CATCHALL_UNMAPPED"
        assert not matches[-1].is_winner

    def test_no_rule_wins_when_keyword_matches(self, resolver: StateResolver) -> None:
        matches = resolver.find_matching_rules("grilled salmon")
        assert not any(match.is_winner for match in matches)

    def test_rule_statistics(self, resolver: StateResolver) -> None:
        stats = resolver.rule_statistics()
        assert stats["total_rules"] == len(STATE_RULES)
        assert stats["by_confidence"]["low"] >= 1

    def test_rules_for_category(self, resolver: StateResolver) -> None:
        dairy = resolver.rules_for_category(IngredientCategory.DAIRY)
        assert dairy
        assert all(rule.category == IngredientCategory.DAIRY for rule in dairy)

    def test_prepare_key(self) -> None:
        assert prepare_key("  Chicken_Breast  Fillet ") == "chicken breast fillet"

    def test_hint_validity(self) -> None:
        assert is_valid_state("cooked")
        assert not is_valid_state("fried")
        assert is_valid_method("fried")
        assert not is_valid_method("microwaved")
