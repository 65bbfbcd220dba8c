"""
Unit tests for quantity normalisation to grams.
"""

import pytest

from mealguard.domain.plan.models import MealItem
from mealguard.domain.transform.models import ConversionMethod, QuantityUnit, UnitKind
from mealguard.domain.transform.units import (
    count_weight,
    density_for,
    normalize_to_grams,
    parse_size,
    parse_unit,
    to_millilitres,
)


def _item(key: str, qty: float, unit: QuantityUnit) -> MealItem:
    return MealItem(key=key, quantity_value=qty, quantity_unit=unit)


class TestParseUnit:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("grams", QuantityUnit.G),
            ("Tbsp.", QuantityUnit.TBSP),
            ("cups", QuantityUnit.CUP),
            ("fl oz", QuantityUnit.FL_OZ),
            ("pcs", QuantityUnit.PIECE),
            ("tins", QuantityUnit.CAN),
            (QuantityUnit.ML, QuantityUnit.ML),
        ],
    )
    def test_aliases(self, raw: object, expected: QuantityUnit) -> None:
        assert parse_unit(raw) == expected

    @pytest.mark.parametrize("raw", ["bushel", "", None, 5])
    def test_unknown(self, raw: object) -> None:
        assert parse_unit(raw) is None

    def test_unit_kinds(self) -> None:
        assert QuantityUnit.OZ.kind == UnitKind.WEIGHT
        assert QuantityUnit.TSP.kind == UnitKind.VOLUME
        assert QuantityUnit.SLICE.kind == UnitKind.COUNT


class TestNormalizeToGrams:
    """Weight, volume and count conversion."""

    def test_direct_weight(self) -> None:
        conv = normalize_to_grams(_item("rice", 1, QuantityUnit.KG))
        assert conv.grams == 1000.0
        assert conv.method == ConversionMethod.DIRECT

    def test_ounces(self) -> None:
        assert normalize_to_grams(_item("steak", 8, QuantityUnit.OZ)).grams == 226.8

    def test_volume_uses_density(self) -> None:
        conv = normalize_to_grams(_item("milk", 1, QuantityUnit.CUP))
        assert conv.grams == 247.2
        assert conv.method == ConversionMethod.DENSITY

    def test_longest_density_name_wins(self) -> None:
        """'peanut butter' beats 'butter'."""
        assert density_for("peanut butter") == 1.09
        assert density_for("butter") == 0.96
        assert density_for("olive oil") == 0.92
        assert density_for("creamy soup") == 1.0

    def test_unknown_density_defaults_to_water(self) -> None:
        assert normalize_to_grams(_item("kombucha", 100, QuantityUnit.ML)).grams == 100.0

    def test_count_by_size_row(self) -> None:
        conv = normalize_to_grams(_item("large eggs", 2, QuantityUnit.PIECE))
        assert conv.grams == 110.0
        assert conv.method == ConversionMethod.COUNT
        assert not conv.heuristic

    def test_egg_unit_defaults_to_medium(self) -> None:
        assert normalize_to_grams(_item("egg", 2, QuantityUnit.EGG)).grams == 100.0

    def test_portion_unit(self) -> None:
        assert normalize_to_grams(_item("sourdough bread", 2, QuantityUnit.SLICE)).grams == 70.0

    def test_count_heuristic_warns(self) -> None:
        conv = normalize_to_grams(_item("dragonfruit", 1, QuantityUnit.PIECE))
        assert conv.grams == 150.0
        assert conv.heuristic
        assert conv.warning is not None


class TestCountWeight:
    def test_size_fallback(self) -> None:
        """Sizes missing from a row fall back to the nearest known size."""
        assert count_weight("potato", QuantityUnit.PIECE, "jumbo").grams == 280

    def test_generic_size(self) -> None:
        conv = count_weight("dragonfruit", QuantityUnit.PIECE, "small")
        assert conv.grams == 75
        assert conv.heuristic

    def test_plural_key_uses_row(self) -> None:
        assert count_weight("cherry tomatoes", QuantityUnit.PIECE, "small").grams == 75

    def test_word_prefix_is_not_a_row(self) -> None:
        """An eggplant is not an egg."""
        conv = count_weight("eggplant")
        assert conv.grams == 150.0
        assert conv.heuristic

    def test_parse_size(self) -> None:
        assert parse_size("XL eggs") == "extra large"
        assert parse_size("small onion") == "small"
        assert parse_size("onion") is None


def test_to_millilitres_rejects_weight() -> None:
    assert to_millilitres(2, QuantityUnit.TBSP) == 30.0
    with pytest.raises(ValueError):
        to_millilitres(2, QuantityUnit.G)
