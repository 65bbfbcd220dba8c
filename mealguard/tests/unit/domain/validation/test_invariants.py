"""
Unit tests for hard invariant assertions.
"""

import math

import pytest

from mealguard.domain.nutrition.models import ItemMacros, MacroTotals
from mealguard.domain.plan.models import Meal
from mealguard.domain.shared.errors import InvariantViolationError
from mealguard.domain.validation.invariants import (
    MACRO_CALORIE_CONSISTENCY,
    POSITIVE_QUANTITY,
    RECONCILIATION_BOUNDS,
    assert_macro_calorie_consistency,
    assert_meal_has_items,
    assert_non_negative_totals,
    assert_positive_quantity,
    assert_reconciliation_bounds,
    soft_assert,
)


class TestMacroCalorieConsistency:
    def test_consistent(self) -> None:
        assert_macro_calorie_consistency(ItemMacros(kcal=228, protein=45, fat=5.2, carbs=0))

    def test_zero_kcal_not_checked(self) -> None:
        assert_macro_calorie_consistency(ItemMacros(kcal=0, protein=10, fat=0, carbs=0))

    def test_inconsistent(self) -> None:
        with pytest.raises(InvariantViolationError) as exc_info:
            assert_macro_calorie_consistency(MacroTotals(kcal=500, protein=10, fat=10, carbs=10))
        assert exc_info.value.invariant_id == MACRO_CALORIE_CONSISTENCY
        assert str(exc_info.value).startswith(f"[{MACRO_CALORIE_CONSISTENCY}]")
        assert exc_info.value.context["expected_kcal"] == 170

    def test_custom_tolerance(self) -> None:
        macros = ItemMacros(kcal=100, protein=10, fat=0, carbs=10)
        with pytest.raises(InvariantViolationError):
            assert_macro_calorie_consistency(macros)
        assert_macro_calorie_consistency(macros, tolerance=0.30)


class TestPositiveQuantity:
    @pytest.mark.parametrize("quantity", [0, -1, math.inf, math.nan, "100", True, None])
    def test_rejected(self, quantity: object) -> None:
        with pytest.raises(InvariantViolationError) as exc_info:
            assert_positive_quantity("rice", quantity)
        assert exc_info.value.invariant_id == POSITIVE_QUANTITY
        assert exc_info.value.context["key"] == "rice"

    @pytest.mark.parametrize("quantity", [1, 0.5, 2000])
    def test_accepted(self, quantity: float) -> None:
        assert_positive_quantity("rice", quantity)


class TestReconciliationBounds:
    @pytest.mark.parametrize("factor", [None, 0.5, 1.0, 2.0])
    def test_accepted(self, factor: float | None) -> None:
        assert_reconciliation_bounds(factor)

    @pytest.mark.parametrize("factor", [0.49, 2.01, math.inf, math.nan])
    def test_rejected(self, factor: float) -> None:
        with pytest.raises(InvariantViolationError) as exc_info:
            assert_reconciliation_bounds(factor)
        assert exc_info.value.invariant_id == RECONCILIATION_BOUNDS


def test_meal_has_items() -> None:
    with pytest.raises(InvariantViolationError) as exc_info:
        assert_meal_has_items(Meal(name="Snack", type="snack"))
    assert exc_info.value.context == {"meal_name": "Snack", "meal_type": "snack"}


def test_non_negative_totals() -> None:
    assert_non_negative_totals(MacroTotals(kcal=0))
    with pytest.raises(InvariantViolationError):
        assert_non_negative_totals(MacroTotals(kcal=100, fat=-1))


def test_soft_assert_returns_violation() -> None:
    assert soft_assert(assert_reconciliation_bounds, 1.0) is None
    violation = soft_assert(assert_reconciliation_bounds, 3.0)
    assert isinstance(violation, InvariantViolationError)
    assert violation.context["factor"] == 3.0
