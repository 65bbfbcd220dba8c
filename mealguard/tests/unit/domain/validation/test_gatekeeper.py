"""
Unit tests for ValidationGatekeeper.

Plans are built with the shared PlanCalculator fixture; granola is exactly
400 kcal per 100 g with consistent macros, which makes day totals easy to
reason about.
"""

import pytest

from mealguard.domain.nutrition.models import ItemMacros, MacroTargets
from mealguard.domain.plan.calculator import PlanCalculator
from mealguard.domain.plan.models import DayPlan, Meal, MealItem, PlannedItem, PlannedMeal
from mealguard.domain.reconciliation.models import (
    ReconciliationOutcome,
    ReconciliationScope,
    SkipReason,
)
from mealguard.domain.resolution.models import IngredientState
from mealguard.domain.shared.errors import ErrorCode, ValidationBlockedError
from mealguard.domain.shared.value_objects import Confidence
from mealguard.domain.transform.models import (
    ConversionMethod,
    GramConversion,
    QuantityUnit,
    YieldResolution,
)
from mealguard.domain.validation.gatekeeper import ValidationGatekeeper, validate_day_plan
from mealguard.domain.validation.models import IssueCode, Severity, ValidationThresholds
from mealguard.infrastructure.alerting.alert_sink import InMemoryAlertSink

TARGETS = MacroTargets(kcal=2000, protein=150, fat=70, carbs=200)


def _item(key: str, grams: float, **hints: object) -> MealItem:
    return MealItem(key=key, quantity_value=grams, quantity_unit=QuantityUnit.G, **hints)


def _granola_day(calculator: PlanCalculator, *grams: float) -> DayPlan:
    meals = [
        Meal(name=f"Meal {i}", type="snack", items=[_item("granola", g)])
        for i, g in enumerate(grams)
    ]
    return calculator.plan_day(meals, TARGETS)


def _single_meal(calculator: PlanCalculator, *items: MealItem) -> DayPlan:
    return calculator.plan_day([Meal(name="Lunch", type="lunch", items=list(items))], TARGETS)


@pytest.fixture
def soft_gatekeeper() -> ValidationGatekeeper:
    return ValidationGatekeeper(blocking=False)


# ═══════════════════════════════════════════════════════════
# DAY DEVIATION
# ═══════════════════════════════════════════════════════════


class TestDayDeviation:
    """Day total vs target: 15% warning, 50% critical."""

    def test_within_band(self, calculator: PlanCalculator, soft_gatekeeper) -> None:
        plan = _granola_day(calculator, 175, 175, 150)
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.DAY_CALORIE_DEVIATION not in result.codes()
        assert result.is_valid

    def test_forty_percent_under_is_warning(self, calculator, soft_gatekeeper) -> None:
        plan = _granola_day(calculator, 100, 100, 100)
        assert plan.day_totals.kcal == 1200.0

        result = soft_gatekeeper.validate(plan)

        assert result.codes(Severity.WARNING) == [IssueCode.DAY_CALORIE_DEVIATION]
        assert result.warnings[0].details["deviation_pct"] == 40.0
        assert result.is_valid

    def test_forty_five_percent_over_is_warning(self, calculator, soft_gatekeeper) -> None:
        plan = _granola_day(calculator, 250, 250, 225)
        assert plan.day_totals.kcal == 2900.0
        result = soft_gatekeeper.validate(plan)
        assert result.is_valid
        assert IssueCode.DAY_CALORIE_DEVIATION in result.codes(Severity.WARNING)

    def test_fifty_five_percent_over_is_critical(self, calculator, soft_gatekeeper) -> None:
        plan = _granola_day(calculator, 275, 250, 250)
        assert plan.day_totals.kcal == 3100.0
        result = soft_gatekeeper.validate(plan)
        assert not result.is_valid
        assert result.codes(Severity.CRITICAL) == [IssueCode.DAY_CALORIE_DEVIATION]

    def test_custom_bands(self, calculator: PlanCalculator) -> None:
        gatekeeper = ValidationGatekeeper(
            ValidationThresholds(day_deviation_warning=0.05, day_deviation_critical=0.30),
            blocking=False,
        )
        result = gatekeeper.validate(_granola_day(calculator, 100, 100, 100))
        assert result.codes(Severity.CRITICAL) == [IssueCode.DAY_CALORIE_DEVIATION]


# ═══════════════════════════════════════════════════════════
# ITEM CHECKS
# ═══════════════════════════════════════════════════════════


class TestItemChecks:
    def test_high_calorie_item(self, calculator, soft_gatekeeper) -> None:
        plan = _single_meal(calculator, _item("white rice", 400))
        result = soft_gatekeeper.validate(plan)

        issue = result.critical[0]
        assert issue.code == IssueCode.ITEM_HIGH_CALORIES
        assert issue.meal_index == 0
        assert issue.item_index == 0
        assert issue.details["kcal"] == 1440.0

    def test_oil_exempt_from_calorie_cap(self, calculator, soft_gatekeeper) -> None:
        plan = _single_meal(calculator, _item("olive oil", 200), _item("broccoli", 100))
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.ITEM_HIGH_CALORIES not in result.codes()

    @pytest.mark.parametrize("grams", [5, 900])
    def test_unusual_portion(self, calculator, soft_gatekeeper, grams: float) -> None:
        plan = _single_meal(calculator, _item("broccoli", grams), _item("granola", 100))
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.ITEM_PORTION_SIZE in result.codes(Severity.WARNING)

    def test_small_oil_portion_exempt(self, calculator, soft_gatekeeper) -> None:
        plan = _single_meal(calculator, _item("olive oil", 5), _item("granola", 100))
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.ITEM_PORTION_SIZE not in result.codes()

    @pytest.mark.parametrize("key", ["spices", "mixed spices", "sea salts"])
    def test_plural_exempt_names(self, calculator, soft_gatekeeper, key: str) -> None:
        plan = _single_meal(calculator, _item(key, 2), _item("granola", 100))
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.ITEM_PORTION_SIZE not in result.codes()

    def test_exempt_name_inside_word_not_exempt(self, calculator, soft_gatekeeper) -> None:
        """Test "oil" inside another word does not exempt the item."""
        plan = _single_meal(calculator, _item("boiled egg", 2), _item("granola", 100))
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.ITEM_PORTION_SIZE in result.codes(Severity.WARNING)

    def test_inconsistent_macros_warned(self, calculator, soft_gatekeeper) -> None:
        plan = _single_meal(
            calculator, _item("mystery bar", 100), _item("granola", 100), _item("banana", 100)
        )
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.ITEM_MACRO_INCONSISTENT in result.codes(Severity.WARNING)
        assert result.fallback_count == 1

    def test_unmapped_yield_and_missing_nutrition(self, calculator, soft_gatekeeper) -> None:
        plan = _single_meal(
            calculator,
            _item("dragonfruit", 100, state_hint=IngredientState.COOKED),
            _item("granola", 100),
            _item("banana", 100),
        )
        result = soft_gatekeeper.validate(plan)
        warnings = result.codes(Severity.WARNING)
        assert IssueCode.YIELD_UNMAPPED in warnings
        assert IssueCode.NUTRITION_MISSING in warnings

    def test_negative_values(self, soft_gatekeeper) -> None:
        planned = PlannedItem(
            item=_item("broken", 100),
            conversion=GramConversion(grams=100, method=ConversionMethod.DIRECT),
            yield_resolution=YieldResolution(
                grams_as_sold=100,
                grams_as_sold_min=100,
                grams_as_sold_max=100,
                confidence=Confidence.EXACT,
            ),
            macros=ItemMacros(kcal=-5, protein=0, fat=0, carbs=0),
        )
        plan = DayPlan(
            meals=[PlannedMeal(name="Lunch", type="lunch", items=[planned])],
            targets=TARGETS,
        )

        result = soft_gatekeeper.validate(plan)

        codes = result.codes(Severity.CRITICAL)
        assert IssueCode.ITEM_NEGATIVE_VALUE in codes
        assert IssueCode.DAY_NEGATIVE_TOTALS in codes
        assert IssueCode.DAY_CALORIE_DEVIATION not in codes


# ═══════════════════════════════════════════════════════════
# STRUCTURE / FALLBACK / RECONCILIATION
# ═══════════════════════════════════════════════════════════


class TestStructure:
    def test_empty_meal_is_critical(self, calculator, soft_gatekeeper) -> None:
        meals = [
            Meal(name="Lunch", type="lunch", items=[_item("granola", 250)]),
            Meal(name="Snack", type="snack"),
        ]
        result = soft_gatekeeper.validate(calculator.plan_day(meals, TARGETS))
        issue = result.critical[0]
        assert issue.code == IssueCode.MEAL_EMPTY
        assert issue.meal_index == 1

    def test_no_meals(self, soft_gatekeeper) -> None:
        result = soft_gatekeeper.validate(DayPlan(meals=[], targets=TARGETS))
        assert IssueCode.MEAL_EMPTY in result.codes(Severity.CRITICAL)


class TestFallbackRatio:
    def test_half_is_warning(self, calculator, soft_gatekeeper) -> None:
        plan = _single_meal(calculator, _item("granola", 100), _item("dragonfruit", 100))
        result = soft_gatekeeper.validate(plan)
        issue = next(i for i in result.issues if i.code == IssueCode.HIGH_FALLBACK_RATIO)
        assert issue.severity == Severity.WARNING
        assert issue.details["ratio_pct"] == 50.0

    def test_majority_is_critical(self, calculator, soft_gatekeeper) -> None:
        plan = _single_meal(
            calculator, _item("granola", 100), _item("dragonfruit", 100), _item("kiwano", 100)
        )
        result = soft_gatekeeper.validate(plan)
        assert IssueCode.HIGH_FALLBACK_RATIO in result.codes(Severity.CRITICAL)
        assert result.items_validated == 3
        assert result.fallback_count == 2


class TestReconciliationChecks:
    def test_out_of_bounds_factor(self, calculator, soft_gatekeeper) -> None:
        plan = _granola_day(calculator, 175, 175, 150)
        result = soft_gatekeeper.validate(plan, reconciliation_factors=[3.0])
        assert result.codes(Severity.CRITICAL) == [IssueCode.RECONCILIATION_BOUNDS]

    def test_factor_in_bounds(self, calculator, soft_gatekeeper) -> None:
        plan = _granola_day(calculator, 175, 175, 150)
        result = soft_gatekeeper.validate(plan, reconciliation_factors=[1.5, 0.5])
        assert result.issues == []

    def test_clamp_events(self, calculator, soft_gatekeeper) -> None:
        plan = _granola_day(calculator, 175, 175, 150)
        clamped = ReconciliationOutcome(
            scope=ReconciliationScope.MEAL,
            adjusted=True,
            factor=2.0,
            raw_factor=3.4,
            clamped=True,
            meal_name="Lunch",
        )
        aborted = ReconciliationOutcome(
            scope=ReconciliationScope.MEAL,
            adjusted=False,
            raw_factor=0.3,
            clamped=True,
            reason=SkipReason.PROTEIN_FLOOR,
        )

        result = soft_gatekeeper.validate(plan, clamp_events=[clamped, aborted])

        assert result.codes() == [IssueCode.RECONCILIATION_CLAMPED]
        assert result.warnings[0].details["meal_name"] == "Lunch"


# ═══════════════════════════════════════════════════════════
# DECISION
# ═══════════════════════════════════════════════════════════


class TestDecision:
    def test_blocking_raises(self, calculator: PlanCalculator) -> None:
        gatekeeper = ValidationGatekeeper()
        plan = _granola_day(calculator, 275, 250, 250)

        with pytest.raises(ValidationBlockedError) as exc_info:
            gatekeeper.validate(plan, trace_id="trace-1")

        err = exc_info.value
        assert err.code == ErrorCode.VALIDATION_CRITICAL
        assert err.stage == "validation"
        assert err.trace_id == "trace-1"
        assert err.context["issue_count"] == len(err.issues)
        assert "DAY_CALORIE_DEVIATION" in err.message

    def test_one_alert_per_critical_issue(self, calculator: PlanCalculator) -> None:
        sink = InMemoryAlertSink()
        gatekeeper = ValidationGatekeeper(alert_sink=sink, blocking=False)
        plan = _single_meal(calculator, _item("white rice", 400), _item("white rice", 450))

        result = gatekeeper.validate(plan, trace_id="trace-2")

        assert len(result.critical) == sink.events().count("validation_critical")
        assert all(a.trace_id == "trace-2" for a in sink.alerts)

    def test_warnings_do_not_alert(self, calculator: PlanCalculator) -> None:
        sink = InMemoryAlertSink()
        gatekeeper = ValidationGatekeeper(alert_sink=sink, blocking=False)
        gatekeeper.validate(_granola_day(calculator, 100, 100, 100))
        assert sink.alerts == []

    def test_to_response(self, calculator, soft_gatekeeper) -> None:
        response = soft_gatekeeper.validate(_granola_day(calculator, 100, 100, 100)).to_response()
        assert response["valid"] is True
        assert response["critical"] == []
        assert response["warnings"][0]["code"] == "DAY_CALORIE_DEVIATION"
        assert response["warnings"][0]["severity"] == "warning"

    def test_validate_totals_accepts_any_spelling(self, soft_gatekeeper) -> None:
        result = soft_gatekeeper.validate_totals({"calories": 1200, "p": 90}, TARGETS)
        assert result.codes(Severity.WARNING) == [IssueCode.DAY_CALORIE_DEVIATION]

    def test_validate_day_plan_is_soft_by_default(self, calculator: PlanCalculator) -> None:
        plan = _granola_day(calculator, 275, 250, 250)
        result = validate_day_plan(plan, reconciliation_factor=1.2)
        assert not result.is_valid
