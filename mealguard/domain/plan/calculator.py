"""
Plan calculator.

Computes grams, as-sold weight, oil attribution and macros for meal
items against one round of nutrition facts. The reconciliation solver
uses ``macros_for``; the final plan is built with ``plan_day``.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import structlog

from mealguard.domain.nutrition.macros import (
    DEFAULT_MACRO_TOLERANCE,
    NUTRITION_LOOKUP_FAILED,
    NUTRITION_NOT_FOUND,
    compute_item_macros,
)
from mealguard.domain.nutrition.models import ItemMacros, MacroTargets, NutritionFact
from mealguard.domain.plan.models import DayPlan, Meal, MealItem, PlannedItem, PlannedMeal
from mealguard.domain.shared.ports import IAlertSink
from mealguard.domain.transform.models import GramConversion, YieldResolution
from mealguard.domain.transform.oil import distribute_oil
from mealguard.domain.transform.units import normalize_to_grams
from mealguard.domain.transform.yields import YieldTable, to_as_sold

logger = structlog.get_logger(__name__)


class PlanCalculator:
    """
    Item and plan computation over a fixed set of facts.

    Example:
        >>> calc = PlanCalculator({"rice": rice_fact})
        >>> calc.macros_for(MealItem(key="rice", quantity_value=100, quantity_unit="g")).kcal
        130.0
    """

    def __init__(
        self,
        facts: Mapping[str, Optional[NutritionFact]],
        failed_keys: Sequence[str] = (),
        yield_table: Optional[YieldTable] = None,
        macro_tolerance: float = DEFAULT_MACRO_TOLERANCE,
        alert_sink: Optional[IAlertSink] = None,
        trace_id: Optional[str] = None,
    ) -> None:
        """
        Initialize calculator.

        Args:
            facts: normalized key -> fact (None when the source had no data)
            failed_keys: Keys whose lookup failed
            yield_table: Cooked yield table
            macro_tolerance: kcal/macro consistency tolerance
            alert_sink: Receives data-gap alerts while building the plan
            trace_id: Pipeline trace id for alert context
        """
        self.facts = facts
        self.failed_keys = frozenset(failed_keys)
        self.yield_table = yield_table or YieldTable()
        self.macro_tolerance = macro_tolerance
        self.alert_sink = alert_sink
        self.trace_id = trace_id
        self._memo: dict[tuple, ItemMacros] = {}

    def _missing_error(self, item: MealItem) -> str:
        if item.normalized_key in self.failed_keys:
            return NUTRITION_LOOKUP_FAILED
        return NUTRITION_NOT_FOUND

    def _weights(self, item: MealItem, alert: bool) -> tuple[GramConversion, YieldResolution]:
        conversion = normalize_to_grams(item)
        yield_resolution = to_as_sold(
            item,
            conversion.grams,
            item.effective_state,
            self.yield_table,
            alert_sink=self.alert_sink if alert else None,
            trace_id=self.trace_id,
        )
        return conversion, yield_resolution

    def _macros(self, item: MealItem, yield_resolution: YieldResolution) -> ItemMacros:
        return compute_item_macros(
            yield_resolution.grams_as_sold,
            self.facts.get(item.normalized_key),
            tolerance=self.macro_tolerance,
            grams_band=(yield_resolution.grams_as_sold_min, yield_resolution.grams_as_sold_max),
            missing_error=self._missing_error(item),
        )

    def macros_for(self, item: MealItem) -> ItemMacros:
        """Macros of ``item`` at its current quantity. No alerts."""
        memo_key = (
            item.key,
            item.normalized_key,
            item.quantity_value,
            item.quantity_unit,
            item.effective_state,
        )
        macros = self._memo.get(memo_key)
        if macros is None:
            _, yield_resolution = self._weights(item, alert=False)
            macros = self._macros(item, yield_resolution)
            self._memo[memo_key] = macros
        return macros

    def plan_meal(self, meal: Meal) -> PlannedMeal:
        """Compute every item of a meal, including absorbed oil."""
        weights = [self._weights(item, alert=True) for item in meal.items]
        absorbed = distribute_oil(
            meal.items,
            [conversion.grams for conversion, _ in weights],
            [yield_resolution.grams_as_sold for _, yield_resolution in weights],
        )

        planned = []
        for item, (conversion, yield_resolution), oil_g in zip(meal.items, weights, absorbed):
            planned.append(
                PlannedItem(
                    item=item,
                    conversion=conversion,
                    yield_resolution=yield_resolution,
                    macros=self._macros(item, yield_resolution),
                    absorbed_oil_g=oil_g,
                )
            )
        return PlannedMeal(name=meal.name, type=meal.type, items=planned)

    def plan_day(self, meals: Sequence[Meal], targets: MacroTargets) -> DayPlan:
        """Build the final day plan; totals are summed bottom-up."""
        plan = DayPlan(meals=[self.plan_meal(meal) for meal in meals], targets=targets)
        logger.debug(
            "Day plan computed",
            trace_id=self.trace_id,
            meals=len(plan.meals),
            kcal=plan.day_totals.kcal,
        )
        return plan
