"""
Pipeline result models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mealguard.application.nutrition.lookup_service import LookupStats
from mealguard.domain.nutrition.adapters import to_compact, totals_to_legacy
from mealguard.domain.nutrition.models import MacroTotals
from mealguard.domain.plan.models import DayPlan, PlannedItem, PlannedMeal
from mealguard.domain.plan.proposal import Correction
from mealguard.domain.reconciliation.models import ReconciliationOutcome
from mealguard.domain.validation.models import ValidationResult


class PipelineStats(BaseModel):
    """Diagnostics for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    durations_ms: dict[str, float] = Field(default_factory=dict)
    attempts: int = 1
    corrections: list[Correction] = Field(default_factory=list)
    state_disagreements: int = 0
    lookup: LookupStats = Field(default_factory=LookupStats)
    item_count: int = 0
    flagged_count: int = 0
    flagged_pct: float = 0.0
    fallback_count: int = 0
    fallback_pct: float = 0.0
    reconciliation: list[ReconciliationOutcome] = Field(default_factory=list)


def _item_response(planned: PlannedItem) -> dict[str, Any]:
    item = planned.item
    resolution = item.resolution
    return {
        "key": item.key,
        "normalized_key": item.normalized_key,
        "qty_value": item.quantity_value,
        "qty_unit": item.quantity_unit.value,
        "state": item.effective_state.value,
        "method": item.effective_method.value if item.effective_method else None,
        "rule_id": resolution.rule_id if resolution else None,
        "grams": planned.conversion.grams,
        "grams_as_sold": planned.yield_resolution.grams_as_sold,
        "absorbed_oil_g": planned.absorbed_oil_g,
        "macros": to_compact(planned.macros),
        "flagged": planned.macros.flagged,
        "source": planned.macros.source,
    }


def _meal_response(meal: PlannedMeal) -> dict[str, Any]:
    return {
        "name": meal.name,
        "type": meal.type,
        "items": [_item_response(planned) for planned in meal.items],
        "totals": to_compact(meal.totals),
    }


class PipelineResult(BaseModel):
    """Validated day plan plus diagnostics.

    Example:
        >>> result = await execute_pipeline(raw_meals, targets, retry_fn, lookup=lookup)
        >>> result.day_totals.kcal
        1987.5
    """

    model_config = ConfigDict(frozen=True)

    trace_id: str
    plan: DayPlan
    validation: ValidationResult
    stats: PipelineStats

    @property
    def meals(self) -> list[PlannedMeal]:
        return self.plan.meals

    @property
    def day_totals(self) -> MacroTotals:
        return self.plan.day_totals

    def to_response(self) -> dict[str, Any]:
        """Plain-dict form: ``{trace_id, meals, day_totals, validation, stats}``."""
        return {
            "trace_id": self.trace_id,
            "meals": [_meal_response(meal) for meal in self.meals],
            "day_totals": totals_to_legacy(self.day_totals),
            "validation": self.validation.to_response(),
            "stats": self.stats.model_dump(mode="json"),
        }
