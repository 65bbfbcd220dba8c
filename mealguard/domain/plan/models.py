"""
Meal plan domain models.

``MealItem``/``Meal`` are the parsed proposal; ``PlannedItem``/
``PlannedMeal``/``DayPlan`` are the computed plan handed back to callers.
Every derived record (resolution, grams, yield, macros) is attached to
the item it belongs to rather than substituted for it.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from mealguard.domain.nutrition.models import ItemMacros, MacroTargets, MacroTotals
from mealguard.domain.resolution.models import CookingMethod, IngredientState, StateResolution
from mealguard.domain.transform.keys import normalize_key
from mealguard.domain.transform.models import GramConversion, QuantityUnit, YieldResolution


class MealItem(BaseModel):
    """One ingredient line of a meal.

    Example:
        >>> item = MealItem(
        ...     key="chicken breast",
        ...     quantity_value=200,
        ...     quantity_unit=QuantityUnit.G,
        ...     state_hint=IngredientState.COOKED,
        ... )
        >>> assert item.normalized_key == "chicken_breast"
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Ingredient key as proposed")
    normalized_key: str = Field(default="", description="Lookup key")
    quantity_value: float = Field(..., gt=0, description="Quantity in quantity_unit")
    quantity_unit: QuantityUnit
    state_hint: Optional[IngredientState] = None
    method_hint: Optional[CookingMethod] = None
    resolution: Optional[StateResolution] = None

    @field_validator("key")
    @classmethod
    def key_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Item key cannot be empty or whitespace")
        return v.strip()

    @field_validator("quantity_value")
    @classmethod
    def quantity_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Quantity must be finite")
        return v

    @model_validator(mode="before")
    @classmethod
    def fill_normalized_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("normalized_key"):
            key = data.get("key")
            if isinstance(key, str):
                data = {**data, "normalized_key": normalize_key(key)}
        return data

    @property
    def effective_state(self) -> IngredientState:
        """State used for yield conversion.

        A cooking keyword in the key wins, then a valid hint, then the
        resolved rule state.
        """
        resolution = self.resolution
        if resolution is not None and resolution.rule_id.startswith("COOKING_KEYWORD_"):
            return resolution.state
        if self.state_hint is not None:
            return self.state_hint
        if resolution is not None:
            return resolution.state
        return IngredientState.AS_PACK

    @property
    def effective_method(self) -> Optional[CookingMethod]:
        if self.resolution is not None and self.resolution.method is not None:
            return self.resolution.method
        return self.method_hint

    def with_quantity(self, quantity_value: float) -> MealItem:
        return self.model_copy(update={"quantity_value": quantity_value})


class Meal(BaseModel):
    """A named meal made of items. May be empty; emptiness is reported by validation."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    items: list[MealItem] = Field(default_factory=list)


class PlannedItem(BaseModel):
    """A meal item with everything computed for it."""

    model_config = ConfigDict(frozen=True)

    item: MealItem
    conversion: GramConversion
    yield_resolution: YieldResolution
    macros: ItemMacros
    absorbed_oil_g: float = 0.0

    @property
    def key(self) -> str:
        return self.item.key


class PlannedMeal(BaseModel):
    """Computed meal with bottom-up totals."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    items: list[PlannedItem] = Field(default_factory=list)

    @property
    def totals(self) -> MacroTotals:
        return MacroTotals.sum_of(planned.macros for planned in self.items)


class DayPlan(BaseModel):
    """Final day plan.

    ``day_totals`` is always recomputed from the meals and never taken
    from input.
    """

    model_config = ConfigDict(frozen=True)

    meals: list[PlannedMeal]
    targets: MacroTargets

    @computed_field  # type: ignore[prop-decorator]
    @property
    def day_totals(self) -> MacroTotals:
        return MacroTotals.sum_of(meal.totals for meal in self.meals)

    @property
    def items(self) -> list[PlannedItem]:
        return [planned for meal in self.meals for planned in meal.items]
