"""
Ingredient state resolution models.

A resolution says in which physical state an ingredient quantity is
expressed (dry, raw, cooked, as packaged) and how it was cooked.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mealguard.domain.shared.value_objects import Confidence


class IngredientState(str, Enum):
    """Physical state the quantity refers to."""

    DRY = "dry"
    RAW = "raw"
    COOKED = "cooked"
    AS_PACK = "as_pack"


class CookingMethod(str, Enum):
    """Cooking method for cooked ingredients."""

    BOILED = "boiled"
    FRIED = "fried"
    BAKED = "baked"
    STEAMED = "steamed"
    GRILLED = "grilled"
    ROASTED = "roasted"
    SAUTEED = "sauteed"
    POACHED = "poached"
    BRAISED = "braised"


class IngredientCategory(str, Enum):
    """Rule category with its default purchase state."""

    GRAINS = "GRAINS"
    PROTEINS = "PROTEINS"
    DAIRY = "DAIRY"
    PRODUCE = "PRODUCE"
    PACKAGED = "PACKAGED"
    PREPARED = "PREPARED"
    CONDIMENTS = "CONDIMENTS"
    LEGUMES = "LEGUMES"
    NUTS_SEEDS = "NUTS_SEEDS"
    BEVERAGES = "BEVERAGES"

    @property
    def default_state(self) -> IngredientState:
        return _CATEGORY_DEFAULT_STATE[self]


_CATEGORY_DEFAULT_STATE = {
    IngredientCategory.GRAINS: IngredientState.DRY,
    IngredientCategory.PROTEINS: IngredientState.RAW,
    IngredientCategory.DAIRY: IngredientState.AS_PACK,
    IngredientCategory.PRODUCE: IngredientState.RAW,
    IngredientCategory.PACKAGED: IngredientState.AS_PACK,
    IngredientCategory.PREPARED: IngredientState.COOKED,
    IngredientCategory.CONDIMENTS: IngredientState.AS_PACK,
    IngredientCategory.LEGUMES: IngredientState.DRY,
    IngredientCategory.NUTS_SEEDS: IngredientState.AS_PACK,
    IngredientCategory.BEVERAGES: IngredientState.AS_PACK,
}


class StateRule(BaseModel):
    """One entry of the ordered rule table.

    Example:
        >>> rule = StateRule(
        ...     id="RICE_GENERIC",
        ...     pattern=r"\\brice\\b",
        ...     category=IngredientCategory.GRAINS,
        ...     state=IngredientState.DRY,
        ...     priority=206,
        ... )
        >>> assert rule.confidence == Confidence.HIGH
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable rule identifier")
    pattern: str = Field(..., description="Case-insensitive regex")
    category: IngredientCategory
    state: IngredientState
    method: Optional[CookingMethod] = None
    priority: int = Field(..., ge=0, description="Lower wins")
    confidence: Confidence = Confidence.HIGH


class StateResolution(BaseModel):
    """Resolved state of one ingredient key.

    Produced once per item and attached to it; never mutated.
    """

    model_config = ConfigDict(frozen=True)

    state: IngredientState
    method: Optional[CookingMethod] = None
    confidence: Confidence
    rule_id: str
    category: Optional[IngredientCategory] = None


class RuleMatch(BaseModel):
    """Debug view of a matching rule."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    priority: int
    category: IngredientCategory
    state: IngredientState
    method: Optional[CookingMethod] = None
    is_winner: bool = False
