"""
Nutrition domain models.

Canonical macro field names are ``kcal``, ``protein``, ``fat`` and
``carbs``. Alternate spellings only exist in ``adapters``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


class NutritionFact(BaseModel):
    """Per-100g nutrition data for one normalized key.

    Example:
        >>> fact = NutritionFact(
        ...     kcal_per_100g=165.0,
        ...     protein_per_100g=31.0,
        ...     fat_per_100g=3.6,
        ...     carbs_per_100g=0.0,
        ...     source="usda",
        ... )
        >>> assert not fact.is_fallback
    """

    model_config = ConfigDict(frozen=True)

    kcal_per_100g: float = Field(..., ge=0)
    protein_per_100g: float = Field(..., ge=0)
    fat_per_100g: float = Field(..., ge=0)
    carbs_per_100g: float = Field(..., ge=0)
    source: str = Field(default="unknown", description="Origin of the data")
    is_fallback: bool = Field(default=False, description="Category or estimated data")


class ItemMacros(BaseModel):
    """Macros of one item at its as-sold weight.

    When ``flagged`` is set, ``kcal`` holds the macro-derived value and
    ``reported_kcal`` the value the fact table produced.
    """

    model_config = ConfigDict(frozen=True)

    kcal: float
    protein: float
    fat: float
    carbs: float
    flagged: bool = False
    source: str = "unknown"
    is_fallback: bool = False
    reported_kcal: Optional[float] = None
    deviation_pct: Optional[float] = None
    kcal_min: Optional[float] = None
    kcal_max: Optional[float] = None
    error: Optional[str] = None

    @property
    def protein_kcal(self) -> float:
        return self.protein * 4

    @property
    def is_protein_dominant(self) -> bool:
        """Protein energy is at least the larger of carb and fat energy."""
        return self.protein * 4 >= max(self.carbs * 4, self.fat * 9)

    @classmethod
    def zero(cls, error: Optional[str] = None, source: str = "missing") -> ItemMacros:
        return cls(
            kcal=0.0,
            protein=0.0,
            fat=0.0,
            carbs=0.0,
            source=source,
            is_fallback=True,
            error=error,
        )


class MacroTotals(BaseModel):
    """Summed macros of a meal or a day."""

    model_config = ConfigDict(frozen=True)

    kcal: float = 0.0
    protein: float = 0.0
    fat: float = 0.0
    carbs: float = 0.0

    @classmethod
    def sum_of(cls, macros: Iterable[ItemMacros | MacroTotals]) -> MacroTotals:
        kcal = protein = fat = carbs = 0.0
        for m in macros:
            kcal += m.kcal
            protein += m.protein
            fat += m.fat
            carbs += m.carbs
        return cls(
            kcal=round(kcal, 1),
            protein=round(protein, 2),
            fat=round(fat, 2),
            carbs=round(carbs, 2),
        )


class MacroTargets(BaseModel):
    """Daily macro targets.

    Example:
        >>> targets = MacroTargets(kcal=2000, protein=150)
        >>> assert targets.fat == 0
    """

    model_config = ConfigDict(frozen=True)

    kcal: float = Field(..., gt=0, description="Daily calorie target")
    protein: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)

    def per_meal(self, meal_count: int) -> MacroTargets:
        """Split targets evenly across ``meal_count`` meals."""
        n = max(meal_count, 1)
        return MacroTargets(
            kcal=self.kcal / n,
            protein=self.protein / n,
            fat=self.fat / n,
            carbs=self.carbs / n,
        )
