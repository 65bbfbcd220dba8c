"""
Macro field adapters.

The domain uses ``kcal/protein/fat/carbs`` everywhere. Consumers that
speak the short ``p/f/c`` form or expect a ``calories`` alias go through
these functions and nowhere else.
"""

from __future__ import annotations

from typing import Any, Mapping

from mealguard.domain.nutrition.models import ItemMacros, MacroTotals


def to_compact(macros: ItemMacros | MacroTotals) -> dict[str, float]:
    """Short-name form: ``{"kcal", "p", "f", "c"}``."""
    return {"kcal": macros.kcal, "p": macros.protein, "f": macros.fat, "c": macros.carbs}


def totals_to_legacy(totals: MacroTotals) -> dict[str, float]:
    """Long-name form with a ``calories`` alias for ``kcal``."""
    return {
        "kcal": totals.kcal,
        "calories": totals.kcal,
        "protein": totals.protein,
        "fat": totals.fat,
        "carbs": totals.carbs,
    }


def totals_from_mapping(data: Mapping[str, Any]) -> MacroTotals:
    """Read totals written in any of the supported field spellings.

    Example:
        >>> totals_from_mapping({"calories": 1800, "p": 120}).protein
        120.0
    """

    def pick(*names: str) -> float:
        for name in names:
            value = data.get(name)
            if value is not None:
                return float(value)
        return 0.0

    return MacroTotals(
        kcal=pick("kcal", "calories"),
        protein=pick("protein", "p"),
        fat=pick("fat", "f"),
        carbs=pick("carbs", "c"),
    )
