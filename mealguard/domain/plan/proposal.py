"""
Meal proposal parsing.

Turns generated meal-plan output into ``Meal`` models. Known, harmless
deviations are auto-corrected in a fixed order and every correction is
recorded; everything else is collected and reported at once through
``MalformedProposalError`` so the caller can retry generation.

Correction order per item:
1. string quantity to number
2. size descriptor unit ("large") to grams
3. unit alias to canonical unit
4. weight units to g, volume units to ml
5. state hint synonyms
6. method hint synonyms
7. g/ml quantity clamps
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from mealguard.domain.plan.models import Meal, MealItem
from mealguard.domain.resolution.models import CookingMethod, IngredientState
from mealguard.domain.shared.errors import MalformedProposalError
from mealguard.domain.transform.models import QuantityUnit, UnitKind
from mealguard.domain.transform.units import (
    GRAMS_PER_WEIGHT_UNIT,
    SIZE_DESCRIPTORS,
    count_weight,
    parse_size,
    parse_unit,
    to_millilitres,
)

logger = structlog.get_logger(__name__)

STATE_SYNONYMS: dict[str, IngredientState] = {
    "dried": IngredientState.DRY,
    "uncooked": IngredientState.RAW,
    "fresh": IngredientState.RAW,
    "packaged": IngredientState.AS_PACK,
    "packed": IngredientState.AS_PACK,
    "as-pack": IngredientState.AS_PACK,
    "aspack": IngredientState.AS_PACK,
    "as pack": IngredientState.AS_PACK,
}

METHOD_SYNONYMS: dict[str, CookingMethod] = {
    "sautéed": CookingMethod.SAUTEED,
    "pan fried": CookingMethod.FRIED,
    "pan-fried": CookingMethod.FRIED,
    "stir fried": CookingMethod.FRIED,
    "stir-fried": CookingMethod.FRIED,
    "deep fried": CookingMethod.FRIED,
    "deep-fried": CookingMethod.FRIED,
    "bbq": CookingMethod.GRILLED,
    "barbecued": CookingMethod.GRILLED,
    "chargrilled": CookingMethod.GRILLED,
}

# (min, max) per canonical unit
QUANTITY_BOUNDS: dict[QuantityUnit, tuple[float, float]] = {
    QuantityUnit.G: (1.0, 2000.0),
    QuantityUnit.ML: (5.0, 1000.0),
}


class Correction(BaseModel):
    """One automatic fix applied to generated output."""

    model_config = ConfigDict(frozen=True)

    field: str
    original: Any = None
    corrected: Any = None
    rule: str
    path: str = ""


class ParsedProposal(BaseModel):
    model_config = ConfigDict(frozen=True)

    meals: list[Meal]
    corrections: list[Correction] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════
# ITEM CORRECTIONS
# ═══════════════════════════════════════════════════════════


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    """Finite and representable as a float; JSON ints can be arbitrarily large."""
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _correct_quantity_type(item: dict[str, Any]) -> Optional[Correction]:
    value = item.get("qty_value")
    if not isinstance(value, str):
        return None
    match = re.match(r"\s*([-+]?\d*\.?\d+)", value)
    if not match:
        return None
    parsed = float(match.group(1))
    item["qty_value"] = parsed
    return Correction(field="qty_value", original=value, corrected=parsed, rule="STRING_TO_NUMBER")


def _split_size_unit(raw_unit: str) -> tuple[Optional[str], str]:
    """Split "large eggs" into ("large", "eggs")."""
    text = " ".join(raw_unit.lower().split())
    size = parse_size(text)
    if size is None:
        return None, text
    for word in SIZE_DESCRIPTORS:
        text = re.sub(rf"\b{word}\b", " ", text)
    return size, " ".join(text.split())


def _correct_size_descriptor(item: dict[str, Any]) -> Optional[Correction]:
    raw_unit = item.get("qty_unit")
    value = item.get("qty_value")
    if not isinstance(raw_unit, str) or not _is_number(value) or not _is_finite(value):
        return None
    size, rest = _split_size_unit(raw_unit)
    if size is None:
        return None
    unit = parse_unit(rest) if rest else QuantityUnit.PIECE
    if unit is None or unit.kind != UnitKind.COUNT:
        return None
    per_unit = count_weight(str(item.get("key", "")), unit, size)
    grams = round(value * per_unit.grams, 2)
    item["qty_value"] = grams
    item["qty_unit"] = QuantityUnit.G.value
    return Correction(
        field="qty_unit",
        original=f"{value:g} {raw_unit}",
        corrected=f"{grams:g}g",
        rule="SIZE_DESCRIPTOR_TO_GRAMS",
    )


def _correct_unit_alias(item: dict[str, Any]) -> Optional[Correction]:
    raw_unit = item.get("qty_unit")
    unit = parse_unit(raw_unit)
    if unit is None or unit.value == raw_unit:
        return None
    item["qty_unit"] = unit.value
    return Correction(
        field="qty_unit", original=raw_unit, corrected=unit.value, rule="UNIT_NORMALIZATION"
    )


def _canonicalize_unit(item: dict[str, Any]) -> Optional[Correction]:
    unit = parse_unit(item.get("qty_unit"))
    value = item.get("qty_value")
    if unit is None or not _is_number(value) or not _is_finite(value) or value <= 0:
        return None
    if unit.kind == UnitKind.WEIGHT and unit != QuantityUnit.G:
        converted, target = value * GRAMS_PER_WEIGHT_UNIT[unit], QuantityUnit.G
    elif unit.kind == UnitKind.VOLUME and unit != QuantityUnit.ML:
        converted, target = to_millilitres(value, unit), QuantityUnit.ML
    else:
        return None
    converted = round(converted, 2)
    item["qty_value"] = converted
    item["qty_unit"] = target.value
    return Correction(
        field="qty_unit",
        original=f"{value:g} {unit.value}",
        corrected=f"{converted:g} {target.value}",
        rule="UNIT_CANONICALIZATION",
    )


def _correct_hint(
    item: dict[str, Any],
    field: str,
    synonyms: Mapping[str, Any],
    enum_cls: type,
    rule: str,
) -> Optional[Correction]:
    raw = item.get(field)
    if raw is None:
        return None
    if raw == "":
        item[field] = None
        return None

    mapped = None
    if isinstance(raw, str):
        text = raw.lower().strip()
        mapped = synonyms.get(text)
        if mapped is None:
            try:
                mapped = enum_cls(text)
            except ValueError:
                mapped = None

    if mapped is None:
        # Unknown hints defer to the state resolver
        item[field] = None
        return Correction(field=field, original=raw, corrected=None, rule=f"INVALID_{rule}_CLEARED")
    if mapped.value == raw:
        return None
    item[field] = mapped.value
    return Correction(
        field=field, original=raw, corrected=mapped.value, rule=f"{rule}_NORMALIZATION"
    )


def _correct_state_hint(item: dict[str, Any]) -> Optional[Correction]:
    return _correct_hint(item, "state_hint", STATE_SYNONYMS, IngredientState, "STATE_HINT")


def _correct_method_hint(item: dict[str, Any]) -> Optional[Correction]:
    return _correct_hint(item, "method_hint", METHOD_SYNONYMS, CookingMethod, "METHOD_HINT")


def _clamp_quantity(item: dict[str, Any]) -> Optional[Correction]:
    unit = parse_unit(item.get("qty_unit"))
    value = item.get("qty_value")
    if unit not in QUANTITY_BOUNDS or not _is_number(value):
        return None
    if not _is_finite(value) or value <= 0:
        return None
    low, high = QUANTITY_BOUNDS[unit]
    clamped = min(max(value, low), high)
    if clamped == value:
        return None
    item["qty_value"] = clamped
    return Correction(
        field="qty_value", original=value, corrected=clamped, rule="QUANTITY_BOUNDS_CLAMPED"
    )


ITEM_CORRECTORS: tuple[Callable[[dict[str, Any]], Optional[Correction]], ...] = (
    _correct_quantity_type,
    _correct_size_descriptor,
    _correct_unit_alias,
    _canonicalize_unit,
    _correct_state_hint,
    _correct_method_hint,
    _clamp_quantity,
)

_FIELD_ALIASES = (
    ("qty_value", ("quantity", "qty")),
    ("qty_unit", ("unit",)),
    ("state_hint", ("stateHint",)),
    ("method_hint", ("methodHint",)),
)


def autocorrect_item(
    raw: Mapping[str, Any], path: str = ""
) -> tuple[dict[str, Any], list[Correction]]:
    """
    Apply the correction chain to one raw item.

    Accepts ``quantity``/``unit`` and camelCase hint spellings.

    Returns:
        (corrected item dict, corrections applied)
    """
    item = dict(raw)
    for canonical, aliases in _FIELD_ALIASES:
        if canonical not in item:
            for alias in aliases:
                if alias in item:
                    item[canonical] = item.pop(alias)
                    break

    corrections = []
    for corrector in ITEM_CORRECTORS:
        correction = corrector(item)
        if correction is not None:
            corrections.append(correction.model_copy(update={"path": path}))
    return item, corrections


# ═══════════════════════════════════════════════════════════
# STRUCTURE
# ═══════════════════════════════════════════════════════════


def _item_errors(item: Mapping[str, Any], path: str) -> list[str]:
    errors = []
    key = item.get("key")
    if not isinstance(key, str) or not key.strip():
        errors.append(f"{path}.key: missing or empty")

    value = item.get("qty_value")
    if not _is_number(value):
        errors.append(f"{path}.qty_value: expected a number, got {value!r}")
    elif not _is_finite(value):
        errors.append(f"{path}.qty_value: must be finite")
    elif value <= 0:
        errors.append(f"{path}.qty_value: must be positive, got {value}")

    raw_unit = item.get("qty_unit")
    if not isinstance(raw_unit, str) or not raw_unit.strip():
        errors.append(f"{path}.qty_unit: missing")
    elif parse_unit(raw_unit) is None:
        errors.append(f"{path}.qty_unit: unknown unit {raw_unit!r}")
    return errors


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedProposalError([f"invalid UTF-8: {e.reason} at position {e.start}"]) from e
    if isinstance(raw, str):
        text = raw.strip()
        fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, re.DOTALL)
        if fenced:
            text = fenced.group(1)
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedProposalError([f"invalid JSON: {e.msg} at position {e.pos}"]) from e
        except ValueError as e:
            # Integer literals past the interpreter digit limit
            raise MalformedProposalError([f"invalid JSON: {e}"]) from e
    if isinstance(raw, Mapping):
        if "meals" not in raw:
            raise MalformedProposalError(["expected a list of meals or an object with 'meals'"])
        raw = raw["meals"]
    if not isinstance(raw, (list, tuple)):
        raise MalformedProposalError([f"meals: expected a list, got {type(raw).__name__}"])
    return raw


def parse_proposal(raw: Any) -> ParsedProposal:
    """
    Parse generated meal-plan output.

    Args:
        raw: JSON text, a ``{"meals": [...]}`` mapping or a list of meals

    Returns:
        ParsedProposal with meals and the corrections applied

    Raises:
        MalformedProposalError: Listing every error found

    Example:
        >>> parsed = parse_proposal(
        ...     '[{"type": "lunch", "items": '
        ...     '[{"key": "rice", "qty_value": "1", "qty_unit": "cups", "stateHint": "cooked"}]}]'
        ... )
        >>> parsed.meals[0].items[0].quantity_unit
        <QuantityUnit.ML: 'ml'>
    """
    raw_meals = _decode(raw)
    if not raw_meals:
        raise MalformedProposalError(["meals: at least one meal is required"])

    errors: list[str] = []
    corrections: list[Correction] = []
    meals: list[Meal] = []

    for meal_index, raw_meal in enumerate(raw_meals):
        meal_path = f"meals[{meal_index}]"
        if not isinstance(raw_meal, Mapping):
            errors.append(f"{meal_path}: expected an object, got {type(raw_meal).__name__}")
            continue

        meal_type = raw_meal.get("type")
        if not isinstance(meal_type, str) or not meal_type.strip():
            errors.append(f"{meal_path}.type: missing or empty")
            continue
        meal_type = meal_type.strip().lower()
        name = raw_meal.get("name")
        if not isinstance(name, str) or not name.strip():
            name = meal_type.replace("_", " ").title()

        raw_items = raw_meal.get("items")
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, (list, tuple)):
            errors.append(f"{meal_path}.items: expected a list, got {type(raw_items).__name__}")
            continue

        items: list[MealItem] = []
        for item_index, raw_item in enumerate(raw_items):
            item_path = f"{meal_path}.items[{item_index}]"
            if not isinstance(raw_item, Mapping):
                errors.append(f"{item_path}: expected an object, got {type(raw_item).__name__}")
                continue
            item, item_corrections = autocorrect_item(raw_item, item_path)
            item_errors = _item_errors(item, item_path)
            if item_errors:
                errors.extend(item_errors)
                continue
            corrections.extend(item_corrections)
            items.append(
                MealItem(
                    key=item["key"],
                    quantity_value=float(item["qty_value"]),
                    quantity_unit=parse_unit(item["qty_unit"]),
                    state_hint=item.get("state_hint"),
                    method_hint=item.get("method_hint"),
                )
            )

        meals.append(Meal(name=name.strip(), type=meal_type, items=items))

    if errors:
        logger.warning("Proposal rejected", error_count=len(errors), first_error=errors[0])
        raise MalformedProposalError(errors)

    if corrections:
        logger.info(
            "Proposal auto-corrected",
            corrections=len(corrections),
            rules=sorted({c.rule for c in corrections}),
        )
    return ParsedProposal(meals=meals, corrections=corrections)
