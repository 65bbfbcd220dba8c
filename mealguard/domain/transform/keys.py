"""
Ingredient key normalisation.

Turns human-readable ingredient names into snake_case lookup keys.
"""

import re

SYNONYMS: dict[str, str] = {
    # Dairy
    "greek_yogurt": "yogurt",
    "plain_yogurt": "yogurt",
    "natural_yogurt": "yogurt",
    "salted_butter": "butter",
    "unsalted_butter": "butter",
    "full_cream_milk": "whole_milk",
    "lactose_free_milk": "milk",
    "cheddar_cheese": "cheddar",
    "tasty_cheese": "cheddar",
    "mozzarella_cheese": "mozzarella",
    "parmesan_cheese": "parmesan",
    # Meat
    "beef_mince": "ground_beef",
    "lean_beef_mince": "ground_beef",
    "minced_beef": "ground_beef",
    "lean_mince": "ground_beef",
    "chicken_drumstick": "chicken_leg",
    "whole_chicken": "chicken",
    "bacon_rasher": "bacon",
    "short_cut_bacon": "bacon",
    "large_egg": "egg",
    # Grains
    "jasmine_rice": "white_rice",
    "basmati_rice": "white_rice",
    "long_grain_rice": "white_rice",
    "spaghetti": "pasta",
    "penne": "pasta",
    "fusilli": "pasta",
    "macaroni": "pasta",
    "linguine": "pasta",
    "fettuccine": "pasta",
    "oats": "rolled_oats",
    "oat": "rolled_oats",
    "rolled_oat": "rolled_oats",
    "porridge_oat": "rolled_oats",
    "wholemeal_bread": "whole_wheat_bread",
    "multigrain_bread": "whole_grain_bread",
    "sourdough": "sourdough_bread",
    # Oils and sweeteners
    "extra_virgin_olive_oil": "olive_oil",
    "white_sugar": "sugar",
    "caster_sugar": "sugar",
    "brown_sugar": "sugar",
    "pure_honey": "honey",
    # Produce
    "cherry_tomato": "tomato",
    "iceberg_lettuce": "lettuce",
    "baby_spinach": "spinach",
    "brown_onion": "onion",
    "red_onion": "onion",
    "green_apple": "apple",
    "red_apple": "apple",
    # Misc
    "whey_protein": "whey_protein_isolate",
    "protein_powder": "whey_protein_isolate",
    "sparkling_water": "soda_water",
}

STRIP_PREFIXES = (
    "no_added_hormone_",
    "free_range_",
    "organic_",
    "premium_",
    "fresh_",
    "gourmet_",
    "traditional_",
)

STRIP_SUFFIXES = ("_value_pack", "_family_pack", "_multipack", "_pack", "_bulk")

QUALITY_WORDS = frozenset(
    {
        "premium",
        "organic",
        "fresh",
        "natural",
        "pure",
        "traditional",
        "gourmet",
        "artisan",
        "local",
        "farm",
        "extra",
        "super",
        "ultra",
        "best",
        "quality",
        "choice",
        "select",
        "virgin",
        "refined",
        "unrefined",
    }
)

PLURAL_EXCEPTIONS = frozenset({"oats", "hummus", "couscous", "asparagus", "lentils"})


def _snake_case(text: str) -> str:
    key = re.sub(r"[\s&/\-]+", "_", text)
    key = re.sub(r"[^a-z0-9_]", "", key)
    key = re.sub(r"__+", "_", key)
    return key.strip("_")


def _singular(key: str) -> str:
    if key in PLURAL_EXCEPTIONS:
        return key
    if key.endswith("ies") and len(key) > 3:
        return key[:-3] + "y"
    if key.endswith("oes") and len(key) > 3:
        return key[:-2]
    if key.endswith("s") and not key.endswith("ss") and len(key) > 2:
        return key[:-1]
    return key


def normalize_key(name: object) -> str:
    """Normalize an ingredient name into a snake_case lookup key.

    Args:
        name: Ingredient name as written

    Returns:
        Lookup key, ``"unknown"`` for empty or non-string input

    Example:
        >>> normalize_key("Greek Yoghurt")
        'yogurt'
        >>> normalize_key("Cherry Tomatoes")
        'tomato'
    """
    if not isinstance(name, str) or not name.strip():
        return "unknown"

    key = name.lower().strip()
    key = re.sub(r"%|\bpercent\b", "pct", key)
    key = key.replace("yoghurt", "yogurt")
    key = _snake_case(key)

    for prefix in STRIP_PREFIXES:
        if key.startswith(prefix):
            key = key[len(prefix):]
            break

    for suffix in STRIP_SUFFIXES:
        if key.endswith(suffix):
            key = key[: -len(suffix)]
            break

    parts = key.split("_")
    kept = [part for part in parts if part not in QUALITY_WORDS]
    if kept and len(kept) < len(parts):
        key = "_".join(kept)

    key = SYNONYMS.get(key, key)
    key = _singular(key)
    key = SYNONYMS.get(key, key)

    return re.sub(r"__+", "_", key).strip("_") or "unknown"


def fuzzy_candidates(normalized_key: str) -> list[str]:
    """Alternative keys to try when an exact lookup misses, best first."""
    candidates = [normalized_key]
    parts = normalized_key.split("_")
    if len(parts) > 1:
        candidates.append(parts[-1])
        candidates.append(parts[0])
    without_numbers = re.sub(r"_\d+(_star)?", "", normalized_key)
    if without_numbers != normalized_key:
        candidates.append(without_numbers)
    return list(dict.fromkeys(candidates))
