"""
Ingredient state rule table.

Pure data. Rules are evaluated in ascending priority and the first match
wins, so compound names (``goat milk``, ``fried rice``) sit in the 100
range ahead of the generic single-word rules they would otherwise fall
into. Patterns are case-insensitive and run against a lowercased key with
underscores turned into spaces.
"""

from typing import Optional

from mealguard.domain.resolution.models import (
    CookingMethod,
    IngredientCategory,
    IngredientState,
    StateRule,
)
from mealguard.domain.shared.value_objects import Confidence

C = IngredientCategory
S = IngredientState
M = CookingMethod


def _rule(
    rule_id: str,
    pattern: str,
    category: IngredientCategory,
    priority: int,
    state: Optional[IngredientState] = None,
    method: Optional[CookingMethod] = None,
    confidence: Confidence = Confidence.HIGH,
) -> StateRule:
    return StateRule(
        id=rule_id,
        pattern=pattern,
        category=category,
        state=state or category.default_state,
        method=method,
        priority=priority,
        confidence=confidence,
    )


# Multi-word keywords come before the words they end with.
COOKING_KEYWORDS: tuple[tuple[str, Optional[CookingMethod]], ...] = (
    ("hard-boiled", M.BOILED),
    ("soft-boiled", M.BOILED),
    ("pan-fried", M.FRIED),
    ("stir-fried", M.FRIED),
    ("deep-fried", M.FRIED),
    ("cooked", None),
    ("fried", M.FRIED),
    ("baked", M.BAKED),
    ("steamed", M.STEAMED),
    ("boiled", M.BOILED),
    ("grilled", M.GRILLED),
    ("roasted", M.ROASTED),
    ("sauteed", M.SAUTEED),
    ("sautéed", M.SAUTEED),
    ("poached", M.POACHED),
    ("braised", M.BRAISED),
    ("toasted", M.BAKED),
    ("charred", M.GRILLED),
    ("caramelized", M.SAUTEED),
    ("scrambled", M.FRIED),
)


STATE_RULES: tuple[StateRule, ...] = (
    # Compound overrides
    _rule("COMPOUND_FRIED_RICE", r"fried\s*rice", C.PREPARED, 100, method=M.FRIED),
    _rule("COMPOUND_RICE_PAPER", r"rice\s*paper", C.PACKAGED, 101),
    _rule("COMPOUND_RICE_NOODLES", r"rice\s*noodle", C.GRAINS, 102),
    _rule("COMPOUND_RICE_CRACKER", r"rice\s*cracker", C.PACKAGED, 103),
    _rule("COMPOUND_RICE_CAKE", r"rice\s*cake", C.PACKAGED, 104),
    _rule("COMPOUND_RICE_PUDDING", r"rice\s*pudding", C.PREPARED, 105),
    _rule("COMPOUND_RICE_MILK", r"rice\s*milk", C.BEVERAGES, 106),
    _rule("COMPOUND_GOAT_CHEESE", r"goat'?s?\s*cheese", C.DAIRY, 110),
    _rule("COMPOUND_GOAT_MILK", r"goat'?s?\s*milk", C.DAIRY, 111),
    _rule("COMPOUND_OAT_MILK", r"\boat\s*milk", C.BEVERAGES, 112),
    _rule("COMPOUND_PEANUT_BUTTER", r"peanut\s*butter", C.NUTS_SEEDS, 115),
    _rule("COMPOUND_ALMOND_BUTTER", r"almond\s*butter", C.NUTS_SEEDS, 116),
    _rule("COMPOUND_COCONUT_MILK", r"coconut\s*milk", C.PACKAGED, 117),
    _rule("COMPOUND_COCONUT_CREAM", r"coconut\s*cream", C.PACKAGED, 118),
    _rule("COMPOUND_COCONUT_OIL", r"coconut\s*oil", C.CONDIMENTS, 119),
    _rule("COMPOUND_OLIVE_OIL", r"olive\s*oil", C.CONDIMENTS, 120),
    _rule("COMPOUND_EGG_WHITE", r"egg\s*white", C.PROTEINS, 125),
    _rule("COMPOUND_EGG_YOLK", r"egg\s*yolk", C.PROTEINS, 126),
    _rule(
        "COMPOUND_CANNED_BEANS",
        r"canned\s*(kidney|black|pinto|navy|cannellini|butter)?\s*beans?",
        C.PACKAGED,
        130,
    ),
    _rule("COMPOUND_CANNED_TUNA", r"canned\s*tuna|tuna\s*in\s*(oil|water|brine)", C.PACKAGED, 131),
    _rule("COMPOUND_CANNED_SALMON", r"canned\s*salmon", C.PACKAGED, 132),
    _rule("COMPOUND_TOMATO_PASTE", r"tomato\s*paste", C.PACKAGED, 135),
    _rule("COMPOUND_TOMATO_SAUCE", r"tomato\s*sauce", C.PACKAGED, 136),
    _rule(
        "COMPOUND_MINCED_MEAT",
        r"minced?\s*(beef|pork|lamb|chicken|turkey)|ground\s*(beef|pork|lamb|chicken|turkey)",
        C.PROTEINS,
        140,
    ),
    _rule("COMPOUND_SMOKED_SALMON", r"smoked\s*salmon|\blox\b", C.PREPARED, 145),
    _rule(
        "COMPOUND_DELI_MEAT",
        r"deli\s*(meat|turkey|ham|chicken)|sliced\s*(ham|turkey|chicken|salami|bologna)",
        C.PREPARED,
        146,
    ),
    _rule("COMPOUND_BACON", r"^bacon$|rashers?|streaky\s*bacon", C.PROTEINS, 147),
    _rule("COMPOUND_INSTANT_NOODLES", r"instant\s*noodles?|ramen\s*noodles?", C.PACKAGED, 150),
    _rule(
        "COMPOUND_BREAD",
        r"^bread$|sliced\s*bread|sandwich\s*bread|sourdough|ciabatta|baguette|focaccia",
        C.PREPARED,
        155,
        method=M.BAKED,
    ),
    _rule("COMPOUND_TORTILLA", r"tortilla|\bwraps?\b|flatbread|pita|naan", C.PREPARED, 156),
    # Grains
    _rule("GRAINS_RICE_JASMINE", r"jasmine\s*rice", C.GRAINS, 200),
    _rule("GRAINS_RICE_BROWN", r"brown\s*rice", C.GRAINS, 201),
    _rule("GRAINS_RICE_BASMATI", r"basmati\s*rice", C.GRAINS, 202),
    _rule("GRAINS_RICE_WILD", r"wild\s*rice", C.GRAINS, 203),
    _rule("GRAINS_RICE_ARBORIO", r"arborio\s*rice|risotto\s*rice", C.GRAINS, 204),
    _rule("GRAINS_RICE_GENERIC", r"^rice$|white\s*rice", C.GRAINS, 205),
    _rule("GRAINS_PASTA_SPAGHETTI", r"spaghetti", C.GRAINS, 210),
    _rule("GRAINS_PASTA_PENNE", r"penne", C.GRAINS, 211),
    _rule("GRAINS_PASTA_MACARONI", r"macaroni", C.GRAINS, 212),
    _rule("GRAINS_PASTA_FUSILLI", r"fusilli", C.GRAINS, 213),
    _rule("GRAINS_PASTA_FETTUCCINE", r"fettuc+ine", C.GRAINS, 214),
    _rule("GRAINS_PASTA_GENERIC", r"^pasta$", C.GRAINS, 215),
    _rule("GRAINS_OATS", r"^oats?$|rolled\s*oats?|steel\s*cut\s*oats?|oatmeal", C.GRAINS, 216),
    _rule("GRAINS_QUINOA", r"quinoa", C.GRAINS, 217),
    _rule("GRAINS_COUSCOUS", r"couscous", C.GRAINS, 218),
    _rule("GRAINS_BARLEY", r"barley", C.GRAINS, 219),
    # Proteins
    _rule("PROTEINS_CHICKEN_BREAST", r"chicken\s*breast", C.PROTEINS, 220),
    _rule("PROTEINS_CHICKEN_THIGH", r"chicken\s*thigh", C.PROTEINS, 221),
    _rule("PROTEINS_CHICKEN_DRUMSTICK", r"chicken\s*(drumstick|leg)", C.PROTEINS, 222),
    _rule("PROTEINS_CHICKEN_WING", r"chicken\s*wing", C.PROTEINS, 223),
    _rule("PROTEINS_CHICKEN_GENERIC", r"^chicken$", C.PROTEINS, 224),
    _rule(
        "PROTEINS_BEEF_STEAK",
        r"beef\s*steak|steak|sirloin|ribeye|scotch\s*fillet|eye\s*fillet|rump",
        C.PROTEINS,
        225,
    ),
    _rule("PROTEINS_BEEF_MINCE", r"beef\s*mince", C.PROTEINS, 226),
    _rule("PROTEINS_BEEF_GENERIC", r"^beef$", C.PROTEINS, 227),
    _rule("PROTEINS_PORK_CHOP", r"pork\s*chop", C.PROTEINS, 228),
    _rule("PROTEINS_PORK_GENERIC", r"^pork$", C.PROTEINS, 229),
    _rule("PROTEINS_LAMB", r"^lamb$|lamb\s*(chop|leg|shoulder|cutlet)", C.PROTEINS, 230),
    _rule("PROTEINS_FISH_SALMON", r"^salmon$|salmon\s*fillet", C.PROTEINS, 231),
    _rule("PROTEINS_FISH_TUNA_FRESH", r"^tuna$|fresh\s*tuna|tuna\s*(steak|fillet)", C.PROTEINS, 232),
    _rule("PROTEINS_FISH_COD", r"^cod$|cod\s*fillet", C.PROTEINS, 233),
    _rule("PROTEINS_FISH_GENERIC", r"^fish$|fish\s*fillet", C.PROTEINS, 234),
    _rule("PROTEINS_PRAWNS", r"prawn|shrimp", C.PROTEINS, 235),
    _rule("PROTEINS_EGGS", r"^eggs?$|large\s*eggs?|chicken\s*eggs?", C.PROTEINS, 240),
    _rule("PROTEINS_TOFU", r"^tofu$|firm\s*tofu|silken\s*tofu", C.PROTEINS, 241, state=S.AS_PACK),
    _rule("PROTEINS_TEMPEH", r"tempeh", C.PROTEINS, 242, state=S.AS_PACK),
    # Dairy
    _rule(
        "DAIRY_MILK",
        r"^milk$|cow'?s?\s*milk|full\s*cream\s*milk|skim\s*milk|low\s*fat\s*milk",
        C.DAIRY,
        250,
    ),
    _rule("DAIRY_CHEESE_CHEDDAR", r"cheddar", C.DAIRY, 251),
    _rule("DAIRY_CHEESE_MOZZARELLA", r"mozzarella", C.DAIRY, 252),
    _rule("DAIRY_CHEESE_PARMESAN", r"parmesan|parmigiano", C.DAIRY, 253),
    _rule("DAIRY_CHEESE_FETA", r"feta", C.DAIRY, 254),
    _rule("DAIRY_CHEESE_CREAM_CHEESE", r"cream\s*cheese", C.DAIRY, 255),
    _rule("DAIRY_CHEESE_COTTAGE", r"cottage\s*cheese", C.DAIRY, 256),
    _rule("DAIRY_CHEESE_GENERIC", r"^cheese$", C.DAIRY, 257),
    _rule("DAIRY_YOGURT", r"yogh?urt", C.DAIRY, 258),
    _rule("DAIRY_BUTTER", r"^butter$|unsalted\s*butter|salted\s*butter", C.DAIRY, 259),
    _rule(
        "DAIRY_CREAM",
        r"^cream$|heavy\s*cream|whipping\s*cream|thickened\s*cream|double\s*cream|single\s*cream",
        C.DAIRY,
        260,
    ),
    _rule("DAIRY_SOUR_CREAM", r"sour\s*cream", C.DAIRY, 261),
    # Vegetables
    _rule(
        "PRODUCE_ONION",
        r"^onions?$|brown\s*onion|red\s*onion|white\s*onion|yellow\s*onion|spanish\s*onion",
        C.PRODUCE,
        270,
    ),
    _rule("PRODUCE_GARLIC", r"^garlic$|garlic\s*clove", C.PRODUCE, 271),
    _rule("PRODUCE_TOMATO", r"^tomato(es)?$|cherry\s*tomato|roma\s*tomato", C.PRODUCE, 272),
    _rule("PRODUCE_POTATO", r"^potato(es)?$", C.PRODUCE, 273),
    _rule("PRODUCE_SWEET_POTATO", r"sweet\s*potato", C.PRODUCE, 274),
    _rule("PRODUCE_CARROT", r"^carrot", C.PRODUCE, 275),
    _rule("PRODUCE_BROCCOLI", r"^broccoli$", C.PRODUCE, 276),
    _rule("PRODUCE_SPINACH", r"^spinach$|baby\s*spinach", C.PRODUCE, 277),
    _rule("PRODUCE_KALE", r"^kale$", C.PRODUCE, 278),
    _rule("PRODUCE_CAPSICUM", r"capsicum|bell\s*pepper", C.PRODUCE, 279),
    _rule("PRODUCE_ZUCCHINI", r"zucchini|courgette", C.PRODUCE, 280),
    _rule("PRODUCE_CUCUMBER", r"cucumber", C.PRODUCE, 281),
    _rule("PRODUCE_LETTUCE", r"lettuce|iceberg|romaine", C.PRODUCE, 282),
    _rule("PRODUCE_MUSHROOM", r"mushroom", C.PRODUCE, 283),
    _rule("PRODUCE_AVOCADO", r"avocado", C.PRODUCE, 284),
    _rule("PRODUCE_CELERY", r"celery", C.PRODUCE, 285),
    _rule("PRODUCE_ASPARAGUS", r"asparagus", C.PRODUCE, 286),
    _rule("PRODUCE_BEANS_GREEN", r"green\s*beans?|string\s*beans?", C.PRODUCE, 287),
    _rule("PRODUCE_CORN", r"^corn$|sweet\s*corn|corn\s*on\s*the\s*cob", C.PRODUCE, 288),
    _rule("PRODUCE_EGGPLANT", r"eggplant|aubergine", C.PRODUCE, 289),
    _rule("PRODUCE_CAULIFLOWER", r"cauliflower", C.PRODUCE, 290),
    _rule("PRODUCE_CABBAGE", r"cabbage", C.PRODUCE, 291),
    _rule("PRODUCE_PEAS", r"^peas$|green\s*peas|garden\s*peas", C.PRODUCE, 292),
    _rule("PRODUCE_GINGER", r"^ginger$|fresh\s*ginger", C.PRODUCE, 293),
    # Fruit
    _rule("PRODUCE_APPLE", r"^apple", C.PRODUCE, 300),
    _rule("PRODUCE_BANANA", r"banana", C.PRODUCE, 301),
    _rule("PRODUCE_ORANGE", r"^orange", C.PRODUCE, 302),
    _rule("PRODUCE_LEMON", r"lemon", C.PRODUCE, 303),
    _rule("PRODUCE_LIME", r"^lime", C.PRODUCE, 304),
    _rule("PRODUCE_BERRIES", r"berries|strawberr|blueberr|raspberr|blackberr", C.PRODUCE, 305),
    _rule("PRODUCE_MANGO", r"mango", C.PRODUCE, 306),
    _rule("PRODUCE_PINEAPPLE", r"pineapple", C.PRODUCE, 307),
    _rule("PRODUCE_GRAPES", r"grape", C.PRODUCE, 308),
    _rule("PRODUCE_MELON", r"melon|cantaloupe|honeydew", C.PRODUCE, 309),
    _rule("PRODUCE_PEACH", r"peach|nectarine", C.PRODUCE, 310),
    _rule("PRODUCE_PEAR", r"^pear", C.PRODUCE, 311),
    _rule("PRODUCE_KIWI", r"kiwi", C.PRODUCE, 312),
    # Legumes
    _rule(
        "LEGUMES_LENTILS",
        r"^lentils?$|(red|green|brown|puy)\s*lentils?",
        C.LEGUMES,
        330,
    ),
    _rule("LEGUMES_CHICKPEAS_DRY", r"^chickpeas?$|^garbanzo", C.LEGUMES, 331),
    _rule("LEGUMES_BLACK_BEANS", r"^black\s*beans?$", C.LEGUMES, 332),
    _rule("LEGUMES_KIDNEY_BEANS", r"^kidney\s*beans?$", C.LEGUMES, 333),
    _rule("LEGUMES_SPLIT_PEAS", r"split\s*peas?", C.LEGUMES, 334),
    # Nuts and seeds
    _rule("NUTS_ALMONDS", r"^almonds?$", C.NUTS_SEEDS, 350),
    _rule("NUTS_WALNUTS", r"^walnuts?$", C.NUTS_SEEDS, 351),
    _rule("NUTS_CASHEWS", r"^cashews?$", C.NUTS_SEEDS, 352),
    _rule("NUTS_PEANUTS", r"^peanuts?$", C.NUTS_SEEDS, 353),
    _rule("NUTS_MACADAMIA", r"macadamia", C.NUTS_SEEDS, 354),
    _rule("SEEDS_CHIA", r"chia\s*seeds?", C.NUTS_SEEDS, 360),
    _rule("SEEDS_FLAX", r"flax\s*seeds?|linseed", C.NUTS_SEEDS, 361),
    _rule("SEEDS_SUNFLOWER", r"sunflower\s*seeds?", C.NUTS_SEEDS, 362),
    _rule("SEEDS_PUMPKIN", r"pumpkin\s*seeds?|pepitas?", C.NUTS_SEEDS, 363),
    _rule("SEEDS_SESAME", r"sesame\s*seeds?", C.NUTS_SEEDS, 364),
    # Condiments and oils
    _rule("CONDIMENTS_SOY_SAUCE", r"soy\s*sauce", C.CONDIMENTS, 370),
    _rule("CONDIMENTS_FISH_SAUCE", r"fish\s*sauce", C.CONDIMENTS, 371),
    _rule("CONDIMENTS_OYSTER_SAUCE", r"oyster\s*sauce", C.CONDIMENTS, 372),
    _rule("CONDIMENTS_VINEGAR", r"vinegar|balsamic", C.CONDIMENTS, 373),
    _rule("CONDIMENTS_MUSTARD", r"mustard", C.CONDIMENTS, 374),
    _rule("CONDIMENTS_MAYONNAISE", r"mayonnaise|\bmayo\b", C.CONDIMENTS, 375),
    _rule("CONDIMENTS_KETCHUP", r"ketchup", C.CONDIMENTS, 376),
    _rule("CONDIMENTS_HOT_SAUCE", r"hot\s*sauce|sriracha|tabasco|chil+i\s*sauce", C.CONDIMENTS, 377),
    _rule("CONDIMENTS_HONEY", r"^honey$", C.CONDIMENTS, 378),
    _rule("CONDIMENTS_MAPLE_SYRUP", r"maple\s*syrup", C.CONDIMENTS, 379),
    _rule(
        "CONDIMENTS_VEGETABLE_OIL",
        r"vegetable\s*oil|canola\s*oil|sunflower\s*oil|^oil$",
        C.CONDIMENTS,
        380,
    ),
    _rule("CONDIMENTS_SESAME_OIL", r"sesame\s*oil", C.CONDIMENTS, 381),
    # Packaged
    _rule(
        "PACKAGED_CANNED_TOMATOES",
        r"(canned|diced|crushed|tinned)\s*tomato",
        C.PACKAGED,
        400,
    ),
    _rule("PACKAGED_CANNED_CORN", r"(canned|tinned|creamed)\s*corn", C.PACKAGED, 401),
    _rule("PACKAGED_FROZEN_PEAS", r"frozen\s*peas", C.PACKAGED, 402),
    _rule("PACKAGED_FROZEN_VEGETABLES", r"frozen\s*(vegetable|veg|mixed\s*veg)", C.PACKAGED, 403),
    _rule("PACKAGED_STOCK", r"stock|broth|bouillon", C.PACKAGED, 410),
    _rule(
        "PACKAGED_COCONUT",
        r"desiccated\s*coconut|shredded\s*coconut|coconut\s*flakes",
        C.PACKAGED,
        411,
    ),
    # Beverages
    _rule("BEVERAGES_JUICE", r"juice", C.BEVERAGES, 430),
    _rule("BEVERAGES_ALMOND_MILK", r"almond\s*milk", C.BEVERAGES, 431),
    _rule("BEVERAGES_SOY_MILK", r"soya?\s*milk", C.BEVERAGES, 432),
    # Catch-all
    _rule(
        "CATCHALL_UNMAPPED",
        r".*",
        C.PACKAGED,
        999,
        state=S.AS_PACK,
        confidence=Confidence.LOW,
    ),
)
