"""Authoritative product category table.

Every component that turns a category into a number goes through this module:
the miner when it resolves catalog tags, the feature encoder, the weight
serializer when it writes ``category_index.json``, and the inference engine.
Reordering or inserting entries changes every encoded feature vector, so the
list is append-only and ``CATEGORY_TABLE_VERSION`` must be bumped whenever it
changes.
"""

CATEGORY_TABLE_VERSION = "1.0.0"

# (category name, catalog tags that map onto it). Tags are compared without
# their language prefix ("en:meats" -> "meats").
_CATEGORY_ALIASES: list[tuple[str, tuple[str, ...]]] = [
    (
        "beverages",
        (
            "beverages",
            "beverages-and-beverages-preparations",
            "fruit-juices",
            "juices-and-nectars",
            "fruit-based-beverages",
            "sodas",
            "waters",
            "mineral-waters",
            "sweetened-beverages",
            "unsweetened-beverages",
            "teas",
            "iced-teas",
            "alcoholic-beverages",
            "wines",
            "beers",
        ),
    ),
    (
        "dairies",
        (
            "dairies",
            "milks",
            "uht-milks",
            "yogurts",
            "plain-yogurts",
            "fruit-yogurts",
            "skyrs",
            "creams",
            "butters",
            "fermented-milk-products",
            "dairy-desserts",
            "dairy-drinks",
        ),
    ),
    (
        "snacks",
        (
            "snacks",
            "salty-snacks",
            "crisps",
            "potato-crisps",
            "chips-and-fries",
            "crackers-appetizers",
            "appetizers",
            "nuts",
            "bars",
            "cereal-bars",
        ),
    ),
    (
        "cereals-and-potatoes",
        (
            "cereals-and-potatoes",
            "cereals-and-their-products",
            "breakfast-cereals",
            "mueslis",
            "rolled-flakes",
            "rices",
            "cereal-grains",
            "potatoes",
        ),
    ),
    (
        "fruits-and-vegetables",
        (
            "fruits-and-vegetables",
            "fruits-and-vegetables-based-foods",
            "fruits-based-foods",
            "vegetables-based-foods",
            "fruits",
            "fresh-fruits",
            "vegetables",
            "fresh-vegetables",
            "prepared-vegetables",
            "compotes",
            "apple-compotes",
            "legumes",
            "pulses",
            "lentils",
        ),
    ),
    (
        "meats",
        (
            "meats",
            "meats-and-their-products",
            "prepared-meats",
            "beef",
            "pork",
            "pork-and-its-products",
            "poultries",
            "chickens",
            "chicken-and-its-products",
            "hams",
            "white-hams",
            "poultry-hams",
            "sausages",
            "lamb",
        ),
    ),
    (
        "fishes-and-seafood",
        (
            "fishes-and-seafood",
            "fishes",
            "fishes-and-their-products",
            "seafood",
            "fatty-fishes",
            "tunas",
            "sardines",
            "salmons",
            "fish-preparations",
            "breaded-fish",
        ),
    ),
    (
        "frozen-foods",
        (
            "frozen-foods",
            "frozen-vegetables",
            "frozen-ready-made-meals",
            "frozen-desserts",
            "ice-creams",
            "ice-creams-and-sorbets",
        ),
    ),
    (
        "breads",
        (
            "breads",
            "sliced-breads",
            "wholemeal-breads",
            "toasts",
            "rusks",
            "brioches",
            "viennoiseries",
        ),
    ),
    (
        "sauces",
        (
            "sauces",
            "condiments",
            "tomato-sauces",
            "pasta-sauces",
            "pestos",
            "mayonnaises",
            "ketchup",
            "mustards",
        ),
    ),
    (
        "canned-foods",
        (
            "canned-foods",
            "canned-vegetables",
            "canned-legumes",
            "canned-fishes",
            "canned-sardines",
            "canned-tunas",
            "canned-meals",
            "canned-plant-based-foods",
        ),
    ),
    (
        "plant-based-foods",
        (
            "plant-based-foods",
            "plant-based-foods-and-beverages",
            "plant-based-beverages",
            "plant-based-milk-alternatives",
            "milk-substitutes",
            "dairy-substitutes",
            "meat-alternatives",
            "meat-analogues",
            "non-dairy-yogurts",
            "tofu",
        ),
    ),
    ("eggs", ("eggs", "chicken-eggs", "free-range-chicken-eggs", "organic-eggs")),
    (
        "cheeses",
        (
            "cheeses",
            "cow-cheeses",
            "goat-cheeses",
            "hard-cheeses",
            "fresh-cheeses",
            "french-cheeses",
            "cheese-spreads",
        ),
    ),
    (
        "chocolates",
        (
            "chocolates",
            "dark-chocolates",
            "milk-chocolates",
            "cocoa-and-its-products",
            "chocolate-spreads",
            "hazelnut-spreads",
        ),
    ),
    (
        "coffees",
        ("coffees", "ground-coffees", "coffee-beans", "instant-coffees", "coffee-pods"),
    ),
    ("pastas", ("pastas", "dry-pastas", "cereal-pastas", "noodles", "fresh-pastas")),
    (
        "meals",
        (
            "meals",
            "meals-with-meat",
            "microwave-meals",
            "pasta-dishes",
            "rice-dishes",
            "pizzas",
            "sandwiches",
            "soups",
            "prepared-salads",
        ),
    ),
    (
        "sweets",
        (
            "sweets",
            "sweet-snacks",
            "biscuits",
            "biscuits-and-cakes",
            "cakes",
            "confectioneries",
            "candies",
            "jams",
            "honeys",
            "sweet-spreads",
        ),
    ),
    ("baby-foods", ("baby-foods", "baby-milks", "baby-cereals", "baby-meals")),
    ("other", ("other",)),
]

CATEGORIES: tuple[str, ...] = tuple(name for name, _ in _CATEGORY_ALIASES)
CATEGORY_INDEX: dict[str, int] = {name: i for i, name in enumerate(CATEGORIES)}
NUM_CATEGORIES: int = len(CATEGORIES)
DEFAULT_CATEGORY: str = "other"

_TAG_TO_CATEGORY: dict[str, str] = {
    alias: name for name, aliases in _CATEGORY_ALIASES for alias in aliases
}


def strip_language_prefix(tag: str) -> str:
    """Normalize a catalog tag: ``"en:Fresh-Fruits"`` -> ``"fresh-fruits"``."""
    tag = tag.strip().lower()
    prefix, sep, rest = tag.partition(":")
    if sep and len(prefix) == 2:
        return rest
    return tag


def category_index(name: str) -> int:
    """Return the index of a category name, unknown names map to ``other``."""
    return CATEGORY_INDEX.get(name, CATEGORY_INDEX[DEFAULT_CATEGORY])


def resolve_category(tags: list[str] | tuple[str, ...]) -> str:
    """Map catalog category tags to one canonical category.

    The catalog lists tags from generic to specific, so the scan runs from the
    end and the most specific recognized tag wins.
    """
    for tag in reversed(tags):
        if not isinstance(tag, str):
            continue
        name = _TAG_TO_CATEGORY.get(strip_language_prefix(tag))
        if name is not None:
            return name
    return DEFAULT_CATEGORY
