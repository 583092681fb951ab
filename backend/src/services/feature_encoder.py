"""Feature encoding shared by training and inference.

The vector layout is the contract between a trained weight artifact and the
runtime scorer; both sides call ``encode_features`` so they cannot drift.

    [0]  category index / (C - 1)
    [1]  NOVA group / 4
    [2]  organic               (0/1)
    [3]  fair-trade            (0/1)
    [4]  eco certification     (0/1)
    [5]  recyclable packaging  (0/1)
    [6]  glass packaging       (0/1)
    [7]  plastic packaging     (0/1)
    [8]  local origin          (0/1)
    [9]  distant origin        (0/1)
    [10] min(certifications, 5) / 5
    [11] processing level estimate, clamped to [0, 1]
"""

import math
import re
from dataclasses import dataclass

from models.product import CanonicalProduct
from models.training import LabeledExample, SeedExample
from utils.categories import (
    CATEGORY_INDEX,
    NUM_CATEGORIES,
    category_index,
    strip_language_prefix,
)
from utils.constants import DEFAULT_NOVA_GROUP, MAX_CERTIFICATIONS, NOVA_MAX, NOVA_MIN

FEATURE_NAMES = [
    "category",
    "nova_group",
    "organic",
    "fairtrade",
    "eco_cert",
    "recyclable",
    "glass",
    "plastic",
    "local",
    "far",
    "cert_count",
    "processing",
]
NUM_FEATURES = len(FEATURE_NAMES)

ORGANIC_KEYWORDS = ("organic", "bio", "biologique", "demeter", "bioland")
FAIRTRADE_KEYWORDS = ("fair-trade", "fairtrade", "max-havelaar")
ECO_CERT_KEYWORDS = (
    "rainforest-alliance",
    "utz",
    "msc",
    "asc",
    "fsc",
    "ecocert",
    "carbon-neutral",
    "eu-ecolabel",
)
RECYCLABLE_KEYWORDS = ("recyclable", "recycled", "recycle")
GLASS_KEYWORDS = ("glass", "verre")
PLASTIC_KEYWORDS = (
    "plastic",
    "plastique",
    "pet",
    "hdpe",
    "ldpe",
    "polypropylene",
    "polyethylene",
    "polystyrene",
)
LOCAL_KEYWORDS = ("local", "regional", "national", "domestic")
FAR_KEYWORDS = (
    "imported",
    "china",
    "india",
    "asia",
    "south america",
    "brazil",
    "argentina",
    "thailand",
    "vietnam",
    "indonesia",
    "new zealand",
)


@dataclass(frozen=True)
class ProductIndicators:
    """Encoder inputs derived from a product."""

    category: str
    nova: int = DEFAULT_NOVA_GROUP
    organic: bool = False
    fairtrade: bool = False
    eco_cert: bool = False
    recyclable: bool = False
    glass: bool = False
    plastic: bool = False
    local: bool = False
    far: bool = False
    cert_count: int = 0
    processing: float = (DEFAULT_NOVA_GROUP - 1) / 3


def _clamp01(value: float, default: float = 0.0) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return min(1.0, max(0.0, value))


def _flag(value) -> float:
    return 1.0 if value else 0.0


def encode_features(
    category: str | int,
    nova: int | None,
    organic=False,
    fairtrade=False,
    eco_cert=False,
    recyclable=False,
    glass=False,
    plastic=False,
    local=False,
    far=False,
    cert_count: int = 0,
    processing: float = 0.0,
) -> list[float]:
    """Encode one product into the 12-dimension feature vector.

    Out-of-range inputs are clamped; a missing or non-numeric NOVA group uses
    the default group and unknown categories map to ``other``.
    """
    if isinstance(category, str):
        idx = category_index(category)
    else:
        idx = min(max(int(category), 0), NUM_CATEGORIES - 1)

    try:
        nova_value = float(nova) if nova is not None else float(DEFAULT_NOVA_GROUP)
    except (TypeError, ValueError):
        nova_value = float(DEFAULT_NOVA_GROUP)
    if not math.isfinite(nova_value):
        nova_value = float(DEFAULT_NOVA_GROUP)
    nova_value = min(max(nova_value, NOVA_MIN), NOVA_MAX)

    try:
        certs = float(cert_count)
    except (TypeError, ValueError):
        certs = 0.0

    return [
        idx / (NUM_CATEGORIES - 1),
        nova_value / NOVA_MAX,
        _flag(organic),
        _flag(fairtrade),
        _flag(eco_cert),
        _flag(recyclable),
        _flag(glass),
        _flag(plastic),
        _flag(local),
        _flag(far),
        _clamp01(min(certs, MAX_CERTIFICATIONS) / MAX_CERTIFICATIONS),
        _clamp01(processing),
    ]


def encode_indicators(indicators: ProductIndicators) -> list[float]:
    return encode_features(
        indicators.category,
        indicators.nova,
        indicators.organic,
        indicators.fairtrade,
        indicators.eco_cert,
        indicators.recyclable,
        indicators.glass,
        indicators.plastic,
        indicators.local,
        indicators.far,
        indicators.cert_count,
        indicators.processing,
    )


def _tag_has(tags: list[str], keywords: tuple[str, ...]) -> bool:
    # Keyword must match whole dash-separated tokens: "asc" must not hit "mascarpone"
    padded = [f"-{strip_language_prefix(t)}-" for t in tags]
    return any(f"-{kw}-" in tag for kw in keywords for tag in padded)


def _text_has(text: str, keywords: tuple[str, ...]) -> bool:
    return any(re.search(rf"\b{re.escape(kw)}\b", text) for kw in keywords)


def indicators_from_fields(
    category: str,
    labels: list[str] | tuple[str, ...] = (),
    packaging_tags: list[str] | tuple[str, ...] = (),
    packaging_text: str = "",
    origins: str = "",
    manufacturing_places: str = "",
    origin_tags: list[str] | tuple[str, ...] = (),
    nova_group: int | None = None,
) -> ProductIndicators:
    """Derive encoder inputs from label, packaging and origin fields."""
    labels = list(labels)
    organic = _tag_has(labels, ORGANIC_KEYWORDS)
    fairtrade = _tag_has(labels, FAIRTRADE_KEYWORDS)
    eco_cert = _tag_has(labels, ECO_CERT_KEYWORDS)
    vegan = _tag_has(labels, ("vegan",))
    non_gmo = _tag_has(labels, ("non-gmo", "no-gmos", "sans-ogm"))

    packaging = " ".join(
        [strip_language_prefix(t).replace("-", " ") for t in packaging_tags]
        + [packaging_text.lower()]
    )
    packaging_tokens = packaging.replace(",", " ").replace("/", " ").split()

    origin_text = " ".join(
        [
            origins.lower(),
            manufacturing_places.lower(),
            " ".join(
                strip_language_prefix(t).replace("-", " ") for t in origin_tags
            ),
        ]
    )

    nova = nova_group or DEFAULT_NOVA_GROUP
    return ProductIndicators(
        category=category,
        nova=nova,
        organic=organic,
        fairtrade=fairtrade,
        eco_cert=eco_cert,
        recyclable=_text_has(packaging, RECYCLABLE_KEYWORDS),
        glass=_text_has(packaging, GLASS_KEYWORDS),
        plastic=any(tok in PLASTIC_KEYWORDS for tok in packaging_tokens),
        local=_text_has(origin_text, LOCAL_KEYWORDS),
        far=_text_has(origin_text, FAR_KEYWORDS),
        cert_count=sum([organic, fairtrade, eco_cert, vegan, non_gmo]),
        processing=(nova - 1) / 3,
    )


def extract_indicators(product: CanonicalProduct) -> ProductIndicators:
    return indicators_from_fields(
        category=product.category,
        labels=product.labels,
        packaging_tags=product.packaging_tags,
        packaging_text=product.packaging_text,
        origins=product.origins,
        manufacturing_places=product.manufacturing_places,
        origin_tags=product.origin_tags,
        nova_group=product.nova_group,
    )


def encode_product(product: CanonicalProduct) -> list[float]:
    return encode_indicators(extract_indicators(product))


def example_from_product(product: CanonicalProduct) -> LabeledExample:
    """Labeled example from a mined product, target = score / 100."""
    return LabeledExample(
        features=tuple(encode_product(product)),
        target=_clamp01(product.ecoscore_score / 100.0),
    )


def example_from_seed(seed: SeedExample) -> LabeledExample:
    """Labeled example from a hand-labeled seed entry."""
    if seed.category not in CATEGORY_INDEX:
        raise ValueError(f"Unknown category {seed.category!r} in seed {seed.name!r}")
    features = encode_features(
        seed.category,
        seed.nova,
        seed.organic,
        seed.fairtrade,
        seed.eco_cert,
        seed.recyclable,
        seed.glass,
        seed.plastic,
        seed.local,
        seed.far,
        seed.cert_count,
        seed.processing,
    )
    return LabeledExample(features=tuple(features), target=_clamp01(seed.score / 100.0))
