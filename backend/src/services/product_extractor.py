"""Validate raw catalog records and project them into CanonicalProduct.

A record is accepted only when it has a code, a non-empty name, at least one
category tag, a numeric eco-score in [0, 100] and a grade in a..e. Everything
else is optional: malformed optional fields fall back to empty values instead
of rejecting the record.
"""

import math
from typing import Any

from models.product import CanonicalProduct, CatalogRecord
from services.feature_encoder import ProductIndicators, indicators_from_fields
from utils.categories import resolve_category
from utils.constants import ECO_GRADES, GRADE_DEFAULT_SCORES, NOVA_MAX, NOVA_MIN


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_tags(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v.strip() for v in value if isinstance(v, str) and v.strip())


def _as_int(value: Any, low: int, high: int | None = None) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    value = int(value)
    if value < low or (high is not None and value > high):
        return None
    return value


def _as_score(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or not 0 <= value <= 100:
        return None
    return float(value)


def _as_grade(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    grade = value.strip().lower()
    return grade if grade in ECO_GRADES else None


def _as_code(value: Any) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value)
    return _as_text(value)


def to_canonical(
    record: CatalogRecord, estimate_missing_scores: bool = False
) -> CanonicalProduct | None:
    """Project one raw record, or return None if a required check fails.

    Args:
        record: Raw catalog record.
        estimate_missing_scores: Fill an absent numeric score from the grade
            using GRADE_DEFAULT_SCORES before validating.
    """
    if not isinstance(record, dict):
        return None

    code = _as_code(record.get("code"))
    name = _as_text(record.get("product_name"))
    categories = _as_tags(record.get("categories_tags"))
    grade = _as_grade(record.get("ecoscore_grade"))
    score = _as_score(record.get("ecoscore_score"))

    if (
        score is None
        and estimate_missing_scores
        and grade is not None
        and record.get("ecoscore_score") is None
    ):
        score = GRADE_DEFAULT_SCORES[grade]

    if not code or not name or not categories or score is None or grade is None:
        return None

    return CanonicalProduct(
        code=code,
        name=name,
        brands=_as_text(record.get("brands")),
        categories=categories,
        category=resolve_category(categories),
        origins=_as_text(record.get("origins")),
        origin_tags=_as_tags(record.get("origins_tags")),
        manufacturing_places=_as_text(record.get("manufacturing_places")),
        packaging_tags=_as_tags(record.get("packaging_tags")),
        packaging_text=_as_text(record.get("packaging_text")),
        labels=_as_tags(record.get("labels_tags")),
        nova_group=_as_int(record.get("nova_group"), NOVA_MIN, NOVA_MAX),
        ingredients_n=_as_int(record.get("ingredients_n"), 0),
        nutrient_levels=_as_tags(record.get("nutrient_levels_tags")),
        ecoscore_score=score,
        ecoscore_grade=grade,
    )


def extract_page(
    records: list[CatalogRecord], estimate_missing_scores: bool = False
) -> list[CanonicalProduct]:
    """Return the accepted records of one page, in page order."""
    products = []
    for record in records:
        product = to_canonical(record, estimate_missing_scores)
        if product is not None:
            products.append(product)
    return products


def indicators_from_record(record: CatalogRecord) -> ProductIndicators:
    """Encoder inputs for a raw record, which need not carry a score.

    Used at inference time, where the eco-score is what is being predicted.
    """
    return indicators_from_fields(
        category=resolve_category(_as_tags(record.get("categories_tags"))),
        labels=_as_tags(record.get("labels_tags")),
        packaging_tags=_as_tags(record.get("packaging_tags")),
        packaging_text=_as_text(record.get("packaging_text")),
        origins=_as_text(record.get("origins")),
        manufacturing_places=_as_text(record.get("manufacturing_places")),
        origin_tags=_as_tags(record.get("origins_tags")),
        nova_group=_as_int(record.get("nova_group"), NOVA_MIN, NOVA_MAX),
    )
