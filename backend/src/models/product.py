"""Catalog product data models."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# A raw record as returned by the catalog search API. Every field is optional
# and may carry the wrong type, so records stay plain dicts until
# services.product_extractor projects them into CanonicalProduct.
CatalogRecord = dict[str, Any]

EcoGrade = Literal["a", "b", "c", "d", "e"]


class CanonicalProduct(BaseModel):
    """Validated, schema-complete projection of a catalog record."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    code: str = Field(..., min_length=1, description="Catalog barcode, unique key")
    name: str = Field(..., min_length=1, description="Trimmed product name")
    brands: str = Field(default="", description="Comma separated brand names")
    categories: tuple[str, ...] = Field(
        ..., min_length=1, description="Catalog category tags, generic to specific"
    )
    category: str = Field(..., description="Canonical category resolved from tags")
    origins: str = Field(default="", description="Free-text ingredient origins")
    origin_tags: tuple[str, ...] = Field(default=())
    manufacturing_places: str = Field(default="")
    packaging_tags: tuple[str, ...] = Field(default=())
    packaging_text: str = Field(default="")
    labels: tuple[str, ...] = Field(default=(), description="Label/certification tags")
    nova_group: int | None = Field(None, ge=1, le=4)
    ingredients_n: int | None = Field(None, ge=0)
    nutrient_levels: tuple[str, ...] = Field(default=())
    ecoscore_score: float = Field(..., ge=0, le=100)
    ecoscore_grade: EcoGrade
