"""Training corpus data models."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .product import CanonicalProduct


class TrainingCorpus(BaseModel):
    """Mined product corpus plus the provenance of the run that produced it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    fetched_at: str = Field(..., description="ISO timestamp when mining finished")
    source: str = Field(..., description="Catalog endpoint the products came from")
    total_products: int = Field(..., ge=0, description="Products kept")
    total_scanned: int = Field(..., ge=0, description="Raw records examined")
    pipeline: str = Field(..., description="Pipeline name and version")
    grade_distribution: dict[str, int] = Field(default_factory=dict)
    score_distribution: dict[str, int] = Field(default_factory=dict)
    products: list[CanonicalProduct] = Field(default_factory=list)
