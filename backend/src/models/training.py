"""Training data and model artifact models."""

import math
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class LabeledExample:
    """One encoded training example: feature vector and score / 100."""

    features: tuple[float, ...]
    target: float


class SeedExample(BaseModel):
    """Hand-labeled product description from the seed dataset."""

    name: str
    category: str
    nova: int = Field(..., ge=1, le=4)
    organic: bool = False
    fairtrade: bool = False
    eco_cert: bool = False
    recyclable: bool = False
    glass: bool = False
    plastic: bool = False
    local: bool = False
    far: bool = False
    cert_count: int = Field(default=0, ge=0)
    processing: float = Field(..., ge=0, le=1)
    score: float = Field(..., ge=0, le=100)


class SeedDataset(BaseModel):
    """Versioned seed dataset resource (ml/seed_dataset.json)."""

    version: str
    description: str = ""
    examples: list[SeedExample] = Field(..., min_length=1)


class LayerTensor(BaseModel):
    """One weight tensor: its shape and row-major flattened values."""

    shape: list[int] = Field(..., min_length=1)
    data: list[float]

    @model_validator(mode="after")
    def check_size(self) -> "LayerTensor":
        if len(self.data) != math.prod(self.shape):
            raise ValueError(
                f"tensor of shape {self.shape} needs {math.prod(self.shape)} "
                f"values, got {len(self.data)}"
            )
        return self


class ModelWeights(BaseModel):
    """Serialized network weights consumed by the inference engine."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    version: str = Field(..., description="Artifact format version")
    architecture: str = Field(..., description="e.g. '12 -> 16 (relu) -> ...'")
    total_parameters: int = Field(..., ge=0)
    training_examples: int = Field(..., ge=0)
    epochs: int = Field(..., ge=0)
    final_mae: float = Field(..., alias="finalMAE")
    trained_at: str
    weights: list[LayerTensor] = Field(..., min_length=1)
