"""Data models for the eco-score training pipeline."""

from .corpus import TrainingCorpus
from .product import CanonicalProduct, CatalogRecord, EcoGrade
from .training import (
    LabeledExample,
    LayerTensor,
    ModelWeights,
    SeedDataset,
    SeedExample,
)

__all__ = [
    "CanonicalProduct",
    "CatalogRecord",
    "EcoGrade",
    "TrainingCorpus",
    "LabeledExample",
    "LayerTensor",
    "ModelWeights",
    "SeedDataset",
    "SeedExample",
]
