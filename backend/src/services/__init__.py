"""Services for the eco-score training pipeline."""

from .catalog_client import CatalogClient, NetworkError
from .corpus_miner import CorpusMiner, MiningResult, PageProgress
from .dataset_writer import DatasetWriteError, write_corpus
from .trainer import TrainingConfig, TrainingError, run_training
from .weight_serializer import WeightFormatError, load_weights

__all__ = [
    "CatalogClient",
    "NetworkError",
    "CorpusMiner",
    "MiningResult",
    "PageProgress",
    "DatasetWriteError",
    "write_corpus",
    "TrainingConfig",
    "TrainingError",
    "run_training",
    "WeightFormatError",
    "load_weights",
]
