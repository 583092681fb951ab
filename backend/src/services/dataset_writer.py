"""Write the mined training corpus to disk."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from models.corpus import TrainingCorpus
from models.product import CanonicalProduct
from services.corpus_miner import MiningResult
from utils.constants import ECO_GRADES, SCORE_BUCKETS

logger = logging.getLogger(__name__)

PIPELINE_NAME = "catalog-miner/v2"


class DatasetWriteError(Exception):
    """An output directory or artifact could not be written."""


def score_histogram(products: list[CanonicalProduct]) -> dict[str, int]:
    """Count products per score bucket; 100 falls in the last bucket."""
    counts = {label: 0 for label, _, _ in SCORE_BUCKETS}
    last_label = SCORE_BUCKETS[-1][0]
    for product in products:
        score = product.ecoscore_score
        for label, low, high in SCORE_BUCKETS:
            if low <= score < high or (label == last_label and score == high):
                counts[label] += 1
                break
    return counts


def grade_histogram(products: list[CanonicalProduct]) -> dict[str, int]:
    counts = {g: 0 for g in ECO_GRADES}
    for product in products:
        counts[product.ecoscore_grade] += 1
    return counts


def build_corpus(result: MiningResult, source: str) -> TrainingCorpus:
    """Attach run provenance and histograms to the mined products."""
    return TrainingCorpus(
        fetched_at=datetime.now(UTC).isoformat(),
        source=source,
        total_products=len(result.products),
        total_scanned=result.total_scanned,
        pipeline=PIPELINE_NAME,
        grade_distribution=grade_histogram(result.products),
        score_distribution=score_histogram(result.products),
        products=list(result.products),
    )


def write_json(payload: dict, path: Path) -> None:
    """Write a JSON document, creating parent directories.

    Raises:
        DatasetWriteError: If the directory or file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(payload, f, indent=2)
    except OSError as e:
        raise DatasetWriteError(f"Cannot write {path}: {e}") from e


def write_corpus(result: MiningResult, path: Path, source: str) -> TrainingCorpus:
    """Serialize a mining result to ``path`` and return the written corpus."""
    corpus = build_corpus(result, source)
    write_json(corpus.model_dump(mode="json", by_alias=True), path)
    logger.info(f"Saved {corpus.total_products} products to {path}")
    return corpus


def load_corpus(path: Path) -> TrainingCorpus:
    """Read a corpus file written by write_corpus."""
    with open(path) as f:
        return TrainingCorpus.model_validate_json(f.read())
