#!/usr/bin/env python3
"""
Mine eco-scored products from the catalog into a training corpus.

Walks the catalog's popularity-sorted search pages, keeps records that carry
a valid eco-score, drops duplicates by product code, and writes the corpus
with grade and score histograms.

Usage:
    mine-products [--target 10000] [--max-pages 300] [--output PATH]
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from services.catalog_client import CATALOG_PAGE_SIZE, CatalogClient
from services.corpus_miner import (
    MAX_PAGES,
    PAGE_DELAY_SECONDS,
    TARGET_PRODUCTS,
    CorpusMiner,
    MinerState,
    PageProgress,
)
from services.dataset_writer import DatasetWriteError, write_corpus
from utils.constants import ECO_GRADES

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]
MINING_OUTPUT_PATH = Path(
    os.environ.get(
        "MINING_OUTPUT_PATH", REPO_ROOT / "ml" / "data" / "training_corpus.json"
    )
)


def print_progress(progress: PageProgress) -> None:
    if progress.failed:
        print(f"  Page {progress.page}: FAILED (skipped)")
        return
    if progress.state == MinerState.PAGE_EMPTY:
        print(f"  Page {progress.page}: empty")
        return
    grades = " ".join(f"{g}={progress.grade_counts.get(g, 0)}" for g in ECO_GRADES)
    print(
        f"  Page {progress.page}: {progress.valid}/{progress.attempted} valid "
        f"({progress.yield_ratio:.0%}), +{progress.added} -> "
        f"{progress.total}/{progress.target}  [{grades}]"
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Mine eco-scored products")
    parser.add_argument("--target", type=int, default=TARGET_PRODUCTS)
    parser.add_argument("--max-pages", type=int, default=MAX_PAGES)
    parser.add_argument("--page-size", type=int, default=CATALOG_PAGE_SIZE)
    parser.add_argument(
        "--delay",
        type=float,
        default=PAGE_DELAY_SECONDS,
        help="Seconds to wait between pages",
    )
    parser.add_argument("--output", type=Path, default=MINING_OUTPUT_PATH)
    parser.add_argument(
        "--estimate-missing-scores",
        action="store_true",
        help="Fill absent numeric scores from the letter grade",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    client = CatalogClient(page_size=args.page_size)
    print(f"\n{'=' * 60}")
    print(f"Mining up to {args.target} products from {client.describe()}")
    print(f"{'=' * 60}")

    miner = CorpusMiner(
        client.fetch_page,
        target_products=args.target,
        max_pages=args.max_pages,
        page_delay=args.delay,
        on_progress=print_progress,
        estimate_missing_scores=args.estimate_missing_scores,
    )
    result = miner.run()

    if result.pages_succeeded == 0:
        logger.error(f"No page fetched successfully ({result.pages_failed} failed)")
        return 1

    try:
        corpus = write_corpus(result, args.output, source=client.describe())
    except DatasetWriteError as e:
        logger.error(str(e))
        return 1

    print(f"\nSaved {corpus.total_products} products to {args.output}")
    print(f"Scanned {corpus.total_scanned} records, stop: {result.stop_reason.value}")
    print("Grades: " + ", ".join(f"{g}={n}" for g, n in corpus.grade_distribution.items()))
    print("Scores: " + ", ".join(f"{b}={n}" for b, n in corpus.score_distribution.items()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
