#!/usr/bin/env python3
"""
Evaluate exported model weights against a mined corpus.

Usage:
    evaluate-model [--weights backend/src/ml_model/model_weights.json]
                   [--corpus ml/data/training_corpus.json] [--samples 10]
"""

import argparse
import logging
import sys
from pathlib import Path

from handlers.mine_products import MINING_OUTPUT_PATH
from services.dataset_writer import load_corpus
from services.feature_encoder import example_from_product
from services.ml_scorer import MODEL_PATH
from services.trainer import (
    TrainingError,
    compute_metrics,
    examples_to_arrays,
    format_metrics_report,
    grade_accuracy,
    per_grade_metrics,
    score_to_grade,
)
from services.weight_serializer import (
    WeightFormatError,
    load_weights,
    network_from_weights,
)
from utils.constants import ECO_GRADES

logger = logging.getLogger(__name__)

# (label, metric key, threshold, higher is better)
QUALITY_TARGETS = (
    ("R² > 0.75", "r2", 0.75, True),
    ("MAE < 10", "mae", 10.0, False),
    ("±10 pts > 80%", "within_10", 0.80, True),
)


def print_grade_breakdown(breakdown: dict) -> None:
    print(f"\n{'Grade':<6} {'Count':>6} {'MAE':>7} {'RMSE':>7} {'±10pts':>8}")
    for grade in ECO_GRADES:
        metrics = breakdown[grade]
        if metrics is None:
            print(f"{grade.upper():<6} {0:>6} {'-':>7} {'-':>7} {'-':>8}")
            continue
        print(
            f"{grade.upper():<6} {metrics['count']:>6} {metrics['mae']:>7.2f} "
            f"{metrics['rmse']:>7.2f} {metrics['within_10']:>8.1%}"
        )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Evaluate the eco-score model")
    parser.add_argument("--weights", type=Path, default=MODEL_PATH)
    parser.add_argument("--corpus", type=Path, default=MINING_OUTPUT_PATH)
    parser.add_argument(
        "--samples", type=int, default=10, help="Sample predictions to print"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        network = network_from_weights(load_weights(args.weights))
        corpus = load_corpus(args.corpus)
        X, y = examples_to_arrays([example_from_product(p) for p in corpus.products])
    except (OSError, ValueError) as e:
        logger.error(f"Cannot load evaluation inputs: {e}")
        return 1
    except WeightFormatError as e:
        logger.error(f"Invalid weights at {args.weights}: {e}")
        return 1
    except TrainingError as e:
        logger.error(f"Nothing to evaluate in {args.corpus}: {e}")
        return 1

    predictions = network.predict(X)
    grades = [p.ecoscore_grade for p in corpus.products]
    metrics = compute_metrics(y, predictions)

    print(f"\n{format_metrics_report(metrics, len(y))}")

    print("\nQuality targets:")
    for label, key, threshold, higher in QUALITY_TARGETS:
        met = metrics[key] > threshold if higher else metrics[key] < threshold
        print(f"  {label:<16} {'PASS' if met else 'FAIL'}")

    print_grade_breakdown(per_grade_metrics(grades, y, predictions))

    exact, within_one = grade_accuracy(grades, predictions)
    print(f"\nExact grade match: {exact:.1%}")
    print(f"Within ±1 grade:   {within_one:.1%}")

    if args.samples > 0:
        print(f"\n{'Product':<40} {'Actual':>7} {'Pred':>7} {'Grade':>7}")
        for product, pred in list(zip(corpus.products, predictions))[: args.samples]:
            score = float(pred) * 100.0
            print(
                f"{product.name[:40]:<40} {product.ecoscore_score:>7.1f} {score:>7.1f} "
                f"{product.ecoscore_grade.upper():>3}/{score_to_grade(score).upper()}"
            )
    return 0


if __name__ == "__main__":
    sys.exit(main())
