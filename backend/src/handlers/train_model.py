#!/usr/bin/env python3
"""
Train the eco-score network and export its weights.

Usage:
    train-model [--epochs 100] [--corpus ml/data/training_corpus.json] [--seed 42]
"""

import argparse
import logging
import sys
from pathlib import Path

from services.dataset_writer import DatasetWriteError, load_corpus
from services.ml_scorer import MODEL_DIR
from services.trainer import (
    SEED_DATASET_PATH,
    TrainingConfig,
    TrainingError,
    run_training,
)
from services.weight_serializer import (
    to_model_weights,
    write_category_index,
    write_weights,
)

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    defaults = TrainingConfig()
    parser = argparse.ArgumentParser(description="Train the eco-score model")
    parser.add_argument("--seed-data", type=Path, default=SEED_DATASET_PATH)
    parser.add_argument(
        "--corpus", type=Path, default=None, help="Mined corpus to train on as well"
    )
    parser.add_argument("--output-dir", type=Path, default=MODEL_DIR)
    parser.add_argument("--epochs", type=int, default=defaults.epochs)
    parser.add_argument("--batch-size", type=int, default=defaults.batch_size)
    parser.add_argument("--learning-rate", type=float, default=defaults.learning_rate)
    parser.add_argument("--augment", type=int, default=defaults.augmentation_factor)
    parser.add_argument("--seed", type=int, default=None, help="RNG seed")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    config = TrainingConfig(
        epochs=args.epochs,
        batch_size=args.batch_size,
        learning_rate=args.learning_rate,
        augmentation_factor=args.augment,
        seed=args.seed,
    )
    print(f"\n{'=' * 60}")
    print(f"Training eco-score model ({config.epochs} epochs, lr={config.learning_rate})")
    print(f"{'=' * 60}")

    try:
        corpus = load_corpus(args.corpus) if args.corpus else None
        result = run_training(config, seed_path=args.seed_data, corpus=corpus)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot load training data: {e}")
        return 1
    except TrainingError as e:
        logger.error(f"Training failed: {e}")
        return 1

    model_weights = to_model_weights(
        result.network,
        training_examples=result.training_examples,
        epochs=config.epochs,
        final_mae=result.scenario_mae,
    )
    try:
        write_weights(model_weights, args.output_dir / "model_weights.json")
        write_category_index(args.output_dir / "category_index.json")
    except DatasetWriteError as e:
        logger.error(str(e))
        return 1

    print(f"\n{'Scenario':<40} {'Expected':>8} {'Predicted':>10}")
    for r in result.scenario_results:
        print(f"{r.name:<40} {r.expected:>8.0f} {r.predicted:>10.1f}")
    print(f"\nScenario MAE: {result.scenario_mae:.2f} points")
    if result.validation_metrics:
        print(f"Validation MAE: {result.validation_metrics['mae']:.2f} points")
    print(f"Weights written to {args.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
