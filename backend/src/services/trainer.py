"""Train the eco-score regressor on the seed dataset.

Loads the versioned seed set (plus an optional mined corpus), augments it,
fits a 12 -> 16 -> 8 -> 1 network against mean squared error with Adam for
a fixed number of epochs, then reports validation metrics and the error on
a fixed set of hand-labeled scenarios.
"""

import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from pydantic import BaseModel, Field

from models.corpus import TrainingCorpus
from models.training import LabeledExample, SeedDataset
from services.augmenter import augment
from services.feature_encoder import (
    NUM_FEATURES,
    ProductIndicators,
    encode_indicators,
    example_from_product,
    example_from_seed,
)
from services.neural_network import AdamOptimizer, DenseNetwork
from utils.constants import ECO_GRADES, GRADE_LOWER_BOUNDS

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]
SEED_DATASET_PATH = Path(
    os.environ.get("SEED_DATASET_PATH", REPO_ROOT / "ml" / "seed_dataset.json")
)

LOG_INTERVAL = 10
TOLERANCES = (5, 10, 15, 20)


class TrainingError(Exception):
    """Training could not run or produced a non-finite loss."""


class TrainingConfig(BaseModel):
    """Hyperparameters for a training run."""

    epochs: int = Field(default=100, ge=1)
    batch_size: int = Field(default=16, ge=1)
    learning_rate: float = Field(default=0.005, gt=0)
    validation_split: float = Field(default=0.2, ge=0, lt=1)
    augmentation_factor: int = Field(default=5, ge=0)
    beta1: float = Field(default=0.9, ge=0, lt=1)
    beta2: float = Field(default=0.999, ge=0, lt=1)
    epsilon: float = Field(default=1e-8, gt=0)
    layer_sizes: tuple[int, ...] = (NUM_FEATURES, 16, 8, 1)
    seed: int | None = Field(default=None, description="RNG seed, None = random")


@dataclass
class EpochLog:
    epoch: int
    loss: float
    val_loss: float | None


@dataclass
class ScenarioResult:
    name: str
    expected: float
    predicted: float

    @property
    def error(self) -> float:
        return abs(self.predicted - self.expected)


@dataclass
class TrainingResult:
    """Trained network plus everything needed to write and audit the artifact."""

    network: DenseNetwork
    config: TrainingConfig
    training_examples: int
    train_size: int
    validation_size: int
    history: list[EpochLog] = field(default_factory=list)
    validation_metrics: dict[str, float] | None = None
    scenario_results: list[ScenarioResult] = field(default_factory=list)

    @property
    def scenario_mae(self) -> float:
        if not self.scenario_results:
            return 0.0
        return sum(r.error for r in self.scenario_results) / len(self.scenario_results)


# Hand-labeled illustrative products with the score a sensible model should
# give them. Used for diagnostics only, never for training.
EVALUATION_SCENARIOS: list[tuple[str, ProductIndicators, float]] = [
    (
        "organic local fruit",
        ProductIndicators(
            category="fruits-and-vegetables",
            nova=1,
            organic=True,
            eco_cert=True,
            recyclable=True,
            local=True,
            cert_count=2,
            processing=0.0,
        ),
        90.0,
    ),
    (
        "ultra-processed imported meat",
        ProductIndicators(
            category="meats", nova=4, plastic=True, far=True, processing=0.9
        ),
        8.0,
    ),
    (
        "plain yogurt in glass jar",
        ProductIndicators(
            category="dairies", nova=1, glass=True, recyclable=True, processing=0.1
        ),
        55.0,
    ),
    (
        "fair-trade organic dark chocolate",
        ProductIndicators(
            category="chocolates",
            nova=3,
            organic=True,
            fairtrade=True,
            far=True,
            cert_count=2,
            processing=0.6,
        ),
        48.0,
    ),
    (
        "soft drink in plastic bottle",
        ProductIndicators(category="beverages", nova=4, plastic=True, processing=1.0),
        30.0,
    ),
    (
        "wholemeal bread from local bakery",
        ProductIndicators(category="breads", nova=3, local=True, processing=0.5),
        66.0,
    ),
]


def load_seed_dataset(path: Path = SEED_DATASET_PATH) -> SeedDataset:
    """Load and validate the versioned seed dataset resource."""
    with open(path) as f:
        dataset = SeedDataset.model_validate(json.load(f))
    logger.info(
        f"Loaded seed dataset v{dataset.version}: {len(dataset.examples)} examples"
    )
    return dataset


def seed_examples(dataset: SeedDataset) -> list[LabeledExample]:
    return [example_from_seed(seed) for seed in dataset.examples]


def corpus_examples(corpus: TrainingCorpus) -> list[LabeledExample]:
    return [example_from_product(product) for product in corpus.products]


def examples_to_arrays(examples: list[LabeledExample]) -> tuple[np.ndarray, np.ndarray]:
    """Stack examples into (X, y) arrays, checking feature dimensionality."""
    if not examples:
        raise TrainingError("No training examples")
    bad = [i for i, ex in enumerate(examples) if len(ex.features) != NUM_FEATURES]
    if bad:
        raise TrainingError(
            f"{len(bad)} examples do not have {NUM_FEATURES} features "
            f"(first at index {bad[0]})"
        )
    X = np.array([ex.features for ex in examples], dtype=np.float64)
    y = np.array([ex.target for ex in examples], dtype=np.float64)
    return X, y


def mse(y_true, y_pred) -> float:
    return float(np.mean((y_true - y_pred) ** 2))


def compute_metrics(y_true, y_pred) -> dict[str, float]:
    """Regression metrics on the 0-100 score scale for targets in [0, 1]."""
    true_scores = np.asarray(y_true) * 100.0
    pred_scores = np.asarray(y_pred) * 100.0
    errors = np.abs(true_scores - pred_scores)
    ss_res = np.sum((true_scores - pred_scores) ** 2)
    ss_tot = np.sum((true_scores - np.mean(true_scores)) ** 2)
    metrics = {
        "mse": float(np.mean(errors**2)),
        "rmse": float(np.sqrt(np.mean(errors**2))),
        "mae": float(np.mean(errors)),
        "r2": float(1 - ss_res / ss_tot) if ss_tot > 0 else 0.0,
    }
    for tol in TOLERANCES:
        metrics[f"within_{tol}"] = float(np.mean(errors <= tol))
    return metrics


def format_metrics_report(metrics: dict[str, float], samples: int) -> str:
    lines = [
        f"{'=' * 60}",
        "Validation Report",
        f"{'=' * 60}",
        f"Samples: {samples}",
        f"MSE: {metrics['mse']:.2f}",
        f"RMSE: {metrics['rmse']:.2f} (score points)",
        f"MAE: {metrics['mae']:.2f} (score points)",
        f"R²: {metrics['r2']:.3f}",
    ]
    for tol in TOLERANCES:
        lines.append(f"Within ±{tol} pts: {metrics[f'within_{tol}']:.1%}")
    return "\n".join(lines)


def score_to_grade(score: float) -> str:
    """Letter grade for a 0-100 score."""
    for grade, lower in GRADE_LOWER_BOUNDS:
        if score >= lower:
            return grade
    return ECO_GRADES[-1]


def per_grade_metrics(grades, y_true, y_pred) -> dict[str, dict[str, float] | None]:
    """compute_metrics restricted to each published grade; None when a grade is absent."""
    grades = np.asarray(grades)
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    breakdown = {}
    for grade in ECO_GRADES:
        mask = grades == grade
        if not mask.any():
            breakdown[grade] = None
            continue
        metrics = compute_metrics(y_true[mask], y_pred[mask])
        metrics["count"] = int(mask.sum())
        breakdown[grade] = metrics
    return breakdown


def grade_accuracy(grades, y_pred) -> tuple[float, float]:
    """Share of predictions landing on the published grade, and within one grade of it."""
    if len(grades) == 0:
        return 0.0, 0.0
    exact = 0
    near = 0
    for grade, pred in zip(grades, y_pred):
        distance = abs(
            ECO_GRADES.index(grade) - ECO_GRADES.index(score_to_grade(float(pred) * 100.0))
        )
        exact += distance == 0
        near += distance <= 1
    return exact / len(grades), near / len(grades)


def evaluate_scenarios(network: DenseNetwork) -> list[ScenarioResult]:
    """Score every evaluation scenario on the 0-100 scale."""
    X = np.array([encode_indicators(ind) for _, ind, _ in EVALUATION_SCENARIOS])
    predictions = network.predict(X) * 100.0
    return [
        ScenarioResult(name=name, expected=expected, predicted=float(pred))
        for (name, _, expected), pred in zip(EVALUATION_SCENARIOS, predictions)
    ]


def train_network(
    examples: list[LabeledExample], config: TrainingConfig | None = None
) -> TrainingResult:
    """Fit a fresh network to ``examples`` for exactly ``config.epochs`` epochs.

    A fixed validation fraction is held out once; the training rows are
    reshuffled into new mini-batches every epoch. No early stopping.
    """
    config = config or TrainingConfig()
    X, y = examples_to_arrays(examples)
    rng = np.random.default_rng(config.seed)

    n = len(y)
    n_val = int(n * config.validation_split)
    indices = rng.permutation(n)
    val_idx, train_idx = indices[:n_val], indices[n_val:]
    if len(train_idx) == 0:
        raise TrainingError(f"Validation split {config.validation_split} leaves no rows")
    X_train, y_train = X[train_idx], y[train_idx]
    X_val, y_val = X[val_idx], y[val_idx]

    if config.layer_sizes[0] != NUM_FEATURES:
        raise TrainingError(
            f"Input layer {config.layer_sizes[0]} != feature count {NUM_FEATURES}"
        )
    network = DenseNetwork(config.layer_sizes, rng=rng)
    optimizer = AdamOptimizer(
        network,
        learning_rate=config.learning_rate,
        beta1=config.beta1,
        beta2=config.beta2,
        epsilon=config.epsilon,
    )

    logger.info(
        f"Training {network.architecture} ({network.parameter_count} params) "
        f"on {len(y_train)} rows, validating on {len(y_val)}"
    )
    history = []
    for epoch in range(config.epochs):
        order = rng.permutation(len(y_train))
        epoch_loss = 0.0
        batches = 0
        try:
            for start in range(0, len(order), config.batch_size):
                batch = order[start : start + config.batch_size]
                y_pred, cache = network.forward(X_train[batch])
                epoch_loss += mse(y_train[batch], y_pred)
                batches += 1
                grads = network.backward(y_train[batch], y_pred, cache)
                optimizer.step(grads)
        except ValueError as e:
            raise TrainingError(f"Epoch {epoch + 1} failed: {e}") from e

        train_loss = epoch_loss / batches
        val_loss = mse(y_val, network.predict(X_val)) if n_val else None
        if not math.isfinite(train_loss) or (
            val_loss is not None and not math.isfinite(val_loss)
        ):
            raise TrainingError(f"Non-finite loss at epoch {epoch + 1}")
        history.append(EpochLog(epoch=epoch + 1, loss=train_loss, val_loss=val_loss))

        if epoch % LOG_INTERVAL == 0 or epoch == config.epochs - 1:
            val_str = f"{val_loss:.6f}" if val_loss is not None else "n/a"
            logger.info(
                f"Epoch {epoch + 1}/{config.epochs}: "
                f"loss={train_loss:.6f} val_loss={val_str}"
            )

    result = TrainingResult(
        network=network,
        config=config,
        training_examples=n,
        train_size=len(y_train),
        validation_size=len(y_val),
        history=history,
    )
    if n_val:
        result.validation_metrics = compute_metrics(y_val, network.predict(X_val))
    result.scenario_results = evaluate_scenarios(network)
    return result


def run_training(
    config: TrainingConfig | None = None,
    seed_path: Path = SEED_DATASET_PATH,
    corpus: TrainingCorpus | None = None,
) -> TrainingResult:
    """Load seed data, augment it, add mined products if given, and train."""
    config = config or TrainingConfig()
    examples = seed_examples(load_seed_dataset(seed_path))
    rng = np.random.default_rng(config.seed)
    examples = augment(examples, config.augmentation_factor, rng=rng)
    logger.info(f"Augmented seed set to {len(examples)} examples")
    if corpus is not None:
        mined = corpus_examples(corpus)
        logger.info(f"Adding {len(mined)} mined products from corpus")
        examples.extend(mined)

    result = train_network(examples, config)

    if result.validation_metrics is not None:
        logger.info(
            "\n" + format_metrics_report(result.validation_metrics, result.validation_size)
        )
    for r in result.scenario_results:
        logger.info(
            f"Scenario {r.name!r}: expected {r.expected:.0f}, "
            f"predicted {r.predicted:.1f} (error {r.error:.1f})"
        )
    logger.info(f"Scenario MAE: {result.scenario_mae:.2f} points")
    return result
