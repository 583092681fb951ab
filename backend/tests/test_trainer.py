"""Tests for the training pipeline."""

import json
import logging

import numpy as np
import pytest
from pydantic import ValidationError

from models.corpus import TrainingCorpus
from models.training import LabeledExample
from services.feature_encoder import encode_features
from services.trainer import (
    EVALUATION_SCENARIOS,
    SEED_DATASET_PATH,
    TrainingConfig,
    TrainingError,
    compute_metrics,
    examples_to_arrays,
    format_metrics_report,
    grade_accuracy,
    load_seed_dataset,
    per_grade_metrics,
    run_training,
    score_to_grade,
    seed_examples,
    train_network,
)
from utils.categories import CATEGORIES

FRUIT_SCENARIO = encode_features(
    "fruits-and-vegetables",
    nova=1,
    organic=1,
    eco_cert=1,
    recyclable=1,
    local=1,
    cert_count=2,
    processing=0.0,
)
MEAT_SCENARIO = encode_features(
    "meats", nova=4, plastic=1, far=1, cert_count=0, processing=0.9
)


@pytest.fixture(scope="module")
def trained():
    """Full default training run on the shipped seed dataset."""
    return run_training(TrainingConfig(seed=42))


class TestSeedDataset:
    def test_shipped_dataset_loads(self):
        dataset = load_seed_dataset(SEED_DATASET_PATH)
        assert dataset.version
        assert len(dataset.examples) >= 100

    def test_shipped_dataset_covers_every_category(self):
        dataset = load_seed_dataset(SEED_DATASET_PATH)
        assert {e.category for e in dataset.examples} == set(CATEGORIES)

    def test_invalid_seed_rejected(self, tmp_path):
        path = tmp_path / "seed.json"
        path.write_text(
            json.dumps(
                {
                    "version": "1",
                    "examples": [
                        {
                            "name": "x",
                            "category": "meats",
                            "nova": 7,
                            "processing": 0,
                            "score": 10,
                        }
                    ],
                }
            )
        )
        with pytest.raises(ValidationError):
            load_seed_dataset(path)

    def test_seed_examples_encoded(self, seed_file):
        examples = seed_examples(load_seed_dataset(seed_file))
        assert len(examples) == 24
        assert all(len(e.features) == 12 for e in examples)


class TestExamplesToArrays:
    def test_empty_dataset_fails(self):
        with pytest.raises(TrainingError):
            examples_to_arrays([])

    def test_wrong_dimension_fails(self):
        with pytest.raises(TrainingError):
            examples_to_arrays([LabeledExample(features=(0.1, 0.2), target=0.5)])

    def test_shapes(self):
        X, y = examples_to_arrays([LabeledExample(tuple(FRUIT_SCENARIO), 0.9)] * 3)
        assert X.shape == (3, 12)
        assert y.shape == (3,)


class TestMetrics:
    def test_perfect_predictions(self):
        y = np.array([0.1, 0.5, 0.9])
        metrics = compute_metrics(y, y)
        assert metrics["mae"] == 0.0
        assert metrics["r2"] == 1.0
        assert metrics["within_5"] == 1.0

    def test_score_scale(self):
        metrics = compute_metrics(np.array([0.5, 0.5]), np.array([0.59, 0.43]))
        assert metrics["mae"] == pytest.approx(8.0)
        assert metrics["within_5"] == 0.0
        assert metrics["within_10"] == 1.0

    def test_report_lists_tolerances(self):
        report = format_metrics_report(compute_metrics(np.ones(2), np.ones(2)), 2)
        assert "MAE" in report
        assert "±20" in report


class TestGradeEvaluation:
    @pytest.mark.parametrize(
        "score, grade",
        [
            (100, "a"),
            (80, "a"),
            (79.9, "b"),
            (60, "b"),
            (40, "c"),
            (20, "d"),
            (19.9, "e"),
            (0, "e"),
        ],
    )
    def test_score_to_grade(self, score, grade):
        assert score_to_grade(score) == grade

    def test_per_grade_metrics(self):
        breakdown = per_grade_metrics(
            ["a", "a", "e"], np.array([0.9, 0.8, 0.1]), np.array([0.85, 0.8, 0.3])
        )
        assert breakdown["a"]["count"] == 2
        assert breakdown["a"]["mae"] == pytest.approx(2.5)
        assert breakdown["e"]["count"] == 1
        assert breakdown["e"]["within_10"] == 0.0
        assert breakdown["b"] is None

    def test_grade_accuracy(self):
        exact, within_one = grade_accuracy(
            ["a", "b", "c", "e"], np.array([0.9, 0.45, 0.1, 0.05])
        )
        assert exact == pytest.approx(0.5)
        assert within_one == pytest.approx(0.75)

    def test_grade_accuracy_empty(self):
        assert grade_accuracy([], np.array([])) == (0.0, 0.0)


class TestTrainNetwork:
    def test_runs_exact_epoch_count(self, seed_file):
        examples = seed_examples(load_seed_dataset(seed_file))
        result = train_network(examples, TrainingConfig(epochs=7, seed=1))

        assert [h.epoch for h in result.history] == list(range(1, 8))
        assert result.train_size + result.validation_size == 24
        assert result.validation_size == 4
        assert len(result.scenario_results) == len(EVALUATION_SCENARIOS)

    def test_no_validation_split(self, seed_file):
        examples = seed_examples(load_seed_dataset(seed_file))
        result = train_network(
            examples, TrainingConfig(epochs=2, validation_split=0.0, seed=1)
        )
        assert result.validation_metrics is None
        assert result.history[-1].val_loss is None

    def test_same_seed_is_reproducible(self, seed_file):
        examples = seed_examples(load_seed_dataset(seed_file))
        a = train_network(examples, TrainingConfig(epochs=3, seed=5))
        b = train_network(examples, TrainingConfig(epochs=3, seed=5))
        np.testing.assert_array_equal(a.network.weights[0], b.network.weights[0])

    def test_empty_input_fails(self):
        with pytest.raises(TrainingError):
            train_network([], TrainingConfig(epochs=1))

    def test_input_layer_must_match_features(self, seed_file):
        examples = seed_examples(load_seed_dataset(seed_file))
        with pytest.raises(TrainingError):
            train_network(
                examples, TrainingConfig(epochs=1, layer_sizes=(10, 4, 1), seed=0)
            )

    def test_logs_every_tenth_epoch(self, seed_file, caplog):
        examples = seed_examples(load_seed_dataset(seed_file))
        with caplog.at_level(logging.INFO, logger="services.trainer"):
            train_network(examples, TrainingConfig(epochs=25, seed=0))
        epochs = [r.message for r in caplog.records if r.message.startswith("Epoch ")]
        assert [m.split(":")[0] for m in epochs] == [
            "Epoch 1/25",
            "Epoch 11/25",
            "Epoch 21/25",
            "Epoch 25/25",
        ]


class TestRunTraining:
    def test_learns_high_and_low_ends(self, trained):
        fruit, meat = trained.network.predict(np.array([FRUIT_SCENARIO, MEAT_SCENARIO]))
        assert fruit * 100 >= 70
        assert meat * 100 <= 20

    def test_augmented_example_count(self, trained):
        seed_count = len(load_seed_dataset(SEED_DATASET_PATH).examples)
        assert trained.training_examples == seed_count * 6

    def test_loss_decreases(self, trained):
        assert trained.history[-1].loss < trained.history[0].loss

    def test_reports_validation_metrics(self, trained):
        assert trained.validation_metrics is not None
        assert 0 <= trained.validation_metrics["within_20"] <= 1
        assert trained.scenario_mae >= 0

    def test_corpus_products_added(self, seed_file, sample_product):
        corpus = TrainingCorpus(
            fetched_at="2026-01-01T00:00:00+00:00",
            source="test",
            total_products=1,
            total_scanned=1,
            pipeline="test",
            products=[sample_product],
        )
        result = run_training(
            TrainingConfig(epochs=1, augmentation_factor=0, seed=0),
            seed_path=seed_file,
            corpus=corpus,
        )
        assert result.training_examples == 25
