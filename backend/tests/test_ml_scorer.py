"""Tests for the ML-based eco-score predictor."""

import json
import logging

import numpy as np
import pytest

from services import ml_scorer
from services.feature_encoder import ProductIndicators, encode_indicators
from services.ml_scorer import (
    CATEGORY_AVERAGES,
    ConfidenceLevel,
    PredictionMethod,
    _forward,
    _relu,
    _sigmoid,
    _transpose,
    predict_from_catalog_record,
    predict_indicators,
    predict_product,
    predict_score,
)
from services.neural_network import DenseNetwork
from services.weight_serializer import (
    to_model_weights,
    write_category_index,
    write_weights,
)
from utils.categories import CATEGORIES

# ── Helper fixtures ──────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def fresh_cache():
    ml_scorer.reset_model_cache()
    yield
    ml_scorer.reset_model_cache()


@pytest.fixture
def network():
    return DenseNetwork((12, 16, 8, 1), rng=np.random.default_rng(21))


@pytest.fixture
def model_dir(tmp_path, network, monkeypatch):
    """Artifact directory with weights and category index, wired into the scorer."""
    write_weights(to_model_weights(network, 10, 1, 5.0), tmp_path / "model_weights.json")
    write_category_index(tmp_path / "category_index.json")
    monkeypatch.setattr(ml_scorer, "MODEL_PATH", tmp_path / "model_weights.json")
    monkeypatch.setattr(
        ml_scorer, "CATEGORY_INDEX_PATH", tmp_path / "category_index.json"
    )
    return tmp_path


@pytest.fixture
def no_model(tmp_path, monkeypatch):
    monkeypatch.setattr(ml_scorer, "MODEL_PATH", tmp_path / "missing.json")
    monkeypatch.setattr(ml_scorer, "CATEGORY_INDEX_PATH", tmp_path / "missing_idx.json")


ORGANIC_FRUIT = ProductIndicators(
    category="fruits-and-vegetables",
    nova=1,
    organic=True,
    eco_cert=True,
    local=True,
    cert_count=2,
    processing=0.0,
)


# ── Math primitives ──────────────────────────────────────────────────────────


class TestMathPrimitives:
    def test_relu(self):
        assert _relu(3.5) == 3.5
        assert _relu(-2.0) == 0.0

    def test_sigmoid_zero(self):
        assert abs(_sigmoid(0.0) - 0.5) < 1e-6

    def test_sigmoid_extreme_clamp(self):
        """Sigmoid should not overflow with extreme values."""
        assert 0.0 <= _sigmoid(1000.0) <= 1.0
        assert 0.0 <= _sigmoid(-1000.0) <= 1.0

    def test_transpose_2x3(self):
        assert _transpose([1, 2, 3, 4, 5, 6], [2, 3]) == [[1, 4], [2, 5], [3, 6]]

    def test_zero_weights_gives_midpoint(self):
        layers = [
            {"W_T": [[0.0, 0.0], [0.0, 0.0]], "b": [0.0, 0.0]},
            {"W_T": [[0.0, 0.0]], "b": [0.0]},
        ]
        assert _forward([1.0, 2.0], layers) == 0.5


# ── Model-backed predictions ─────────────────────────────────────────────────


class TestWithModel:
    def test_matches_numpy_network(self, model_dir, network):
        features = encode_indicators(ORGANIC_FRUIT)
        expected = float(network.predict(np.array([features]))[0]) * 100
        assert predict_score(features) == pytest.approx(expected, abs=1e-6)

    def test_prediction_result(self, model_dir):
        result = predict_indicators(ORGANIC_FRUIT)

        assert result.method == PredictionMethod.NEURAL_NETWORK
        assert result.confidence == ConfidenceLevel.HIGH
        assert 0.0 <= result.score <= 100.0
        assert result.raw_output == pytest.approx(result.score / 100, abs=0.001)
        assert result.signal_count == 3

    def test_confidence_drops_without_signals(self, model_dir):
        assert predict_indicators(
            ProductIndicators(category="other")
        ).confidence == ConfidenceLevel.LOW
        assert predict_indicators(
            ProductIndicators(category="meats")
        ).confidence == ConfidenceLevel.MEDIUM

    def test_model_cached(self, model_dir):
        predict_indicators(ORGANIC_FRUIT)
        (model_dir / "model_weights.json").unlink()
        result = predict_indicators(ORGANIC_FRUIT)
        assert result.method == PredictionMethod.NEURAL_NETWORK

    def test_raw_catalog_record(self, model_dir, raw_record):
        result = predict_from_catalog_record(
            raw_record(ecoscore_score=None, ecoscore_grade=None)
        )
        assert result.method == PredictionMethod.NEURAL_NETWORK
        assert result.category == "fruits-and-vegetables"

    def test_product_and_record_agree(self, model_dir, raw_record, sample_product):
        assert (
            predict_product(sample_product).score
            == predict_from_catalog_record(raw_record()).score
        )

    def test_wrong_feature_count(self, model_dir):
        with pytest.raises(ValueError):
            predict_score([0.0] * 11)


# ── Fallback paths ───────────────────────────────────────────────────────────


class TestFallback:
    def test_missing_model_uses_category_average(self, no_model):
        result = predict_indicators(ProductIndicators(category="meats"))

        assert result.method == PredictionMethod.CATEGORY_AVERAGE
        assert result.score == CATEGORY_AVERAGES["meats"]
        assert result.confidence == ConfidenceLevel.LOW
        assert result.raw_output is None

    def test_missing_model_score_is_none(self, no_model):
        assert predict_score([0.0] * 12) is None

    def test_every_category_has_average(self):
        assert set(CATEGORY_AVERAGES) == set(CATEGORIES)

    def test_mismatched_category_index(self, model_dir):
        (model_dir / "category_index.json").write_text(
            json.dumps({"version": "0", "categories": {"beverages": 3}})
        )
        result = predict_indicators(ORGANIC_FRUIT)
        assert result.method == PredictionMethod.CATEGORY_AVERAGE

    def test_corrupt_weights(self, model_dir):
        (model_dir / "model_weights.json").write_text("{}")
        result = predict_indicators(ORGANIC_FRUIT)
        assert result.method == PredictionMethod.CATEGORY_AVERAGE

    def test_unknown_category_falls_back_to_other(self, no_model):
        result = predict_indicators(ProductIndicators(category="moon-rocks"))
        assert result.score == CATEGORY_AVERAGES["other"]

    @pytest.mark.parametrize("content", ["{not json", "[]", '"categories"'])
    def test_corrupt_category_index(self, model_dir, content):
        (model_dir / "category_index.json").write_text(content)
        result = predict_indicators(ORGANIC_FRUIT)
        assert result.method == PredictionMethod.CATEGORY_AVERAGE
        assert result.score == CATEGORY_AVERAGES["fruits-and-vegetables"]

    def test_failed_load_is_remembered(self, no_model, caplog):
        with caplog.at_level(logging.WARNING, logger="services.ml_scorer"):
            for _ in range(3):
                predict_indicators(ORGANIC_FRUIT)
        missing = [r for r in caplog.records if "ML model not found" in r.message]
        assert len(missing) == 1

    def test_reset_retries_failed_load(self, no_model, tmp_path, network):
        assert predict_score([0.0] * 12) is None
        write_weights(to_model_weights(network, 10, 1, 5.0), tmp_path / "missing.json")
        assert predict_score([0.0] * 12) is None

        ml_scorer.reset_model_cache()
        assert predict_score([0.0] * 12) is not None
