"""ML-based eco-score predictor.

Loads the trained network weights and performs inference on encoded product
features. The model takes the 12 features produced by
services.feature_encoder and outputs score / 100, reported here as a score
from 0 to 100.

Inference is plain Python so that serving does not need numpy. When the
weight artifact is missing or was trained against a different category
table, predictions fall back to per-category averages.
"""

import json
import logging
import math
import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from models.product import CanonicalProduct, CatalogRecord
from services.feature_encoder import (
    NUM_FEATURES,
    ProductIndicators,
    encode_indicators,
    extract_indicators,
)
from services.product_extractor import indicators_from_record
from services.weight_serializer import WeightFormatError, load_weights
from utils.categories import CATEGORY_INDEX

logger = logging.getLogger(__name__)

# Loaded once per process
MODEL_DIR = Path(
    os.environ.get("MODEL_OUTPUT_DIR", Path(__file__).parent.parent / "ml_model")
)
MODEL_PATH = MODEL_DIR / "model_weights.json"
CATEGORY_INDEX_PATH = MODEL_DIR / "category_index.json"
_model = None
_model_unavailable = False

# Average published eco-score per category, used when no model is available
CATEGORY_AVERAGES: dict[str, float] = {
    "beverages": 48.0,
    "dairies": 45.0,
    "snacks": 38.0,
    "cereals-and-potatoes": 62.0,
    "fruits-and-vegetables": 76.0,
    "meats": 22.0,
    "fishes-and-seafood": 35.0,
    "frozen-foods": 45.0,
    "breads": 64.0,
    "sauces": 55.0,
    "canned-foods": 50.0,
    "plant-based-foods": 70.0,
    "eggs": 55.0,
    "cheeses": 36.0,
    "chocolates": 34.0,
    "coffees": 40.0,
    "pastas": 66.0,
    "meals": 42.0,
    "sweets": 42.0,
    "baby-foods": 58.0,
    "other": 45.0,
}


class PredictionMethod(str, Enum):
    NEURAL_NETWORK = "neural_network"
    CATEGORY_AVERAGE = "category_average"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PredictionResult(BaseModel):
    """Point estimate of a product's eco-score."""

    score: float = Field(..., ge=0, le=100)
    confidence: ConfidenceLevel
    method: PredictionMethod
    category: str
    signal_count: int = Field(
        ..., ge=0, description="Label/packaging/origin indicators that were set"
    )
    raw_output: float | None = Field(None, description="Network output in [0, 1]")


def _transpose(data: list[float], shape: list[int]) -> list[list[float]]:
    """Row-major [n_in][n_out] kernel to [n_out][n_in] rows for zip() dots."""
    n_in, n_out = shape
    return [[data[i * n_out + j] for i in range(n_in)] for j in range(n_out)]


def _category_table_matches() -> bool:
    try:
        with open(CATEGORY_INDEX_PATH) as f:
            served = json.load(f)
    except FileNotFoundError:
        logger.warning(f"No category index at {CATEGORY_INDEX_PATH}, assuming current")
        return True
    except (OSError, ValueError) as e:
        logger.error(f"Category index at {CATEGORY_INDEX_PATH} is unreadable: {e}")
        return False
    if not isinstance(served, dict) or served.get("categories") != CATEGORY_INDEX:
        logger.error(
            f"Category index at {CATEGORY_INDEX_PATH} differs from the encoder's "
            "table; refusing to use a model trained on other category indices"
        )
        return False
    return True


def _build_model() -> dict | None:
    try:
        artifact = load_weights(MODEL_PATH)
    except FileNotFoundError:
        logger.warning(f"ML model not found at {MODEL_PATH}, falling back to averages")
        return None
    except WeightFormatError as e:
        logger.error(f"ML model at {MODEL_PATH} is invalid: {e}")
        return None
    if not _category_table_matches():
        return None

    tensors = artifact.weights
    layers = []
    for i in range(0, len(tensors), 2):
        kernel, bias = tensors[i], tensors[i + 1]
        layers.append({"W_T": _transpose(kernel.data, kernel.shape), "b": bias.data})
    if len(layers[0]["W_T"][0]) != NUM_FEATURES:
        logger.error(
            f"ML model expects {len(layers[0]['W_T'][0])} features, "
            f"encoder produces {NUM_FEATURES}"
        )
        return None

    logger.info(
        f"Loaded ML model v{artifact.version} ({artifact.architecture}, "
        f"MAE {artifact.final_mae:.1f})"
    )
    return {"architecture": artifact.architecture, "layers": layers}


def _load_model() -> dict | None:
    """Load model weights from JSON file, or None if unusable.

    A failed load is remembered so the fallback warning is logged once per
    process rather than on every prediction.
    """
    global _model, _model_unavailable
    if _model is not None:
        return _model
    if _model_unavailable:
        return None
    _model = _build_model()
    _model_unavailable = _model is None
    return _model


def reset_model_cache() -> None:
    global _model, _model_unavailable
    _model = None
    _model_unavailable = False


def _relu(x: float) -> float:
    return max(0.0, x)


def _sigmoid(x: float) -> float:
    x = max(-500.0, min(500.0, x))
    return 1.0 / (1.0 + math.exp(-x))


def _forward(features: list[float], layers: list[dict]) -> float:
    """Forward pass: ReLU on hidden layers, sigmoid on the single output."""
    activations = features
    last = len(layers) - 1
    for i, layer in enumerate(layers):
        z = [
            sum(w * x for w, x in zip(row, activations, strict=False)) + b
            for row, b in zip(layer["W_T"], layer["b"], strict=False)
        ]
        activations = [_sigmoid(v) for v in z] if i == last else [_relu(v) for v in z]
    return activations[0]


def predict_score(features: list[float]) -> float | None:
    """Score (0-100) for an encoded feature vector, None without a model."""
    if len(features) != NUM_FEATURES:
        raise ValueError(f"expected {NUM_FEATURES} features, got {len(features)}")
    model = _load_model()
    if model is None:
        return None
    return _forward(list(features), model["layers"]) * 100.0


def _signal_count(indicators: ProductIndicators) -> int:
    return sum(
        [
            indicators.organic,
            indicators.fairtrade,
            indicators.eco_cert,
            indicators.recyclable,
            indicators.glass,
            indicators.plastic,
            indicators.local,
            indicators.far,
        ]
    )


def predict_indicators(indicators: ProductIndicators) -> PredictionResult:
    """Predict from encoder inputs, falling back to the category average."""
    signals = _signal_count(indicators)
    model = _load_model()
    if model is None:
        return PredictionResult(
            score=CATEGORY_AVERAGES.get(indicators.category, CATEGORY_AVERAGES["other"]),
            confidence=ConfidenceLevel.LOW,
            method=PredictionMethod.CATEGORY_AVERAGE,
            category=indicators.category,
            signal_count=signals,
        )

    raw = _forward(encode_indicators(indicators), model["layers"])
    if indicators.category != "other" and signals >= 2:
        confidence = ConfidenceLevel.HIGH
    elif indicators.category != "other" or signals >= 2:
        confidence = ConfidenceLevel.MEDIUM
    else:
        confidence = ConfidenceLevel.LOW
    return PredictionResult(
        score=round(max(0.0, min(100.0, raw * 100.0)), 1),
        confidence=confidence,
        method=PredictionMethod.NEURAL_NETWORK,
        category=indicators.category,
        signal_count=signals,
        raw_output=raw,
    )


def predict_product(product: CanonicalProduct) -> PredictionResult:
    return predict_indicators(extract_indicators(product))


def predict_from_catalog_record(record: CatalogRecord) -> PredictionResult:
    """Predict straight from a raw catalog record (no score required)."""
    return predict_indicators(indicators_from_record(record))
