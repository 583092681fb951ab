"""Export trained network weights to the portable JSON artifact and back.

Tensors are written in layer order as kernel then bias:
``[W1 (12x16), b1 (16), W2 (16x8), b2 (8), W3 (8x1), b3 (1)]``, each as
``{"shape": [...], "data": [...row-major values]}``. Readers rebuild the
expected shapes from the architecture descriptor and reject artifacts whose
tensors disagree with it.
"""

import json
import logging
import re
from datetime import UTC, datetime
from pathlib import Path

import numpy as np
from pydantic import ValidationError

from models.training import LayerTensor, ModelWeights
from services.dataset_writer import write_json
from services.neural_network import DenseNetwork, describe_architecture
from utils.categories import CATEGORY_INDEX, CATEGORY_TABLE_VERSION

logger = logging.getLogger(__name__)

MODEL_FORMAT_VERSION = "1.0.0"


class WeightFormatError(Exception):
    """A weight artifact is malformed or inconsistent with its architecture."""


def parse_architecture(descriptor: str) -> tuple[int, ...]:
    """Layer sizes from a descriptor such as '12 -> 16 (relu) -> 1 (sigmoid)'."""
    sizes = tuple(int(s) for s in re.findall(r"\d+", descriptor))
    if len(sizes) < 2:
        raise WeightFormatError(f"Cannot parse architecture {descriptor!r}")
    return sizes


def expected_shapes(layer_sizes) -> list[list[int]]:
    shapes = []
    for n_in, n_out in zip(layer_sizes[:-1], layer_sizes[1:]):
        shapes.append([n_in, n_out])
        shapes.append([n_out])
    return shapes


def validate_shapes(model_weights: ModelWeights) -> tuple[int, ...]:
    """Check tensor shapes against the descriptor; returns the layer sizes."""
    layer_sizes = parse_architecture(model_weights.architecture)
    expected = expected_shapes(layer_sizes)
    actual = [tensor.shape for tensor in model_weights.weights]
    if actual != expected:
        raise WeightFormatError(
            f"Tensor shapes {actual} do not match architecture "
            f"{model_weights.architecture!r} (expected {expected})"
        )
    return layer_sizes


def to_model_weights(
    network: DenseNetwork,
    training_examples: int,
    epochs: int,
    final_mae: float,
) -> ModelWeights:
    """Snapshot a network into the artifact model."""
    tensors = []
    for W, b in zip(network.weights, network.biases):
        tensors.append(LayerTensor(shape=list(W.shape), data=W.flatten().tolist()))
        tensors.append(LayerTensor(shape=list(b.shape), data=b.flatten().tolist()))
    return ModelWeights(
        version=MODEL_FORMAT_VERSION,
        architecture=describe_architecture(network.layer_sizes),
        total_parameters=network.parameter_count,
        training_examples=training_examples,
        epochs=epochs,
        final_mae=round(float(final_mae), 4),
        trained_at=datetime.now(UTC).isoformat(),
        weights=tensors,
    )


def network_from_weights(model_weights: ModelWeights) -> DenseNetwork:
    """Rebuild a DenseNetwork from a validated artifact."""
    layer_sizes = validate_shapes(model_weights)
    network = DenseNetwork(layer_sizes)
    tensors = model_weights.weights
    for i in range(network.n_layers):
        kernel, bias = tensors[2 * i], tensors[2 * i + 1]
        network.weights[i] = np.array(kernel.data, dtype=np.float64).reshape(
            kernel.shape
        )
        network.biases[i] = np.array(bias.data, dtype=np.float64).reshape(bias.shape)
    return network


def write_weights(model_weights: ModelWeights, path: Path) -> None:
    write_json(model_weights.model_dump(mode="json", by_alias=True), path)
    logger.info(
        f"Model weights saved to {path} "
        f"({model_weights.total_parameters} params, {model_weights.architecture})"
    )


def write_category_index(path: Path) -> None:
    """Write the category -> index table the inference engine encodes with."""
    write_json({"version": CATEGORY_TABLE_VERSION, "categories": CATEGORY_INDEX}, path)


def load_weights(path: Path) -> ModelWeights:
    """Read and validate a weight artifact.

    Raises:
        WeightFormatError: If the file is not a valid artifact or its tensor
            shapes disagree with its architecture descriptor.
    """
    try:
        with open(path) as f:
            model_weights = ModelWeights.model_validate(json.load(f))
    except (ValueError, ValidationError) as e:
        raise WeightFormatError(f"Invalid weight artifact {path}: {e}") from e
    validate_shapes(model_weights)
    return model_weights
