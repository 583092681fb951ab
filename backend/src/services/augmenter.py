"""Noise-injection augmentation for the hand-labeled seed set.

Augmented rows are perturbed copies of seed rows, used only to keep the
network from memorizing a few hundred points. They are not real samples.
"""

import numpy as np

from models.training import LabeledExample

PROCESSING_FEATURE_INDEX = 11
PROCESSING_NOISE = 0.1
TARGET_NOISE_FRACTION = 0.05


def augment(
    examples: list[LabeledExample],
    factor: int,
    rng: np.random.Generator | None = None,
) -> list[LabeledExample]:
    """Return the seed set followed by ``factor`` noisy copies of each entry.

    The first ``len(examples)`` entries are the originals, unchanged and in
    order. Copies jitter the processing feature by U(-0.1, 0.1) clamped to
    [0, 1] and the score by up to +/-5% of itself clamped to [0, 100].
    """
    if factor < 0:
        raise ValueError(f"augmentation factor must be >= 0, got {factor}")
    rng = rng if rng is not None else np.random.default_rng()

    augmented = list(examples)
    for _ in range(factor):
        for example in examples:
            features = list(example.features)
            processing = features[PROCESSING_FEATURE_INDEX] + rng.uniform(
                -PROCESSING_NOISE, PROCESSING_NOISE
            )
            features[PROCESSING_FEATURE_INDEX] = float(np.clip(processing, 0.0, 1.0))

            score = example.target * 100.0
            score += rng.uniform(-TARGET_NOISE_FRACTION, TARGET_NOISE_FRACTION) * score
            target = float(np.clip(score, 0.0, 100.0)) / 100.0

            augmented.append(LabeledExample(features=tuple(features), target=target))
    return augmented
