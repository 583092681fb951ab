"""Shared constants for the eco-score training pipeline."""

# Letter grades published by the catalog, best to worst.
ECO_GRADES: tuple[str, ...] = ("a", "b", "c", "d", "e")

# Score assumed for a record that carries a grade but no numeric score.
# Only applied when score estimation is explicitly enabled on extraction.
GRADE_DEFAULT_SCORES: dict[str, float] = {
    "a": 85.0,
    "b": 65.0,
    "c": 45.0,
    "d": 25.0,
    "e": 10.0,
}

# Score histogram buckets as (label, lower inclusive, upper exclusive).
# The last bucket is closed so that a score of exactly 100 is counted.
SCORE_BUCKETS: tuple[tuple[str, float, float], ...] = (
    ("0-20", 0.0, 20.0),
    ("20-40", 20.0, 40.0),
    ("40-60", 40.0, 60.0),
    ("60-80", 60.0, 80.0),
    ("80-100", 80.0, 100.0),
)

# NOVA processing classification bounds and the value assumed when missing.
NOVA_MIN: int = 1
NOVA_MAX: int = 4
DEFAULT_NOVA_GROUP: int = 2

# Certification counts saturate at this value in the feature vector.
MAX_CERTIFICATIONS: int = 5

# Lower score bound of each letter grade, used to grade a predicted score.
GRADE_LOWER_BOUNDS: tuple[tuple[str, float], ...] = (
    ("a", 80.0),
    ("b", 60.0),
    ("c", 40.0),
    ("d", 20.0),
    ("e", 0.0),
)
