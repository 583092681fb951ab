"""Pytest configuration and shared fixtures."""

import json

import pytest

from services.product_extractor import to_canonical


def make_record(**overrides):
    """A raw catalog record that passes validation unless overridden."""
    record = {
        "code": "3017620422003",
        "product_name": "Organic Apple Compote",
        "brands": "Orchard Co",
        "categories_tags": ["en:plant-based-foods", "en:fruits", "en:apple-compotes"],
        "ecoscore_score": 78,
        "ecoscore_grade": "b",
        "nova_group": 3,
        "labels_tags": ["en:organic", "en:eu-organic"],
        "packaging_tags": ["en:glass", "en:jar"],
        "packaging_text": "Recyclable glass jar",
        "origins": "France",
        "origins_tags": ["en:france"],
        "manufacturing_places": "Local orchard, Normandy",
        "ingredients_n": 2,
        "nutrient_levels_tags": ["en:fat-in-low-quantity"],
    }
    record.update(overrides)
    return record


@pytest.fixture
def raw_record():
    """Factory for raw catalog records: raw_record(code="1", ...)."""
    return make_record


@pytest.fixture
def sample_product():
    """A validated CanonicalProduct built from the default raw record."""
    return to_canonical(make_record())


@pytest.fixture
def seed_file(tmp_path):
    """A small but learnable seed dataset written to a temp file."""
    examples = []
    for i in range(12):
        examples.append(
            {
                "name": f"organic local fruit {i}",
                "category": "fruits-and-vegetables",
                "nova": 1,
                "organic": True,
                "local": True,
                "cert_count": 1,
                "processing": 0.0,
                "score": 90,
            }
        )
        examples.append(
            {
                "name": f"imported processed meat {i}",
                "category": "meats",
                "nova": 4,
                "plastic": True,
                "far": True,
                "processing": 1.0,
                "score": 8,
            }
        )
    path = tmp_path / "seed_dataset.json"
    path.write_text(
        json.dumps({"version": "test", "description": "", "examples": examples})
    )
    return path
