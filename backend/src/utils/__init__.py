"""Shared constants and the category table."""

from .categories import (
    CATEGORIES,
    CATEGORY_INDEX,
    DEFAULT_CATEGORY,
    NUM_CATEGORIES,
    category_index,
    resolve_category,
)

__all__ = [
    "CATEGORIES",
    "CATEGORY_INDEX",
    "DEFAULT_CATEGORY",
    "NUM_CATEGORIES",
    "category_index",
    "resolve_category",
]
