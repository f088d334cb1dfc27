"""
Read-path normalization of historical storage shapes.
"""

from .shape_normalizer import (
    BLOB_LAYOUT,
    ColumnLayout,
    Columns,
    JsonBlob,
    NoShape,
    Plaintext,
    Shape,
    ShapeNormalizer,
    classify,
    classify_columns,
    classify_field,
    layouts_for,
    to_snake_case,
)

__all__ = [
    "BLOB_LAYOUT",
    "ColumnLayout",
    "Columns",
    "JsonBlob",
    "NoShape",
    "Plaintext",
    "Shape",
    "ShapeNormalizer",
    "classify",
    "classify_columns",
    "classify_field",
    "layouts_for",
    "to_snake_case",
]
