"""Ingestion utilities for normalizing procedure output before it is served."""

from .normalizer import RawRow, derive_columns, find_heterogeneous_rows, normalize_rows

__all__ = [
    "RawRow",
    "derive_columns",
    "find_heterogeneous_rows",
    "normalize_rows",
]
