"""Ingestion of raw order exports.

This package detects the date, customer and amount columns of arbitrary
order CSVs and turns each row into a canonical order record or line item.
"""

from .columns import ColumnMapping, ColumnResolver, ColumnStrategy
from .csv_reader import parse_csv_text, read_csv_rows
from .normalizer import (
    CanonicalOrderRecord,
    LineItemNormalizationResult,
    LineItemRecord,
    NormalizationResult,
    RecordNormalizer,
    clean_amount,
    normalize_date,
    parse_iso_date,
)

__all__ = [
    "CanonicalOrderRecord",
    "ColumnMapping",
    "ColumnResolver",
    "ColumnStrategy",
    "LineItemNormalizationResult",
    "LineItemRecord",
    "NormalizationResult",
    "RecordNormalizer",
    "clean_amount",
    "normalize_date",
    "parse_csv_text",
    "parse_iso_date",
    "read_csv_rows",
]
