"""Pandas DataFrame adapters and file exports for LTV reports."""

from .frames import (
    customers_to_dataframe,
    monthly_to_dataframe,
    routes_to_dataframe,
    items_to_dataframe,
    rfm_grid_to_dataframe,
    line_items_to_dataframe,
    dataframe_to_line_items,
    analyze_line_items_df,
)
from .exports import export_report_json, export_report_csv

__all__ = [
    # Report adapters
    "customers_to_dataframe",
    "monthly_to_dataframe",
    "routes_to_dataframe",
    "items_to_dataframe",
    "rfm_grid_to_dataframe",
    # Line item adapters
    "line_items_to_dataframe",
    "dataframe_to_line_items",
    "analyze_line_items_df",
    # Exports
    "export_report_json",
    "export_report_csv",
]
