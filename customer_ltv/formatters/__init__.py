"""Formatters that render LTV reports for display."""

from .markdown_tables import (
    format_golden_routes_table,
    format_items_table,
    format_monthly_table,
    format_report,
    format_rfm_grid_table,
    format_summary_table,
    format_yearly_table,
)

__all__ = [
    "format_summary_table",
    "format_monthly_table",
    "format_yearly_table",
    "format_rfm_grid_table",
    "format_golden_routes_table",
    "format_items_table",
    "format_report",
]
