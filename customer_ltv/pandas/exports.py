"""Export LTV reports to JSON and CSV files.

JSON exports carry the whole report; CSV exports write one table per file
(customers, monthly series, golden routes, items, RFM grid) into a directory.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from customer_ltv.pipeline import LTVReport

from .frames import (
    customers_to_dataframe,
    items_to_dataframe,
    monthly_to_dataframe,
    rfm_grid_to_dataframe,
    routes_to_dataframe,
)

logger = logging.getLogger(__name__)


def export_report_json(
    report: LTVReport,
    output_path: str | Path,
    metadata: dict[str, Any] | None = None,
) -> Path:
    """Export a report to a single JSON file.

    Parameters
    ----------
    report:
        Analysis result to export
    output_path:
        Path where the JSON file will be saved
    metadata:
        Optional metadata to include (e.g., source file name)

    Returns
    -------
    Path
        The written file.

    Examples
    --------
    >>> report = analyze_rows(read_csv_rows("orders.csv"))
    >>> export_report_json(report, "ltv_report.json", metadata={"source": "orders.csv"})
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "metadata": metadata or {},
        "timestamp": datetime.now().isoformat(),
        "report": report.as_dict(),
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    logger.info("LTV report exported to %s", output_path)
    return output_path


def export_report_csv(report: LTVReport, output_dir: str | Path) -> dict[str, Path]:
    """Export the report's tables as CSV files in ``output_dir``.

    Parameters
    ----------
    report:
        Analysis result to export
    output_dir:
        Directory for the CSV files; created if missing

    Returns
    -------
    dict[str, Path]
        Table name → written file. Tables: ``customers``, ``monthly``,
        ``golden_routes``, ``items``, ``rfm_grid``.

    Examples
    --------
    >>> paths = export_report_csv(report, "exports/")
    >>> sorted(paths)
    ['customers', 'golden_routes', 'items', 'monthly', 'rfm_grid']
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    tables = {
        "customers": (customers_to_dataframe(report.customers), False),
        "monthly": (monthly_to_dataframe(report.monthly), False),
        "golden_routes": (routes_to_dataframe(report.golden_routes), False),
        "items": (items_to_dataframe(report.items), False),
        "rfm_grid": (rfm_grid_to_dataframe(report.rfm), True),
    }

    written: dict[str, Path] = {}
    for name, (df, keep_index) in tables.items():
        path = output_dir / f"{name}.csv"
        df.to_csv(path, index=keep_index, encoding="utf-8")
        written[name] = path

    logger.info("LTV report tables exported to %s", output_dir)
    return written
