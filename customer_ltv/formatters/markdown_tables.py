"""Markdown table formatters for LTV analysis results.

Formats report sections as plain markdown tables suitable for terminals,
notebooks and other markdown renderers.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Sequence

from customer_ltv.analyses.rfm_grid import FREQUENCY_LABELS, RECENCY_LABELS
from customer_ltv.analyses.time_series import filter_year

if TYPE_CHECKING:
    from customer_ltv.analyses.golden_route import RouteAggregate
    from customer_ltv.analyses.items import ItemAggregate
    from customer_ltv.analyses.rfm_grid import RFMGrid
    from customer_ltv.analyses.time_series import MonthlySeries, YearlySeries
    from customer_ltv.pipeline import LTVReport

NO_DATA = "_No data._\n"


def _format_money(value: Decimal) -> str:
    """Yen amount with thousands separators; decimals only when present."""
    if value == value.to_integral_value():
        return f"¥{value:,.0f}"
    return f"¥{value:,.2f}"


def format_summary_table(report: LTVReport) -> str:
    """Format headline LTV metrics as a markdown table.

    Parameters
    ----------
    report:
        Analysis result

    Returns
    -------
    str:
        Markdown-formatted table with the key metrics

    Examples
    --------
    >>> report = analyze_records(records)
    >>> print(format_summary_table(report))
    """
    metrics = report.metrics
    if report.date_range:
        period = f"{report.date_range[0]} → {report.date_range[1]}"
    else:
        period = "n/a"

    return f"""## LTV Summary

| Metric | Value |
|--------|-------|
| Period | {period} |
| Customers | {metrics.customer_count:,} |
| Total Revenue | {_format_money(metrics.total_ltv)} |
| Average LTV | {_format_money(metrics.average_ltv)} |
| Median LTV | {_format_money(metrics.median_ltv)} |
| Avg Purchase Value | {_format_money(metrics.average_purchase_value)} |
| Avg Purchase Frequency | {metrics.average_purchase_frequency} |
| Avg Customer Lifespan (days) | {metrics.average_customer_lifespan} |
| Repeat Rate | {metrics.repeat_rate}% |
"""


def format_monthly_table(series: MonthlySeries, year: str | None = None) -> str:
    """Format the monthly series, optionally restricted to one year.

    Synthesized series are flagged as estimates under the heading.
    """
    buckets = filter_year(series, year) if year else series.buckets
    heading = f"## Monthly Trend ({year})" if year else "## Monthly Trend"
    table = f"{heading}\n\n"
    if series.is_approximate:
        table += "_Estimated: purchase dates are spread evenly between first and last purchase._\n\n"
    if not buckets:
        return table + NO_DATA

    table += "| Month | Revenue | Customers | Avg LTV | Repeat Rate |\n"
    table += "|-------|---------|-----------|---------|-------------|\n"
    for bucket in buckets:
        table += (
            f"| {bucket.month} | {_format_money(bucket.revenue)} | "
            f"{bucket.customer_count:,} | {_format_money(bucket.average_ltv)} | "
            f"{bucket.repeat_rate}% |\n"
        )
    return table


def format_yearly_table(series: YearlySeries) -> str:
    table = "## Yearly Trend\n\n"
    if not series.buckets:
        return table + NO_DATA

    table += "| Year | Revenue | Customers | Avg LTV | Repeat Rate |\n"
    table += "|------|---------|-----------|---------|-------------|\n"
    for bucket in series.buckets:
        table += (
            f"| {bucket.year} | {_format_money(bucket.revenue)} | "
            f"{bucket.customer_count:,} | {_format_money(bucket.average_ltv)} | "
            f"{bucket.repeat_rate}% |\n"
        )
    return table


def format_rfm_grid_table(grid: RFMGrid) -> str:
    """Format the 6×6 recency × frequency grid as a count matrix.

    Rows are recency buckets (most recent first), columns frequency buckets
    (most frequent first).
    """
    table = f"## Recency × Frequency (as of {grid.anchor_date.isoformat()})\n\n"
    table += "| Recency | " + " | ".join(FREQUENCY_LABELS) + " |\n"
    table += "|---------|" + "|".join("---" for _ in FREQUENCY_LABELS) + "|\n"
    for label, row in zip(RECENCY_LABELS, grid.counts()):
        table += f"| {label} | " + " | ".join(f"{count:,}" for count in row) + " |\n"
    return table


def format_golden_routes_table(routes: Sequence[RouteAggregate]) -> str:
    table = "## Golden Routes\n\n"
    if not routes:
        return table + NO_DATA

    table += "| Rank | Route | Customers | Avg LTV |\n"
    table += "|------|-------|-----------|---------|\n"
    for rank, route in enumerate(routes, start=1):
        table += (
            f"| {rank} | {route.route_key} | {route.count:,} | "
            f"{_format_money(route.avg_ltv.quantize(Decimal('0.01')))} |\n"
        )
    return table


def format_items_table(items: Sequence[ItemAggregate], limit: int | None = None) -> str:
    """Format the item ranking, optionally keeping only the first ``limit``."""
    table = "## Item Ranking\n\n"
    if not items:
        return table + NO_DATA

    table += "| Item | Purchases | Sales | Buyers | Repeat Rate | Avg Buyer LTV |\n"
    table += "|------|-----------|-------|--------|-------------|---------------|\n"
    for item in items[:limit]:
        table += (
            f"| {item.display_name} | {item.purchase_count:,} | "
            f"{_format_money(item.total_sales)} | {item.buyer_count:,} | "
            f"{item.repeat_rate}% | {_format_money(item.average_ltv)} |\n"
        )
    return table


def format_report(report: LTVReport) -> str:
    """Format every section of a report as one markdown document.

    Golden routes and the item ranking are only included when the report
    was built from line items.
    """
    sections = [
        "# Customer LTV Report\n",
        format_summary_table(report),
        format_monthly_table(report.monthly),
        format_yearly_table(report.yearly),
        format_rfm_grid_table(report.rfm),
    ]
    if report.golden_routes:
        sections.append(format_golden_routes_table(report.golden_routes))
    if report.items:
        sections.append(format_items_table(report.items))
    if report.rejected_rows:
        sections.append(f"_{report.rejected_rows:,} rows were skipped as malformed._\n")
    return "\n".join(sections)
