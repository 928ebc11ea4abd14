"""Pandas DataFrame adapters for LTV analysis results."""

from __future__ import annotations

from typing import Mapping, Sequence

import pandas as pd  # type: ignore

from customer_ltv.analyses.golden_route import RouteAggregate
from customer_ltv.analyses.items import ItemAggregate
from customer_ltv.analyses.rfm_grid import FREQUENCY_LABELS, RECENCY_LABELS, RFMGrid
from customer_ltv.analyses.time_series import MonthlySeries
from customer_ltv.foundation.customers import CustomerAggregate
from customer_ltv.ingestion.normalizer import LineItemRecord, clean_amount
from customer_ltv.pipeline import LTVReport, analyze_line_items

CUSTOMER_COLUMNS = [
    "customer_key",
    "email",
    "name",
    "purchase_count",
    "total_revenue",
    "acquisition_date",
    "last_purchase_date",
]
MONTHLY_COLUMNS = ["month", "revenue", "customer_count", "average_ltv", "repeat_rate"]
ROUTE_COLUMNS = ["route", "steps", "count", "total_ltv", "avg_ltv"]
ITEM_COLUMNS = [
    "item_code",
    "display_name",
    "purchase_count",
    "total_sales",
    "buyer_count",
    "repeat_rate",
    "average_ltv",
]
LINE_ITEM_COLUMNS = [
    "order_id",
    "order_date",
    "customer_key",
    "item_code",
    "item_name",
    "price",
    "email",
    "name",
]


def customers_to_dataframe(customers: Sequence[CustomerAggregate]) -> pd.DataFrame:
    """Convert customer aggregates to a pandas DataFrame.

    Args:
        customers: Sequence of CustomerAggregate objects

    Returns:
        DataFrame with columns: customer_key, email, name, purchase_count,
        total_revenue, acquisition_date, last_purchase_date; sorted by
        customer_key

    Example:
        >>> report = analyze_records(records)
        >>> customers_to_dataframe(report.customers).head()
    """
    if not customers:
        return pd.DataFrame(columns=CUSTOMER_COLUMNS)

    rows = [
        {
            "customer_key": c.customer_key,
            "email": c.email,
            "name": c.name,
            "purchase_count": c.purchase_count,
            "total_revenue": float(c.total_revenue),
            "acquisition_date": c.acquisition_date,
            "last_purchase_date": c.last_purchase_date,
        }
        for c in customers
    ]

    df = pd.DataFrame(rows)
    df = df.sort_values("customer_key").reset_index(drop=True)
    return df


def monthly_to_dataframe(series: MonthlySeries) -> pd.DataFrame:
    """Convert a monthly series to a DataFrame, one row per month.

    The series strategy is kept in ``df.attrs["strategy"]``.
    """
    if not series.buckets:
        df = pd.DataFrame(columns=MONTHLY_COLUMNS)
    else:
        df = pd.DataFrame(
            [
                {
                    "month": b.month,
                    "revenue": float(b.revenue),
                    "customer_count": b.customer_count,
                    "average_ltv": float(b.average_ltv),
                    "repeat_rate": float(b.repeat_rate),
                }
                for b in series.buckets
            ]
        )
    df.attrs["strategy"] = series.strategy.value
    return df


def routes_to_dataframe(routes: Sequence[RouteAggregate]) -> pd.DataFrame:
    """Convert ranked golden routes to a DataFrame, preserving rank order."""
    if not routes:
        return pd.DataFrame(columns=ROUTE_COLUMNS)

    return pd.DataFrame(
        [
            {
                "route": r.route_key,
                "steps": r.length,
                "count": r.count,
                "total_ltv": float(r.total_ltv),
                "avg_ltv": float(r.avg_ltv),
            }
            for r in routes
        ]
    )


def items_to_dataframe(items: Sequence[ItemAggregate]) -> pd.DataFrame:
    """Convert the item ranking to a DataFrame, preserving rank order."""
    if not items:
        return pd.DataFrame(columns=ITEM_COLUMNS)

    return pd.DataFrame(
        [
            {
                "item_code": i.item_code,
                "display_name": i.display_name,
                "purchase_count": i.purchase_count,
                "total_sales": float(i.total_sales),
                "buyer_count": i.buyer_count,
                "repeat_rate": float(i.repeat_rate),
                "average_ltv": float(i.average_ltv),
            }
            for i in items
        ]
    )


def rfm_grid_to_dataframe(grid: RFMGrid) -> pd.DataFrame:
    """Convert the recency × frequency grid to a 6×6 count matrix.

    Rows are indexed by recency label and columns by frequency label, both
    best-first, so ``df.iloc[0, 0]`` counts recent frequent customers.
    """
    return pd.DataFrame(
        [list(row) for row in grid.counts()],
        index=pd.Index(RECENCY_LABELS, name="recency"),
        columns=pd.Index(FREQUENCY_LABELS, name="frequency"),
    )


def dataframe_to_line_items(
    df: pd.DataFrame,
    order_id_col: str = "order_id",
    order_date_col: str = "order_date",
    customer_key_col: str = "customer_key",
    item_code_col: str = "item_code",
    price_col: str = "price",
    item_name_col: str | None = "item_name",
) -> list[LineItemRecord]:
    """Convert a pandas DataFrame of already-clean line items to records.

    Args:
        df: DataFrame with one row per purchased item
        *_col: Column name mappings for flexibility

    Returns:
        List of LineItemRecord objects; ``line_no`` numbers rows within each order
        from 0, in DataFrame order. ``order_date`` values are formatted as YYYY-MM-DD.

    Raises:
        ValueError: If DataFrame missing required columns, has null values
            or holds a price that is not a usable amount

    Example:
        >>> items = dataframe_to_line_items(pd.read_csv("orders.csv"))
        >>> report = analyze_line_items(items)
    """
    required_cols = [
        order_id_col,
        order_date_col,
        customer_key_col,
        item_code_col,
        price_col,
    ]
    missing_cols = set(required_cols) - set(df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if df.empty:
        return []

    # Validate for null/NaN values
    null_cols = df[required_cols].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            "Line items require complete data."
        )

    dates = pd.to_datetime(df[order_date_col]).dt.strftime("%Y-%m-%d")
    line_numbers: dict[str, int] = {}
    items = []
    for (_, record), order_date in zip(df.iterrows(), dates):
        order_id = str(record[order_id_col])
        line_no = line_numbers.get(order_id, 0)
        line_numbers[order_id] = line_no + 1
        price = clean_amount(record[price_col])
        if price is None:
            raise ValueError(
                f"Invalid price {record[price_col]!r} for order {order_id}"
            )
        item_name = ""
        if item_name_col and item_name_col in df.columns:
            value = record[item_name_col]
            item_name = "" if pd.isna(value) else str(value)
        items.append(
            LineItemRecord(
                order_id=order_id,
                order_date=order_date,
                customer_key=str(record[customer_key_col]),
                item_code=str(record[item_code_col]),
                item_name=item_name,
                price=price,
                line_no=line_no,
            )
        )
    return items


def line_items_to_dataframe(items: Sequence[LineItemRecord]) -> pd.DataFrame:
    """Convert line items to a DataFrame, one row per item."""
    if not items:
        return pd.DataFrame(columns=LINE_ITEM_COLUMNS)

    return pd.DataFrame(
        [
            {
                "order_id": i.order_id,
                "order_date": i.order_date,
                "customer_key": i.customer_key,
                "item_code": i.item_code,
                "item_name": i.item_name,
                "price": float(i.price),
                "email": i.email,
                "name": i.name,
            }
            for i in items
        ]
    )


def analyze_line_items_df(
    df: pd.DataFrame,
    item_names: Mapping[str, str] | None = None,
    **column_mapping: str,
) -> LTVReport:
    """Analyse a line-item DataFrame in one call.

    Example:
        >>> report = analyze_line_items_df(df, customer_key_col="email")
        >>> report.metrics.average_ltv
    """
    return analyze_line_items(
        dataframe_to_line_items(df, **column_mapping), item_names
    )
