"""LTV analyses over finalised customer aggregates.

Every analysis is a pure function of the customer set (plus, for item-level
views, the line items and the item-name table):

- metrics: headline LTV figures
- time_series: daily, monthly and yearly rollups
- rfm_grid: fixed-threshold recency × frequency grid
- golden_route: purchase-sequence ranking by resulting LTV
- items: item ranking by purchase count
"""

from .golden_route import RouteAggregate, customer_route, rank_golden_routes
from .items import ItemAggregate, rank_items
from .metrics import LTVMetrics, calculate_ltv_metrics, median
from .rfm_grid import (
    RFMCell,
    RFMGrid,
    classify_customer,
    frequency_index,
    recency_index,
    segment_customers,
)
from .time_series import (
    DailyBucket,
    MonthlyBucket,
    MonthlySeries,
    MonthlyStrategy,
    YearlyBucket,
    YearlySeries,
    available_years,
    build_daily_series,
    build_monthly_series,
    build_yearly_series,
    filter_year,
)

__all__ = [
    "DailyBucket",
    "ItemAggregate",
    "LTVMetrics",
    "MonthlyBucket",
    "MonthlySeries",
    "MonthlyStrategy",
    "RFMCell",
    "RFMGrid",
    "RouteAggregate",
    "YearlyBucket",
    "YearlySeries",
    "available_years",
    "build_daily_series",
    "build_monthly_series",
    "build_yearly_series",
    "calculate_ltv_metrics",
    "classify_customer",
    "customer_route",
    "filter_year",
    "frequency_index",
    "median",
    "rank_golden_routes",
    "rank_items",
    "recency_index",
    "segment_customers",
]
