"""End-to-end LTV analysis: rows → records → customers → report.

The analysis is batch-only. Whenever the underlying records or the item-name
table change, the whole report is recomputed. :class:`AnalysisSession`
memoises the last report on ``(record set, item-name table)`` and serialises
recomputation so that two callers never observe a half-built report.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Sequence

from customer_ltv.analyses.golden_route import RouteAggregate, rank_golden_routes
from customer_ltv.analyses.items import ItemAggregate, rank_items
from customer_ltv.analyses.metrics import LTVMetrics, calculate_ltv_metrics
from customer_ltv.analyses.rfm_grid import (
    FREQUENCY_LABELS,
    RECENCY_LABELS,
    RFMGrid,
    segment_customers,
)
from customer_ltv.analyses.time_series import (
    DailyBucket,
    MonthlySeries,
    YearlySeries,
    available_years,
    build_daily_series,
    build_monthly_series,
    build_yearly_series,
)
from customer_ltv.config import AnalysisConfig
from customer_ltv.foundation.customers import (
    CustomerAggregate,
    aggregate_line_items,
    aggregate_records,
)
from customer_ltv.foundation.store import InMemoryRecordStore, RecordStore
from customer_ltv.ingestion.normalizer import (
    CanonicalOrderRecord,
    LineItemNormalizationResult,
    LineItemRecord,
    RecordNormalizer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LTVReport:
    """Every derived view of one analysis run.

    All collections are tuples of immutable values; nothing refers back to
    the aggregation state that produced them.
    """

    customers: tuple[CustomerAggregate, ...]
    metrics: LTVMetrics
    daily: tuple[DailyBucket, ...]
    monthly: MonthlySeries
    yearly: YearlySeries
    rfm: RFMGrid
    golden_routes: tuple[RouteAggregate, ...]
    items: tuple[ItemAggregate, ...]
    date_range: tuple[str, str] | None
    years: tuple[str, ...]
    rejected_rows: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.customers

    def as_dict(self) -> dict[str, Any]:
        """Return JSON-serialisable representation of the report."""

        def money(value: Decimal) -> float:
            return float(value)

        def serialise_customer(customer: CustomerAggregate) -> dict[str, Any]:
            return {
                "customer_key": customer.customer_key,
                "email": customer.email,
                "name": customer.name,
                "purchase_count": customer.purchase_count,
                "total_revenue": money(customer.total_revenue),
                "acquisition_date": customer.acquisition_date,
                "last_purchase_date": customer.last_purchase_date,
                "orders": [
                    {
                        "order_id": order.order_id,
                        "date": order.date,
                        "total": money(order.total),
                        "item_codes": list(order.item_codes),
                    }
                    for order in customer.orders
                ],
            }

        metrics = self.metrics
        return {
            "date_range": list(self.date_range) if self.date_range else None,
            "years": list(self.years),
            "rejected_rows": self.rejected_rows,
            "metrics": {
                "average_ltv": money(metrics.average_ltv),
                "median_ltv": money(metrics.median_ltv),
                "total_ltv": money(metrics.total_ltv),
                "customer_count": metrics.customer_count,
                "average_purchase_value": money(metrics.average_purchase_value),
                "average_purchase_frequency": money(
                    metrics.average_purchase_frequency
                ),
                "average_customer_lifespan": money(metrics.average_customer_lifespan),
                "repeat_rate": money(metrics.repeat_rate),
            },
            "customers": [serialise_customer(customer) for customer in self.customers],
            "daily": [
                {
                    "date": bucket.date,
                    "revenue": money(bucket.revenue),
                    "customer_count": bucket.customer_count,
                    "ltv": money(bucket.ltv),
                }
                for bucket in self.daily
            ],
            "monthly": {
                "strategy": self.monthly.strategy.value,
                "buckets": [
                    {
                        "month": bucket.month,
                        "revenue": money(bucket.revenue),
                        "customer_count": bucket.customer_count,
                        "average_ltv": money(bucket.average_ltv),
                        "repeat_rate": money(bucket.repeat_rate),
                    }
                    for bucket in self.monthly.buckets
                ],
            },
            "yearly": [
                {
                    "year": bucket.year,
                    "revenue": money(bucket.revenue),
                    "customer_count": bucket.customer_count,
                    "average_ltv": money(bucket.average_ltv),
                    "repeat_rate": money(bucket.repeat_rate),
                }
                for bucket in self.yearly.buckets
            ],
            "rfm": {
                "anchor_date": self.rfm.anchor_date.isoformat(),
                "recency_labels": list(RECENCY_LABELS),
                "frequency_labels": list(FREQUENCY_LABELS),
                "counts": [list(row) for row in self.rfm.counts()],
            },
            "golden_routes": [
                {
                    "path": list(route.path),
                    "route_key": route.route_key,
                    "count": route.count,
                    "total_ltv": money(route.total_ltv),
                    "avg_ltv": money(route.avg_ltv),
                }
                for route in self.golden_routes
            ],
            "items": [
                {
                    "item_code": item.item_code,
                    "display_name": item.display_name,
                    "purchase_count": item.purchase_count,
                    "total_sales": money(item.total_sales),
                    "buyer_count": item.buyer_count,
                    "repeat_rate": money(item.repeat_rate),
                    "average_ltv": money(item.average_ltv),
                }
                for item in self.items
            ],
        }


def _date_range(customers: Sequence[CustomerAggregate]) -> tuple[str, str] | None:
    if not customers:
        return None
    first = min(customer.acquisition_date for customer in customers)
    last = max(customer.last_purchase_date for customer in customers)
    return first, last


def build_report(
    customers: Sequence[CustomerAggregate],
    *,
    line_items: Sequence[LineItemRecord] = (),
    item_names: Mapping[str, str] | None = None,
    config: AnalysisConfig | None = None,
    rejected_rows: int = 0,
) -> LTVReport:
    """Run every analysis over finalised customer aggregates."""

    config = config or AnalysisConfig()
    customers = tuple(customers)
    monthly = build_monthly_series(customers)
    report = LTVReport(
        customers=customers,
        metrics=calculate_ltv_metrics(customers),
        daily=build_daily_series(customers),
        monthly=monthly,
        yearly=build_yearly_series(customers),
        rfm=segment_customers(customers, config.anchor_date),
        golden_routes=rank_golden_routes(
            customers,
            item_names,
            max_steps=config.max_route_steps,
            top_n=config.top_routes,
            separator=config.route_separator,
        ),
        items=rank_items(line_items, customers, item_names),
        date_range=_date_range(customers),
        years=available_years(monthly),
        rejected_rows=rejected_rows,
    )
    logger.info(
        "Analysed %d customers (total LTV %s, monthly strategy %s)",
        report.metrics.customer_count,
        report.metrics.total_ltv,
        monthly.strategy.value,
    )
    return report


def analyze_records(
    records: Sequence[CanonicalOrderRecord],
    config: AnalysisConfig | None = None,
    *,
    rejected_rows: int = 0,
) -> LTVReport:
    """Analyse canonical ``(date, customer, amount)`` records."""

    return build_report(
        aggregate_records(records), config=config, rejected_rows=rejected_rows
    )


def analyze_line_items(
    items: Sequence[LineItemRecord],
    item_names: Mapping[str, str] | None = None,
    config: AnalysisConfig | None = None,
    *,
    rejected_rows: int = 0,
) -> LTVReport:
    """Analyse line items, including golden routes and item ranking."""

    return build_report(
        aggregate_line_items(items),
        line_items=items,
        item_names=item_names,
        config=config,
        rejected_rows=rejected_rows,
    )


def analyze_rows(
    rows: Sequence[Mapping[str, str]],
    config: AnalysisConfig | None = None,
    *,
    line_items: bool = False,
    item_names: Mapping[str, str] | None = None,
) -> LTVReport:
    """Normalise raw CSV rows and analyse them.

    With ``line_items=True`` rows are read as one purchased item each and
    grouped into orders; otherwise every row is one order.
    """

    normalizer = RecordNormalizer()
    if line_items:
        result = normalizer.normalize_line_items(rows)
        return analyze_line_items(
            result.items, item_names, config, rejected_rows=result.rejected
        )
    order_result = normalizer.normalize(rows)
    return analyze_records(
        order_result.records, config, rejected_rows=order_result.rejected
    )


class AnalysisSession:
    """Stateful analysis over a record store.

    Holds the imported line items and item-name overrides in ``store`` and
    recomputes the report whenever either changes.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        config: AnalysisConfig | None = None,
        normalizer: RecordNormalizer | None = None,
    ) -> None:
        self.store = store if store is not None else InMemoryRecordStore()
        self.config = config or AnalysisConfig()
        self.normalizer = normalizer or RecordNormalizer()
        self._lock = threading.Lock()
        self._cache_key: tuple[frozenset, tuple] | None = None
        self._cached: LTVReport | None = None

    def import_rows(
        self, rows: Sequence[Mapping[str, str]]
    ) -> LineItemNormalizationResult:
        """Normalise line-item rows and upsert them into the store."""

        result = self.normalizer.normalize_line_items(rows)
        with self._lock:
            self.store.upsert_orders(result.items)
        logger.info(
            "Imported %d line items (%d rejected)", result.admitted, result.rejected
        )
        return result

    def update_item_name(self, item_code: str, display_name: str) -> None:
        """Set the display name of an item; the next report reflects it."""

        with self._lock:
            self.store.upsert_item_name(item_code, display_name)
        logger.info("Item %s renamed to %r", item_code, display_name)

    def reset(self) -> None:
        """Wipe all stored line items and item names."""

        with self._lock:
            self.store.wipe()
            self._cache_key = None
            self._cached = None

    def report(self) -> LTVReport:
        """Return the report for the current store contents."""

        with self._lock:
            items = self.store.orders()
            item_names = dict(self.store.item_names())
            cache_key = (frozenset(items), tuple(sorted(item_names.items())))
            if self._cached is not None and cache_key == self._cache_key:
                logger.debug("Returning memoised report")
                return self._cached

            report = analyze_line_items(items, item_names, self.config)
            self._cache_key = cache_key
            self._cached = report
            return report
