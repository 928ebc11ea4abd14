"""Calendar-bucketed rollups of revenue, customers and LTV.

Daily series bucket customers by acquisition date. Monthly and yearly series
bucket individual purchases, using one of two strategies:

``MonthlyStrategy.ORDERS``
    Every customer retains its orders, so each order is bucketed by its own
    date. This is exact.
``MonthlyStrategy.SYNTHESIZED``
    Some customers only carry totals and first/last purchase dates. Their
    purchases are approximated as ``purchase_count`` evenly spaced synthetic
    dates starting at the acquisition date, each worth
    ``total_revenue / purchase_count``. Monthly figures produced this way are
    estimates; callers can tell from :attr:`MonthlySeries.strategy`.

The order-based strategy is used whenever every customer has orders.

Average LTV for a month (or year) is the mean of per-customer revenue within
that bucket, so a customer buying twice in one month is counted once.

Bucket keys (``YYYY-MM-DD``, ``YYYY-MM``, ``YYYY``) sort lexically, which is
chronological for zero-padded dates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Callable, Iterator, NamedTuple, Sequence

from customer_ltv.foundation.customers import CustomerAggregate
from customer_ltv.ingestion.normalizer import parse_iso_date

logger = logging.getLogger(__name__)

MONEY_PRECISION = Decimal("0.01")


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


class MonthlyStrategy(str, Enum):
    """How purchases are placed on the calendar."""

    ORDERS = "orders"
    SYNTHESIZED = "synthesized"


@dataclass(frozen=True)
class DailyBucket:
    """Customers acquired on one day."""

    date: str
    revenue: Decimal
    customer_count: int
    ltv: Decimal


@dataclass(frozen=True)
class MonthlyBucket:
    """Purchases within one calendar month.

    Attributes
    ----------
    month:
        ``YYYY-MM`` key.
    revenue:
        Sum of purchase amounts in the month.
    customer_count:
        Distinct customers purchasing in the month.
    average_ltv:
        Mean of per-customer revenue within the month.
    repeat_rate:
        Percentage of the month's customers who are repeat customers overall.
    """

    month: str
    revenue: Decimal
    customer_count: int
    average_ltv: Decimal
    repeat_rate: Decimal


@dataclass(frozen=True)
class YearlyBucket:
    """Purchases within one calendar year; fields as :class:`MonthlyBucket`."""

    year: str
    revenue: Decimal
    customer_count: int
    average_ltv: Decimal
    repeat_rate: Decimal


@dataclass(frozen=True)
class MonthlySeries:
    strategy: MonthlyStrategy
    buckets: tuple[MonthlyBucket, ...]

    @property
    def is_approximate(self) -> bool:
        return self.strategy is MonthlyStrategy.SYNTHESIZED


@dataclass(frozen=True)
class YearlySeries:
    strategy: MonthlyStrategy
    buckets: tuple[YearlyBucket, ...]


class _Purchase(NamedTuple):
    customer_key: str
    date: str
    amount: Decimal


class _PeriodStats(NamedTuple):
    key: str
    revenue: Decimal
    customer_count: int
    average_ltv: Decimal
    repeat_rate: Decimal


def build_daily_series(
    customers: Sequence[CustomerAggregate],
) -> tuple[DailyBucket, ...]:
    """Bucket customers by acquisition date.

    Each bucket sums the total revenue of the customers acquired that day;
    ``ltv`` is that revenue divided by the number of those customers.
    """

    buckets: dict[str, dict[str, object]] = {}
    for customer in customers:
        bucket = buckets.setdefault(
            customer.acquisition_date,
            {"revenue": Decimal("0"), "customers": set()},
        )
        bucket["revenue"] += customer.total_revenue
        bucket["customers"].add(customer.customer_key)

    return tuple(
        DailyBucket(
            date=day,
            revenue=_quantize(payload["revenue"]),
            customer_count=len(payload["customers"]),
            ltv=_quantize(payload["revenue"] / len(payload["customers"])),
        )
        for day, payload in sorted(buckets.items())
    )


def select_strategy(customers: Sequence[CustomerAggregate]) -> MonthlyStrategy:
    """Use order dates when every customer has them, else synthesise."""

    if all(customer.has_orders for customer in customers):
        return MonthlyStrategy.ORDERS
    return MonthlyStrategy.SYNTHESIZED


def order_purchases(customers: Sequence[CustomerAggregate]) -> Iterator[_Purchase]:
    for customer in customers:
        for order in customer.orders:
            yield _Purchase(customer.customer_key, order.date, order.total)


def synthesized_purchases(
    customers: Sequence[CustomerAggregate],
) -> Iterator[_Purchase]:
    """Spread each customer's revenue over evenly spaced synthetic dates."""

    for customer in customers:
        start = parse_iso_date(customer.acquisition_date)
        end = parse_iso_date(customer.last_purchase_date)
        if start is None or end is None:
            logger.debug(
                "Skipping customer %s with unparsable dates", customer.customer_key
            )
            continue

        amount = customer.total_revenue / customer.purchase_count
        days_diff = max(1, (end - start).days)
        days_per_purchase = max(1, days_diff // customer.purchase_count)
        for idx in range(customer.purchase_count):
            purchase_date = start + timedelta(days=idx * days_per_purchase)
            yield _Purchase(customer.customer_key, purchase_date.isoformat(), amount)


def _purchases_for(
    customers: Sequence[CustomerAggregate], strategy: MonthlyStrategy
) -> Iterator[_Purchase]:
    if strategy is MonthlyStrategy.ORDERS:
        return order_purchases(customers)
    return synthesized_purchases(customers)


def _month_key(value: str) -> str | None:
    return value[:7] if parse_iso_date(value) else None


def _year_key(value: str) -> str | None:
    return value[:4] if parse_iso_date(value) else None


def _bucket_purchases(
    purchases: Iterator[_Purchase],
    key_fn: Callable[[str], str | None],
    repeaters: set[str],
) -> list[_PeriodStats]:
    buckets: dict[str, dict[str, Decimal]] = {}
    skipped = 0
    for purchase in purchases:
        key = key_fn(purchase.date)
        if key is None:
            skipped += 1
            continue
        per_customer = buckets.setdefault(key, {})
        per_customer[purchase.customer_key] = (
            per_customer.get(purchase.customer_key, Decimal("0")) + purchase.amount
        )

    if skipped:
        logger.debug("Skipped %d purchases with unparsable dates", skipped)

    stats: list[_PeriodStats] = []
    for key, per_customer in sorted(buckets.items()):
        customer_count = len(per_customer)
        revenue = sum(per_customer.values(), Decimal("0"))
        repeat_count = sum(
            1 for customer_key in per_customer if customer_key in repeaters
        )
        stats.append(
            _PeriodStats(
                key=key,
                revenue=_quantize(revenue),
                customer_count=customer_count,
                average_ltv=_quantize(revenue / customer_count),
                repeat_rate=_quantize(
                    Decimal(repeat_count) / Decimal(customer_count) * 100
                ),
            )
        )
    return stats


def _repeaters(customers: Sequence[CustomerAggregate]) -> set[str]:
    return {customer.customer_key for customer in customers if customer.is_repeat}


def build_monthly_series(customers: Sequence[CustomerAggregate]) -> MonthlySeries:
    """Bucket purchases by ``YYYY-MM``; see the module notes on strategies."""

    strategy = select_strategy(customers)
    if strategy is MonthlyStrategy.SYNTHESIZED:
        logger.info(
            "Per-order dates unavailable; monthly series uses synthesized purchase dates"
        )
    stats = _bucket_purchases(
        _purchases_for(customers, strategy), _month_key, _repeaters(customers)
    )
    return MonthlySeries(
        strategy=strategy,
        buckets=tuple(
            MonthlyBucket(
                month=item.key,
                revenue=item.revenue,
                customer_count=item.customer_count,
                average_ltv=item.average_ltv,
                repeat_rate=item.repeat_rate,
            )
            for item in stats
        ),
    )


def build_yearly_series(customers: Sequence[CustomerAggregate]) -> YearlySeries:
    """Bucket purchases by ``YYYY`` with the same strategy rule as months."""

    strategy = select_strategy(customers)
    stats = _bucket_purchases(
        _purchases_for(customers, strategy), _year_key, _repeaters(customers)
    )
    return YearlySeries(
        strategy=strategy,
        buckets=tuple(
            YearlyBucket(
                year=item.key,
                revenue=item.revenue,
                customer_count=item.customer_count,
                average_ltv=item.average_ltv,
                repeat_rate=item.repeat_rate,
            )
            for item in stats
        ),
    )


def available_years(series: MonthlySeries) -> tuple[str, ...]:
    """Years present in a monthly series, newest first."""

    return tuple(sorted({bucket.month[:4] for bucket in series.buckets}, reverse=True))


def filter_year(series: MonthlySeries, year: str) -> tuple[MonthlyBucket, ...]:
    """Monthly buckets of one year, in chronological order."""

    return tuple(bucket for bucket in series.buckets if bucket.month.startswith(year))
