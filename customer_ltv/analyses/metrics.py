"""Headline LTV metrics over a customer base.

Answers the summary questions of an LTV audit:
- How much is an average (and a median) customer worth?
- How much does a customer spend per order, and how often do they order?
- How long does a customer stay active between first and last order?
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from customer_ltv.foundation.customers import CustomerAggregate
from customer_ltv.ingestion.normalizer import parse_iso_date

MONEY_PRECISION = Decimal("0.01")

# Customers with a single order (or same-day orders) count as active for one
# day so the lifespan average is never pulled to zero.
MIN_LIFESPAN_DAYS = 1


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LTVMetrics:
    """Summary LTV metrics.

    Attributes
    ----------
    average_ltv:
        Total revenue divided by customer count.
    median_ltv:
        Median of per-customer LTV.
    total_ltv:
        Sum of per-customer LTV.
    customer_count:
        Number of customers.
    average_purchase_value:
        Total revenue divided by total purchases.
    average_purchase_frequency:
        Total purchases divided by customer count.
    average_customer_lifespan:
        Mean days between first and last purchase, floored at one day.
    repeat_rate:
        Percentage of customers with more than one purchase.
    """

    average_ltv: Decimal
    median_ltv: Decimal
    total_ltv: Decimal
    customer_count: int
    average_purchase_value: Decimal
    average_purchase_frequency: Decimal
    average_customer_lifespan: Decimal
    repeat_rate: Decimal

    def __post_init__(self) -> None:
        if self.customer_count < 0:
            raise ValueError(
                f"Customer count cannot be negative: {self.customer_count}"
            )
        if self.total_ltv < 0:
            raise ValueError(f"Total LTV cannot be negative: {self.total_ltv}")
        if not 0 <= self.repeat_rate <= 100:
            raise ValueError(f"Repeat rate must be 0-100: {self.repeat_rate}")

    @classmethod
    def empty(cls) -> LTVMetrics:
        zero = Decimal("0")
        return cls(
            average_ltv=zero,
            median_ltv=zero,
            total_ltv=zero,
            customer_count=0,
            average_purchase_value=zero,
            average_purchase_frequency=zero,
            average_customer_lifespan=zero,
            repeat_rate=zero,
        )


def median(values: Sequence[Decimal]) -> Decimal:
    """Median of ``values``; the mean of the two central values when even."""

    if not values:
        return Decimal("0")
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return ordered[middle]


def customer_lifespan_days(customer: CustomerAggregate) -> int:
    """Days between acquisition and last purchase, at least one."""

    first = parse_iso_date(customer.acquisition_date)
    last = parse_iso_date(customer.last_purchase_date)
    if first is None or last is None:
        return MIN_LIFESPAN_DAYS
    return max((last - first).days, MIN_LIFESPAN_DAYS)


def calculate_ltv_metrics(customers: Sequence[CustomerAggregate]) -> LTVMetrics:
    """Compute summary LTV metrics for finalised customer aggregates.

    Parameters
    ----------
    customers:
        Customer aggregates. An empty sequence yields all-zero metrics.

    Returns
    -------
    LTVMetrics
        Money values are rounded to two decimal places.

    Examples
    --------
    >>> from decimal import Decimal
    >>> from customer_ltv.foundation.customers import CustomerAggregate
    >>> customers = [
    ...     CustomerAggregate.from_summary("A", "2024-01-10", "2024-02-10", Decimal("3000"), 2),
    ...     CustomerAggregate.from_summary("B", "2024-01-15", "2024-01-15", Decimal("500"), 1),
    ... ]
    >>> metrics = calculate_ltv_metrics(customers)
    >>> metrics.average_ltv
    Decimal('1750.00')
    >>> metrics.median_ltv
    Decimal('1750.00')
    """
    if not customers:
        return LTVMetrics.empty()

    customer_count = len(customers)
    ltv_values = [customer.ltv for customer in customers]
    total_ltv = sum(ltv_values, Decimal("0"))
    total_purchases = sum(customer.purchase_count for customer in customers)

    if total_purchases > 0:
        average_purchase_value = _quantize(total_ltv / total_purchases)
    else:
        average_purchase_value = Decimal("0")

    lifespans = [customer_lifespan_days(customer) for customer in customers]
    repeaters = sum(1 for customer in customers if customer.is_repeat)

    return LTVMetrics(
        average_ltv=_quantize(total_ltv / customer_count),
        median_ltv=_quantize(median(ltv_values)),
        total_ltv=_quantize(total_ltv),
        customer_count=customer_count,
        average_purchase_value=average_purchase_value,
        average_purchase_frequency=_quantize(
            Decimal(total_purchases) / Decimal(customer_count)
        ),
        average_customer_lifespan=_quantize(
            Decimal(sum(lifespans)) / Decimal(customer_count)
        ),
        repeat_rate=_quantize(Decimal(repeaters) / Decimal(customer_count) * 100),
    )
