"""Recency × frequency segmentation on a fixed 6×6 grid.

Unlike quantile-based RFM scoring, bucket boundaries here are fixed so that
grids from different extracts are directly comparable:

=========  ==================================  =====================
Index      Recency (months since last order)   Frequency (orders)
=========  ==================================  =====================
0          ≤ 1                                 ≥ 6
1          ≤ 3                                 5
2          ≤ 5                                 4
3          ≤ 12                                3
4          ≤ 17                                2
5          > 17                                1
=========  ==================================  =====================

Lower indices are better on both axes. Upper bounds are inclusive. Recency
is measured against a fixed anchor date, never the wall clock, and a month
is taken as 30.44 days. Monetary value is not part of this grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from customer_ltv.config import DEFAULT_ANCHOR_DATE
from customer_ltv.foundation.customers import CustomerAggregate
from customer_ltv.ingestion.normalizer import parse_iso_date

DAYS_PER_MONTH = 30.44
GRID_SIZE = 6

RECENCY_UPPER_BOUNDS = (1, 3, 5, 12, 17)
FREQUENCY_THRESHOLDS = (6, 5, 4, 3, 2)

RECENCY_LABELS = (
    "≤1 month",
    "2-3 months",
    "4-5 months",
    "6-12 months",
    "13-17 months",
    "18+ months",
)
FREQUENCY_LABELS = ("6+ orders", "5 orders", "4 orders", "3 orders", "2 orders", "1 order")


def months_since(last_purchase: date, anchor_date: date) -> float:
    return (anchor_date - last_purchase).days / DAYS_PER_MONTH


def recency_index(months: float) -> int:
    """Map months since the last purchase to a recency index (0-5)."""

    for index, upper in enumerate(RECENCY_UPPER_BOUNDS):
        if months <= upper:
            return index
    return GRID_SIZE - 1


def frequency_index(purchase_count: int) -> int:
    """Map a purchase count to a frequency index (0-5)."""

    if purchase_count >= FREQUENCY_THRESHOLDS[0]:
        return 0
    for index, count in enumerate(FREQUENCY_THRESHOLDS[1:], start=1):
        if purchase_count == count:
            return index
    return GRID_SIZE - 1


def classify_customer(
    customer: CustomerAggregate, anchor_date: date = DEFAULT_ANCHOR_DATE
) -> tuple[int, int]:
    """Return ``(recency_index, frequency_index)`` for one customer.

    A last purchase date that cannot be parsed falls in the oldest recency
    bucket.
    """

    last_purchase = parse_iso_date(customer.last_purchase_date)
    if last_purchase is None:
        r_idx = GRID_SIZE - 1
    else:
        r_idx = recency_index(months_since(last_purchase, anchor_date))
    return r_idx, frequency_index(customer.purchase_count)


@dataclass(frozen=True)
class RFMCell:
    """Customers sharing a ``(recency_index, frequency_index)`` pair."""

    recency_index: int
    frequency_index: int
    customers: tuple[CustomerAggregate, ...] = ()

    def __post_init__(self) -> None:
        for name, value in (
            ("recency_index", self.recency_index),
            ("frequency_index", self.frequency_index),
        ):
            if not 0 <= value < GRID_SIZE:
                raise ValueError(f"{name} must be between 0 and 5: {value}")

    @property
    def size(self) -> int:
        return len(self.customers)

    @property
    def label(self) -> str:
        return f"{RECENCY_LABELS[self.recency_index]} × {FREQUENCY_LABELS[self.frequency_index]}"


@dataclass(frozen=True)
class RFMGrid:
    """Full 6×6 grid; ``rows[r][f]`` is the cell for recency r, frequency f."""

    rows: tuple[tuple[RFMCell, ...], ...]
    anchor_date: date

    def cell(self, recency_idx: int, frequency_idx: int) -> RFMCell:
        return self.rows[recency_idx][frequency_idx]

    def cells(self) -> tuple[RFMCell, ...]:
        return tuple(cell for row in self.rows for cell in row)

    def counts(self) -> tuple[tuple[int, ...], ...]:
        return tuple(tuple(cell.size for cell in row) for row in self.rows)

    @property
    def customer_count(self) -> int:
        return sum(cell.size for cell in self.cells())

    @property
    def is_empty(self) -> bool:
        return self.customer_count == 0


def segment_customers(
    customers: Sequence[CustomerAggregate],
    anchor_date: date = DEFAULT_ANCHOR_DATE,
) -> RFMGrid:
    """Place every customer into the fixed recency × frequency grid.

    Parameters
    ----------
    customers:
        Finalised customer aggregates.
    anchor_date:
        Reference date for recency.

    Returns
    -------
    RFMGrid
        All 36 cells are present; cells without customers are empty.
    """
    members: dict[tuple[int, int], list[CustomerAggregate]] = {}
    for customer in customers:
        members.setdefault(classify_customer(customer, anchor_date), []).append(
            customer
        )

    rows = tuple(
        tuple(
            RFMCell(
                recency_index=r_idx,
                frequency_index=f_idx,
                customers=tuple(members.get((r_idx, f_idx), ())),
            )
            for f_idx in range(GRID_SIZE)
        )
        for r_idx in range(GRID_SIZE)
    )
    return RFMGrid(rows=rows, anchor_date=anchor_date)
