"""Item ranking: which items sell, and how valuable their buyers are."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Sequence

from customer_ltv.foundation.customers import CustomerAggregate
from customer_ltv.ingestion.normalizer import LineItemRecord

PERCENTAGE_PRECISION = Decimal("0.1")
MONEY_PRECISION = Decimal("0.01")


@dataclass(frozen=True)
class ItemAggregate:
    """Sales and buyer statistics for one item code.

    Attributes
    ----------
    item_code:
        Item identifier.
    display_name:
        Override name, else the name found in the data, else the code.
    purchase_count:
        Number of line items for this code.
    total_sales:
        Sum of line prices.
    buyers:
        Customer keys of everyone who bought the item.
    repeat_rate:
        Percentage of buyers with more than one order overall.
    average_ltv:
        Mean total revenue of the item's buyers.
    """

    item_code: str
    display_name: str
    purchase_count: int
    total_sales: Decimal
    buyers: frozenset[str]
    repeat_rate: Decimal
    average_ltv: Decimal

    def __post_init__(self) -> None:
        if self.purchase_count <= 0:
            raise ValueError(
                f"Purchase count must be positive: {self.purchase_count} (item_code={self.item_code})"
            )
        if not 0 <= self.repeat_rate <= 100:
            raise ValueError(
                f"Repeat rate must be 0-100: {self.repeat_rate} (item_code={self.item_code})"
            )

    @property
    def buyer_count(self) -> int:
        return len(self.buyers)


def rank_items(
    line_items: Sequence[LineItemRecord],
    customers: Sequence[CustomerAggregate],
    item_names: Mapping[str, str] | None = None,
) -> tuple[ItemAggregate, ...]:
    """Aggregate line items per item code, most purchased first.

    Parameters
    ----------
    line_items:
        Line items the customers were built from.
    customers:
        Customer aggregates built from ``line_items``; they supply buyer LTV
        and repeat status.
    item_names:
        Optional item code → display name overrides.

    Returns
    -------
    tuple[ItemAggregate, ...]
        Sorted by purchase count descending, then item code.
    """
    names = item_names or {}
    by_key = {customer.customer_key: customer for customer in customers}

    stats: dict[str, dict[str, object]] = {}
    for item in line_items:
        if not item.item_code:
            continue
        bucket = stats.setdefault(
            item.item_code,
            {"name": item.item_name, "count": 0, "sales": Decimal("0"), "buyers": set()},
        )
        bucket["count"] += 1
        bucket["sales"] += item.price
        bucket["buyers"].add(item.customer_key)

    ranked: list[ItemAggregate] = []
    for code, payload in stats.items():
        buyers = [by_key[key] for key in payload["buyers"] if key in by_key]
        if buyers:
            repeaters = sum(1 for buyer in buyers if buyer.is_repeat)
            repeat_rate = (Decimal(repeaters) / Decimal(len(buyers)) * 100).quantize(
                PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
            )
            average_ltv = (
                sum((buyer.ltv for buyer in buyers), Decimal("0")) / len(buyers)
            ).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)
        else:
            repeat_rate = Decimal("0")
            average_ltv = Decimal("0")

        ranked.append(
            ItemAggregate(
                item_code=code,
                display_name=names.get(code) or str(payload["name"]) or code,
                purchase_count=int(payload["count"]),
                total_sales=payload["sales"],
                buyers=frozenset(payload["buyers"]),
                repeat_rate=repeat_rate,
                average_ltv=average_ltv,
            )
        )

    ranked.sort(key=lambda item: (-item.purchase_count, item.item_code))
    return tuple(ranked)

