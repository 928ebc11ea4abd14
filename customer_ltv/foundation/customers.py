"""Customer aggregation: customer → orders → line items.

A :class:`CustomerAggregateBuilder` folds canonical order records or line
items into per-customer aggregates in a single pass. The grouping map is
owned by the builder for the duration of that pass; :meth:`build` returns
immutable :class:`CustomerAggregate` values and discards the map.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from customer_ltv.ingestion.normalizer import CanonicalOrderRecord, LineItemRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Order:
    """A customer's order after folding its line items."""

    order_id: str
    date: str
    total: Decimal
    item_codes: tuple[str, ...] = ()


@dataclass(frozen=True)
class CustomerAggregate:
    """Finalised per-customer aggregate.

    Attributes
    ----------
    customer_key:
        Customer identity the records were grouped by.
    orders:
        Orders sorted by date ascending. Empty for aggregates built with
        :meth:`from_summary`, which carry no per-order dates.
    purchase_count:
        Number of orders.
    total_revenue:
        Sum of order totals; this is the customer's LTV.
    acquisition_date:
        Earliest order date.
    last_purchase_date:
        Latest order date.
    email, name:
        Display fields from line-item exports, empty otherwise.
    """

    customer_key: str
    orders: tuple[Order, ...]
    purchase_count: int
    total_revenue: Decimal
    acquisition_date: str
    last_purchase_date: str
    email: str = ""
    name: str = ""

    def __post_init__(self) -> None:
        if self.purchase_count <= 0:
            raise ValueError(
                f"Purchase count must be positive: {self.purchase_count} (customer_key={self.customer_key})"
            )
        if self.total_revenue < 0:
            raise ValueError(
                f"Total revenue cannot be negative: {self.total_revenue} (customer_key={self.customer_key})"
            )
        if self.orders and len(self.orders) != self.purchase_count:
            raise ValueError(
                f"Purchase count ({self.purchase_count}) != number of orders "
                f"({len(self.orders)}) (customer_key={self.customer_key})"
            )

    @classmethod
    def from_summary(
        cls,
        customer_key: str,
        acquisition_date: str,
        last_purchase_date: str,
        total_revenue: Decimal,
        purchase_count: int,
        *,
        email: str = "",
        name: str = "",
    ) -> CustomerAggregate:
        """Create an aggregate that has totals and dates but no orders."""

        return cls(
            customer_key=customer_key,
            orders=(),
            purchase_count=purchase_count,
            total_revenue=Decimal(str(total_revenue)),
            acquisition_date=acquisition_date,
            last_purchase_date=last_purchase_date,
            email=email,
            name=name,
        )

    @property
    def ltv(self) -> Decimal:
        return self.total_revenue

    @property
    def is_repeat(self) -> bool:
        return self.purchase_count > 1

    @property
    def has_orders(self) -> bool:
        return bool(self.orders)


class CustomerAggregateBuilder:
    """Accumulate records per customer key and finalise them once."""

    def __init__(self) -> None:
        self._customers: dict[str, dict[str, object]] = {}

    def _bucket(self, customer_key: str) -> dict[str, object]:
        return self._customers.setdefault(
            customer_key,
            {"orders": {}, "email": "", "name": ""},
        )

    def add_record(self, record: CanonicalOrderRecord) -> None:
        """Add a canonical record; each record is an order of its own."""

        orders = self._bucket(record.customer_key)["orders"]
        order_id = f"{record.customer_key}#{len(orders) + 1}"
        orders[order_id] = {
            "date": record.order_date,
            "total": record.amount,
            "items": [],
        }

    def add_line_item(self, item: LineItemRecord) -> None:
        """Fold a line item into its customer's order of the same id."""

        bucket = self._bucket(item.customer_key)
        if item.email and not bucket["email"]:
            bucket["email"] = item.email
        if item.name and not bucket["name"]:
            bucket["name"] = item.name

        order = bucket["orders"].setdefault(
            item.order_id,
            {"date": item.order_date, "total": Decimal("0"), "items": []},
        )
        order["date"] = min(order["date"], item.order_date)
        order["total"] += item.price
        if item.item_code:
            order["items"].append(item.item_code)

    def build(self) -> tuple[CustomerAggregate, ...]:
        """Finalise all customers, sorted by customer key."""

        customers: list[CustomerAggregate] = []
        for customer_key, bucket in self._customers.items():
            orders = sorted(
                (
                    Order(
                        order_id=order_id,
                        date=payload["date"],
                        total=payload["total"],
                        item_codes=tuple(payload["items"]),
                    )
                    for order_id, payload in bucket["orders"].items()
                ),
                key=lambda order: order.date,
            )
            customers.append(
                CustomerAggregate(
                    customer_key=customer_key,
                    orders=tuple(orders),
                    purchase_count=len(orders),
                    total_revenue=sum((order.total for order in orders), Decimal("0")),
                    acquisition_date=orders[0].date,
                    last_purchase_date=orders[-1].date,
                    email=str(bucket["email"]),
                    name=str(bucket["name"]),
                )
            )

        self._customers = {}
        customers.sort(key=lambda customer: customer.customer_key)
        logger.debug("Built %d customer aggregates", len(customers))
        return tuple(customers)


def aggregate_records(
    records: Iterable[CanonicalOrderRecord],
) -> tuple[CustomerAggregate, ...]:
    """Group canonical order records into customer aggregates."""

    builder = CustomerAggregateBuilder()
    for record in records:
        builder.add_record(record)
    return builder.build()


def aggregate_line_items(
    items: Iterable[LineItemRecord],
) -> tuple[CustomerAggregate, ...]:
    """Group line items into orders and orders into customer aggregates."""

    builder = CustomerAggregateBuilder()
    for item in items:
        builder.add_line_item(item)
    return builder.build()
