"""Golden route analysis: which purchase sequences lead to the highest LTV.

A customer's route is the first item code of each of their first orders
(ten by default), in date order, with codes replaced by display names where
a name is known. Customers with identical routes are grouped and the groups
are ranked by the average LTV of their members.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Sequence

from customer_ltv.config import (
    DEFAULT_MAX_ROUTE_STEPS,
    DEFAULT_ROUTE_SEPARATOR,
    DEFAULT_TOP_ROUTES,
)
from customer_ltv.foundation.customers import CustomerAggregate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteAggregate:
    """Customers who share one purchase route."""

    path: tuple[str, ...]
    count: int
    total_ltv: Decimal
    separator: str = DEFAULT_ROUTE_SEPARATOR

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("Route path cannot be empty")
        if self.count <= 0:
            raise ValueError(f"Route count must be positive: {self.count}")

    @property
    def route_key(self) -> str:
        return self.separator.join(self.path)

    @property
    def avg_ltv(self) -> Decimal:
        return self.total_ltv / self.count

    @property
    def length(self) -> int:
        return len(self.path)


def customer_route(
    customer: CustomerAggregate,
    item_names: Mapping[str, str] | None = None,
    max_steps: int = DEFAULT_MAX_ROUTE_STEPS,
) -> tuple[str, ...]:
    """Return the route for one customer.

    Orders without item codes contribute no step.
    """

    names = item_names or {}
    steps: list[str] = []
    for order in customer.orders[:max_steps]:
        if not order.item_codes:
            continue
        code = order.item_codes[0]
        steps.append(names.get(code) or code)
    return tuple(steps)


def rank_golden_routes(
    customers: Sequence[CustomerAggregate],
    item_names: Mapping[str, str] | None = None,
    max_steps: int = DEFAULT_MAX_ROUTE_STEPS,
    top_n: int = DEFAULT_TOP_ROUTES,
    separator: str = DEFAULT_ROUTE_SEPARATOR,
) -> tuple[RouteAggregate, ...]:
    """Group customers by route and rank routes by average LTV.

    Parameters
    ----------
    customers:
        Customer aggregates with their orders.
    item_names:
        Optional item code → display name table.
    max_steps:
        Number of leading orders considered per customer.
    top_n:
        Number of routes kept.
    separator:
        Separator for route keys.

    Returns
    -------
    tuple[RouteAggregate, ...]
        Routes by average LTV descending (ties by route key), at most
        ``top_n``. Single-step routes are included.
    """
    routes: dict[tuple[str, ...], dict[str, object]] = {}
    unrouted = 0
    for customer in customers:
        path = customer_route(customer, item_names, max_steps)
        if not path:
            unrouted += 1
            continue
        bucket = routes.setdefault(path, {"count": 0, "total_ltv": Decimal("0")})
        bucket["count"] += 1
        bucket["total_ltv"] += customer.ltv

    if unrouted:
        logger.debug("%d customers have no item codes and no route", unrouted)

    ranked = [
        RouteAggregate(
            path=path,
            count=payload["count"],
            total_ltv=payload["total_ltv"],
            separator=separator,
        )
        for path, payload in routes.items()
    ]
    ranked.sort(key=lambda route: (-route.avg_ltv, route.route_key))
    return tuple(ranked[:top_n])
