"""Analysis configuration shared by the pipeline and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

# Reference date for recency. Fixed rather than wall-clock so that an
# analysis of a historical extract is reproducible.
DEFAULT_ANCHOR_DATE = date(2026, 1, 12)

DEFAULT_MAX_ROUTE_STEPS = 10
DEFAULT_TOP_ROUTES = 15
DEFAULT_ROUTE_SEPARATOR = " → "


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for a single LTV analysis run.

    Attributes
    ----------
    anchor_date:
        Date against which recency is measured for RFM segmentation.
    max_route_steps:
        Number of leading orders used to build each customer's golden route.
    top_routes:
        Number of routes kept in the golden route ranking.
    route_separator:
        Separator used when joining route steps into a route key.
    """

    anchor_date: date = DEFAULT_ANCHOR_DATE
    max_route_steps: int = DEFAULT_MAX_ROUTE_STEPS
    top_routes: int = DEFAULT_TOP_ROUTES
    route_separator: str = DEFAULT_ROUTE_SEPARATOR

    def __post_init__(self) -> None:
        if not isinstance(self.anchor_date, date):
            raise TypeError(
                f"anchor_date must be a date instance: {self.anchor_date!r}"
            )
        if self.max_route_steps <= 0:
            raise ValueError(
                f"max_route_steps must be positive: {self.max_route_steps}"
            )
        if self.top_routes <= 0:
            raise ValueError(f"top_routes must be positive: {self.top_routes}")
        if not self.route_separator:
            raise ValueError("route_separator cannot be empty")
