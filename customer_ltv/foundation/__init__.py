"""Foundational building blocks: customer aggregates and the record store."""

from .customers import (
    CustomerAggregate,
    CustomerAggregateBuilder,
    Order,
    aggregate_line_items,
    aggregate_records,
)
from .store import InMemoryRecordStore, JsonRecordStore, RecordStore

__all__ = [
    "CustomerAggregate",
    "CustomerAggregateBuilder",
    "InMemoryRecordStore",
    "JsonRecordStore",
    "Order",
    "RecordStore",
    "aggregate_line_items",
    "aggregate_records",
]
