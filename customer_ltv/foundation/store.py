"""Key-addressable persistence for imported line items and item names.

The analytics core only needs two independently keyed collections:

* orders - line items addressed by :attr:`LineItemRecord.unique_key`;
* item names - display-name overrides addressed by item code.

Both support whole-collection read, single-record upsert, and a wipe of the
whole store. :class:`InMemoryRecordStore` keeps them in dictionaries and
:class:`JsonRecordStore` mirrors them to a JSON file after every mutation.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from customer_ltv.ingestion.normalizer import LineItemRecord

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Storage contract used by :class:`customer_ltv.pipeline.AnalysisSession`."""

    def orders(self) -> tuple[LineItemRecord, ...]: ...

    def item_names(self) -> Mapping[str, str]: ...

    def upsert_order(self, item: LineItemRecord) -> None: ...

    def upsert_orders(self, items: Iterable[LineItemRecord]) -> None: ...

    def upsert_item_name(self, item_code: str, display_name: str) -> None: ...

    def wipe(self) -> None: ...


class InMemoryRecordStore:
    """Dictionary-backed record store."""

    def __init__(self) -> None:
        self._orders: dict[str, LineItemRecord] = {}
        self._item_names: dict[str, str] = {}

    def orders(self) -> tuple[LineItemRecord, ...]:
        return tuple(self._orders.values())

    def item_names(self) -> Mapping[str, str]:
        return dict(self._item_names)

    def upsert_order(self, item: LineItemRecord) -> None:
        self._orders[item.unique_key] = item

    def upsert_orders(self, items: Iterable[LineItemRecord]) -> None:
        for item in items:
            self._orders[item.unique_key] = item

    def upsert_item_name(self, item_code: str, display_name: str) -> None:
        if not item_code:
            raise ValueError("item_code cannot be empty")
        self._item_names[item_code] = display_name

    def wipe(self) -> None:
        self._orders.clear()
        self._item_names.clear()


def _serialise_item(item: LineItemRecord) -> dict[str, Any]:
    return {
        "order_id": item.order_id,
        "order_date": item.order_date,
        "customer_key": item.customer_key,
        "item_code": item.item_code,
        "item_name": item.item_name,
        "price": str(item.price),
        "email": item.email,
        "name": item.name,
        "line_no": item.line_no,
    }


def _deserialise_item(payload: Mapping[str, Any]) -> LineItemRecord:
    return LineItemRecord(
        order_id=str(payload["order_id"]),
        order_date=str(payload["order_date"]),
        customer_key=str(payload["customer_key"]),
        item_code=str(payload.get("item_code", "")),
        item_name=str(payload.get("item_name", "")),
        price=Decimal(str(payload["price"])),
        email=str(payload.get("email", "")),
        name=str(payload.get("name", "")),
        line_no=int(payload.get("line_no", 0)),
    )


class JsonRecordStore(InMemoryRecordStore):
    """Record store persisted as a single JSON document."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        with self.path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        if not isinstance(payload, dict):
            raise ValueError(f"Store file {self.path} must contain a JSON object")

        for record in payload.get("orders", []):
            item = _deserialise_item(record)
            self._orders[item.unique_key] = item
        self._item_names.update(
            {str(code): str(name) for code, name in payload.get("item_names", {}).items()}
        )
        logger.debug(
            "Loaded %d line items and %d item names from %s",
            len(self._orders),
            len(self._item_names),
            self.path,
        )

    def _flush(self) -> None:
        payload = {
            "orders": [_serialise_item(item) for item in self._orders.values()],
            "item_names": dict(sorted(self._item_names.items())),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)

    def upsert_order(self, item: LineItemRecord) -> None:
        super().upsert_order(item)
        self._flush()

    def upsert_orders(self, items: Iterable[LineItemRecord]) -> None:
        """Upsert many line items with a single write."""
        super().upsert_orders(items)
        self._flush()

    def upsert_item_name(self, item_code: str, display_name: str) -> None:
        super().upsert_item_name(item_code, display_name)
        self._flush()

    def wipe(self) -> None:
        super().wipe()
        if self.path.exists():
            self.path.unlink()
        logger.info("Wiped record store %s", self.path)
