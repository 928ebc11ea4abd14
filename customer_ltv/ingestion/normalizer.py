"""Normalisation of raw CSV rows into canonical order records.

Two record shapes are produced:

* :class:`CanonicalOrderRecord` - one ``(date, customer, amount)`` triple per
  row, for exports with one row per order.
* :class:`LineItemRecord` - one row per purchased item, several rows sharing
  an order id, for exports that carry item detail.

Rows that cannot be admitted (no date, unparsable or non-positive amount)
are dropped and counted, never defaulted and never raised.

**Identity caveat**: when no customer column can be found, the customer key
is derived from an order number or, failing that, from ``(date, amount)``.
Two different customers ordering the same amount on the same day therefore
merge into one. The line-item path keys customers by e-mail, falling back to
last name + first name, with the same caveat for namesakes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Mapping, Sequence

import pandas as pd

from customer_ltv.ingestion.columns import (
    AMOUNT,
    CUSTOMER_ID,
    DATE,
    EMAIL,
    FIRST_NAME,
    ITEM_CODE,
    ITEM_NAME,
    LAST_NAME,
    LINE_ITEM_STRATEGIES,
    ORDER_ID,
    ORDER_ID_STRATEGY,
    ORDER_RECORD_STRATEGIES,
    ColumnMapping,
    ColumnResolver,
)

logger = logging.getLogger(__name__)

_AMOUNT_NOISE = re.compile(r"[¥￥$€£円,，\s]")
# Larger amounts cannot be quantized to 0.01 within the default decimal precision.
MAX_AMOUNT_DIGITS = 15
_CANONICAL_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLASHED_YMD = re.compile(r"^\d{4}/\d{2}/\d{2}")
_DASHED_YMD_TIME = re.compile(r"^\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}")
_SLASHED_MDY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})")


@dataclass(frozen=True)
class CanonicalOrderRecord:
    """A validated ``(date, customer, amount)`` order triple."""

    order_date: str
    customer_key: str
    amount: Decimal

    def __post_init__(self) -> None:
        if not self.order_date:
            raise ValueError(
                f"order_date cannot be empty (customer_key={self.customer_key})"
            )
        if self.amount <= 0:
            raise ValueError(
                f"Amount must be positive: {self.amount} (customer_key={self.customer_key})"
            )


@dataclass(frozen=True)
class LineItemRecord:
    """One purchased item within an order.

    Attributes
    ----------
    order_id:
        Order the item belongs to. Several line items share an order id.
    order_date:
        Normalised order date.
    customer_key:
        E-mail when present, else last name + first name, else a fallback
        identifier (see module notes on identity collisions).
    item_code:
        Item identifier used for route and item ranking.
    item_name:
        Item name as found in the export.
    price:
        Line amount; zero is allowed for free items.
    email, name:
        Display fields carried through to the customer aggregate.
    line_no:
        Position of the line within its order, used for the store key.
    """

    order_id: str
    order_date: str
    customer_key: str
    item_code: str
    item_name: str
    price: Decimal
    email: str = ""
    name: str = ""
    line_no: int = 0

    def __post_init__(self) -> None:
        if not self.order_id:
            raise ValueError("order_id cannot be empty")
        if not self.order_date:
            raise ValueError(f"order_date cannot be empty (order_id={self.order_id})")
        if self.price < 0:
            raise ValueError(
                f"Price cannot be negative: {self.price} (order_id={self.order_id})"
            )

    @property
    def unique_key(self) -> str:
        return f"{self.order_id}:{self.line_no}"


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalising a batch of order rows."""

    records: tuple[CanonicalOrderRecord, ...]
    rejected: int
    columns: ColumnMapping

    @property
    def admitted(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class LineItemNormalizationResult:
    """Outcome of normalising a batch of line-item rows."""

    items: tuple[LineItemRecord, ...]
    rejected: int
    columns: ColumnMapping

    @property
    def admitted(self) -> int:
        return len(self.items)


def clean_amount(value: object) -> Decimal | None:
    """Parse a money string such as ``"¥12,345円"`` into a Decimal.

    Currency symbols, thousands separators and whitespace are stripped before
    parsing. Returns ``None`` when the remainder is not a finite number or
    has more than ``MAX_AMOUNT_DIGITS`` integer digits.
    """

    if value is None:
        return None
    text = _AMOUNT_NOISE.sub("", str(value))
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return None
    return amount


def normalize_date(value: str) -> str:
    """Normalise a date string to ``YYYY-MM-DD``.

    Accepted forms, in order of precedence: ``YYYY-MM-DD``;
    ``YYYY/MM/DD`` with optional time; ``YYYY-MM-DD HH:MM:SS``;
    ``MM/DD/YYYY`` with optional time; anything pandas can parse. A string
    that cannot be parsed is returned unchanged.
    """

    text = value.strip()
    if _CANONICAL_DATE.match(text):
        return text
    if _SLASHED_YMD.match(text):
        return text.replace("/", "-").split(" ")[0].split("T")[0]
    if _DASHED_YMD_TIME.match(text):
        return text.split(" ")[0]

    match = _SLASHED_MDY.match(text)
    if match:
        month, day, year = match.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"

    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, OverflowError):
        parsed = pd.NaT
    if not pd.isna(parsed):
        return parsed.strftime("%Y-%m-%d")
    return value


def parse_iso_date(value: str) -> date | None:
    """Return a ``date`` for a canonical date string, else ``None``."""

    if not _CANONICAL_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _format_amount(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


def _order_number(row: Mapping[str, str]) -> str:
    header = ORDER_ID_STRATEGY.match(list(row.keys()))
    if not header:
        return ""
    value = row.get(header)
    return str(value).strip() if value is not None else ""


class RecordNormalizer:
    """Convert raw rows into canonical records or line items."""

    def __init__(
        self,
        order_resolver: ColumnResolver | None = None,
        line_item_resolver: ColumnResolver | None = None,
    ) -> None:
        self.order_resolver = order_resolver or ColumnResolver(ORDER_RECORD_STRATEGIES)
        self.line_item_resolver = line_item_resolver or ColumnResolver(
            LINE_ITEM_STRATEGIES
        )

    def normalize(self, rows: Sequence[Mapping[str, str]]) -> NormalizationResult:
        """Normalise order rows, dropping those that cannot be admitted."""

        columns = self.order_resolver.resolve(rows)
        records: list[CanonicalOrderRecord] = []
        rejected = 0
        for row in rows:
            record = self._normalize_row(row, columns)
            if record is None:
                rejected += 1
                continue
            records.append(record)

        logger.info("Admitted %d of %d order rows", len(records), len(rows))
        if rows and not records:
            logger.warning(
                "No order rows admitted; available columns %s, resolved %s",
                list(rows[0].keys()),
                dict(columns.columns),
            )
        return NormalizationResult(
            records=tuple(records), rejected=rejected, columns=columns
        )

    def _normalize_row(
        self, row: Mapping[str, str], columns: ColumnMapping
    ) -> CanonicalOrderRecord | None:
        resolver = self.order_resolver
        raw_date = resolver.value(row, DATE, columns)
        amount = clean_amount(resolver.value(row, AMOUNT, columns))
        if not raw_date or amount is None or amount <= 0:
            return None

        order_date = normalize_date(raw_date)
        customer_key = resolver.value(row, CUSTOMER_ID, columns)
        if not customer_key:
            order_number = _order_number(row)
            if order_number:
                customer_key = f"ORDER-{order_number}"
        if not customer_key:
            customer_key = f"ANONYMOUS-{order_date}-{_format_amount(amount)}"

        return CanonicalOrderRecord(
            order_date=order_date,
            customer_key=customer_key.strip(),
            amount=amount,
        )

    def normalize_line_items(
        self, rows: Sequence[Mapping[str, str]]
    ) -> LineItemNormalizationResult:
        """Normalise line-item rows, numbering lines within each order."""

        columns = self.line_item_resolver.resolve(rows)
        items: list[LineItemRecord] = []
        line_counts: dict[str, int] = {}
        rejected = 0
        for row in rows:
            item = self._normalize_line_item(row, columns, line_counts)
            if item is None:
                rejected += 1
                continue
            items.append(item)

        logger.info("Admitted %d of %d line-item rows", len(items), len(rows))
        return LineItemNormalizationResult(
            items=tuple(items), rejected=rejected, columns=columns
        )

    def _normalize_line_item(
        self,
        row: Mapping[str, str],
        columns: ColumnMapping,
        line_counts: dict[str, int],
    ) -> LineItemRecord | None:
        resolver = self.line_item_resolver
        order_id = resolver.value(row, ORDER_ID, columns)
        raw_date = resolver.value(row, DATE, columns)
        price = clean_amount(resolver.value(row, AMOUNT, columns))
        if not order_id or not raw_date or price is None or price < 0:
            return None

        order_date = normalize_date(raw_date)
        email = resolver.value(row, EMAIL, columns)
        name = resolver.value(row, LAST_NAME, columns) + resolver.value(
            row, FIRST_NAME, columns
        )
        customer_key = (
            email
            or name
            or resolver.value(row, CUSTOMER_ID, columns)
            or f"ORDER-{order_id}"
        )
        item_code = resolver.value(row, ITEM_CODE, columns)
        item_name = resolver.value(row, ITEM_NAME, columns)

        line_no = line_counts.get(order_id, 0)
        line_counts[order_id] = line_no + 1
        return LineItemRecord(
            order_id=order_id,
            order_date=order_date,
            customer_key=customer_key,
            item_code=item_code or item_name,
            item_name=item_name,
            price=price,
            email=email,
            name=name,
            line_no=line_no,
        )
