"""Column detection over heterogeneous order export headers.

Order exports from different shop systems name the same concept in many
ways ("注文日", "Order Date", "order_date", ...). Each role is resolved with
a :class:`ColumnStrategy`, evaluated in two passes:

1. exact, case-sensitive match against a ranked list of canonical header
   names, tried in list order;
2. case-insensitive substring match against a shorter keyword list, where
   the first header (in the row's natural key order) containing a keyword
   wins unless it also contains an exclusion keyword.

Resolution never raises. A role that cannot be resolved maps to ``""`` and
callers fall back to a per-row search with the same strategy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

DATE = "date"
CUSTOMER_ID = "customer_id"
AMOUNT = "amount"
ORDER_ID = "order_id"
ITEM_CODE = "item_code"
ITEM_NAME = "item_name"
EMAIL = "email"
LAST_NAME = "last_name"
FIRST_NAME = "first_name"


@dataclass(frozen=True)
class ColumnStrategy:
    """Ranked header-matching rules for one column role."""

    role: str
    exact: tuple[str, ...]
    keywords: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    def is_excluded(self, header: str) -> bool:
        lowered = header.lower()
        return any(word.lower() in lowered for word in self.exclude)

    def match(self, headers: Sequence[str]) -> str:
        """Return the best matching header, or ``""`` when none matches."""

        available = set(headers)
        for name in self.exact:
            if name in available:
                return name

        for header in headers:
            lowered = header.lower()
            if not any(word.lower() in lowered for word in self.keywords):
                continue
            if self.is_excluded(header):
                continue
            return header
        return ""


DATE_STRATEGY = ColumnStrategy(
    role=DATE,
    exact=(
        "注文日",
        "注文日時",
        "購入日",
        "日付",
        "order_date",
        "Order Date",
        "date",
        "受注日",
        "受注日時",
    ),
    keywords=("注文日", "購入日", "受注日", "日付", "date"),
)

CUSTOMER_ID_STRATEGY = ColumnStrategy(
    role=CUSTOMER_ID,
    exact=(
        "顧客ID",
        "会員ID",
        "ユーザーID",
        "購入者ID",
        "customer_id",
        "Customer ID",
        "user_id",
        "member_id",
        "Member ID",
        "購入者コード",
    ),
    keywords=("会員", "顧客", "customer", "member", "user", "購入者"),
)

AMOUNT_STRATEGY = ColumnStrategy(
    role=AMOUNT,
    exact=(
        "金額",
        "合計金額",
        "支払金額",
        "amount",
        "Amount",
        "total",
        "Total",
        "合計",
        "支払額",
        "売上金額",
    ),
    keywords=("金額", "合計", "amount", "total", "支払", "売上", "price", "価格"),
    exclude=("税", "tax", "ポイント", "point", "送料", "shipping"),
)

ORDER_ID_STRATEGY = ColumnStrategy(
    role=ORDER_ID,
    exact=(
        "受注番号",
        "注文番号",
        "order_id",
        "Order ID",
        "order_number",
        "Order Number",
        "order_no",
    ),
    keywords=("受注番号", "注文番号", "order id", "order_id", "order no", "order_no"),
)

ITEM_CODE_STRATEGY = ColumnStrategy(
    role=ITEM_CODE,
    exact=(
        "商品管理番号",
        "商品番号",
        "商品コード",
        "item_code",
        "Item Code",
        "sku",
        "SKU",
        "product_id",
    ),
    keywords=("商品番号", "商品コード", "item_code", "item code", "sku", "product_id"),
)

ITEM_NAME_STRATEGY = ColumnStrategy(
    role=ITEM_NAME,
    exact=("商品名", "item_name", "Item Name", "product_name", "Product Name"),
    keywords=("商品名", "item_name", "item name", "product_name", "product name"),
)

PRICE_STRATEGY = ColumnStrategy(
    role=AMOUNT,
    exact=("単価", "価格", "price", "Price", "unit_price", "line_total"),
    keywords=("単価", "価格", "price", "金額", "amount"),
    exclude=AMOUNT_STRATEGY.exclude,
)

EMAIL_STRATEGY = ColumnStrategy(
    role=EMAIL,
    exact=("注文者メールアドレス", "メールアドレス", "email", "Email", "e-mail"),
    keywords=("メール", "email", "e-mail", "mail"),
)

LAST_NAME_STRATEGY = ColumnStrategy(
    role=LAST_NAME,
    exact=("注文者姓", "姓", "last_name", "Last Name", "family_name"),
    keywords=("姓", "last_name", "last name", "family_name"),
)

FIRST_NAME_STRATEGY = ColumnStrategy(
    role=FIRST_NAME,
    exact=("注文者名", "名", "first_name", "First Name", "given_name"),
    keywords=("first_name", "first name", "given_name"),
)

ORDER_RECORD_STRATEGIES: tuple[ColumnStrategy, ...] = (
    DATE_STRATEGY,
    CUSTOMER_ID_STRATEGY,
    AMOUNT_STRATEGY,
)

LINE_ITEM_STRATEGIES: tuple[ColumnStrategy, ...] = (
    DATE_STRATEGY,
    CUSTOMER_ID_STRATEGY,
    PRICE_STRATEGY,
    ORDER_ID_STRATEGY,
    ITEM_CODE_STRATEGY,
    ITEM_NAME_STRATEGY,
    EMAIL_STRATEGY,
    LAST_NAME_STRATEGY,
    FIRST_NAME_STRATEGY,
)


@dataclass(frozen=True)
class ColumnMapping:
    """Header resolved for each role; ``""`` marks an unresolved role."""

    columns: Mapping[str, str] = field(default_factory=dict)

    def get(self, role: str) -> str:
        return self.columns.get(role, "")

    @property
    def unresolved(self) -> tuple[str, ...]:
        return tuple(role for role, header in self.columns.items() if not header)


class ColumnResolver:
    """Resolve role → header for rows sharing a header set."""

    def __init__(
        self, strategies: Iterable[ColumnStrategy] = ORDER_RECORD_STRATEGIES
    ) -> None:
        self.strategies = {strategy.role: strategy for strategy in strategies}

    def resolve(self, rows: Sequence[Mapping[str, str]]) -> ColumnMapping:
        """Resolve every role against the first row's headers."""

        if not rows:
            return ColumnMapping({role: "" for role in self.strategies})

        headers = list(rows[0].keys())
        mapping = ColumnMapping(
            {
                role: strategy.match(headers)
                for role, strategy in self.strategies.items()
            }
        )
        if mapping.unresolved:
            logger.info(
                "Could not resolve columns %s from headers %s; "
                "falling back to per-row detection",
                list(mapping.unresolved),
                headers,
            )
        else:
            logger.debug("Resolved columns: %s", dict(mapping.columns))
        return mapping

    def value(self, row: Mapping[str, str], role: str, mapping: ColumnMapping) -> str:
        """Return the cell for ``role``, searching the row if the header fails."""

        header = mapping.get(role)
        if header:
            cell = _cell(row, header)
            if cell:
                return cell

        strategy = self.strategies.get(role)
        if strategy is None:
            return ""
        populated = [key for key in row.keys() if _cell(row, key)]
        fallback = strategy.match(populated)
        return _cell(row, fallback) if fallback else ""


def _cell(row: Mapping[str, str], header: str) -> str:
    value = row.get(header)
    if value is None:
        return ""
    return str(value).strip()
