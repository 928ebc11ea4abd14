"""Tests for column detection over heterogeneous export headers."""

from customer_ltv.ingestion.columns import (
    AMOUNT,
    AMOUNT_STRATEGY,
    CUSTOMER_ID,
    DATE,
    DATE_STRATEGY,
    LINE_ITEM_STRATEGIES,
    ORDER_ID,
    ColumnMapping,
    ColumnResolver,
)


class TestColumnStrategy:
    """Test two-pass header matching."""

    def test_exact_match_follows_ranked_list(self):
        """Exact names are tried in list order, not header order."""
        headers = ["合計金額", "金額"]

        assert AMOUNT_STRATEGY.match(headers) == "金額"

    def test_exact_match_is_case_sensitive(self):
        """'Order Date' is canonical; 'ORDER DATE' only matches by keyword."""
        assert DATE_STRATEGY.match(["Order Date"]) == "Order Date"
        assert DATE_STRATEGY.match(["ORDER DATE"]) == "ORDER DATE"

    def test_keyword_match_skips_excluded_headers(self):
        """Shipping and tax columns never count as the order amount."""
        headers = ["送料金額", "消費税合計", "お支払い金額"]

        assert AMOUNT_STRATEGY.match(headers) == "お支払い金額"

    def test_keyword_match_uses_header_order(self):
        headers = ["商品価格", "請求金額"]

        assert AMOUNT_STRATEGY.match(headers) == "商品価格"

    def test_no_match_returns_empty_string(self):
        assert AMOUNT_STRATEGY.match(["foo", "bar"]) == ""
        assert DATE_STRATEGY.match([]) == ""


class TestColumnResolver:
    """Test resolution of roles against a row set."""

    def test_resolve_japanese_headers(self):
        rows = [{"注文日": "2024-01-10", "顧客ID": "C1", "金額": "1000"}]

        mapping = ColumnResolver().resolve(rows)

        assert mapping.get(DATE) == "注文日"
        assert mapping.get(CUSTOMER_ID) == "顧客ID"
        assert mapping.get(AMOUNT) == "金額"
        assert mapping.unresolved == ()

    def test_resolve_english_headers(self):
        rows = [{"order_date": "2024-01-10", "Customer ID": "C1", "Total": "10"}]

        mapping = ColumnResolver().resolve(rows)

        assert mapping.get(DATE) == "order_date"
        assert mapping.get(CUSTOMER_ID) == "Customer ID"
        assert mapping.get(AMOUNT) == "Total"

    def test_empty_rows_resolve_nothing(self):
        """Resolution never raises; every role maps to ''."""
        mapping = ColumnResolver().resolve([])

        assert set(mapping.unresolved) == {DATE, CUSTOMER_ID, AMOUNT}

    def test_unresolved_role_reported(self):
        rows = [{"注文日": "2024-01-10", "金額": "1000"}]

        mapping = ColumnResolver().resolve(rows)

        assert mapping.unresolved == (CUSTOMER_ID,)

    def test_value_falls_back_to_populated_headers(self):
        """An empty mapped cell triggers a per-row search of populated cells."""
        resolver = ColumnResolver()
        rows = [
            {"注文日": "2024-01-10", "購入日": "", "金額": "1000"},
            {"注文日": "", "購入日": "2024-02-01", "金額": "500"},
        ]
        mapping = resolver.resolve(rows)

        assert mapping.get(DATE) == "注文日"
        assert resolver.value(rows[1], DATE, mapping) == "2024-02-01"

    def test_value_strips_whitespace(self):
        resolver = ColumnResolver()
        row = {"注文日": " 2024-01-10 ", "金額": "1000"}

        assert resolver.value(row, DATE, resolver.resolve([row])) == "2024-01-10"

    def test_value_for_unknown_role_is_empty(self):
        resolver = ColumnResolver()
        row = {"注文日": "2024-01-10"}

        assert resolver.value(row, ORDER_ID, ColumnMapping({})) == ""

    def test_line_item_strategies_resolve_shop_export(self):
        rows = [
            {
                "受注番号": "1001",
                "注文日時": "2024/01/10 12:00:00",
                "注文者メールアドレス": "a@example.com",
                "商品管理番号": "SKU-1",
                "商品名": "Green Tea",
                "単価": "1200",
            }
        ]

        mapping = ColumnResolver(LINE_ITEM_STRATEGIES).resolve(rows)

        assert mapping.get(ORDER_ID) == "受注番号"
        assert mapping.get(DATE) == "注文日時"
        assert mapping.get(AMOUNT) == "単価"
