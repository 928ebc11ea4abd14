"""Tests for row normalisation into canonical records and line items."""

from decimal import Decimal

import pytest

from customer_ltv.ingestion.normalizer import (
    CanonicalOrderRecord,
    LineItemRecord,
    RecordNormalizer,
    clean_amount,
    normalize_date,
    parse_iso_date,
)


class TestCleanAmount:
    """Test money string parsing."""

    def test_yen_with_separators_and_suffix(self):
        assert clean_amount("¥12,345円") == Decimal("12345")

    def test_full_width_symbols_and_spaces(self):
        assert clean_amount("￥ 1,200 ") == Decimal("1200")

    def test_decimal_amount(self):
        assert clean_amount("$1,200.50") == Decimal("1200.50")

    @pytest.mark.parametrize("value", ["", "abc", "円", None, "NaN", "Infinity"])
    def test_unparsable_values_return_none(self, value):
        assert clean_amount(value) is None

    def test_negative_amount_is_parsed(self):
        """Sign is kept; admission rules decide what to do with it."""
        assert clean_amount("-500") == Decimal("-500")

    @pytest.mark.parametrize(
        "value", ["1e30", "123456789012345678901234567890", "1,000,000,000,000,000"]
    )
    def test_oversized_amounts_return_none(self, value):
        """Amounts too large to quantize to 0.01 are not admitted."""
        assert clean_amount(value) is None

    def test_largest_admitted_amount(self):
        assert clean_amount("999,999,999,999,999.99") == Decimal("999999999999999.99")


class TestNormalizeDate:
    """Test date normalisation precedence."""

    def test_canonical_date_unchanged(self):
        assert normalize_date("2024-03-05") == "2024-03-05"

    def test_slashed_year_first(self):
        assert normalize_date("2024/03/05") == "2024-03-05"

    def test_slashed_year_first_with_time(self):
        assert normalize_date("2024/03/05 10:00:00") == "2024-03-05"

    def test_dashed_with_time(self):
        assert normalize_date("2024-03-05 10:00:00") == "2024-03-05"

    def test_month_day_year(self):
        assert normalize_date("03/05/2024") == "2024-03-05"

    def test_month_day_year_pads_single_digits(self):
        assert normalize_date("3/5/2024") == "2024-03-05"

    def test_generic_parse(self):
        assert normalize_date("2024-03-05T10:00:00") == "2024-03-05"

    def test_unparsable_date_returned_unchanged(self):
        assert normalize_date("unknown") == "unknown"


class TestParseIsoDate:
    def test_canonical(self):
        assert parse_iso_date("2024-03-05").isoformat() == "2024-03-05"

    @pytest.mark.parametrize("value", ["2024/03/05", "2024-13-40", "garbage", ""])
    def test_non_canonical_is_none(self, value):
        assert parse_iso_date(value) is None


class TestRecordNormalizer:
    """Test order-row normalisation."""

    def test_admits_valid_rows_and_counts_rejects(self):
        rows = [
            {"注文日": "2024/01/10", "顧客ID": "A", "金額": "¥1,000"},
            {"注文日": "2024/02/10", "顧客ID": "A", "金額": "2,000円"},
            {"注文日": "2024/01/15", "顧客ID": "B", "金額": "500"},
            {"注文日": "2024/01/16", "顧客ID": "C", "金額": "abc"},
            {"注文日": "", "顧客ID": "D", "金額": "700"},
            {"注文日": "2024/01/17", "顧客ID": "E", "金額": "0"},
            {"注文日": "2024/01/18", "顧客ID": "F", "金額": "-10"},
        ]

        result = RecordNormalizer().normalize(rows)

        assert result.admitted == 3
        assert result.rejected == 4
        assert result.records[0] == CanonicalOrderRecord(
            "2024-01-10", "A", Decimal("1000")
        )
        assert [r.customer_key for r in result.records] == ["A", "A", "B"]

    def test_customer_key_falls_back_to_order_number(self):
        rows = [{"注文日": "2024-03-05", "注文番号": "1001", "金額": "1200"}]

        result = RecordNormalizer().normalize(rows)

        assert result.records[0].customer_key == "ORDER-1001"

    def test_customer_key_synthesised_from_date_and_amount(self):
        rows = [
            {"注文日": "2024-03-05", "金額": "1200"},
            {"注文日": "2024-03-05", "金額": "1200.50"},
        ]

        result = RecordNormalizer().normalize(rows)

        assert [r.customer_key for r in result.records] == [
            "ANONYMOUS-2024-03-05-1200",
            "ANONYMOUS-2024-03-05-1200.5",
        ]

    def test_malformed_non_empty_date_passes_through(self):
        rows = [{"注文日": "unknown", "顧客ID": "A", "金額": "100"}]

        result = RecordNormalizer().normalize(rows)

        assert result.records[0].order_date == "unknown"

    def test_oversized_amount_row_is_rejected(self):
        rows = [
            {"注文日": "2024-01-10", "顧客ID": "A", "金額": "1e30"},
            {"注文日": "2024-01-11", "顧客ID": "B", "金額": "500"},
        ]

        result = RecordNormalizer().normalize(rows)

        assert result.admitted == 1
        assert result.rejected == 1
        assert result.records[0].customer_key == "B"

    def test_unrecognisable_headers_admit_nothing(self):
        rows = [{"foo": "1", "bar": "2"}]

        result = RecordNormalizer().normalize(rows)

        assert result.admitted == 0
        assert result.rejected == 1

    def test_empty_input(self):
        result = RecordNormalizer().normalize([])

        assert result.records == ()
        assert result.rejected == 0


class TestLineItemNormalization:
    """Test line-item normalisation."""

    @pytest.fixture
    def rows(self):
        return [
            {
                "受注番号": "1001",
                "注文日時": "2024/01/10 12:00:00",
                "注文者メールアドレス": "a@example.com",
                "注文者姓": "山田",
                "注文者名": "太郎",
                "商品管理番号": "TEA",
                "商品名": "Green Tea",
                "単価": "1,200",
            },
            {
                "受注番号": "1001",
                "注文日時": "2024/01/10 12:00:00",
                "注文者メールアドレス": "a@example.com",
                "注文者姓": "山田",
                "注文者名": "太郎",
                "商品管理番号": "",
                "商品名": "Cup",
                "単価": "0",
            },
            {
                "受注番号": "1002",
                "注文日時": "2024/02/01 09:00:00",
                "注文者メールアドレス": "",
                "注文者姓": "佐藤",
                "注文者名": "花子",
                "商品管理番号": "COFFEE",
                "商品名": "Coffee",
                "単価": "800",
            },
            {
                "受注番号": "",
                "注文日時": "2024/02/02 09:00:00",
                "注文者メールアドレス": "b@example.com",
                "注文者姓": "",
                "注文者名": "",
                "商品管理番号": "TEA",
                "商品名": "Green Tea",
                "単価": "1200",
            },
        ]

    def test_admission_and_line_numbers(self, rows):
        result = RecordNormalizer().normalize_line_items(rows)

        assert result.admitted == 3
        assert result.rejected == 1
        assert [item.unique_key for item in result.items] == [
            "1001:0",
            "1001:1",
            "1002:0",
        ]

    def test_customer_key_prefers_email_then_name(self, rows):
        items = RecordNormalizer().normalize_line_items(rows).items

        assert items[0].customer_key == "a@example.com"
        assert items[0].name == "山田太郎"
        assert items[2].customer_key == "佐藤花子"

    def test_item_code_falls_back_to_name(self, rows):
        items = RecordNormalizer().normalize_line_items(rows).items

        assert items[1].item_code == "Cup"
        assert items[1].price == Decimal("0")

    def test_dates_normalised(self, rows):
        items = RecordNormalizer().normalize_line_items(rows).items

        assert {item.order_date for item in items} == {"2024-01-10", "2024-02-01"}

    def test_oversized_price_is_rejected(self, rows):
        rows[2]["単価"] = "123456789012345678901234567890"

        result = RecordNormalizer().normalize_line_items(rows)

        assert result.admitted == 2
        assert result.rejected == 2

    def test_customer_key_falls_back_to_order_id(self):
        rows = [{"受注番号": "9", "注文日": "2024-01-01", "単価": "100"}]

        items = RecordNormalizer().normalize_line_items(rows).items

        assert items[0].customer_key == "ORDER-9"


class TestRecordValidation:
    def test_canonical_record_rejects_non_positive_amount(self):
        with pytest.raises(ValueError, match="Amount must be positive"):
            CanonicalOrderRecord("2024-01-01", "A", Decimal("0"))

    def test_canonical_record_requires_date(self):
        with pytest.raises(ValueError, match="order_date"):
            CanonicalOrderRecord("", "A", Decimal("1"))

    def test_line_item_rejects_negative_price(self):
        with pytest.raises(ValueError, match="Price cannot be negative"):
            LineItemRecord("1", "2024-01-01", "A", "X", "X", Decimal("-1"))

    def test_line_item_requires_order_id(self):
        with pytest.raises(ValueError, match="order_id"):
            LineItemRecord("", "2024-01-01", "A", "X", "X", Decimal("1"))
