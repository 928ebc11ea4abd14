"""Tests for item ranking."""

from decimal import Decimal

import pytest

from customer_ltv.analyses.items import rank_items
from customer_ltv.foundation.customers import aggregate_line_items
from customer_ltv.ingestion.normalizer import LineItemRecord


@pytest.fixture
def line_items():
    return [
        LineItemRecord("1001", "2024-01-10", "A", "TEA", "Tea", Decimal("1200")),
        LineItemRecord(
            "1001", "2024-01-10", "A", "CUP", "", Decimal("300"), line_no=1
        ),
        LineItemRecord("1003", "2024-03-01", "A", "COFFEE", "Coffee", Decimal("800")),
        LineItemRecord("1002", "2024-02-01", "B", "COFFEE", "Coffee", Decimal("800")),
    ]


class TestRankItems:
    """Test item aggregation and ordering."""

    def test_sorted_by_purchase_count_then_code(self, line_items):
        items = rank_items(line_items, aggregate_line_items(line_items))

        assert [i.item_code for i in items] == ["COFFEE", "CUP", "TEA"]

    def test_sales_and_buyers(self, line_items):
        coffee = rank_items(line_items, aggregate_line_items(line_items))[0]

        assert coffee.purchase_count == 2
        assert coffee.total_sales == Decimal("1600")
        assert coffee.buyers == frozenset({"A", "B"})
        assert coffee.buyer_count == 2

    def test_repeat_rate_and_average_ltv_of_buyers(self, line_items):
        coffee = rank_items(line_items, aggregate_line_items(line_items))[0]

        assert coffee.repeat_rate == Decimal("50.0")
        assert coffee.average_ltv == Decimal("1550.00")

    def test_display_name_precedence(self, line_items):
        items = rank_items(
            line_items, aggregate_line_items(line_items), {"TEA": "Green Tea"}
        )
        names = {i.item_code: i.display_name for i in items}

        assert names == {"COFFEE": "Coffee", "CUP": "CUP", "TEA": "Green Tea"}

    def test_empty_input(self):
        assert rank_items([], []) == ()
