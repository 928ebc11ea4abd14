"""Tests for pandas DataFrame adapters and report exports."""

import json
from decimal import Decimal

import pandas as pd
import pytest

from customer_ltv.ingestion.normalizer import LineItemRecord
from customer_ltv.pandas import (
    analyze_line_items_df,
    customers_to_dataframe,
    dataframe_to_line_items,
    export_report_csv,
    export_report_json,
    items_to_dataframe,
    line_items_to_dataframe,
    monthly_to_dataframe,
    rfm_grid_to_dataframe,
    routes_to_dataframe,
)
from customer_ltv.pipeline import analyze_line_items, analyze_rows


@pytest.fixture
def line_items_df():
    return pd.DataFrame(
        {
            "order_id": ["1001", "1001", "1002", "1003"],
            "order_date": ["2024-01-10", "2024-01-10", "2024-02-10", "2024-01-15"],
            "customer_key": ["A", "A", "A", "B"],
            "item_code": ["TEA", "CUP", "COFFEE", "TEA"],
            "item_name": ["Tea", "Cup", "Coffee", "Tea"],
            "price": [1200, 300, 800, 1200],
        }
    )


@pytest.fixture
def report(line_items_df):
    return analyze_line_items(dataframe_to_line_items(line_items_df))


class TestDataFrameToLineItems:
    """Test DataFrame → LineItemRecord conversion."""

    def test_converts_rows(self, line_items_df):
        items = dataframe_to_line_items(line_items_df)

        assert len(items) == 4
        assert items[0] == LineItemRecord(
            "1001", "2024-01-10", "A", "TEA", "Tea", Decimal("1200.0")
        )
        assert [item.line_no for item in items] == [0, 1, 0, 0]

    def test_custom_column_names(self, line_items_df):
        renamed = line_items_df.rename(columns={"customer_key": "email"})

        items = dataframe_to_line_items(renamed, customer_key_col="email")

        assert items[3].customer_key == "B"

    def test_missing_columns_raise(self, line_items_df):
        with pytest.raises(ValueError, match="missing required columns"):
            dataframe_to_line_items(line_items_df.drop(columns=["price"]))

    def test_null_values_raise(self, line_items_df):
        line_items_df.loc[0, "customer_key"] = None

        with pytest.raises(ValueError, match="Null/NaN"):
            dataframe_to_line_items(line_items_df)

    def test_oversized_price_raises(self, line_items_df):
        line_items_df["price"] = line_items_df["price"].astype(float)
        line_items_df.loc[2, "price"] = 1e30

        with pytest.raises(ValueError, match="Invalid price"):
            dataframe_to_line_items(line_items_df)

    def test_empty_dataframe(self, line_items_df):
        assert dataframe_to_line_items(line_items_df.iloc[0:0]) == []

    def test_round_trip_through_dataframe(self, line_items_df):
        items = dataframe_to_line_items(line_items_df)

        df = line_items_to_dataframe(items)

        assert list(df["price"]) == [1200.0, 300.0, 800.0, 1200.0]

    def test_analyze_line_items_df(self, line_items_df):
        report = analyze_line_items_df(line_items_df)

        assert report.metrics.customer_count == 2
        assert report.metrics.total_ltv == Decimal("3500.00")


class TestReportFrames:
    """Test report → DataFrame adapters."""

    def test_customers_frame(self, report):
        df = customers_to_dataframe(report.customers)

        assert list(df["customer_key"]) == ["A", "B"]
        assert df.iloc[0]["total_revenue"] == 2300.0
        assert df.iloc[0]["purchase_count"] == 2

    def test_empty_customers_frame_has_columns(self):
        df = customers_to_dataframe([])

        assert df.empty
        assert "total_revenue" in df.columns

    def test_monthly_frame_records_strategy(self, report):
        df = monthly_to_dataframe(report.monthly)

        assert list(df["month"]) == ["2024-01", "2024-02"]
        assert df.attrs["strategy"] == "orders"

    def test_routes_frame(self, report):
        df = routes_to_dataframe(report.golden_routes)

        assert list(df["route"]) == ["TEA → COFFEE", "TEA"]
        assert list(df["count"]) == [1, 1]

    def test_items_frame(self, report):
        df = items_to_dataframe(report.items)

        assert df.iloc[0]["item_code"] == "TEA"
        assert df.iloc[0]["purchase_count"] == 2

    def test_rfm_frame_is_six_by_six(self, report):
        df = rfm_grid_to_dataframe(report.rfm)

        assert df.shape == (6, 6)
        assert int(df.to_numpy().sum()) == 2


class TestExports:
    def test_export_json(self, report, tmp_path):
        path = export_report_json(
            report, tmp_path / "out" / "report.json", metadata={"source": "test"}
        )

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["metadata"] == {"source": "test"}
        assert payload["report"]["metrics"]["customer_count"] == 2

    def test_export_csv(self, report, tmp_path):
        paths = export_report_csv(report, tmp_path / "tables")

        assert sorted(paths) == [
            "customers",
            "golden_routes",
            "items",
            "monthly",
            "rfm_grid",
        ]
        customers = pd.read_csv(paths["customers"])
        assert list(customers["customer_key"]) == ["A", "B"]

    def test_export_csv_for_order_report(self, tmp_path):
        report = analyze_rows([{"注文日": "2024-01-10", "顧客ID": "A", "金額": "100"}])

        paths = export_report_csv(report, tmp_path)

        assert pd.read_csv(paths["golden_routes"]).empty
