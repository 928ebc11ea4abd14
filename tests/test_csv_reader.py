"""Tests for CSV loading."""

import pytest

from customer_ltv.ingestion import csv_reader
from customer_ltv.ingestion.csv_reader import parse_csv_text, read_csv_rows


class TestParseCsvText:
    def test_values_kept_as_strings(self):
        rows = parse_csv_text('注文日,顧客ID,金額\n2024-01-10,007,"¥1,000"\n')

        assert rows == [{"注文日": "2024-01-10", "顧客ID": "007", "金額": "¥1,000"}]

    def test_headers_are_stripped(self):
        rows = parse_csv_text(" 注文日 , 金額 \n2024-01-10,100\n")

        assert list(rows[0].keys()) == ["注文日", "金額"]

    def test_missing_cells_become_empty_strings(self):
        rows = parse_csv_text("a,b,c\n1,,3\n")

        assert rows == [{"a": "1", "b": "", "c": "3"}]

    def test_blank_lines_skipped(self):
        rows = parse_csv_text("a,b\n1,2\n\n3,4\n")

        assert len(rows) == 2

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_text_yields_no_rows(self, text):
        assert parse_csv_text(text) == []

    def test_header_only(self):
        assert parse_csv_text("a,b\n") == []


class TestReadCsvRows:
    def test_reads_utf8_file(self, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_text("注文日,金額\n2024-01-10,100\n", encoding="utf-8")

        assert read_csv_rows(path) == [{"注文日": "2024-01-10", "金額": "100"}]

    def test_reads_shift_jis_file(self, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_bytes("注文日,金額\n2024-01-10,100\n".encode("cp932"))

        rows = read_csv_rows(path, encoding="cp932")

        assert rows[0]["金額"] == "100"

    def test_wrong_encoding_yields_no_rows(self, tmp_path, caplog):
        """A Shift_JIS file read as UTF-8 is reported, not raised."""
        path = tmp_path / "orders.csv"
        path.write_bytes("注文日,顧客ID,金額\n2024-01-10,A,100\n".encode("cp932"))

        with caplog.at_level("WARNING", logger="customer_ltv.ingestion.csv_reader"):
            rows = read_csv_rows(path)

        assert rows == []
        assert "--encoding" in caplog.text

    def test_rejects_oversized_file(self, tmp_path, monkeypatch):
        path = tmp_path / "orders.csv"
        path.write_text("注文日,金額\n2024-01-10,100\n", encoding="utf-8")
        monkeypatch.setattr(csv_reader, "MAX_INPUT_BYTES", 10)

        with pytest.raises(ValueError, match="exceeds limit"):
            read_csv_rows(path)

    def test_empty_file_yields_no_rows(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        assert read_csv_rows(path) == []
