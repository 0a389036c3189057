"""
Unit Tests - Normalizers and Schema Mapping
"""
from datetime import date
from decimal import Decimal

import pytest

from retail_analytics.transformation.normalizers import (
    format_date,
    normalize_header,
    parse_bool,
    parse_csv,
    parse_csv_line,
    parse_date,
    parse_int,
    parse_number,
    to_percentage,
)
from retail_analytics.transformation.schema import SALES_FIELDS, FieldAliases, RawRow


class TestParseNumber:
    """Tests for parse_number"""

    @pytest.mark.parametrize("raw, expected", [
        ("$1,250.00", 1250.0),
        ("62.5%", 62.5),
        ("  42 ", 42.0),
        ("-3.5", -3.5),
        ("12abc", 12.0),
        (7, 7.0),
        (Decimal("19.99"), 19.99),
    ])
    def test_parses_free_form_values(self, raw, expected):
        assert parse_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "", "abc", "$", True, float("nan"), float("inf")])
    def test_unparsable_values_are_zero(self, raw):
        assert parse_number(raw) == 0.0

    def test_parse_int_truncates(self):
        assert parse_int("12.9") == 12
        assert parse_int(None) == 0


class TestParseBool:
    """Tests for parse_bool"""

    def test_truthy_strings(self):
        assert parse_bool("true") is True
        assert parse_bool("Yes") is True
        assert parse_bool("1") is True

    def test_falsy_values(self):
        assert parse_bool("false") is False
        assert parse_bool("0") is False
        assert parse_bool(None) is False
        assert parse_bool(Decimal("0")) is False

    def test_native_bool(self):
        assert parse_bool(True) is True


class TestToPercentage:
    """Tests for fraction/percentage reconciliation"""

    def test_fraction_scaled(self):
        assert to_percentage(0.625) == pytest.approx(62.5)

    def test_percentage_unchanged(self):
        assert to_percentage(62.5) == 62.5

    def test_boundary_one_is_fraction(self):
        assert to_percentage(1.0) == 100.0


class TestCsvParsing:
    """Tests for the CSV splitter and parser"""

    def test_quoted_comma_kept_in_field(self):
        assert parse_csv_line('a,"$1,250.00",c') == ["a", "$1,250.00", "c"]

    def test_doubled_quote_is_literal(self):
        assert parse_csv_line('"say ""hi""",x') == ['say "hi"', "x"]

    def test_trailing_empty_field(self):
        assert parse_csv_line("a,b,") == ["a", "b", ""]

    def test_normalize_header(self):
        assert normalize_header("Gross Margin %") == "gross_margin_"
        assert normalize_header("COGS (with excise)") == "cogs_with_excise"
        assert normalize_header(' "Net  Sales" ') == "net_sales"

    def test_parse_csv_drops_malformed_and_blank_lines(self):
        text = "Name,Net Sales\nA,10\n\nB,20,extra\nC,30\n"

        rows = parse_csv(text)

        assert rows == [
            {"name": "A", "net_sales": "10"},
            {"name": "C", "net_sales": "30"},
        ]

    def test_parse_csv_header_only(self):
        assert parse_csv("Name,Net Sales\n") == []

    def test_parse_csv_handles_crlf(self):
        rows = parse_csv("Name,Value\r\nA,1\r\n")
        assert rows == [{"name": "A", "value": "1"}]

    def test_parse_csv_strips_byte_order_mark(self):
        rows = parse_csv("\ufeffDate,Net Sales\n01/15/2024,100\n")
        assert rows == [{"date": "01/15/2024", "net_sales": "100"}]
        assert normalize_header("\ufeffDate") == "date"


class TestDates:
    """Tests for date normalization"""

    @pytest.mark.parametrize("raw", ["01/15/2024", "2024-01-15", "01-15-2024", "2024/01/15", "01/15/24", "20240115"])
    def test_known_formats(self, raw):
        assert parse_date(raw) == date(2024, 1, 15)

    def test_iso_timestamp(self):
        assert parse_date("2024-01-15T10:30:00Z") == date(2024, 1, 15)

    def test_format_date(self):
        assert format_date("01/15/2024") == "2024-01-15"
        assert format_date("") == ""
        assert format_date("Week 3") == "Week 3"


class TestRawRow:
    """Tests for alias-aware field access"""

    def test_first_non_empty_alias_wins(self):
        aliases = FieldAliases("test", {"net_sales": ["net_sales", "Net Sales", "NetSales"]})
        row = RawRow({"net_sales": "", "NetSales": "5"}, aliases)

        assert row.get("net_sales") == "5"

    def test_keys_normalized_on_construction(self):
        row = RawRow({"Net Sales": " 10 "}, SALES_FIELDS)

        assert row.get("net_sales") == "10"
        assert "net_sales" in row.keys()

    def test_missing_field(self):
        row = RawRow({"Unrelated": "x"}, SALES_FIELDS)

        assert row.get("net_sales") is None
        assert row.text("store") == ""

    def test_non_string_values_preserved(self):
        row = RawRow({"net_sales": Decimal("12.5")}, SALES_FIELDS)

        assert row.get_value("net_sales") == Decimal("12.5")
