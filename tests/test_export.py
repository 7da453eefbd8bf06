"""Tests for CSV export."""

import csv
import io
from datetime import date

from storedesk.export import (
    CSV_HEADERS,
    export_filename,
    format_order_date,
    order_row,
    orders_to_csv,
)

from .conftest import make_order, make_shipping


def _parse(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestOrdersToCsv:
    def test_header_only_for_no_orders(self):
        text = orders_to_csv([])

        assert text.split("\n") == [",".join(f'"{h}"' for h in CSV_HEADERS)]

    def test_one_line_per_order_and_equal_field_counts(self):
        orders = [make_order("o1"), make_order("o2"), make_order("o3")]

        text = orders_to_csv(orders)

        lines = text.split("\n")
        assert len(lines) == len(orders) + 1
        rows = _parse(text)
        assert all(len(row) == len(CSV_HEADERS) for row in rows)

    def test_no_trailing_newline(self):
        assert not orders_to_csv([make_order()]).endswith("\n")

    def test_embedded_quotes_and_commas_escaped(self):
        order = make_order(
            shipping_info=make_shipping(full_name='Rafiq "Bhai" Islam', address="12, Lake Road")
        )

        text = orders_to_csv([order])

        assert '"Rafiq ""Bhai"" Islam"' in text
        row = _parse(text)[1]
        assert row[1] == 'Rafiq "Bhai" Islam'
        assert row[4] == "12, Lake Road"

    def test_numbers_unquoted_text_quoted(self):
        line = orders_to_csv([make_order(total=1080)]).split("\n")[1]

        assert line.startswith('"ORD-')
        assert ",1,1000,80,1080," in line

    def test_row_columns(self):
        row = order_row(make_order(status="shipped"))

        assert row[0] == "ORD-00000001-TEST"
        assert row[7] == "Mar 7, 2026"
        assert row[8] == 1
        assert row[9:12] == [1000, 80, 1080]
        assert row[12:] == ["shipped", "cod", "pending", "dhaka"]


class TestHelpers:
    def test_format_order_date(self):
        assert format_order_date("2026-12-25T18:00:00Z") == "Dec 25, 2026"

    def test_format_order_date_unparseable(self):
        assert format_order_date("not a date") == "not a date"

    def test_export_filename(self):
        assert export_filename(date(2026, 3, 7)) == "orders_export_2026-03-07.csv"
