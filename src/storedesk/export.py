"""CSV export of order lists."""

import csv
import io
from datetime import date, datetime, timezone
from typing import Iterable

from .models import Order, parse_timestamp

CSV_MIME_TYPE = "text/csv;charset=utf-8"

CSV_HEADERS = [
    "Order Number",
    "Customer Name",
    "Phone",
    "Email",
    "Address",
    "City",
    "District",
    "Order Date",
    "Items Count",
    "Total Amount",
    "Delivery Charge",
    "Grand Total",
    "Status",
    "Payment Method",
    "Payment Status",
    "Delivery Type",
]


def format_order_date(timestamp: str) -> str:
    """Render an ISO timestamp as e.g. 'Mar 7, 2026' (UTC). Unparseable input is returned as-is."""
    try:
        moment = parse_timestamp(timestamp).astimezone(timezone.utc)
    except ValueError:
        return timestamp
    return f"{moment:%b} {moment.day}, {moment.year}"


def order_row(order: Order) -> list:
    """Flatten one order into CSV column order."""
    info = order.shipping_info
    return [
        order.order_number,
        info.full_name,
        info.phone,
        info.email or "",
        info.address,
        info.city,
        info.district,
        format_order_date(order.created_at),
        order.item_count,
        order.subtotal,
        order.delivery_charge,
        order.total,
        order.status,
        order.payment_method or "",
        order.payment_status,
        order.delivery_type,
    ]


def orders_to_csv(orders: Iterable[Order]) -> str:
    """
    Serialize orders to CSV text.

    Text columns are always quoted (embedded quotes doubled), numeric columns
    never are. Rows are joined with newlines and there is no trailing newline.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for order in orders:
        writer.writerow(order_row(order))

    text = output.getvalue()
    if text.endswith("\n"):
        text = text[:-1]
    return text


def export_filename(day: date | None = None) -> str:
    """Return the download name for an export made on `day` (default: today, UTC)."""
    day = day or datetime.now(timezone.utc).date()
    return f"orders_export_{day.isoformat()}.csv"
