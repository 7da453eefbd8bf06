"""Aggregate statistics over orders, reviews and inventory."""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from .errors import ValidationError
from .models import INVENTORY_STATUSES, ORDER_STATUSES, Order, Product, Review, parse_timestamp

RATINGS = (5, 4, 3, 2, 1)


def _order_day(order: Order) -> date | None:
    if not order.created_at:
        return None
    try:
        return parse_timestamp(order.created_at).astimezone(timezone.utc).date()
    except ValueError:
        return None


def compute_order_stats(orders: Iterable[Order], today: date | None = None) -> dict[str, Any]:
    """
    Summarise a list of orders in one pass.

    Revenue is the sum of order totals. Counters exist for every order
    status, plus paid orders and orders placed today (UTC).
    """
    today = today or datetime.now(timezone.utc).date()
    counts = {status: 0 for status in ORDER_STATUSES}
    total_orders = 0
    total_revenue: float = 0
    paid_orders = 0
    today_orders = 0
    today_revenue: float = 0

    for order in orders:
        total_orders += 1
        total_revenue += order.total
        if order.status in counts:
            counts[order.status] += 1
        if order.payment_status == "paid":
            paid_orders += 1
        if _order_day(order) == today:
            today_orders += 1
            today_revenue += order.total

    return {
        "totalOrders": total_orders,
        "totalRevenue": total_revenue,
        "avgOrderValue": total_revenue / total_orders if total_orders else 0,
        "pendingOrders": counts["pending"],
        "confirmedOrders": counts["confirmed"],
        "processingOrders": counts["processing"],
        "shippedOrders": counts["shipped"],
        "deliveredOrders": counts["delivered"],
        "cancelledOrders": counts["cancelled"],
        "paidOrders": paid_orders,
        "todayOrders": today_orders,
        "todayRevenue": today_revenue,
    }


def compute_review_stats(reviews: Iterable[Review]) -> dict[str, Any]:
    """
    Average rating (one decimal) and rating histogram.

    An empty list averages to 0.
    """
    distribution = {rating: 0 for rating in RATINGS}
    total = 0
    rating_sum = 0
    for review in reviews:
        total += 1
        rating_sum += review.rating
        if review.rating in distribution:
            distribution[review.rating] += 1

    if total == 0:
        average = 0.0
    else:
        mean = Decimal(rating_sum) / Decimal(total)
        average = float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    return {"total": total, "average": average, "distribution": distribution}


def compute_inventory_stats(products: Iterable[Product]) -> dict[str, Any]:
    """Counts per inventory status plus stock and value totals for managed products."""
    stats: dict[str, Any] = {
        "totalProducts": 0,
        "inStock": 0,
        "lowStock": 0,
        "outOfStock": 0,
        "discontinued": 0,
        "totalStock": 0,
        "totalReserved": 0,
        "totalAvailable": 0,
        "totalValue": 0,
        "needsReorder": 0,
    }
    status_keys = {
        "in_stock": "inStock",
        "low_stock": "lowStock",
        "out_of_stock": "outOfStock",
        "discontinued": "discontinued",
    }
    for product in products:
        if not product.manage_stock:
            continue
        stats["totalProducts"] += 1
        key = status_keys.get(product.inventory_status)
        if key:
            stats[key] += 1
        stats["totalStock"] += product.stock_quantity
        stats["totalReserved"] += product.reserved_quantity
        stats["totalAvailable"] += product.available_quantity
        stats["totalValue"] += product.total_inventory_value
        if product.available_quantity <= product.reorder_point:
            stats["needsReorder"] += 1
    return stats


def compute_inventory_summary(products: Iterable[Product]) -> dict[str, Any]:
    """
    Group managed products by inventory status.

    Returns {"summary": [...], "totalStats": {...}}. Each summary entry has
    the status, its product count, units in stock, inventory value and mean
    unit cost; only statuses with products appear, in INVENTORY_STATUSES
    order.
    """
    groups: dict[str, list[Product]] = {}
    total_stats: dict[str, Any] = {
        "totalProducts": 0,
        "totalStock": 0,
        "totalReserved": 0,
        "totalAvailable": 0,
        "totalInventoryValue": 0,
    }
    for product in products:
        if not product.manage_stock:
            continue
        groups.setdefault(product.inventory_status, []).append(product)
        total_stats["totalProducts"] += 1
        total_stats["totalStock"] += product.stock_quantity
        total_stats["totalReserved"] += product.reserved_quantity
        total_stats["totalAvailable"] += product.available_quantity
        total_stats["totalInventoryValue"] += product.total_inventory_value

    order = {status: i for i, status in enumerate(INVENTORY_STATUSES)}
    summary = []
    for status in sorted(groups, key=lambda s: order.get(s, len(order))):
        members = groups[status]
        summary.append(
            {
                "status": status,
                "count": len(members),
                "totalItems": sum(p.stock_quantity for p in members),
                "totalValue": sum(p.total_inventory_value for p in members),
                "avgUnitCost": sum(p.unit_cost for p in members) / len(members),
            }
        )
    return {"summary": summary, "totalStats": total_stats}


def parse_date_bound(value: str | None, field: str, end: bool = False) -> datetime | None:
    """
    Parse a startDate/endDate filter.

    Accepts a date (YYYY-MM-DD) or an ISO 8601 timestamp; naive values are
    UTC. A plain end date covers that whole day.

    Raises:
        ValidationError: If the value is not a date or timestamp.
    """
    if not value:
        return None
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            moment = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
            if end:
                moment = moment.replace(hour=23, minute=59, second=59, microsecond=999999)
            return moment
        moment = parse_timestamp(value)
    except ValueError:
        raise ValidationError(field, "expected YYYY-MM-DD or an ISO 8601 timestamp")
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def orders_between(
    orders: Iterable[Order],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Order]:
    """
    Orders created within [start, end]. Either bound may be None.

    Once a bound is given, orders without a readable createdAt are left out.
    """
    if start is None and end is None:
        return list(orders)
    selected = []
    for order in orders:
        if not order.created_at:
            continue
        try:
            created = parse_timestamp(order.created_at)
        except ValueError:
            continue
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if start is not None and created < start:
            continue
        if end is not None and created > end:
            continue
        selected.append(order)
    return selected
