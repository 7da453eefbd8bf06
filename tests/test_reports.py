"""Tests for order, review and inventory statistics."""

from datetime import date, datetime, timezone

import pytest

from storedesk.errors import ValidationError
from storedesk.models import Review
from storedesk.reports import (
    compute_inventory_stats,
    compute_inventory_summary,
    compute_order_stats,
    compute_review_stats,
    orders_between,
    parse_date_bound,
)

from .conftest import make_order, make_product


def _review(rating: int) -> Review:
    return Review(
        id=f"r{rating}",
        product_id="p-shirt",
        user_id="u1",
        user_name="Nadia",
        rating=rating,
        comment="Good",
        date="March 7, 2026",
    )


class TestOrderStats:
    def test_empty(self):
        stats = compute_order_stats([])

        assert stats["totalOrders"] == 0
        assert stats["totalRevenue"] == 0
        assert stats["avgOrderValue"] == 0
        assert all(value == 0 for value in stats.values())

    def test_status_counts(self):
        orders = [
            make_order("o1", status="pending"),
            make_order("o2", status="pending"),
            make_order("o3", status="delivered", payment_status="paid"),
            make_order("o4", status="cancelled"),
        ]

        stats = compute_order_stats(orders)

        assert stats["totalOrders"] == 4
        assert stats["pendingOrders"] == 2
        assert stats["deliveredOrders"] == 1
        assert stats["cancelledOrders"] == 1
        assert stats["confirmedOrders"] == 0
        assert stats["paidOrders"] == 1

    def test_revenue_and_average(self):
        orders = [make_order("o1", total=1000), make_order("o2", total=500)]

        stats = compute_order_stats(orders)

        assert stats["totalRevenue"] == 1500
        assert stats["avgOrderValue"] == 750

    def test_today_counts_use_utc_date(self):
        orders = [
            make_order("o1", total=300, created_at="2026-03-07T23:30:00Z"),
            make_order("o2", total=200, created_at="2026-03-08T00:10:00+06:00"),
            make_order("o3", total=100, created_at="2026-03-06T12:00:00Z"),
        ]

        stats = compute_order_stats(orders, today=date(2026, 3, 7))

        assert stats["todayOrders"] == 2
        assert stats["todayRevenue"] == 500

    def test_unparseable_date_is_not_today(self):
        stats = compute_order_stats([make_order(created_at="yesterday")], today=date(2026, 3, 7))
        assert stats["todayOrders"] == 0


class TestReviewStats:
    def test_empty_average_is_zero(self):
        stats = compute_review_stats([])

        assert stats["total"] == 0
        assert stats["average"] == 0
        assert stats["distribution"] == {5: 0, 4: 0, 3: 0, 2: 0, 1: 0}

    def test_average_and_distribution(self):
        stats = compute_review_stats([_review(r) for r in [5, 5, 4, 3, 5]])

        assert stats["total"] == 5
        assert stats["average"] == 4.4
        assert stats["distribution"] == {5: 3, 4: 1, 3: 1, 2: 0, 1: 0}

    def test_average_rounds_half_up(self):
        # mean 4.25
        stats = compute_review_stats([_review(r) for r in [5, 5, 4, 3]])
        assert stats["average"] == 4.3


class TestInventoryStats:
    def test_counts_and_totals(self):
        products = [
            make_product("a", sku="A", stock_quantity=50, reserved_quantity=5, unit_cost=10),
            make_product("b", sku="B", stock_quantity=8, inventory_status="low_stock", unit_cost=10),
            make_product("c", sku="C", stock_quantity=0, inventory_status="out_of_stock"),
            make_product("d", sku="D", inventory_status="discontinued", stock_quantity=0),
            make_product("e", sku="E", manage_stock=False, stock_quantity=999),
        ]

        stats = compute_inventory_stats(products)

        assert stats["totalProducts"] == 4
        assert stats["inStock"] == 1
        assert stats["lowStock"] == 1
        assert stats["outOfStock"] == 1
        assert stats["discontinued"] == 1
        assert stats["totalStock"] == 58
        assert stats["totalReserved"] == 5
        assert stats["totalAvailable"] == 53
        assert stats["totalValue"] == 580
        assert stats["needsReorder"] == 3


class TestInventorySummary:
    def test_groups_by_status(self):
        products = [
            make_product("a", sku="A", stock_quantity=50, reserved_quantity=5, unit_cost=10),
            make_product("b", sku="B", stock_quantity=40, unit_cost=30),
            make_product("c", sku="C", stock_quantity=8, inventory_status="low_stock", unit_cost=5),
            make_product("d", sku="D", inventory_status="discontinued", stock_quantity=2),
            make_product("e", sku="E", manage_stock=False, stock_quantity=999),
        ]

        result = compute_inventory_summary(products)

        assert [g["status"] for g in result["summary"]] == ["in_stock", "low_stock", "discontinued"]
        in_stock = result["summary"][0]
        assert in_stock["count"] == 2
        assert in_stock["totalItems"] == 90
        assert in_stock["totalValue"] == 1700
        assert in_stock["avgUnitCost"] == 20
        assert result["totalStats"] == {
            "totalProducts": 4,
            "totalStock": 100,
            "totalReserved": 5,
            "totalAvailable": 95,
            "totalInventoryValue": 2540,
        }

    def test_empty(self):
        result = compute_inventory_summary([])

        assert result["summary"] == []
        assert result["totalStats"]["totalProducts"] == 0


class TestDateRange:
    def test_plain_dates(self):
        start = parse_date_bound("2026-03-07", "startDate")
        end = parse_date_bound("2026-03-07", "endDate", end=True)

        assert start == datetime(2026, 3, 7, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 7, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_timestamp_without_zone_is_utc(self):
        moment = parse_date_bound("2026-03-07T12:30:00", "startDate")
        assert moment == datetime(2026, 3, 7, 12, 30, tzinfo=timezone.utc)

    def test_missing_is_none(self):
        assert parse_date_bound(None, "startDate") is None
        assert parse_date_bound("", "endDate", end=True) is None

    @pytest.mark.parametrize("value", ["yesterday", "2026-13-01", "07/03/2026"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_date_bound(value, "startDate")
        assert exc_info.value.field == "startDate"

    def test_orders_between(self):
        orders = [
            make_order("o1", created_at="2026-03-06T23:00:00Z"),
            make_order("o2", created_at="2026-03-07T08:00:00Z"),
            make_order("o3", created_at="2026-03-07T23:30:00Z"),
            make_order("o4", created_at="2026-03-08T00:00:01Z"),
            make_order("o5", created_at=""),
        ]
        start = parse_date_bound("2026-03-07", "startDate")
        end = parse_date_bound("2026-03-07", "endDate", end=True)

        assert [o.id for o in orders_between(orders, start, end)] == ["o2", "o3"]
        assert [o.id for o in orders_between(orders, start=start)] == ["o2", "o3", "o4"]
        assert len(orders_between(orders)) == 5
