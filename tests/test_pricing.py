"""Tests for price, discount and order total calculations."""

import pytest

from storedesk.errors import ValidationError
from storedesk.models import OrderItem
from storedesk.pricing import (
    compute_discount,
    delivery_charge,
    format_bdt,
    order_totals,
    round_half_up,
)


class TestComputeDiscount:
    def test_quarter_off(self):
        discount = compute_discount(1000, 750)

        assert discount.has_offer is True
        assert discount.discount_percentage == 25
        assert discount.discount_amount == 250
        assert discount.current_price == 750
        assert discount.original_price == 1000

    def test_no_reduced_price(self):
        discount = compute_discount(1000)

        assert discount.has_offer is False
        assert discount.current_price == 1000
        assert discount.discount_percentage == 0
        assert discount.discount_amount == 0

    @pytest.mark.parametrize("reduced", [1000, 1200])
    def test_reduced_not_below_normal_is_not_an_offer(self, reduced):
        discount = compute_discount(1000, reduced)

        assert discount.has_offer is False
        assert discount.discount_percentage == 0
        assert discount.current_price == 1000

    @pytest.mark.parametrize("reduced", [None, 0, 50, -10])
    def test_zero_normal_price_never_raises(self, reduced):
        discount = compute_discount(0, reduced)

        assert discount.discount_percentage == 0
        assert discount.has_offer is False

    @pytest.mark.parametrize(
        "normal,reduced",
        [(1000, 0), (1000, 999.99), (3, 2), (999, 1), (1500, 1499)],
    )
    def test_offer_percentage_in_range(self, normal, reduced):
        discount = compute_discount(normal, reduced)

        assert discount.has_offer is True
        assert 0 < discount.discount_percentage <= 100

    def test_free_item_is_full_discount(self):
        assert compute_discount(500, 0).discount_percentage == 100

    def test_percentage_rounds_half_up(self):
        # 12.5% off
        assert compute_discount(800, 700).discount_percentage == 13

    def test_to_dict_uses_wire_names(self):
        data = compute_discount(1000, 750).to_dict()

        assert data == {
            "currentPrice": 750,
            "originalPrice": 1000,
            "discountPercentage": 25,
            "discountAmount": 250,
            "hasOffer": True,
        }


class TestDeliveryAndTotals:
    def test_delivery_charges(self):
        assert delivery_charge("dhaka") == 80
        assert delivery_charge("outside") == 150

    def test_unknown_delivery_type(self):
        with pytest.raises(ValidationError):
            delivery_charge("abroad")

    def test_order_totals(self):
        items = [
            OrderItem(product_id="a", title="A", price=500, quantity=2),
            OrderItem(product_id="b", title="B", price=250, quantity=1),
        ]

        subtotal, charge, total = order_totals(items, "outside", discount_total=100)

        assert subtotal == 1250
        assert charge == 150
        assert total == 1300

    def test_negative_discount_rejected(self):
        items = [OrderItem(product_id="a", title="A", price=500, quantity=1)]

        with pytest.raises(ValidationError):
            order_totals(items, "dhaka", discount_total=-1)

    def test_discount_larger_than_order_rejected(self):
        items = [OrderItem(product_id="a", title="A", price=500, quantity=1)]

        with pytest.raises(ValidationError):
            order_totals(items, "dhaka", discount_total=1000)


class TestFormatting:
    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2
        assert round_half_up(0.5) == 1

    def test_format_bdt(self):
        assert format_bdt(1250) == "৳1,250"
        assert format_bdt(80) == "৳80"
        assert format_bdt(1999.5) == "৳2,000"
