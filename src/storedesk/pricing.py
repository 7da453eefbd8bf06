"""Price, discount and order total calculations.

Amounts are whole BDT units. The only rounding done here is of the integer
discount percentage, which rounds half up like the storefront always has.
"""

import math
from dataclasses import dataclass
from typing import Iterable

from .errors import ValidationError
from .models import DELIVERY_TYPES, OrderItem

# Flat delivery charge per delivery zone
DELIVERY_CHARGES = {
    "dhaka": 80,
    "outside": 150,
}


@dataclass(frozen=True)
class Discount:
    """Display prices for a product with an optional reduced price."""

    current_price: float
    original_price: float
    discount_percentage: int
    discount_amount: float
    has_offer: bool

    def to_dict(self) -> dict:
        return {
            "currentPrice": self.current_price,
            "originalPrice": self.original_price,
            "discountPercentage": self.discount_percentage,
            "discountAmount": self.discount_amount,
            "hasOffer": self.has_offer,
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_discount(normal_price: float, reduced_price: float | None = None) -> Discount:
    """
    Work out the offer price and discount for a product.

    No offer applies when there is no reduced price, when it is not below
    the normal price, or when the normal price is zero.

    Example: compute_discount(1000, 750) -> 25% off, 250 saved.
    """
    no_offer = Discount(
        current_price=normal_price,
        original_price=normal_price,
        discount_percentage=0,
        discount_amount=0,
        has_offer=False,
    )
    if reduced_price is None or normal_price <= 0 or reduced_price >= normal_price:
        return no_offer

    amount = normal_price - reduced_price
    # A real offer never shows as 0% off
    percentage = min(100, max(1, round_half_up(amount / normal_price * 100)))
    return Discount(
        current_price=reduced_price,
        original_price=normal_price,
        discount_percentage=percentage,
        discount_amount=amount,
        has_offer=True,
    )


def delivery_charge(delivery_type: str) -> int:
    """Return the flat delivery charge for a delivery zone."""
    if delivery_type not in DELIVERY_TYPES:
        raise ValidationError("deliveryType", f"expected one of {', '.join(DELIVERY_TYPES)}")
    return DELIVERY_CHARGES[delivery_type]


def order_totals(
    items: Iterable[OrderItem],
    delivery_type: str,
    discount_total: float = 0,
) -> tuple[float, int, float]:
    """
    Compute (subtotal, delivery charge, total) for a checkout.

    total = sum(price * quantity) + delivery charge - discount total
    """
    subtotal = sum(item.line_total for item in items)
    charge = delivery_charge(delivery_type)
    if discount_total < 0 or discount_total > subtotal + charge:
        raise ValidationError("discountTotal", "must be between 0 and the order value")
    return subtotal, charge, subtotal + charge - discount_total


def format_bdt(amount: float) -> str:
    """Format an amount as Bangladeshi taka with no fraction digits, e.g. ৳1,250."""
    return f"৳{round_half_up(amount):,}"
