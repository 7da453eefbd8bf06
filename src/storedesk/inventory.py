"""Inventory status derivation and stock movements.

All functions here mutate the Product passed in and append to its
inventory history; persisting the product is the caller's job.
"""

import logging

from .errors import InsufficientStockError, ValidationError
from .models import InventoryEvent, InventoryItem, Product, _utc_now

logger = logging.getLogger(__name__)

STOCK_ACTIONS = ("add", "remove")

# Order statuses in which the ordered quantity is held as a reservation
RESERVING_STATUSES = ("pending", "confirmed", "processing")
SHIPPED_STATUSES = ("shipped", "delivered")


def classify_inventory(available: int, low_stock_threshold: int) -> str:
    """
    Derive the inventory status from available stock.

    Returns "out_of_stock", "low_stock" or "in_stock". "discontinued" is an
    administrator override and is never derived.
    """
    if available <= 0:
        return "out_of_stock"
    if available <= low_stock_threshold:
        return "low_stock"
    return "in_stock"


def refresh_stock_fields(product: Product) -> Product:
    """Recompute the derived inventory status, leaving discontinued products alone."""
    if not product.manage_stock or product.inventory_status == "discontinued":
        return product
    product.inventory_status = classify_inventory(
        product.available_quantity, product.low_stock_threshold
    )
    product.updated_at = _utc_now()
    return product


def inventory_view(product: Product) -> InventoryItem:
    """Build the read-only inventory row for a product."""
    return InventoryItem(
        id=product.id,
        title=product.title,
        sku=product.sku,
        category=product.category,
        stock_quantity=product.stock_quantity,
        reserved_quantity=product.reserved_quantity,
        available_quantity=product.available_quantity,
        low_stock_threshold=product.low_stock_threshold,
        reorder_point=product.reorder_point,
        unit_cost=product.unit_cost,
        total_inventory_value=product.total_inventory_value,
        inventory_status=product.inventory_status,
    )


def _record(
    product: Product,
    event_type: str,
    quantity: int,
    previous: int,
    new: int,
    reason: str,
    reference: str | None = None,
) -> None:
    product.inventory_history.append(
        InventoryEvent(
            type=event_type,
            quantity=quantity,
            previous_quantity=previous,
            new_quantity=new,
            reason=reason,
            reference=reference,
        )
    )


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity", "must be a positive whole number")


def update_stock(
    product: Product,
    quantity: int,
    action: str,
    reason: str | None = None,
) -> Product:
    """
    Manually add or remove stock.

    Removing more than is on hand floors the stock at zero.

    Raises:
        ValidationError: If quantity or action is invalid, or stock is not managed.
    """
    _check_quantity(quantity)
    if action not in STOCK_ACTIONS:
        raise ValidationError("action", "expected 'add' or 'remove'")
    if not product.manage_stock:
        raise ValidationError("manageStock", "stock management not enabled for this product")

    previous = product.stock_quantity
    if action == "add":
        product.stock_quantity += quantity
    else:
        product.stock_quantity = max(0, product.stock_quantity - quantity)

    _record(
        product,
        "stock_in" if action == "add" else "stock_out",
        quantity,
        previous,
        product.stock_quantity,
        reason or "Manual adjustment",
    )
    refresh_stock_fields(product)
    logger.info(
        "Stock %s for %s: %d -> %d", action, product.sku, previous, product.stock_quantity
    )
    return product


def reserve_stock(product: Product, quantity: int, reference: str) -> Product:
    """
    Hold stock for a new order.

    Raises:
        InsufficientStockError: If fewer than quantity units are available.
    """
    if not product.manage_stock:
        return product
    available = product.available_quantity
    if available < quantity:
        raise InsufficientStockError(product.title, available, quantity)

    previous = product.reserved_quantity
    product.reserved_quantity += quantity
    _record(
        product,
        "reservation",
        quantity,
        previous,
        product.reserved_quantity,
        f"Order created: {reference}",
        reference,
    )
    return refresh_stock_fields(product)


def release_reservation(product: Product, quantity: int, reference: str) -> Product:
    """Give reserved units back to available stock."""
    if not product.manage_stock:
        return product
    previous = product.reserved_quantity
    product.reserved_quantity = max(0, product.reserved_quantity - quantity)
    _record(
        product,
        "release",
        quantity,
        previous,
        product.reserved_quantity,
        f"Reservation released: {reference}",
        reference,
    )
    return refresh_stock_fields(product)


def apply_status_change(
    product: Product,
    quantity: int,
    old_status: str,
    new_status: str,
    reference: str,
) -> Product:
    """
    Apply the stock effect of moving an order line from old_status to new_status.

    - to shipped (or straight to delivered): stock leaves the warehouse and
      the reservation is dropped
    - to cancelled before shipping: reservation is released
    - to cancelled after shipping: units are restocked
    - reopened from shipped to an earlier status: units are restocked and
      reserved again, so shipping once more deducts them only once
    Other moves change nothing.

    Raises:
        InsufficientStockError: If shipping more units than are in stock.
    """
    if not product.manage_stock:
        logger.warning("Stock management disabled for %s, skipping", product.sku)
        return product
    if old_status == new_status:
        return product

    reason = f"Order {reference}: {old_status} → {new_status}"

    if new_status in SHIPPED_STATUSES and old_status not in SHIPPED_STATUSES:
        if product.stock_quantity < quantity:
            raise InsufficientStockError(product.title, product.stock_quantity, quantity)
        previous = product.stock_quantity
        product.stock_quantity -= quantity
        product.reserved_quantity = max(0, product.reserved_quantity - quantity)
        _record(product, "stock_out", quantity, previous, product.stock_quantity, reason, reference)

    elif new_status == "cancelled" and old_status in RESERVING_STATUSES:
        previous = product.reserved_quantity
        product.reserved_quantity = max(0, product.reserved_quantity - quantity)
        _record(product, "release", quantity, previous, product.reserved_quantity, reason, reference)

    elif new_status == "cancelled" and old_status in SHIPPED_STATUSES:
        previous = product.stock_quantity
        product.stock_quantity += quantity
        _record(product, "stock_in", quantity, previous, product.stock_quantity, reason, reference)

    elif new_status in RESERVING_STATUSES and old_status in SHIPPED_STATUSES:
        previous = product.stock_quantity
        product.stock_quantity += quantity
        _record(product, "stock_in", quantity, previous, product.stock_quantity, reason, reference)
        previous = product.reserved_quantity
        product.reserved_quantity += quantity
        _record(
            product, "reservation", quantity, previous, product.reserved_quantity, reason, reference
        )

    return refresh_stock_fields(product)


def resync_reservation(product: Product, reserved: int, shipped: int) -> bool:
    """
    Set the reservation to the quantity held by open orders.

    `reserved` is the total of lines in reserving orders, `shipped` the total
    already shipped (recorded in the history note only). Returns True if the
    reservation changed.
    """
    previous = product.reserved_quantity
    if previous == reserved:
        return False
    product.reserved_quantity = reserved
    _record(
        product,
        "adjustment",
        abs(reserved - previous),
        previous,
        reserved,
        f"Inventory sync (reserved: {reserved}, shipped: {shipped})",
    )
    refresh_stock_fields(product)
    logger.info("Reservation for %s resynced: %d -> %d", product.sku, previous, reserved)
    return True
