"""Order operations that touch both orders and stock."""

import logging
from collections import Counter

from .catalog_store import ProductStore
from .errors import ValidationError
from .inventory import (
    RESERVING_STATUSES,
    SHIPPED_STATUSES,
    apply_status_change,
    release_reservation,
    reserve_stock,
    resync_reservation,
)
from .lifecycle import transition, update_payment_status
from .models import (
    DELIVERY_TYPES,
    PAYMENT_METHODS,
    Order,
    OrderItem,
    Product,
    ShippingInfo,
    _generate_id,
    _generate_order_number,
)
from .order_store import OrderStore
from .pricing import order_totals

logger = logging.getLogger(__name__)

# Business days until delivery per zone
DELIVERY_DAYS = {"dhaka": 3, "outside": 5}


class OrderService:
    """Creates orders and moves them through their lifecycle, keeping stock in step."""

    def __init__(self, orders: OrderStore, catalog: ProductStore):
        self.orders = orders
        self.catalog = catalog

    def place_order(
        self,
        shipping_info: ShippingInfo,
        items: list[OrderItem],
        delivery_type: str,
        payment_method: str = "cod",
        discount_total: float = 0,
        notes: str | None = None,
    ) -> Order:
        """
        Create an order and reserve stock for every line.

        Either every line is reserved or nothing is: if any product is short,
        no stock changes and no order is stored. Lines whose product is not
        in the catalog are accepted without a reservation.

        Raises:
            ValidationError: If the order is empty or has bad enum values.
            InsufficientStockError: If a product cannot cover its line.
        """
        if not items:
            raise ValidationError("items", "an order needs at least one item")
        if delivery_type not in DELIVERY_TYPES:
            raise ValidationError("deliveryType", f"expected one of {', '.join(DELIVERY_TYPES)}")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError("paymentMethod", f"expected one of {', '.join(PAYMENT_METHODS)}")
        for item in items:
            if item.quantity < 1:
                raise ValidationError("quantity", "must be at least 1")

        subtotal, charge, total = order_totals(items, delivery_type, discount_total)
        order = Order(
            id=_generate_id(),
            order_number=_generate_order_number(),
            shipping_info=shipping_info,
            items=items,
            subtotal=subtotal,
            delivery_charge=charge,
            total=total,
            delivery_type=delivery_type,
            discount_total=discount_total,
            payment_method=payment_method,
            estimated_delivery=f"{DELIVERY_DAYS[delivery_type]} business days",
            notes=notes,
        )

        with self.catalog.edit() as products:
            for item in items:
                product = products.get(item.product_id)
                if product is None:
                    logger.warning("Product %s not in catalog, no stock reserved", item.product_id)
                    continue
                reserve_stock(product, item.quantity, order.order_number)
            self.orders.add_order(order)

        logger.info("Order created: %s (%d items, total %s)", order.order_number, len(items), total)
        return order

    def change_status(
        self,
        order_id: str,
        new_status: str,
        notes: str | None = None,
        tracking_number: str | None = None,
        reopen: bool = False,
    ) -> Order:
        """
        Move an order to a new status, applying stock effects first.

        The order is read, checked and saved under the catalog lock, so
        concurrent changes to the same order are applied one after the other
        and each sees the status the previous one left. If any stock effect
        fails the order keeps its old status and no product is changed.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
            InvalidTransitionError: If the move is not allowed.
            InsufficientStockError: If shipping exceeds stock on hand.
        """
        with self.catalog.edit() as products:

            def apply(order: Order) -> Order:
                updated = transition(
                    order, new_status, notes=notes, tracking_number=tracking_number, reopen=reopen
                )
                if order.status != new_status:
                    self._apply_stock_effects(products, order, new_status)
                    logger.info(
                        "Order %s: %s -> %s", order.order_number, order.status, new_status
                    )
                return updated

            return self.orders.update_order(order_id, apply)

    def _apply_stock_effects(
        self, products: dict[str, Product], order: Order, new_status: str
    ) -> None:
        for item in order.items:
            product = products.get(item.product_id)
            if product is None:
                logger.warning(
                    "Product %s for order %s not found, skipping stock update",
                    item.product_id,
                    order.order_number,
                )
                continue
            apply_status_change(
                product, item.quantity, order.status, new_status, order.order_number
            )

    def change_payment_status(self, order_id: str, payment_status: str) -> Order:
        return self.orders.update_order(
            order_id, lambda order: update_payment_status(order, payment_status)
        )

    def delete_order(self, order_id: str) -> Order:
        """Delete an order, releasing its reservation if it never shipped."""
        with self.catalog.edit() as products:
            removed = self.orders.delete_order(order_id)
            if removed.status in RESERVING_STATUSES:
                for item in removed.items:
                    product = products.get(item.product_id)
                    if product is not None:
                        release_reservation(product, item.quantity, removed.order_number)
        logger.info("Order %s deleted (%s)", removed.order_number, removed.status)
        return removed

    def sync_inventory(self) -> dict[str, int]:
        """
        Recompute every managed product's reservation from the stored orders.

        The reservation becomes the total quantity of lines in pending,
        confirmed or processing orders. Stock on hand is not touched.

        Returns:
            {"updatedCount": products whose reservation changed,
             "totalProducts": managed products checked}
        """
        reserved: Counter[str] = Counter()
        shipped: Counter[str] = Counter()
        with self.catalog.edit() as products:
            for order in self.orders.list_orders():
                if order.status in RESERVING_STATUSES:
                    totals = reserved
                elif order.status in SHIPPED_STATUSES:
                    totals = shipped
                else:
                    continue
                for item in order.items:
                    totals[item.product_id] += item.quantity

            managed = [p for p in products.values() if p.manage_stock]
            updated = sum(
                resync_reservation(p, reserved[p.id], shipped[p.id]) for p in managed
            )

        logger.info("Inventory sync: %d of %d products updated", updated, len(managed))
        return {"updatedCount": updated, "totalProducts": len(managed)}
