"""Order storage for storedesk."""

from typing import Any, Callable

from .errors import OrderNotFoundError, ValidationError
from .models import Order, _utc_now
from .storage import JsonFileStore

ORDERS_FILE = "orders.json"

SORT_ORDERS = ("asc", "desc")
# Scalar wire fields orders can be sorted by
ORDER_SORT_FIELDS = (
    "createdAt",
    "updatedAt",
    "orderNumber",
    "status",
    "paymentStatus",
    "paymentMethod",
    "deliveryType",
    "subtotal",
    "deliveryCharge",
    "total",
)


def check_sort(sort_by: str, sort_order: str, fields: tuple[str, ...]) -> None:
    """
    Raises:
        ValidationError: If sort_by is not one of fields or sort_order is not asc/desc.
    """
    if sort_by not in fields:
        raise ValidationError("sortBy", f"expected one of {', '.join(fields)}")
    if sort_order not in SORT_ORDERS:
        raise ValidationError("sortOrder", "expected 'asc' or 'desc'")


def sort_key(field: str) -> Callable[[dict[str, Any]], Any]:
    """Sort key over a wire field, placing missing values last."""

    def key(record: dict[str, Any]) -> Any:
        value = record.get(field)
        return (value is None, value if value is not None else "")

    return key


def _matches(record: dict[str, Any], needle: str) -> bool:
    info = record.get("shippingInfo", {})
    haystack = [
        record.get("orderNumber", ""),
        info.get("fullName", ""),
        info.get("phone", ""),
        info.get("email", ""),
    ]
    return any(needle in (value or "").lower() for value in haystack)


def _find(records: list[dict[str, Any]], order_id: str) -> int:
    for i, record in enumerate(records):
        if record.get("_id") == order_id or record.get("orderNumber") == order_id:
            return i
    raise OrderNotFoundError(order_id)


class OrderStore(JsonFileStore):
    """Manages order records."""

    filename = ORDERS_FILE
    collection = "orders"

    def list_orders(self) -> list[Order]:
        return [Order.from_dict(r) for r in self.records()]

    def get_order(self, order_id: str) -> Order:
        """
        Get an order by ID or order number.

        Raises:
            OrderNotFoundError: If no order matches.
        """
        records = self.records()
        return Order.from_dict(records[_find(records, order_id)])

    def add_order(self, order: Order) -> Order:
        with self.update() as records:
            records.append(order.to_dict())
        return order

    def save_order(self, order: Order) -> Order:
        """
        Replace an existing order.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        return self.update_order(order.id, lambda current: order)

    def update_order(self, order_id: str, change: Callable[[Order], Order]) -> Order:
        """
        Apply `change` to an order under the store lock and save the result.

        `change` receives the stored order and returns the new one. If it
        raises, nothing is saved.

        Raises:
            OrderNotFoundError: If no order matches the ID or order number.
        """
        with self.update() as records:
            i = _find(records, order_id)
            order = change(Order.from_dict(records[i]))
            order.updated_at = _utc_now()
            records[i] = order.to_dict()
        return order

    def delete_order(self, order_id: str) -> Order:
        """
        Delete an order by ID or order number.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        with self.update() as records:
            removed = Order.from_dict(records.pop(_find(records, order_id)))
        return removed

    def query(
        self,
        status: str | None = None,
        payment_status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> tuple[list[Order], int]:
        """
        Filter, sort and paginate orders.

        "all" (or None) disables a status filter. Pages are 1-based.

        Returns:
            Tuple of (orders on the requested page, total matching count).

        Raises:
            ValidationError: If the sort field or direction is not supported.
        """
        check_sort(sort_by, sort_order, ORDER_SORT_FIELDS)
        records = self.records()
        if status and status != "all":
            records = [r for r in records if r.get("status") == status]
        if payment_status and payment_status != "all":
            records = [r for r in records if r.get("paymentStatus") == payment_status]
        if search:
            needle = search.lower()
            records = [r for r in records if _matches(r, needle)]

        records.sort(key=sort_key(sort_by), reverse=sort_order == "desc")
        total = len(records)
        start = (max(page, 1) - 1) * limit
        return [Order.from_dict(r) for r in records[start:start + limit]], total
