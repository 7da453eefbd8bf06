"""Back-office desks: the orders and inventory screens without the screens.

A desk holds what a screen would display (the current page of records, its
stats, loading/empty/error flags) and turns every failure into a Notice
instead of raising. Fetches are tagged by a RequestSequencer so a slow,
older response can never overwrite a newer one.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from .client import ApiClient, Page
from .errors import AuthenticationError, LoginRequiredError, StoredeskError
from .export import orders_to_csv
from .inventory import STOCK_ACTIONS
from .lifecycle import check_transition
from .models import InventoryItem, Order

logger = logging.getLogger(__name__)

# Page size used when pulling every matching order for an export
EXPORT_PAGE_SIZE = 200


class RequestSequencer:
    """Hands out increasing request tokens; only the newest one is current."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._latest


@dataclass
class Notice:
    """A transient message for the operator."""

    level: str  # "success" | "error" | "info"
    message: str


@dataclass
class DeskState:
    loading: bool = False
    empty: bool = False
    error: str | None = None
    login_required: bool = False
    stats: dict[str, Any] = field(default_factory=dict)
    pagination: dict[str, int] = field(default_factory=dict)


class Desk:
    """Shared fetch/notify machinery."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.sequencer = RequestSequencer()
        self.state = DeskState()
        self.notices: list[Notice] = []

    def notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level, message))

    def drain_notices(self) -> list[Notice]:
        """Return pending notices and forget them."""
        notices, self.notices = self.notices, []
        return notices

    def _fail(self, exc: StoredeskError) -> None:
        if isinstance(exc, (AuthenticationError, LoginRequiredError)):
            self.state.login_required = True
        self.notify("error", str(exc))

    def _load(self, fetch: Callable[[], Page], apply: Callable[[Page], None]) -> bool:
        """
        Run a fetch and apply its result if no newer fetch started meanwhile.

        Returns True when the result was applied.
        """
        token = self.sequencer.begin()
        self.state.loading = True
        try:
            page = fetch()
        except StoredeskError as e:
            if not self.sequencer.is_current(token):
                logger.debug("Discarding error from stale request %d: %s", token, e)
                return False
            self.state.loading = False
            self.state.error = str(e)
            self._fail(e)
            return False

        if not self.sequencer.is_current(token):
            logger.debug("Discarding stale response for request %d", token)
            return False

        apply(page)
        self.state.loading = False
        self.state.error = None
        self.state.login_required = False
        self.state.stats = page.stats
        self.state.pagination = page.pagination
        self.state.empty = not page.items
        return True


class OrdersDesk(Desk):
    """The order management screen."""

    def __init__(self, client: ApiClient, limit: int = 20):
        super().__init__(client)
        self.orders: list[Order] = []
        self.filters: dict[str, Any] = {
            "status": None,
            "payment_status": None,
            "search": None,
            "page": 1,
            "limit": limit,
        }

    def refresh(self, **filters: Any) -> bool:
        """Refetch the order list, optionally changing filters first."""
        self.filters.update(filters)
        current = dict(self.filters)

        def apply(page: Page) -> None:
            self.orders = page.items

        return self._load(lambda: self.client.list_orders(**current), apply)

    def find(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order_id in (order.id, order.order_number):
                return order
        return None

    def change_status(
        self,
        order_id: str,
        new_status: str,
        notes: str | None = None,
        tracking_number: str | None = None,
        reopen: bool = False,
    ) -> bool:
        """
        Ask the backend to move an order to a new status.

        Illegal moves are refused locally before any request is sent. On
        success the whole list (and its stats) is refetched; on failure the
        displayed orders are left as they were.
        """
        try:
            known = self.find(order_id)
            if known is not None:
                check_transition(known.status, new_status, reopen=reopen)
            order = self.client.update_order_status(
                order_id,
                new_status,
                notes=notes,
                tracking_number=tracking_number,
                reopen=reopen,
            )
        except StoredeskError as e:
            self._fail(e)
            return False

        self.notify("success", f"Order {order.order_number} status updated to {order.status}")
        self.refresh()
        return True

    def collect_for_export(self) -> list[Order] | None:
        """Fetch every order matching the current filters, across all pages."""
        orders: list[Order] = []
        page_number = 1
        try:
            while True:
                page = self.client.list_orders(
                    status=self.filters["status"],
                    payment_status=self.filters["payment_status"],
                    search=self.filters["search"],
                    page=page_number,
                    limit=EXPORT_PAGE_SIZE,
                )
                orders.extend(page.items)
                if not page.items or len(orders) >= page.total:
                    return orders
                page_number += 1
        except StoredeskError as e:
            self._fail(e)
            return None

    def export_csv(self) -> str | None:
        """CSV text for all matching orders, or None if they couldn't be fetched."""
        orders = self.collect_for_export()
        if orders is None:
            return None
        if not orders:
            self.notify("info", "No orders to export")
        return orders_to_csv(orders)


class InventoryDesk(Desk):
    """The inventory screen."""

    def __init__(self, client: ApiClient, limit: int = 50):
        super().__init__(client)
        self.items: list[InventoryItem] = []
        self.filters: dict[str, Any] = {"status": None, "search": None, "page": 1, "limit": limit}

    def refresh(self, **filters: Any) -> bool:
        self.filters.update(filters)
        current = dict(self.filters)

        def apply(page: Page) -> None:
            self.items = page.items

        return self._load(lambda: self.client.inventory_report(**current), apply)

    def update_stock(
        self, product_id: str, quantity: int, action: str, reason: str | None = None
    ) -> bool:
        """Add or remove stock, then refetch the report."""
        if action not in STOCK_ACTIONS:
            self.notify("error", f"Unknown stock action '{action}'")
            return False
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            self.notify("error", "Please enter a valid quantity")
            return False
        try:
            product = self.client.update_stock(product_id, quantity, action, reason)
        except StoredeskError as e:
            self._fail(e)
            return False

        verb = "added to" if action == "add" else "removed from"
        self.notify("success", f"{quantity} units {verb} {product.title}")
        self.refresh()
        return True
