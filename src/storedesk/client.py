"""HTTP client for the storedesk backend."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .errors import (
    AuthenticationError,
    LoginRequiredError,
    NotFoundError,
    RequestRejectedError,
    TransportError,
    UnexpectedResponseError,
)
from .models import InventoryItem, Order, Product, Review
from .session import Session

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of a filtered listing plus the stats the backend sent with it."""

    items: list
    stats: dict[str, Any] = field(default_factory=dict)
    pagination: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.pagination.get("total", len(self.items))


def _error_message(body: Any, status_code: int) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, list) and value:
                # FastAPI request validation errors
                return "; ".join(str(item.get("msg", item)) for item in value if item)
    return f"Request failed with status {status_code}"


def _params(**kwargs: Any) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None and v != ""}


class ApiClient:
    """
    Typed wrapper over the REST backend.

    Admin calls need a token in the session and raise LoginRequiredError
    before sending anything when there is none. A 401 response clears the
    stored token.
    """

    def __init__(self, session: Session, http: httpx.Client | None = None):
        """
        Initialize ApiClient.

        Args:
            session: Backend location and credentials.
            http: HTTP client to send requests with (a TestClient in tests).
        """
        self.session = session
        self.http = http or httpx.Client(timeout=session.timeout)

    def close(self) -> None:
        self.http.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        admin: bool = False,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        headers = dict(headers or {})
        if admin:
            auth = self.session.auth_headers()
            if not auth:
                raise LoginRequiredError()
            headers.update(auth)

        url = f"{self.session.api_url}{path}"
        try:
            response = self.http.request(method, url, params=params, json=json, headers=headers)
        except httpx.RequestError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        status = response.status_code
        if status >= 400:
            message = _error_message(body, status)
            logger.debug("%s %s -> %d: %s", method, path, status, message)
            if status == 401:
                self.session.clear_token()
                raise AuthenticationError(message, status)
            if status == 404:
                raise NotFoundError(message, status)
            if status < 500:
                raise RequestRejectedError(message, status)
            raise UnexpectedResponseError(message, status)

        if not isinstance(body, dict):
            raise UnexpectedResponseError("Malformed response from server", status)
        return body

    @staticmethod
    def _data(body: dict[str, Any], expected: type) -> Any:
        data = body.get("data")
        if not isinstance(data, expected):
            raise UnexpectedResponseError("Malformed response from server")
        return data

    def health(self) -> dict[str, Any]:
        return self._request("GET", "/health")

    # --- Orders ---

    def place_order(self, payload: dict[str, Any]) -> Order:
        """Submit a checkout. `payload` uses the wire field names."""
        body = self._request("POST", "/orders", json=payload)
        return Order.from_dict(self._data(body, dict))

    def list_orders(
        self,
        status: str | None = None,
        payment_status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> Page:
        params = _params(
            status=status,
            paymentStatus=payment_status,
            search=search,
            page=page,
            limit=limit,
            sortBy=sort_by,
            sortOrder=sort_order,
        )
        body = self._request("GET", "/orders", params=params, admin=True)
        return Page(
            items=[Order.from_dict(o) for o in self._data(body, list)],
            stats=body.get("stats") or {},
            pagination=body.get("pagination") or {},
        )

    def order_stats(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> dict[str, Any]:
        """Order statistics, optionally for orders created between two dates (YYYY-MM-DD)."""
        params = _params(startDate=start_date, endDate=end_date)
        return self._data(self._request("GET", "/orders/stats", params=params, admin=True), dict)

    def get_order(self, order_id: str) -> Order:
        body = self._request("GET", f"/orders/{order_id}", admin=True)
        return Order.from_dict(self._data(body, dict))

    def update_order_status(
        self,
        order_id: str,
        status: str,
        notes: str | None = None,
        tracking_number: str | None = None,
        reopen: bool = False,
    ) -> Order:
        payload: dict[str, Any] = {"status": status, "reopen": reopen}
        if notes is not None:
            payload["notes"] = notes
        if tracking_number:
            payload["trackingNumber"] = tracking_number
        body = self._request("PUT", f"/orders/{order_id}/status", json=payload, admin=True)
        return Order.from_dict(self._data(body, dict))

    def update_payment_status(self, order_id: str, payment_status: str) -> Order:
        body = self._request(
            "PUT", f"/orders/{order_id}/payment", json={"paymentStatus": payment_status}, admin=True
        )
        return Order.from_dict(self._data(body, dict))

    def delete_order(self, order_id: str) -> Order:
        body = self._request("DELETE", f"/orders/{order_id}", admin=True)
        return Order.from_dict(self._data(body, dict))

    # --- Products and inventory ---

    def list_products(self) -> list[Product]:
        return [Product.from_dict(p) for p in self._data(self._request("GET", "/products"), list)]

    def get_product(self, product_id: str) -> Product:
        return Product.from_dict(self._data(self._request("GET", f"/products/{product_id}"), dict))

    def create_product(self, payload: dict[str, Any]) -> Product:
        body = self._request("POST", "/products", json=payload, admin=True)
        return Product.from_dict(self._data(body, dict))

    def update_product(self, product_id: str, changes: dict[str, Any]) -> Product:
        """Apply `changes` (wire field names) to a product."""
        body = self._request("PATCH", f"/products/{product_id}", json=changes, admin=True)
        return Product.from_dict(self._data(body, dict))

    def delete_product(self, product_id: str) -> Product:
        body = self._request("DELETE", f"/products/{product_id}", admin=True)
        return Product.from_dict(self._data(body, dict))

    def low_stock_alerts(self) -> list[InventoryItem]:
        body = self._request("GET", "/products/inventory/low-stock-alerts", admin=True)
        return [InventoryItem.from_dict(row) for row in self._data(body, list)]

    def inventory_summary(self) -> dict[str, Any]:
        """Return {"summary": [per-status groups], "totalStats": {...}}."""
        body = self._request("GET", "/products/inventory/summary", admin=True)
        summary = body.get("summary")
        if not isinstance(summary, list):
            raise UnexpectedResponseError("Malformed response from server")
        return {"summary": summary, "totalStats": body.get("totalStats") or {}}

    def sync_inventory(self) -> dict[str, int]:
        """Recompute reservations from open orders. Returns the update counts."""
        body = self._request("POST", "/products/inventory/sync", admin=True)
        return {
            "updatedCount": body.get("updatedCount", 0),
            "totalProducts": body.get("totalProducts", 0),
        }

    def inventory_report(
        self,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 50,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> Page:
        params = _params(
            status=status,
            search=search,
            page=page,
            limit=limit,
            sortBy=sort_by,
            sortOrder=sort_order,
        )
        body = self._request("GET", "/products/inventory/report", params=params, admin=True)
        return Page(
            items=[InventoryItem.from_dict(row) for row in self._data(body, list)],
            stats=body.get("stats") or {},
            pagination=body.get("pagination") or {},
        )

    def update_stock(
        self, product_id: str, quantity: int, action: str, reason: str | None = None
    ) -> Product:
        payload: dict[str, Any] = {"quantity": quantity, "action": action}
        if reason:
            payload["reason"] = reason
        body = self._request(
            "POST", f"/products/{product_id}/stock/update", json=payload, admin=True
        )
        return Product.from_dict(self._data(body, dict))

    # --- Reviews ---

    def list_reviews(self, product_id: str) -> tuple[list[Review], dict[str, Any]]:
        """Return (reviews, rating stats) for a product."""
        body = self._request("GET", f"/products/{product_id}/reviews")
        reviews = [Review.from_dict(r) for r in self._data(body, list)]
        return reviews, body.get("stats") or {}

    def add_review(
        self, product_id: str, name: str, rating: int, comment: str, user_id: str | None = None
    ) -> Review:
        """Post a review. The returned review's user_id is the key for editing it later."""
        payload: dict[str, Any] = {"name": name, "rating": rating, "comment": comment}
        if user_id:
            payload["userId"] = user_id
        body = self._request("POST", f"/products/{product_id}/reviews", json=payload)
        return Review.from_dict(self._data(body, dict))

    def _author_headers(self, user_id: str | None) -> dict[str, str]:
        # Authors identify themselves by user ID; without one the admin token is sent
        if user_id:
            return {"X-User-Id": user_id}
        return self.session.auth_headers()

    def update_review(
        self,
        product_id: str,
        review_id: str,
        rating: int | None = None,
        comment: str | None = None,
        name: str | None = None,
        user_id: str | None = None,
    ) -> Review:
        payload = _params(rating=rating, comment=comment, name=name)
        body = self._request(
            "PUT",
            f"/products/{product_id}/reviews/{review_id}",
            json=payload,
            headers=self._author_headers(user_id),
        )
        return Review.from_dict(self._data(body, dict))

    def delete_review(
        self, product_id: str, review_id: str, user_id: str | None = None
    ) -> Review:
        body = self._request(
            "DELETE",
            f"/products/{product_id}/reviews/{review_id}",
            headers=self._author_headers(user_id),
        )
        return Review.from_dict(self._data(body, dict))

    def vote_review(self, product_id: str, review_id: str, vote_type: str) -> Review:
        body = self._request(
            "POST", f"/products/{product_id}/reviews/{review_id}/vote", json={"type": vote_type}
        )
        return Review.from_dict(self._data(body, dict))
