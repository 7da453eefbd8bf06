"""Custom exceptions for storedesk."""


class StoredeskError(Exception):
    """Base exception for all storedesk errors."""

    pass


class ValidationError(StoredeskError):
    """Raised when an input value is outside its allowed range or set."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidTransitionError(StoredeskError):
    """Raised when an order status change is not allowed."""

    def __init__(self, current: str, requested: str, reason: str | None = None):
        self.current = current
        self.requested = requested
        msg = f"Cannot change order status from '{current}' to '{requested}'"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class InsufficientStockError(StoredeskError):
    """Raised when a product does not have enough stock for an operation."""

    def __init__(self, title: str, available: int, requested: int):
        self.title = title
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {title}. Available: {available}, Requested: {requested}"
        )


class InvalidReviewError(StoredeskError):
    """Raised when a review is missing required content or has a bad rating."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid review: {reason}")


class OrderNotFoundError(StoredeskError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class ProductNotFoundError(StoredeskError):
    """Raised when a product ID doesn't exist."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class ReviewNotFoundError(StoredeskError):
    """Raised when a review ID doesn't exist for a product."""

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__(f"Review not found: {review_id}")


class ReviewPermissionError(StoredeskError):
    """Raised when someone other than a review's author tries to change it."""

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__(f"Only the author can change review {review_id}")


class AdminAuthError(StoredeskError):
    """Raised by the backend when a request lacks a valid admin token."""

    def __init__(self, reason: str = "Admin authentication required"):
        super().__init__(reason)


class LoginRequiredError(StoredeskError):
    """Raised when an admin call is attempted without a stored token."""

    def __init__(self):
        super().__init__("Not logged in. Run 'storedesk login --token <token>' first.")


# Client-side failures, one per kind of backend response


class ApiError(StoredeskError):
    """Base class for failures talking to the backend."""

    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class TransportError(ApiError):
    """Raised when the backend could not be reached."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Request to {url} failed: {reason}")


class AuthenticationError(ApiError):
    """Raised on a 401 response."""


class NotFoundError(ApiError):
    """Raised on a 404 response."""


class RequestRejectedError(ApiError):
    """Raised on any other 4xx response, carrying the server's message."""


class UnexpectedResponseError(ApiError):
    """Raised on 5xx responses or bodies that are not the expected JSON."""
