"""FastAPI REST backend for storedesk."""

import logging
import math
import os
import secrets
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .catalog_store import LOW_STOCK_ALERT_LIMIT, ProductStore, resolve
from .errors import (
    AdminAuthError,
    InsufficientStockError,
    InvalidReviewError,
    InvalidTransitionError,
    OrderNotFoundError,
    ProductNotFoundError,
    ReviewNotFoundError,
    ReviewPermissionError,
    StoredeskError,
    ValidationError,
)
from .fulfillment import OrderService
from .inventory import update_stock
from .models import OrderItem, Product, ShippingInfo, _generate_id
from .order_store import OrderStore
from .pricing import compute_discount
from .reports import (
    compute_inventory_stats,
    compute_inventory_summary,
    compute_order_stats,
    compute_review_stats,
    orders_between,
    parse_date_bound,
)
from .review_store import ReviewStore

logger = logging.getLogger(__name__)


# --- Pydantic Schemas ---


class ShippingInfoSchema(BaseModel):
    fullName: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: str = ""
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    zipCode: Optional[str] = None
    country: str = "Bangladesh"
    deliveryInstructions: Optional[str] = None


class OrderItemSchema(BaseModel):
    productId: str
    title: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None


class OrderCreateRequest(BaseModel):
    shippingInfo: ShippingInfoSchema
    items: list[OrderItemSchema]
    deliveryType: str = "dhaka"
    paymentMethod: str = "cod"
    discountTotal: float = 0
    notes: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: str
    notes: Optional[str] = None
    trackingNumber: Optional[str] = None
    reopen: bool = False


class PaymentUpdateRequest(BaseModel):
    paymentStatus: str


class ProductCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    category: str = "general"
    normalPrice: float = Field(..., ge=0)
    salePrice: Optional[float] = Field(None, ge=0)
    manageStock: bool = True
    stockQuantity: int = Field(0, ge=0)
    lowStockThreshold: int = Field(10, ge=0)
    reorderPoint: int = Field(20, ge=0)
    unitCost: float = Field(0, ge=0)
    status: str = "active"
    featured: bool = False
    isNew: bool = False
    isBestSelling: bool = False
    tags: list[str] = Field(default_factory=list)


class ProductUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    normalPrice: Optional[float] = Field(None, ge=0)
    salePrice: Optional[float] = Field(None, ge=0)
    manageStock: Optional[bool] = None
    stockQuantity: Optional[int] = Field(None, ge=0)
    lowStockThreshold: Optional[int] = Field(None, ge=0)
    reorderPoint: Optional[int] = Field(None, ge=0)
    unitCost: Optional[float] = Field(None, ge=0)
    inventoryStatus: Optional[str] = None
    status: Optional[str] = None
    featured: Optional[bool] = None
    isNew: Optional[bool] = None
    isBestSelling: Optional[bool] = None
    tags: Optional[list[str]] = None


class StockUpdateRequest(BaseModel):
    quantity: int
    action: str
    reason: Optional[str] = None


class ReviewCreateRequest(BaseModel):
    name: str
    rating: int
    comment: str
    userId: Optional[str] = None


class ReviewUpdateRequest(BaseModel):
    name: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


class VoteRequest(BaseModel):
    type: str = Field(..., description="helpful or notHelpful")


# --- Helper Functions ---


def get_order_store() -> OrderStore:
    """Get the global OrderStore."""
    return OrderStore()


def get_product_store() -> ProductStore:
    """Get the global ProductStore."""
    return ProductStore()


def get_review_store() -> ReviewStore:
    """Get the global ReviewStore."""
    return ReviewStore()


def get_order_service() -> OrderService:
    return OrderService(get_order_store(), get_product_store())


def require_admin(authorization: Optional[str] = Header(default=None)) -> None:
    """Check the bearer token against STOREDESK_ADMIN_TOKEN."""
    expected = os.environ.get("STOREDESK_ADMIN_TOKEN")
    if not expected:
        raise AdminAuthError("Admin access is not configured on this server")
    if not authorization or not authorization.startswith("Bearer "):
        raise AdminAuthError()
    token = authorization[len("Bearer "):].strip()
    if not secrets.compare_digest(token, expected):
        raise AdminAuthError("Invalid admin token")


def review_author(
    authorization: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
) -> Optional[str]:
    """
    Identify who is changing a review.

    Returns None for an administrator (may change any review), otherwise
    the user ID from the X-User-Id header, which must match the review's.
    """
    if authorization:
        require_admin(authorization)
        return None
    if not x_user_id:
        raise AdminAuthError("Review author (X-User-Id) or admin token required")
    return x_user_id


def product_to_dict(product: Product) -> dict[str, Any]:
    """Serialize a product with its display prices."""
    result = product.to_dict()
    discount = compute_discount(product.normal_price, product.sale_price)
    result["offerPrice"] = product.sale_price
    result["hasOffer"] = discount.has_offer
    result["discountPercentage"] = discount.discount_percentage
    return result


def pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


# --- App Setup ---

app = FastAPI(
    title="storedesk API",
    description="Order, inventory and review backend for the storefront and back office",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:3001",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    InvalidTransitionError: 409,
    InsufficientStockError: 400,
    InvalidReviewError: 400,
    OrderNotFoundError: 404,
    ProductNotFoundError: 404,
    ReviewNotFoundError: 404,
    ReviewPermissionError: 403,
    AdminAuthError: 401,
}


@app.exception_handler(StoredeskError)
async def storedesk_error_handler(request: Request, exc: StoredeskError) -> JSONResponse:
    """Map StoredeskError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": str(exc), "error_type": type(exc).__name__},
    )


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Report service status and record counts."""
    try:
        return {
            "status": "ok",
            "orders": get_order_store().count(),
            "products": get_product_store().count(),
        }
    except (OSError, ValueError) as e:
        return {"status": "error", "detail": str(e)}


# --- Order Endpoints ---


@app.post("/api/orders", status_code=201)
def create_order(request: OrderCreateRequest):
    """Place an order from the storefront checkout."""
    service = get_order_service()
    order = service.place_order(
        shipping_info=ShippingInfo.from_dict(request.shippingInfo.model_dump()),
        items=[OrderItem.from_dict(item.model_dump()) for item in request.items],
        delivery_type=request.deliveryType,
        payment_method=request.paymentMethod,
        discount_total=request.discountTotal,
        notes=request.notes,
    )
    return {"success": True, "message": "Order placed successfully", "data": order.to_dict()}


@app.get("/api/orders", dependencies=[Depends(require_admin)])
def list_orders(
    status: Optional[str] = Query(default=None),
    paymentStatus: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    sortBy: str = Query(default="createdAt"),
    sortOrder: str = Query(default="desc"),
):
    """List orders with filters, pagination and overall stats."""
    store = get_order_store()
    orders, total = store.query(
        status=status,
        payment_status=paymentStatus,
        search=search,
        page=page,
        limit=limit,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    return {
        "success": True,
        "data": [o.to_dict() for o in orders],
        "stats": compute_order_stats(store.list_orders()),
        "pagination": pagination(page, limit, total),
    }


@app.get("/api/orders/stats", dependencies=[Depends(require_admin)])
def order_stats(
    startDate: Optional[str] = Query(default=None),
    endDate: Optional[str] = Query(default=None),
):
    """Dashboard order statistics, optionally for orders created in a date range."""
    start = parse_date_bound(startDate, "startDate")
    end = parse_date_bound(endDate, "endDate", end=True)
    orders = orders_between(get_order_store().list_orders(), start, end)
    return {"success": True, "data": compute_order_stats(orders)}


@app.get("/api/orders/{order_id}", dependencies=[Depends(require_admin)])
def get_order(order_id: str):
    """Get one order by ID or order number."""
    return {"success": True, "data": get_order_store().get_order(order_id).to_dict()}


@app.put("/api/orders/{order_id}/status", dependencies=[Depends(require_admin)])
def update_order_status(order_id: str, request: StatusUpdateRequest):
    """Move an order to a new status and apply its stock effects."""
    order = get_order_service().change_status(
        order_id,
        request.status,
        notes=request.notes,
        tracking_number=request.trackingNumber,
        reopen=request.reopen,
    )
    return {
        "success": True,
        "message": f"Order status updated to {order.status}",
        "data": order.to_dict(),
    }


@app.put("/api/orders/{order_id}/payment", dependencies=[Depends(require_admin)])
def update_order_payment(order_id: str, request: PaymentUpdateRequest):
    """Set an order's payment status."""
    order = get_order_service().change_payment_status(order_id, request.paymentStatus)
    return {"success": True, "data": order.to_dict()}


@app.delete("/api/orders/{order_id}", dependencies=[Depends(require_admin)])
def delete_order(order_id: str):
    """Delete an order, releasing any stock it still holds."""
    order = get_order_service().delete_order(order_id)
    return {"success": True, "message": "Order deleted", "data": order.to_dict()}


# --- Product Endpoints ---


@app.get("/api/products")
def list_products():
    """List the catalog."""
    products = get_product_store().list_products()
    return {"success": True, "data": [product_to_dict(p) for p in products]}


@app.post("/api/products", status_code=201, dependencies=[Depends(require_admin)])
def create_product(request: ProductCreateRequest):
    """Add a product to the catalog."""
    data = request.model_dump()
    data["_id"] = _generate_id()
    product = get_product_store().add_product(Product.from_dict(data))
    return {"success": True, "data": product_to_dict(product)}


@app.get("/api/products/inventory/report", dependencies=[Depends(require_admin)])
def inventory_report(
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    sortBy: str = Query(default="availableQuantity"),
    sortOrder: str = Query(default="asc"),
):
    """Stock report over products with managed stock."""
    store = get_product_store()
    rows, total = store.inventory_report(
        status=status,
        search=search,
        page=page,
        limit=limit,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    return {
        "success": True,
        "data": [row.to_dict() for row in rows],
        "stats": compute_inventory_stats(store.list_products()),
        "pagination": pagination(page, limit, total),
    }


@app.get("/api/products/inventory/low-stock-alerts", dependencies=[Depends(require_admin)])
def low_stock_alerts():
    """Low-stock products, fewest available first."""
    rows = get_product_store().low_stock_alerts(LOW_STOCK_ALERT_LIMIT)
    return {"success": True, "data": [row.to_dict() for row in rows], "count": len(rows)}


@app.get("/api/products/inventory/summary", dependencies=[Depends(require_admin)])
def inventory_summary():
    """Per-status counts and values plus catalog totals."""
    return {"success": True, **compute_inventory_summary(get_product_store().list_products())}


@app.post("/api/products/inventory/sync", dependencies=[Depends(require_admin)])
def sync_inventory():
    """Recompute reservations from open orders."""
    result = get_order_service().sync_inventory()
    return {
        "success": True,
        "message": f"Inventory sync completed. Updated {result['updatedCount']} products.",
        **result,
    }


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    """Get one product by ID or SKU."""
    return {"success": True, "data": product_to_dict(get_product_store().get_product(product_id))}


@app.put("/api/products/{product_id}", dependencies=[Depends(require_admin)])
@app.patch("/api/products/{product_id}", dependencies=[Depends(require_admin)])
def update_product(product_id: str, request: ProductUpdateRequest):
    """Edit a product's catalog and stock settings."""
    changes = request.model_dump(exclude_unset=True)
    product = get_product_store().update_product(product_id, changes)
    return {"success": True, "message": "Product updated", "data": product_to_dict(product)}


@app.delete("/api/products/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: str):
    """Remove a product from the catalog."""
    product = get_product_store().delete_product(product_id)
    return {"success": True, "message": "Product deleted", "data": product_to_dict(product)}


@app.post("/api/products/{product_id}/stock/update", dependencies=[Depends(require_admin)])
def update_product_stock(product_id: str, request: StockUpdateRequest):
    """Manually add or remove stock."""
    with get_product_store().edit() as products:
        product = resolve(products, product_id)
        update_stock(product, request.quantity, request.action, request.reason)
    return {
        "success": True,
        "message": f"Stock {'added' if request.action == 'add' else 'removed'} successfully",
        "data": product_to_dict(product),
    }


# --- Review Endpoints ---

# Reviews are stored under the product's ID, whichever of ID or SKU the URL uses.


def _review_product_id(product_id: str) -> str:
    return get_product_store().get_product(product_id).id


@app.get("/api/products/{product_id}/reviews")
def list_reviews(product_id: str):
    """List a product's reviews with rating stats."""
    reviews = get_review_store().list_reviews(_review_product_id(product_id))
    return {
        "success": True,
        "data": [r.public_dict() for r in reviews],
        "stats": compute_review_stats(reviews),
    }


@app.post("/api/products/{product_id}/reviews", status_code=201)
def create_review(product_id: str, request: ReviewCreateRequest):
    """Post a review. The response carries the userId needed to edit or delete it."""
    review = get_review_store().add_review(
        _review_product_id(product_id),
        user_name=request.name,
        rating=request.rating,
        comment=request.comment,
        user_id=request.userId,
    )
    return {"success": True, "data": review.to_dict()}


@app.put("/api/products/{product_id}/reviews/{review_id}")
def update_review(
    product_id: str,
    review_id: str,
    request: ReviewUpdateRequest,
    author: Optional[str] = Depends(review_author),
):
    """Edit a review (its author or an administrator)."""
    review = get_review_store().update_review(
        _review_product_id(product_id),
        review_id,
        rating=request.rating,
        comment=request.comment,
        user_name=request.name,
        author=author,
    )
    return {"success": True, "data": review.public_dict()}


@app.delete("/api/products/{product_id}/reviews/{review_id}")
def delete_review(
    product_id: str,
    review_id: str,
    author: Optional[str] = Depends(review_author),
):
    """Delete a review (its author or an administrator)."""
    review = get_review_store().delete_review(
        _review_product_id(product_id), review_id, author=author
    )
    return {"success": True, "data": review.public_dict()}


@app.post("/api/products/{product_id}/reviews/{review_id}/vote")
def vote_review(product_id: str, review_id: str, request: VoteRequest):
    """Count a helpful / not helpful vote."""
    review = get_review_store().vote(_review_product_id(product_id), review_id, request.type)
    return {"success": True, "data": review.public_dict()}
