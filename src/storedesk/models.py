"""Data models for storedesk.

Records travel over the wire as JSON with camelCase keys (``_id``,
``orderNumber``, ``shippingInfo`` ...). The dataclasses below use snake_case
attributes and translate in ``to_dict``/``from_dict``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
import random
import string
import time
import uuid


ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("cod", "card", "bkash", "nagad", "rocket")
DELIVERY_TYPES = ("dhaka", "outside")
INVENTORY_STATUSES = ("in_stock", "low_stock", "out_of_stock", "discontinued")
PRODUCT_STATUSES = ("active", "draft", "archived", "low-stock", "out-of-stock")
INVENTORY_EVENT_TYPES = (
    "stock_in",
    "stock_out",
    "adjustment",
    "reservation",
    "release",
    "damage",
    "return",
)


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new record ID."""
    return uuid.uuid4().hex


def _generate_order_number() -> str:
    """Generate a human-readable order number like ORD-48213377-K2QX."""
    timestamp = str(int(time.time() * 1000))[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"ORD-{timestamp}-{suffix}"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as written by _utc_now (or with an offset)."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


# Order models


@dataclass
class ShippingInfo:
    """Where and to whom an order is delivered."""

    full_name: str
    phone: str
    address: str
    city: str
    district: str
    email: str = ""
    zip_code: str | None = None
    country: str = "Bangladesh"
    delivery_instructions: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "district": self.district,
            "country": self.country,
        }
        if self.zip_code is not None:
            result["zipCode"] = self.zip_code
        if self.delivery_instructions is not None:
            result["deliveryInstructions"] = self.delivery_instructions
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingInfo":
        return cls(
            full_name=data.get("fullName", ""),
            phone=data.get("phone", ""),
            address=data.get("address", ""),
            city=data.get("city", ""),
            district=data.get("district", ""),
            email=data.get("email") or "",
            zip_code=data.get("zipCode"),
            country=data.get("country", "Bangladesh"),
            delivery_instructions=data.get("deliveryInstructions"),
        )


@dataclass
class OrderItem:
    """A purchased line: snapshot of product title and price at checkout."""

    product_id: str
    title: str
    price: float
    quantity: int
    image: str | None = None
    size: str | None = None
    color: str | None = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "productId": self.product_id,
            "title": self.title,
            "price": self.price,
            "quantity": self.quantity,
        }
        if self.image is not None:
            result["image"] = self.image
        if self.size is not None:
            result["size"] = self.size
        if self.color is not None:
            result["color"] = self.color
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=data["productId"],
            title=data.get("title", ""),
            price=data.get("price", 0),
            quantity=data.get("quantity", 1),
            image=data.get("image"),
            size=data.get("size"),
            color=data.get("color"),
        )


@dataclass
class Order:
    """A customer purchase."""

    id: str
    order_number: str
    shipping_info: ShippingInfo
    items: list[OrderItem]
    subtotal: float
    delivery_charge: float
    total: float
    delivery_type: str  # "dhaka" | "outside"
    discount_total: float = 0
    payment_method: str = "cod"
    payment_status: str = "pending"
    status: str = "pending"
    estimated_delivery: str | None = None
    notes: str | None = None
    tracking_number: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "_id": self.id,
            "orderNumber": self.order_number,
            "shippingInfo": self.shipping_info.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "discountTotal": self.discount_total,
            "deliveryCharge": self.delivery_charge,
            "total": self.total,
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "status": self.status,
            "deliveryType": self.delivery_type,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.estimated_delivery is not None:
            result["estimatedDelivery"] = self.estimated_delivery
        if self.notes is not None:
            result["notes"] = self.notes
        if self.tracking_number is not None:
            result["trackingNumber"] = self.tracking_number
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        # Older records name the delivery charge "shippingCharge"
        delivery_charge = data.get("deliveryCharge", data.get("shippingCharge", 0))
        return cls(
            id=data.get("_id") or data.get("id", ""),
            order_number=data.get("orderNumber", ""),
            shipping_info=ShippingInfo.from_dict(data.get("shippingInfo", {})),
            items=[OrderItem.from_dict(i) for i in data.get("items", [])],
            subtotal=data.get("subtotal", 0),
            delivery_charge=delivery_charge,
            total=data.get("total", 0),
            delivery_type=data.get("deliveryType", "dhaka"),
            discount_total=data.get("discountTotal", 0),
            payment_method=data.get("paymentMethod", "cod"),
            payment_status=data.get("paymentStatus", "pending"),
            status=data.get("status", "pending"),
            estimated_delivery=data.get("estimatedDelivery"),
            notes=data.get("notes"),
            tracking_number=data.get("trackingNumber"),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


# Catalog models


@dataclass
class SizeStock:
    size: str
    stock: int

    def to_dict(self) -> dict[str, Any]:
        return {"size": self.size, "stock": self.stock}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SizeStock":
        return cls(size=data.get("size", ""), stock=data.get("stock", 0))


@dataclass
class InventoryEvent:
    """One entry of a product's stock history."""

    type: str  # one of INVENTORY_EVENT_TYPES
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str
    reference: str | None = None
    date: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "date": self.date,
            "type": self.type,
            "quantity": self.quantity,
            "previousQuantity": self.previous_quantity,
            "newQuantity": self.new_quantity,
            "reason": self.reason,
        }
        if self.reference is not None:
            result["reference"] = self.reference
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InventoryEvent":
        return cls(
            type=data["type"],
            quantity=data.get("quantity", 0),
            previous_quantity=data.get("previousQuantity", 0),
            new_quantity=data.get("newQuantity", 0),
            reason=data.get("reason", ""),
            reference=data.get("reference"),
            date=data.get("date", ""),
        )


@dataclass
class Product:
    """A catalog entry together with its stock fields."""

    id: str
    title: str
    sku: str
    category: str = "general"
    normal_price: float = 0
    sale_price: float | None = None
    manage_stock: bool = True
    stock_quantity: int = 0
    reserved_quantity: int = 0
    low_stock_threshold: int = 10
    reorder_point: int = 20
    unit_cost: float = 0
    inventory_status: str = "in_stock"
    status: str = "active"
    featured: bool = False
    is_new: bool = False
    is_best_selling: bool = False
    tags: list[str] = field(default_factory=list)
    sizes: list[SizeStock] = field(default_factory=list)
    inventory_history: list[InventoryEvent] = field(default_factory=list)
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def available_quantity(self) -> int:
        return self.stock_quantity - self.reserved_quantity

    @property
    def total_inventory_value(self) -> float:
        return self.unit_cost * self.stock_quantity

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "_id": self.id,
            "title": self.title,
            "sku": self.sku,
            "category": self.category,
            "normalPrice": self.normal_price,
            "manageStock": self.manage_stock,
            "stockQuantity": self.stock_quantity,
            "reservedQuantity": self.reserved_quantity,
            "availableQuantity": self.available_quantity,
            "lowStockThreshold": self.low_stock_threshold,
            "reorderPoint": self.reorder_point,
            "unitCost": self.unit_cost,
            "totalInventoryValue": self.total_inventory_value,
            "inventoryStatus": self.inventory_status,
            "status": self.status,
            "featured": self.featured,
            "isNew": self.is_new,
            "isBestSelling": self.is_best_selling,
            "tags": self.tags,
            "sizes": [s.to_dict() for s in self.sizes],
            "inventoryHistory": [e.to_dict() for e in self.inventory_history],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.sale_price is not None:
            result["salePrice"] = self.sale_price
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        sale_price = data.get("salePrice")
        if sale_price is None:
            sale_price = data.get("offerPrice")
        return cls(
            id=data.get("_id") or data.get("id", ""),
            title=data.get("title", ""),
            sku=data.get("sku", "").upper(),
            category=data.get("category", "general"),
            normal_price=data.get("normalPrice", 0),
            sale_price=sale_price,
            manage_stock=data.get("manageStock", True),
            stock_quantity=data.get("stockQuantity", 0),
            reserved_quantity=data.get("reservedQuantity", 0),
            low_stock_threshold=data.get("lowStockThreshold", 10),
            reorder_point=data.get("reorderPoint", 20),
            unit_cost=data.get("unitCost", 0),
            inventory_status=data.get("inventoryStatus", "in_stock"),
            status=data.get("status", "active"),
            featured=data.get("featured", False),
            is_new=data.get("isNew", False),
            is_best_selling=data.get("isBestSelling", False),
            tags=list(data.get("tags", [])),
            sizes=[SizeStock.from_dict(s) for s in data.get("sizes", [])],
            inventory_history=[
                InventoryEvent.from_dict(e) for e in data.get("inventoryHistory", [])
            ],
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class InventoryItem:
    """Read-only stock view over a Product, as shown in the inventory report."""

    id: str
    title: str
    sku: str
    category: str
    stock_quantity: int
    reserved_quantity: int
    available_quantity: int
    low_stock_threshold: int
    reorder_point: int
    unit_cost: float
    total_inventory_value: float
    inventory_status: str

    @property
    def needs_reorder(self) -> bool:
        return self.available_quantity <= self.reorder_point

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "title": self.title,
            "sku": self.sku,
            "category": self.category,
            "stockQuantity": self.stock_quantity,
            "reservedQuantity": self.reserved_quantity,
            "availableQuantity": self.available_quantity,
            "lowStockThreshold": self.low_stock_threshold,
            "reorderPoint": self.reorder_point,
            "unitCost": self.unit_cost,
            "totalInventoryValue": self.total_inventory_value,
            "inventoryStatus": self.inventory_status,
            "needsReorder": self.needs_reorder,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InventoryItem":
        stock = data.get("stockQuantity", 0)
        reserved = data.get("reservedQuantity", 0)
        unit_cost = data.get("unitCost", 0)
        return cls(
            id=data.get("_id") or data.get("id", ""),
            title=data.get("title", ""),
            sku=data.get("sku", ""),
            category=data.get("category", "general"),
            stock_quantity=stock,
            reserved_quantity=reserved,
            available_quantity=data.get("availableQuantity", stock - reserved),
            low_stock_threshold=data.get("lowStockThreshold", 10),
            reorder_point=data.get("reorderPoint", 20),
            unit_cost=unit_cost,
            total_inventory_value=data.get("totalInventoryValue", unit_cost * stock),
            inventory_status=data.get("inventoryStatus", "in_stock"),
        )


# Review model


@dataclass
class Review:
    """A customer rating and comment for a product."""

    id: str
    product_id: str
    user_id: str
    user_name: str
    rating: int  # 1..5
    comment: str
    date: str
    helpful: int = 0
    not_helpful: int = 0
    verified: bool = False
    created_at: str = field(default_factory=_utc_now)
    edited_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "_id": self.id,
            "productId": self.product_id,
            "userId": self.user_id,
            "user": {"name": self.user_name},
            "rating": self.rating,
            "comment": self.comment,
            "date": self.date,
            "helpful": self.helpful,
            "notHelpful": self.not_helpful,
            "verified": self.verified,
            "createdAt": self.created_at,
        }
        if self.edited_at is not None:
            result["editedAt"] = self.edited_at
        return result

    def public_dict(self) -> dict[str, Any]:
        """Wire form for listings: userId acts as the author's key and is left out."""
        result = self.to_dict()
        del result["userId"]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Review":
        return cls(
            id=data.get("_id") or data.get("id", ""),
            product_id=data.get("productId", ""),
            user_id=data.get("userId", ""),
            user_name=data.get("user", {}).get("name", ""),
            rating=data["rating"],
            comment=data.get("comment", ""),
            date=data.get("date", ""),
            helpful=data.get("helpful", 0),
            not_helpful=data.get("notHelpful", 0),
            verified=data.get("verified", False),
            created_at=data.get("createdAt", ""),
            edited_at=data.get("editedAt"),
        )
