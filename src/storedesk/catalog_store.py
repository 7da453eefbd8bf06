"""Product catalog storage for storedesk."""

from contextlib import contextmanager
from typing import Any, Iterator

from .errors import ProductNotFoundError, ValidationError
from .inventory import inventory_view, refresh_stock_fields
from .models import INVENTORY_STATUSES, PRODUCT_STATUSES, InventoryItem, Product, _utc_now
from .order_store import check_sort, sort_key
from .storage import JsonFileStore

PRODUCTS_FILE = "products.json"
LOW_STOCK_ALERT_LIMIT = 50

INVENTORY_SORT_FIELDS = (
    "title",
    "sku",
    "category",
    "stockQuantity",
    "reservedQuantity",
    "availableQuantity",
    "lowStockThreshold",
    "reorderPoint",
    "unitCost",
    "totalInventoryValue",
    "inventoryStatus",
)

# Wire field -> attribute for fields an administrator may edit
EDITABLE_FIELDS = {
    "title": "title",
    "sku": "sku",
    "category": "category",
    "normalPrice": "normal_price",
    "salePrice": "sale_price",
    "manageStock": "manage_stock",
    "stockQuantity": "stock_quantity",
    "lowStockThreshold": "low_stock_threshold",
    "reorderPoint": "reorder_point",
    "unitCost": "unit_cost",
    "inventoryStatus": "inventory_status",
    "status": "status",
    "featured": "featured",
    "isNew": "is_new",
    "isBestSelling": "is_best_selling",
    "tags": "tags",
}


def resolve(products: dict[str, Product], product_id: str) -> Product:
    """
    Look a product up by ID or SKU in a dict from ProductStore.edit().

    Raises:
        ProductNotFoundError: If neither matches.
    """
    if product_id in products:
        return products[product_id]
    sku = product_id.upper()
    for product in products.values():
        if product.sku == sku:
            return product
    raise ProductNotFoundError(product_id)


def _check_changes(changes: dict[str, Any]) -> None:
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(unknown[0], "field cannot be edited")
    if "inventoryStatus" in changes and changes["inventoryStatus"] not in INVENTORY_STATUSES:
        raise ValidationError("inventoryStatus", f"expected one of {', '.join(INVENTORY_STATUSES)}")
    if "status" in changes and changes["status"] not in PRODUCT_STATUSES:
        raise ValidationError("status", f"expected one of {', '.join(PRODUCT_STATUSES)}")
    stock = changes.get("stockQuantity")
    if stock is not None and (isinstance(stock, bool) or not isinstance(stock, int) or stock < 0):
        raise ValidationError("stockQuantity", "must be a whole number of at least 0")


class ProductStore(JsonFileStore):
    """Manages products and their stock fields."""

    filename = PRODUCTS_FILE
    collection = "products"

    def list_products(self) -> list[Product]:
        return [Product.from_dict(r) for r in self.records()]

    def get_product(self, product_id: str) -> Product:
        """
        Get a product by ID or SKU.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        return resolve({p.id: p for p in self.list_products()}, product_id)

    def add_product(self, product: Product) -> Product:
        """
        Add a new product.

        Raises:
            ValidationError: If the SKU is already taken.
        """
        product.sku = product.sku.upper()
        refresh_stock_fields(product)
        with self.update() as records:
            for record in records:
                if record.get("sku") == product.sku:
                    raise ValidationError("sku", f"'{product.sku}' already exists")
            records.append(product.to_dict())
        return product

    def save_product(self, product: Product) -> Product:
        with self.edit() as products:
            if product.id not in products:
                raise ProductNotFoundError(product.id)
            product.updated_at = _utc_now()
            products[product.id] = product
        return product

    def update_product(self, product_id: str, changes: dict[str, Any]) -> Product:
        """
        Apply wire-named field changes to a product.

        Setting stockQuantity keeps the reservation and rederives the
        inventory status; an explicit inventoryStatus of "discontinued" sticks.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            ValidationError: If a field is unknown or invalid, or the new SKU is taken.
        """
        _check_changes(changes)
        with self.edit() as products:
            product = resolve(products, product_id)
            if "sku" in changes:
                sku = changes["sku"].upper()
                if any(p.sku == sku and p.id != product.id for p in products.values()):
                    raise ValidationError("sku", f"'{sku}' already exists")
                changes = {**changes, "sku": sku}
            for key, value in changes.items():
                setattr(product, EDITABLE_FIELDS[key], value)
            product.updated_at = _utc_now()
            refresh_stock_fields(product)
        return product

    def delete_product(self, product_id: str) -> Product:
        """
        Remove a product from the catalog.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
        """
        with self.edit() as products:
            removed = products.pop(resolve(products, product_id).id)
        return removed

    @contextmanager
    def edit(self) -> Iterator[dict[str, Product]]:
        """
        Load every product for a multi-product change.

        Yields a dict of product ID to Product. Changes are written back when
        the block exits normally; an exception discards them all.
        """
        with self.update() as records:
            products = {p.id: p for p in (Product.from_dict(r) for r in records)}
            yield products
            records[:] = [p.to_dict() for p in products.values()]

    def inventory_report(
        self,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 50,
        sort_by: str = "availableQuantity",
        sort_order: str = "asc",
    ) -> tuple[list[InventoryItem], int]:
        """
        Filter, sort and paginate stock-managed products as inventory rows.

        Returns:
            Tuple of (rows on the requested page, total matching count).

        Raises:
            ValidationError: If the sort field or direction is not supported.
        """
        check_sort(sort_by, sort_order, INVENTORY_SORT_FIELDS)
        products = [p for p in self.list_products() if p.manage_stock]
        if status and status != "all":
            products = [p for p in products if p.inventory_status == status]
        if search:
            needle = search.lower()
            products = [
                p for p in products if needle in p.sku.lower() or needle in p.title.lower()
            ]

        rows = [inventory_view(p) for p in products]
        key = sort_key(sort_by)
        rows.sort(key=lambda row: key(row.to_dict()), reverse=sort_order == "desc")
        start = (max(page, 1) - 1) * limit
        return rows[start:start + limit], len(rows)

    def low_stock_alerts(self, limit: int = LOW_STOCK_ALERT_LIMIT) -> list[InventoryItem]:
        """Low-stock managed products, fewest available first."""
        rows = [
            inventory_view(p)
            for p in self.list_products()
            if p.manage_stock and p.inventory_status == "low_stock"
        ]
        rows.sort(key=lambda row: row.available_quantity)
        return rows[:limit]
