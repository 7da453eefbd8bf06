"""Pytest fixtures for storedesk tests."""

import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from storedesk.catalog_store import ProductStore
from storedesk.client import ApiClient
from storedesk.models import Order, OrderItem, Product, ShippingInfo
from storedesk.order_store import OrderStore
from storedesk.review_store import ReviewStore
from storedesk.session import Session

ADMIN_TOKEN = "test-admin-token"


def make_shipping(**overrides) -> ShippingInfo:
    fields = {
        "full_name": "Rahim Uddin",
        "phone": "01711000000",
        "address": "House 12, Road 5",
        "city": "Dhaka",
        "district": "Dhaka",
        "email": "rahim@example.com",
    }
    fields.update(overrides)
    return ShippingInfo(**fields)


def make_order(
    order_id: str = "o1",
    status: str = "pending",
    total: float = 1080,
    created_at: str = "2026-03-07T10:00:00Z",
    **overrides,
) -> Order:
    """Build an order with one line and a Dhaka delivery charge."""
    fields = {
        "id": order_id,
        "order_number": f"ORD-0000000{order_id[-1]}-TEST",
        "shipping_info": make_shipping(),
        "items": [OrderItem(product_id="p-shirt", title="Shirt", price=1000, quantity=1)],
        "subtotal": 1000,
        "delivery_charge": 80,
        "total": total,
        "delivery_type": "dhaka",
        "status": status,
        "created_at": created_at,
        "updated_at": created_at,
    }
    fields.update(overrides)
    return Order(**fields)


def make_product(product_id: str = "p-shirt", sku: str = "SHIRT-1", **overrides) -> Product:
    fields = {
        "id": product_id,
        "title": "Cotton Shirt",
        "sku": sku,
        "normal_price": 1000,
        "sale_price": 750,
        "stock_quantity": 50,
        "low_stock_threshold": 10,
        "reorder_point": 20,
        "unit_cost": 400,
    }
    fields.update(overrides)
    return Product(**fields)


def checkout_payload(product_id: str = "p-shirt", quantity: int = 2, **overrides) -> dict:
    payload = {
        "shippingInfo": {
            "fullName": "Karim Ahmed",
            "phone": "01811000000",
            "email": "karim@example.com",
            "address": "Flat 3B, Lake Road",
            "city": "Chattogram",
            "district": "Chattogram",
        },
        "items": [
            {"productId": product_id, "title": "Cotton Shirt", "price": 750, "quantity": quantity}
        ],
        "deliveryType": "outside",
        "paymentMethod": "cod",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir, monkeypatch):
    """Point the backend and session at a temporary data directory."""
    monkeypatch.setenv("STOREDESK_DATA_DIR", str(temp_dir))
    monkeypatch.setenv("STOREDESK_ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.delenv("STOREDESK_API_URL", raising=False)
    return temp_dir


@pytest.fixture
def order_store(temp_dir):
    return OrderStore(temp_dir)


@pytest.fixture
def product_store(temp_dir):
    return ProductStore(temp_dir)


@pytest.fixture
def review_store(temp_dir):
    return ReviewStore(temp_dir)


@pytest.fixture
def catalog(data_dir):
    """A catalog with a well stocked shirt and a nearly sold out mug."""
    store = ProductStore(data_dir)
    store.add_product(make_product())
    store.add_product(
        make_product(
            "p-mug",
            sku="MUG-1",
            title="Clay Mug",
            normal_price=300,
            sale_price=None,
            stock_quantity=5,
            unit_cost=120,
        )
    )
    return store


@pytest.fixture
def api_client(data_dir):
    """Create test client over a temporary data directory."""
    from storedesk.api import app

    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def session(data_dir):
    return Session(config_dir=data_dir)


@pytest.fixture
def client(api_client, session):
    """ApiClient talking to the app in-process, logged out."""
    return ApiClient(session, http=api_client)


@pytest.fixture
def admin_client(client):
    """ApiClient with a valid admin token stored."""
    client.session.set_token(ADMIN_TOKEN)
    return client
