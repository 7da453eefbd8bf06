"""Tests for the session and the HTTP client."""

import httpx
import pytest

from storedesk.client import ApiClient
from storedesk.errors import (
    AuthenticationError,
    LoginRequiredError,
    NotFoundError,
    RequestRejectedError,
    TransportError,
    UnexpectedResponseError,
)
from storedesk.session import DEFAULT_API_URL, Session, resolve_api_url

from .conftest import checkout_payload


def _mock_client(session: Session, handler) -> ApiClient:
    return ApiClient(session, http=httpx.Client(transport=httpx.MockTransport(handler)))


class TestSession:
    def test_token_round_trip(self, temp_dir):
        session = Session(config_dir=temp_dir)
        assert session.get_token() is None
        assert session.auth_headers() == {}

        session.set_token("abc")

        assert Session(config_dir=temp_dir).get_token() == "abc"
        assert session.auth_headers() == {"Authorization": "Bearer abc"}
        assert '"admin-token": "abc"' in (temp_dir / "session.json").read_text()

    def test_clear_token(self, temp_dir):
        session = Session(config_dir=temp_dir)
        session.set_token("abc")

        session.clear_token()

        assert session.logged_in is False

    def test_corrupt_session_file_ignored(self, temp_dir):
        (temp_dir / "session.json").write_text("{not json")
        assert Session(config_dir=temp_dir).get_token() is None

    def test_api_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("STOREDESK_API_URL", "https://shop.example.com/")
        assert resolve_api_url() == "https://shop.example.com"

    def test_invalid_api_url_falls_back(self, monkeypatch):
        monkeypatch.setenv("STOREDESK_API_URL", "shop.example.com")
        assert resolve_api_url() == DEFAULT_API_URL

    def test_explicit_url_wins(self, temp_dir):
        session = Session(base_url="http://backend:8080", config_dir=temp_dir)
        assert session.api_url == "http://backend:8080/api"


class TestApiClientAgainstApp:
    def test_admin_call_without_token(self, client):
        with pytest.raises(LoginRequiredError):
            client.list_orders()

    def test_checkout_and_list(self, admin_client, catalog):
        order = admin_client.place_order(checkout_payload(quantity=1))

        page = admin_client.list_orders()

        assert [o.id for o in page.items] == [order.id]
        assert page.total == 1
        assert page.stats["totalOrders"] == 1

    def test_status_update(self, admin_client, catalog):
        order = admin_client.place_order(checkout_payload(quantity=1))

        updated = admin_client.update_order_status(order.id, "confirmed", notes="Verified")

        assert updated.status == "confirmed"
        assert admin_client.get_order(order.id).notes == "Verified"

    def test_invalid_transition_is_rejected(self, admin_client, catalog):
        order = admin_client.place_order(checkout_payload(quantity=1))
        admin_client.update_order_status(order.id, "cancelled")

        with pytest.raises(RequestRejectedError) as exc_info:
            admin_client.update_order_status(order.id, "pending")

        assert exc_info.value.status_code == 409
        assert "final" in str(exc_info.value)

    def test_not_found(self, admin_client, catalog):
        with pytest.raises(NotFoundError):
            admin_client.get_order("missing")

    def test_bad_token_clears_session(self, client, catalog):
        client.session.set_token("stale-token")

        with pytest.raises(AuthenticationError):
            client.order_stats()

        assert client.session.get_token() is None

    def test_inventory_and_stock(self, admin_client, catalog):
        admin_client.update_stock("p-mug", 2, "remove", "Breakage")

        page = admin_client.inventory_report(status="low_stock")

        assert [item.sku for item in page.items] == ["MUG-1"]
        assert page.items[0].stock_quantity == 3
        assert page.stats["totalProducts"] == 2

    def test_products_and_reviews(self, client, catalog):
        assert {p.id for p in client.list_products()} == {"p-shirt", "p-mug"}
        assert client.get_product("p-shirt").sale_price == 750

        review = client.add_review("p-shirt", "Nadia", 4, "Nice")
        client.vote_review("p-shirt", review.id, "helpful")
        client.update_review("p-shirt", review.id, rating=5, user_id=review.user_id)

        reviews, stats = client.list_reviews("p-shirt")
        assert reviews[0].helpful == 1
        assert stats["average"] == 5

        client.delete_review("p-shirt", review.id, user_id=review.user_id)
        assert client.list_reviews("p-shirt")[0] == []

    def test_review_changes_need_the_author(self, client, catalog):
        review = client.add_review("p-shirt", "Nadia", 4, "Nice", user_id="u-nadia")

        with pytest.raises(RequestRejectedError) as exc_info:
            client.update_review("p-shirt", review.id, rating=1, user_id="u-someone")
        assert exc_info.value.status_code == 403

        with pytest.raises(AuthenticationError):
            client.delete_review("p-shirt", review.id)

        edited = client.update_review("p-shirt", review.id, comment="Nicer", user_id="u-nadia")
        assert edited.comment == "Nicer"
        assert edited.edited_at is not None

    def test_admin_deletes_any_review(self, admin_client, catalog):
        review = admin_client.add_review("p-shirt", "Nadia", 4, "Nice")

        admin_client.delete_review("p-shirt", review.id)

        assert admin_client.list_reviews("p-shirt")[0] == []

    def test_update_and_delete_product(self, admin_client, catalog):
        updated = admin_client.update_product("MUG-1", {"stockQuantity": 0})

        assert updated.id == "p-mug"
        assert updated.inventory_status == "out_of_stock"

        removed = admin_client.delete_product("p-mug")
        assert removed.sku == "MUG-1"
        with pytest.raises(NotFoundError):
            admin_client.get_product("p-mug")

    def test_low_stock_alerts_and_summary(self, admin_client, catalog):
        alerts = admin_client.low_stock_alerts()
        summary = admin_client.inventory_summary()

        assert [item.sku for item in alerts] == ["MUG-1"]
        assert [group["status"] for group in summary["summary"]] == ["in_stock", "low_stock"]
        assert summary["totalStats"]["totalProducts"] == 2

    def test_sync_inventory(self, admin_client, catalog):
        admin_client.place_order(checkout_payload(quantity=4))
        with catalog.edit() as products:
            products["p-shirt"].reserved_quantity = 0

        result = admin_client.sync_inventory()

        assert result == {"updatedCount": 1, "totalProducts": 2}
        assert admin_client.get_product("p-shirt").reserved_quantity == 4

    def test_order_stats_date_range(self, admin_client, catalog):
        admin_client.place_order(checkout_payload(quantity=1))

        assert admin_client.order_stats(start_date="2000-01-01")["totalOrders"] == 1
        assert admin_client.order_stats(end_date="2000-01-01")["totalOrders"] == 0

        with pytest.raises(RequestRejectedError):
            admin_client.order_stats(start_date="soon")


class TestApiClientErrors:
    def test_transport_failure(self, session):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _mock_client(session, handler)

        with pytest.raises(TransportError) as exc_info:
            client.list_products()
        assert "connection refused" in str(exc_info.value)

    def test_server_error(self, session):
        client = _mock_client(
            session, lambda request: httpx.Response(500, json={"message": "db down"})
        )

        with pytest.raises(UnexpectedResponseError) as exc_info:
            client.list_products()
        assert str(exc_info.value) == "db down"
        assert exc_info.value.status_code == 500

    def test_non_json_body(self, session):
        client = _mock_client(session, lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(UnexpectedResponseError):
            client.list_products()

    def test_generic_message_fallback(self, session):
        client = _mock_client(session, lambda request: httpx.Response(400, text="bad"))

        with pytest.raises(RequestRejectedError) as exc_info:
            client.list_products()
        assert str(exc_info.value) == "Request failed with status 400"

    def test_detail_message(self, session):
        client = _mock_client(
            session, lambda request: httpx.Response(404, json={"detail": "Not Found"})
        )

        with pytest.raises(NotFoundError, match="Not Found"):
            client.get_product("x")

    def test_bearer_header_sent(self, session):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"success": True, "data": {}})

        session.set_token("tok")
        _mock_client(session, handler).order_stats()

        assert seen["auth"] == "Bearer tok"
        assert seen["url"] == "http://localhost:5000/api/orders/stats"

    def test_author_header_sent(self, session):
        seen = {}

        def handler(request):
            seen["user"] = request.headers.get("x-user-id")
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(
                200, json={"success": True, "data": {"_id": "r1", "rating": 5}}
            )

        session.set_token("tok")
        _mock_client(session, handler).delete_review("p-shirt", "r1", user_id="guest_abc")

        assert seen == {"user": "guest_abc", "auth": None}

    def test_malformed_summary(self, session):
        session.set_token("tok")
        client = _mock_client(
            session, lambda request: httpx.Response(200, json={"success": True, "summary": {}})
        )

        with pytest.raises(UnexpectedResponseError):
            client.inventory_summary()
