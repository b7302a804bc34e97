from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from stoq.main import app
from stoq.presentation.api import get_auth_admin, get_inventory_store, get_orders_store, get_uow
from stoq.application.state import InventoryStore, OrdersStore
from stoq.domain.models import ApprovalStatus, StoredCartItem
from tests.conftest import FakeUnitOfWork, make_item, make_order, make_profile


@pytest.fixture
def fake_uow():
    return FakeUnitOfWork()


@pytest.fixture
def auth_admin():
    return AsyncMock()


@pytest.fixture
def client(fake_uow, auth_admin):
    inventory = InventoryStore(lambda: fake_uow.inventory.list_all())
    orders = OrdersStore(lambda: fake_uow.orders.list_all())

    app.dependency_overrides[get_uow] = lambda: fake_uow
    app.dependency_overrides[get_inventory_store] = lambda: inventory
    app.dependency_overrides[get_orders_store] = lambda: orders
    app.dependency_overrides[get_auth_admin] = lambda: auth_admin
    # Без контекстного менеджера lifespan не запускается, Kafka не нужна
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_create_profile_requires_user_id(client):
    response = client.post("/api/user-profile/create", json={"firstName": "Ann"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_create_profile_returns_pending_profile(client, fake_uow):
    response = client.post("/api/user-profile/create", json={"userId": "u1", "businessName": "Acme"})

    assert response.status_code == 201
    profile = response.json()["profile"]
    assert profile["user_id"] == "u1"
    assert profile["business_name"] == "Acme"
    assert profile["approval_status"] == "pending"
    assert "u1" in fake_uow.profiles.profiles


def test_create_profile_persistence_failure(client, fake_uow):
    fake_uow.profiles.create = AsyncMock(side_effect=RuntimeError("duplicate key"))

    response = client.post("/api/user-profile/create", json={"userId": "u1"})

    assert response.status_code == 500
    assert response.json() == {"error": "duplicate key"}


def test_update_approval_status_validation(client):
    assert client.post("/api/user-profile/update-approval-status", json={"userId": "u1"}).status_code == 400
    response = client.post(
        "/api/user-profile/update-approval-status", json={"userId": "u1", "status": "banned"}
    )
    assert response.status_code == 400


def test_update_approval_status_unknown_profile(client):
    response = client.post(
        "/api/user-profile/update-approval-status", json={"userId": "ghost", "status": "approved"}
    )

    assert response.status_code == 404
    assert "error" in response.json()


def test_update_approval_status_ok(client, fake_uow):
    fake_uow.profiles.profiles["u1"] = make_profile("u1", status=ApprovalStatus.PENDING)

    response = client.post(
        "/api/user-profile/update-approval-status", json={"userId": "u1", "status": "approved"}
    )

    assert response.status_code == 200
    assert response.json()["profile"]["approval_status"] == "approved"


@pytest.mark.parametrize("payload", [{"userIds": []}, {"userIds": "u1"}, {}])
def test_user_emails_empty_or_invalid_input(client, auth_admin, payload):
    response = client.post("/api/users/emails", json=payload)

    assert response.status_code == 200
    assert response.json() == {"emails": {}}
    auth_admin.get_user_email.assert_not_called()


def test_user_emails_resolves_ids(client, auth_admin):
    auth_admin.get_user_email.side_effect = lambda user_id: f"{user_id}@example.com"

    response = client.post("/api/users/emails", json={"userIds": ["u1", "u2"]})

    assert response.json() == {"emails": {"u1": "u1@example.com", "u2": "u2@example.com"}}


def test_guest_availability(client, fake_uow):
    fake_uow.inventory.items["A"] = make_item("A", quantity=5)

    response = client.post(
        "/api/inventory/A/availability", json={"guest_cart": [{"item_id": "A", "quantity": 3}]}
    )

    assert response.status_code == 200
    assert response.json() == {"item_id": "A", "available": 2}


def test_availability_unknown_item(client):
    response = client.post("/api/inventory/missing/availability", json={"user_id": "u1"})

    assert response.status_code == 404


def test_add_to_cart_over_availability(client, fake_uow):
    fake_uow.inventory.items["A"] = make_item("A", quantity=1)

    response = client.post("/api/cart/u1/items", json={"item_id": "A", "quantity": 2})

    assert response.status_code == 400
    assert "error" in response.json()


def test_checkout_with_empty_cart(client):
    response = client.post(
        "/api/orders", json={"user_id": "u1", "shipping_address": "a", "billing_address": "b"}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Корзина пуста"}


def test_checkout_creates_order(client, fake_uow):
    fake_uow.inventory.items["A"] = make_item("A", quantity=5, price="10.00")
    fake_uow.carts.lists["u1"] = [StoredCartItem(item_id="A", quantity=2)]
    fake_uow.profiles.profiles["u1"] = make_profile("u1")

    response = client.post(
        "/api/orders", json={"user_id": "u1", "shipping_address": "a", "billing_address": "b"}
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["items"][0]["quantity"] == 2


def test_approval_stock_warning_returns_conflict(client, fake_uow):
    item = make_item("A", quantity=5)
    fake_uow.orders.orders["o1"] = make_order("u1", [(item, 3)], order_id="o1")
    fake_uow.inventory.items["A"] = make_item("A", quantity=1)

    response = client.patch("/api/orders/o1/status", json={"status": "approved"})

    assert response.status_code == 409
    assert response.json()["items"][0]["available_qty"] == 1

    forced = client.patch("/api/orders/o1/status", json={"status": "approved", "force": True})
    assert forced.status_code == 200
    assert fake_uow.inventory.items["A"].quantity == 0


def test_invalid_transition_is_bad_request(client, fake_uow):
    fake_uow.orders.orders["o1"] = make_order("u1", [(make_item("A"), 1)], order_id="o1")

    response = client.patch("/api/orders/o1/status", json={"status": "completed"})

    assert response.status_code == 400


def test_get_unknown_order(client):
    response = client.get("/api/orders/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Заказ не найден"}


def test_reconcile_wishlist_returns_merged_list(client, fake_uow):
    fake_uow.wishlists.lists["u1"] = []

    response = client.post(
        "/api/wishlist/u1/reconcile",
        json={"items": [{"item_id": "A", "added_at": "2025-01-01T00:00:00Z"}]}
    )

    assert response.status_code == 200
    assert [i["item_id"] for i in response.json()["items"]] == ["A"]
    assert [i.item_id for i in fake_uow.wishlists.lists["u1"]] == ["A"]


def test_wishlist_hides_items_gone_from_inventory(client, fake_uow):
    fake_uow.inventory.items["A"] = make_item("A")
    client.post("/api/wishlist/u1/items", json={"item_id": "A"})
    client.post("/api/wishlist/u1/items", json={"item_id": "gone"})

    response = client.get("/api/wishlist/u1")

    assert [i["id"] for i in response.json()] == ["A"]
    assert len(fake_uow.wishlists.lists["u1"]) == 2


def test_inventory_export_csv(client, fake_uow):
    fake_uow.inventory.items["A"] = make_item("A")

    response = client.get("/api/inventory/export.csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.startswith("device_name,")


def test_unknown_route_and_wrong_method_use_error_body(client):
    missing = client.get("/api/no-such-route")
    wrong_method = client.delete("/api/inventory/export.csv")

    assert missing.status_code == 404
    assert missing.json() == {"error": "Not Found"}
    assert wrong_method.status_code == 405
    assert "error" in wrong_method.json()


def test_unhandled_error_returns_error_body(client, fake_uow):
    fake_uow.orders.get_by_id = AsyncMock(side_effect=RuntimeError("connection reset"))
    safe_client = TestClient(app, raise_server_exceptions=False)

    response = safe_client.patch("/api/orders/o1/status", json={"status": "approved"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_reconcile_cart_adds_guest_units_up_to_stock(client, fake_uow):
    fake_uow.inventory.items["A"] = make_item("A", quantity=4)
    fake_uow.carts.lists["u1"] = [StoredCartItem(item_id="A", quantity=3)]

    response = client.post("/api/cart/u1/reconcile", json={"items": [{"item_id": "A", "quantity": 2}]})

    assert response.json() == {"items": [{"item_id": "A", "quantity": 4}]}
    assert fake_uow.carts.lists["u1"] == [StoredCartItem(item_id="A", quantity=4)]
