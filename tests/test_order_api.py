from decimal import Decimal
from unittest.mock import patch

from order_service import order_processing
from order_service.exceptions import DownstreamUnavailableError, PersistenceError, ProductNotFoundError
from tests.conftest import auth_headers

ALICE = auth_headers("alice", ["CLIENT"])
BOB = auth_headers("bob", ["CLIENT"])
ADMIN = auth_headers("root", ["ADMIN"])


def place(client, headers, *items):
    payload = {
        "items": [
            {"product_id": product_id, "quantity": quantity, "unit_price": price}
            for product_id, quantity, price in items
        ],
    }
    return client.post("/orders", json=payload, headers=headers)


def test_create_order_success(mocked_order_client, mock_product_client):
    response = place(mocked_order_client, ALICE, (1, 2, "1000.00"), (2, 1, "1500.00"))

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["user_id"] == "alice"
    assert Decimal(data["amount"]) == Decimal("3500.00")
    assert [item["product_id"] for item in data["items"]] == [1, 2]
    forwarded_tokens = {c.args[2] for c in mock_product_client.check_stock.call_args_list}
    assert forwarded_tokens == {ALICE["Authorization"].removeprefix("Bearer ")}


def test_create_order_empty_items_is_bad_request(mocked_order_client, mock_product_client):
    response = mocked_order_client.post("/orders", json={"items": []}, headers=ALICE)

    assert response.status_code == 400
    mock_product_client.check_stock.assert_not_called()


def test_create_order_insufficient_stock_is_conflict(mocked_order_client, mock_product_client):
    mock_product_client.check_stock.return_value = False

    response = place(mocked_order_client, ALICE, (4, 1, "9.99"))

    assert response.status_code == 409
    assert response.json()["detail"]["product_id"] == 4
    assert mocked_order_client.get("/orders", headers=ALICE).json() == []


def test_create_order_unknown_product_is_not_found(mocked_order_client, mock_product_client):
    mock_product_client.check_stock.side_effect = ProductNotFoundError(4)

    response = place(mocked_order_client, ALICE, (4, 1, "9.99"))

    assert response.status_code == 404


def test_create_order_product_service_down(mocked_order_client, mock_product_client):
    mock_product_client.check_stock.side_effect = DownstreamUnavailableError("Product service is currently unavailable.")

    response = place(mocked_order_client, ALICE, (4, 1, "9.99"))

    assert response.status_code == 503


def test_create_order_requires_client_role(mocked_order_client, mock_product_client):
    response = place(mocked_order_client, ADMIN, (1, 1, "1.00"))

    assert response.status_code == 403
    mock_product_client.check_stock.assert_not_called()


def test_create_order_requires_token(mocked_order_client):
    response = mocked_order_client.post("/orders", json={"items": []})

    assert response.status_code == 401


def test_my_orders_are_partitioned_by_user(mocked_order_client):
    alice_order = place(mocked_order_client, ALICE, (1, 1, "1.00")).json()
    place(mocked_order_client, BOB, (1, 1, "2.00"))

    response = mocked_order_client.get("/orders", headers=ALICE)

    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [alice_order["id"]]


def test_all_orders_is_admin_only(mocked_order_client):
    place(mocked_order_client, ALICE, (1, 1, "1.00"))
    place(mocked_order_client, BOB, (1, 1, "2.00"))

    assert mocked_order_client.get("/orders/all", headers=ALICE).status_code == 403
    response = mocked_order_client.get("/orders/all", headers=ADMIN)
    assert response.status_code == 200
    assert {o["user_id"] for o in response.json()} == {"alice", "bob"}


def test_get_order_owner_or_admin(mocked_order_client):
    order_id = place(mocked_order_client, ALICE, (1, 1, "1.00")).json()["id"]

    assert mocked_order_client.get(f"/orders/{order_id}", headers=ALICE).status_code == 200
    assert mocked_order_client.get(f"/orders/{order_id}", headers=ADMIN).status_code == 200
    assert mocked_order_client.get(f"/orders/{order_id}", headers=BOB).status_code == 403


def test_get_missing_order_is_not_found(mocked_order_client):
    response = mocked_order_client.get("/orders/999", headers=ADMIN)

    assert response.status_code == 404


def test_health(mocked_order_client):
    response = mocked_order_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "UP"


def test_create_order_rejects_sub_cent_price(mocked_order_client, mock_product_client):
    response = place(mocked_order_client, ALICE, (1, 3, "0.335"))

    assert response.status_code == 422
    mock_product_client.check_stock.assert_not_called()
    assert mocked_order_client.get("/orders", headers=ALICE).json() == []


def test_order_read_failure_is_server_error(mocked_order_client):
    failure = PersistenceError("Failed to read all orders: database is locked")

    with patch.object(order_processing.crud, "get_all_orders", side_effect=failure):
        response = mocked_order_client.get("/orders/all", headers=ADMIN)

    assert response.status_code == 500
    assert response.json()["detail"] == "Orders could not be read."
