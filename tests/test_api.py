import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from store_manager import create_app
from store_manager.crud.users import create_user
from store_manager.db.session import Base, get_db


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def client(session_factory):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    db = session_factory()
    try:
        create_user(db, {"username": "boss", "password": "bosspass1", "role": "admin"})
        create_user(db, {"username": "clerk", "password": "clerkpass1", "role": "employee"})
        create_user(db, {"username": "temp", "password": "temppass1", "role": "employee", "status": "inactive"})
    finally:
        db.close()
    return TestClient(app)


def _login(client, username, password):
    response = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def admin_headers(client):
    return _login(client, "boss", "bosspass1")


@pytest.fixture()
def clerk_headers(client):
    return _login(client, "clerk", "clerkpass1")


def _create_product(client, headers, barcode, quantity, sell_price=500.0):
    response = client.post(
        "/api/v1/products",
        headers=headers,
        json={
            "name": f"Product {barcode}",
            "category": "General",
            "buy_price": 100.0,
            "sell_price": sell_price,
            "quantity": quantity,
            "barcode": barcode,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_login_failures(client):
    bad = client.post("/api/v1/auth/login", json={"username": "clerk", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["code"] == "authentication_error"
    assert bad.headers["WWW-Authenticate"] == "Bearer"

    disabled = client.post("/api/v1/auth/login", json={"username": "temp", "password": "temppass1"})
    assert disabled.status_code == 403
    assert disabled.json()["code"] == "account_disabled"

    disabled_wrong = client.post("/api/v1/auth/login", json={"username": "temp", "password": "guess"})
    assert disabled_wrong.status_code == 401
    assert disabled_wrong.json()["code"] == "authentication_error"


def test_login_returns_user_and_refresh_works(client):
    response = client.post("/api/v1/auth/login", json={"username": "clerk", "password": "clerkpass1"})
    body = response.json()
    assert body["user"]["username"] == "clerk"
    assert body["user"]["role"] == "employee"

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": body["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["token_type"] == "bearer"

    misuse = client.post("/api/v1/auth/refresh", json={"refresh_token": body["access_token"]})
    assert misuse.status_code == 401


def test_protected_routes_require_a_token(client):
    assert client.get("/api/v1/products").status_code == 401
    assert client.get("/api/v1/products", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_legacy_token_header_is_accepted(client):
    response = client.post("/api/v1/auth/login", json={"username": "clerk", "password": "clerkpass1"})
    token = response.json()["access_token"]

    assert client.get("/api/v1/products", headers={"X-Auth-Token": token}).status_code == 200


def test_product_mutations_are_admin_only(client, admin_headers, clerk_headers):
    forbidden = client.post(
        "/api/v1/products",
        headers=clerk_headers,
        json={"name": "X", "category": "Y", "buy_price": 1, "sell_price": 2, "barcode": "X-1"},
    )
    assert forbidden.status_code == 403

    product = _create_product(client, admin_headers, "P-1", 3)
    assert client.get(f"/api/v1/products/{product['id']}", headers=clerk_headers).json()["barcode"] == "P-1"
    assert client.get("/api/v1/products/barcode/p-1", headers=clerk_headers).status_code == 200
    assert client.get("/api/v1/products/9999", headers=clerk_headers).status_code == 404
    low = client.get("/api/v1/products/low-stock", headers=clerk_headers).json()
    assert [row["id"] for row in low] == [product["id"]]

    duplicate = client.post(
        "/api/v1/products",
        headers=admin_headers,
        json={"name": "Dup", "category": "Y", "buy_price": 1, "sell_price": 2, "barcode": "P-1"},
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "conflict"


def test_sale_flow(client, admin_headers, clerk_headers):
    product = _create_product(client, admin_headers, "A-1", 10, sell_price=500.0)

    sold = client.post(
        "/api/v1/sales",
        headers=clerk_headers,
        json={"product_id": product["id"], "quantity": 4, "payment_method": "cash"},
    )
    assert sold.status_code == 201
    assert sold.json()["total"] == pytest.approx(2000.0)
    assert sold.json()["product_name"] == "Product A-1"

    oversold = client.post(
        "/api/v1/sales",
        headers=clerk_headers,
        json={"product_id": product["id"], "quantity": 10, "payment_method": "cash"},
    )
    assert oversold.status_code == 400
    assert oversold.json()["code"] == "insufficient_stock"
    assert client.get(f"/api/v1/products/{product['id']}", headers=clerk_headers).json()["quantity"] == 6

    missing = client.post(
        "/api/v1/sales",
        headers=clerk_headers,
        json={"product_id": 9999, "quantity": 1, "payment_method": "cash"},
    )
    assert missing.status_code == 404

    invalid = client.post(
        "/api/v1/sales",
        headers=clerk_headers,
        json={"product_id": product["id"], "quantity": 0, "payment_method": "cash"},
    )
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "validation_error"


def test_batch_sale_status_codes(client, admin_headers, clerk_headers):
    first = _create_product(client, admin_headers, "B-1", 5)
    second = _create_product(client, admin_headers, "B-2", 1)
    third = _create_product(client, admin_headers, "B-3", 5)

    partial = client.post(
        "/api/v1/sales/batch",
        headers=clerk_headers,
        json={
            "payment_method": "card",
            "items": [
                {"product_id": first["id"], "quantity": 1},
                {"product_id": second["id"], "quantity": 2},
                {"product_id": third["id"], "quantity": 1},
            ],
        },
    )
    assert partial.status_code == 207
    body = partial.json()
    assert body["outcome"] == "partial"
    assert [item["status"] for item in body["results"]] == ["success", "error", "success"]
    assert body["results"][1]["code"] == "insufficient_stock"
    assert client.get(f"/api/v1/products/{second['id']}", headers=clerk_headers).json()["quantity"] == 1

    complete = client.post(
        "/api/v1/sales/batch",
        headers=clerk_headers,
        json={"payment_method": "cash", "items": [{"product_id": first["id"], "quantity": 1}]},
    )
    assert complete.status_code == 201
    assert complete.json()["outcome"] == "success"


def test_order_lifecycle_and_permissions(client, admin_headers, clerk_headers):
    product = _create_product(client, admin_headers, "R-1", 2)

    created = client.post(
        "/api/v1/orders",
        headers=admin_headers,
        json={"items": [{"product_id": product["id"], "quantity": 5, "price": 90.0}]},
    )
    assert created.status_code == 201
    order = created.json()
    assert order["status"] == "pending"
    assert order["items"][0]["product_name"] == "Product R-1"

    not_mine = client.put(f"/api/v1/orders/{order['id']}", headers=clerk_headers, json={"status": "confirmed"})
    assert not_mine.status_code == 403

    bogus = client.put(f"/api/v1/orders/{order['id']}", headers=admin_headers, json={"status": "lost"})
    assert bogus.status_code == 400
    assert bogus.json()["code"] == "invalid_status"

    for status in ("confirmed", "shipped", "shipped"):
        response = client.put(f"/api/v1/orders/{order['id']}", headers=admin_headers, json={"status": status})
        assert response.status_code == 200
    assert client.get(f"/api/v1/products/{product['id']}", headers=admin_headers).json()["quantity"] == 7

    not_pending = client.delete(f"/api/v1/orders/{order['id']}", headers=admin_headers)
    assert not_pending.status_code == 400
    assert not_pending.json()["code"] == "invalid_state"
    assert client.get("/api/v1/orders/9999", headers=admin_headers).status_code == 404

    mine = client.post(
        "/api/v1/orders",
        headers=clerk_headers,
        json={"items": [{"product_id": product["id"], "quantity": 1, "price": 90.0}]},
    ).json()
    assert client.delete(f"/api/v1/orders/{mine['id']}", headers=clerk_headers).json() == {"status": "deleted"}
    assert client.get(f"/api/v1/orders/{mine['id']}", headers=clerk_headers).status_code == 404


def test_user_admin_routes(client, admin_headers, clerk_headers):
    assert client.get("/api/v1/users", headers=clerk_headers).status_code == 403

    users = client.get("/api/v1/users", headers=admin_headers).json()
    boss = next(user for user in users if user["username"] == "boss")
    assert "password_hash" not in boss

    assert client.delete(f"/api/v1/users/{boss['id']}", headers=admin_headers).status_code == 400
    assert (
        client.put(f"/api/v1/users/{boss['id']}/status", headers=admin_headers, json={"status": "inactive"}).status_code
        == 400
    )

    created = client.post(
        "/api/v1/users",
        headers=admin_headers,
        json={"username": "newbie", "password": "welcome1", "role": "employee"},
    )
    assert created.status_code == 201
    newbie = created.json()
    disabled = client.put(f"/api/v1/users/{newbie['id']}/status", headers=admin_headers, json={"status": "inactive"})
    assert disabled.json()["status"] == "inactive"

    profile = client.get("/api/v1/users/me/profile", headers=clerk_headers)
    assert profile.json()["username"] == "clerk"

    logged = client.post("/api/v1/users/activity/log", headers=clerk_headers, json={"actionType": "LOGOUT"})
    assert logged.status_code == 201
    activity = client.get("/api/v1/users/activity/all", headers=admin_headers).json()
    assert any(row["action_type"] == "LOGOUT" and row["username"] == "clerk" for row in activity)


def test_deactivated_user_token_is_rejected(client, admin_headers, clerk_headers):
    users = client.get("/api/v1/users", headers=admin_headers).json()
    clerk = next(user for user in users if user["username"] == "clerk")
    client.put(f"/api/v1/users/{clerk['id']}/status", headers=admin_headers, json={"status": "inactive"})

    response = client.get("/api/v1/products", headers=clerk_headers)
    assert response.status_code == 403


def test_reports_and_performance_permissions(client, admin_headers, clerk_headers):
    product = _create_product(client, admin_headers, "T-1", 5, sell_price=10.0)
    client.post(
        "/api/v1/sales",
        headers=clerk_headers,
        json={"product_id": product["id"], "quantity": 2, "payment_method": "cash"},
    )

    inventory = client.get("/api/v1/reports/inventory", headers=clerk_headers)
    assert inventory.status_code == 200
    assert inventory.json()[0]["total_quantity"] == 3
    assert client.get("/api/v1/reports/daily", params={"date": "bad"}, headers=clerk_headers).status_code == 400

    mine = client.get("/api/v1/performance/me", headers=clerk_headers).json()
    assert mine["sales_count"] == 1
    assert mine["sales_total"] == pytest.approx(20.0)

    users = client.get("/api/v1/users", headers=admin_headers).json()
    boss = next(user for user in users if user["username"] == "boss")
    assert client.get(f"/api/v1/performance/users/{boss['id']}", headers=clerk_headers).status_code == 403
    assert client.get("/api/v1/performance/team", headers=clerk_headers).status_code == 403
    assert client.get("/api/v1/performance/ranking", headers=admin_headers).status_code == 200
