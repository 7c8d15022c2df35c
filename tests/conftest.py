"""Shared fixtures: an in-process Mongo (mongomock), catalog factories and an API client."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from catalog import create_product
from database import create_document, ensure_indexes, get_db, parse_object_id
from schemas import Product

BILLING = {
    "first_name": "John",
    "last_name": "Doe",
    "address_1": "123 Main St",
    "city": "New York",
    "state": "NY",
    "postcode": "10001",
    "country": "US",
    "email": "john@example.com",
    "phone": "+1-555-123-4567",
}

SHIPPING = {k: v for k, v in BILLING.items() if k not in ("email", "phone")}


@pytest.fixture
def db():
    client = mongomock.MongoClient(tz_aware=True)
    database = client["shop_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def make_product(db):
    """Factory creating products through the catalog write path."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "name": f"Product {counter['n']}",
            "description": "A product",
            "price": 10.0,
            "stock_quantity": 10,
        }
        data.update(overrides)
        return create_product(db, Product(**data))

    return _make


@pytest.fixture
def make_user(db):
    def _make(username="johndoe", role="customer", **extra):
        doc = {
            "username": username,
            "email": f"{username}@example.com",
            "password_hash": "not-a-real-hash",
            "first_name": extra.pop("first_name", "John"),
            "last_name": extra.pop("last_name", "Doe"),
            "role": role,
            "billing": {},
            "shipping": {},
            "is_paying_customer": False,
            "orders_count": 0,
            "total_spent": 0.0,
        }
        doc.update(extra)
        user_id = create_document(db, "user", doc)
        return db["user"].find_one({"_id": parse_object_id(user_id)})

    return _make


@pytest.fixture
def customer(make_user):
    return make_user("johndoe")


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="admin")


@pytest.fixture
def api_client(db):
    """Test client whose get_db dependency returns the mongomock database."""
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    from main import create_access_token

    token = create_access_token({"sub": str(user["_id"]), "role": user.get("role", "customer")})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)
