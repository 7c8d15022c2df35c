"""HTTP-level tests for the /wp-json/wc/v3 routes."""

import pytest

from coupons import CouponStore
from schemas import Coupon

from .conftest import BILLING, SHIPPING, auth_headers

API = "/wp-json/wc/v3"


def order_payload(*items, **extra):
    payload = {
        "payment_method": "cod",
        "payment_method_title": "Cash on Delivery",
        "billing": BILLING,
        "shipping": SHIPPING,
        "line_items": [{"product_id": str(p["_id"]), "quantity": q} for p, q in items],
    }
    payload.update(extra)
    return payload


class TestAuth:
    def test_register_login_me(self, api_client):
        response = api_client.post(f"{API}/auth/register", json={
            "username": "newbie",
            "email": "newbie@example.com",
            "password": "secret123",
            "first_name": "New",
        })
        assert response.status_code == 201
        assert response.json()["email"] == "newbie@example.com"
        assert "password_hash" not in response.json()

        response = api_client.post(f"{API}/auth/login", data={"username": "newbie@example.com", "password": "secret123"})
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = api_client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["username"] == "newbie"
        assert response.json()["role"] == "customer"

    def test_duplicate_email(self, api_client, customer):
        response = api_client.post(f"{API}/auth/register", json={
            "username": "other",
            "email": customer["email"],
            "password": "secret123",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "email_exists"

    def test_wrong_password(self, api_client):
        api_client.post(f"{API}/auth/register", json={
            "username": "newbie", "email": "newbie@example.com", "password": "secret123",
        })
        response = api_client.post(f"{API}/auth/login", data={"username": "newbie", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"

    def test_bad_token(self, api_client):
        response = api_client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_missing_token_uses_error_body(self, api_client):
        response = api_client.get(f"{API}/auth/me")
        assert response.status_code == 401
        assert response.json() == {"code": "unauthorized", "message": "Not authenticated", "data": {"status": 401}}

    def test_validate_refresh_logout(self, api_client, customer_headers):
        response = api_client.post(f"{API}/auth/validate", headers=customer_headers)
        assert response.json() == {"code": "jwt_auth_valid_token", "data": {"status": 200}}

        response = api_client.post(f"{API}/auth/refresh", headers=customer_headers)
        assert response.status_code == 200
        token = response.json()["access_token"]
        me = api_client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["username"] == "johndoe"

        response = api_client.post(f"{API}/auth/logout", headers=customer_headers)
        assert response.json()["success"] is True

    def test_validate_rejects_bad_token(self, api_client):
        response = api_client.post(f"{API}/auth/validate", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"

    def test_customer_profile_ownership(self, api_client, customer, make_user, customer_headers):
        other = make_user("janedoe")
        assert api_client.get(f"{API}/customers/{customer['_id']}", headers=customer_headers).status_code == 200
        response = api_client.get(f"{API}/customers/{other['_id']}", headers=customer_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"


class TestChangePassword:
    @pytest.fixture
    def headers(self, api_client):
        api_client.post(f"{API}/auth/register", json={
            "username": "newbie", "email": "newbie@example.com", "password": "secret123",
        })
        token = api_client.post(
            f"{API}/auth/login", data={"username": "newbie", "password": "secret123"}
        ).json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    def test_change_password(self, api_client, headers):
        response = api_client.put(f"{API}/auth/change-password", headers=headers, json={
            "current_password": "secret123", "new_password": "better456",
        })
        assert response.status_code == 200

        old = api_client.post(f"{API}/auth/login", data={"username": "newbie", "password": "secret123"})
        assert old.status_code == 401
        new = api_client.post(f"{API}/auth/login", data={"username": "newbie", "password": "better456"})
        assert new.status_code == 200

    def test_wrong_current_password(self, api_client, headers):
        response = api_client.put(f"{API}/auth/change-password", headers=headers, json={
            "current_password": "wrong", "new_password": "better456",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_password"

    def test_same_password(self, api_client, headers):
        response = api_client.put(f"{API}/auth/change-password", headers=headers, json={
            "current_password": "secret123", "new_password": "secret123",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "same_password"

    def test_new_password_needs_digit(self, api_client, headers):
        response = api_client.put(f"{API}/auth/change-password", headers=headers, json={
            "current_password": "secret123", "new_password": "nodigits",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"


class TestProducts:
    def test_admin_creates_product(self, api_client, admin_headers):
        response = api_client.post(f"{API}/products", headers=admin_headers, json={
            "name": "Desk Lamp", "price": 40, "sale_price": 30, "stock_quantity": 4,
        })
        assert response.status_code == 201
        body = response.json()
        assert body["slug"] == "desk-lamp"
        assert body["on_sale"] is True
        assert body["permalink"] == "/product/desk-lamp"

        fetched = api_client.get(f"{API}/products/slug/desk-lamp")
        assert fetched.json()["id"] == body["id"]

    def test_customer_cannot_create_product(self, api_client, customer_headers):
        response = api_client.post(f"{API}/products", headers=customer_headers, json={"name": "X", "price": 1})
        assert response.status_code == 403

    def test_list_sets_pagination_headers(self, api_client, make_product):
        for _ in range(3):
            make_product()
        response = api_client.get(f"{API}/products", params={"per_page": 2})
        assert response.status_code == 200
        assert len(response.json()) == 2
        assert response.headers["X-WP-Total"] == "3"
        assert response.headers["X-WP-TotalPages"] == "2"

    def test_missing_product_error_body(self, api_client):
        response = api_client.get(f"{API}/products/000000000000000000000000")
        assert response.status_code == 404
        assert response.json() == {
            "code": "product_not_found",
            "message": "Product with ID 000000000000000000000000 not found",
            "data": {"status": 404},
        }

    def test_end_sale_with_null(self, api_client, admin_headers, make_product):
        product = make_product(price=40, sale_price=30, sku="LAMP1")
        response = api_client.put(f"{API}/products/{product['_id']}", headers=admin_headers, json={"sale_price": None})
        assert response.status_code == 200
        body = response.json()
        assert body["on_sale"] is False
        assert body["price"] == 40
        assert body["sku"] == "LAMP1"

    def test_duplicate_sku(self, api_client, admin_headers, make_product):
        make_product(sku="SKU1")
        response = api_client.post(f"{API}/products", headers=admin_headers, json={"name": "Y", "price": 1, "sku": "SKU1"})
        assert response.status_code == 400
        assert response.json()["code"].endswith("_exists")

    def test_search_suggestions(self, api_client, make_product):
        make_product(name="Wireless Mouse")
        make_product(name="Keyboard")
        response = api_client.get(f"{API}/search", params={"q": "mouse"})
        assert [s["name"] for s in response.json()] == ["Wireless Mouse"]


class TestCartFlow:
    def test_add_update_clear(self, api_client, customer_headers, make_product):
        product = make_product(price=12.5)

        response = api_client.post(f"{API}/cart/add", headers=customer_headers, json={"id": str(product["_id"]), "quantity": 2})
        assert response.status_code == 200
        key = response.json()["key"]
        assert response.json()["total"] == "25.00"

        response = api_client.post(f"{API}/cart/update-item", headers=customer_headers, json={"key": key, "quantity": 3})
        assert response.json()["cart"]["totals"]["subtotal"] == "37.50"

        cart = api_client.get(f"{API}/cart", headers=customer_headers).json()
        assert len(cart["items"]) == 1
        assert cart["customer"]["first_name"] == "John"

        api_client.post(f"{API}/cart/clear", headers=customer_headers)
        cart = api_client.get(f"{API}/cart", headers=customer_headers).json()
        assert cart["items"] == []
        assert cart["totals"]["total"] == "0.00"

    def test_unknown_item_key(self, api_client, customer_headers):
        response = api_client.post(f"{API}/cart/update-item", headers=customer_headers, json={"key": "nope", "quantity": 1})
        assert response.status_code == 404
        assert response.json()["code"] == "cart_item_not_found"

    def test_out_of_stock(self, api_client, customer_headers, make_product):
        product = make_product(stock_quantity=0)
        response = api_client.post(f"{API}/cart/add", headers=customer_headers, json={"id": str(product["_id"])})
        assert response.status_code == 400
        assert response.json()["code"] == "product_not_available"

    def test_requires_auth(self, api_client):
        assert api_client.get(f"{API}/cart").status_code == 401

    def test_add_with_uppercase_product_id(self, api_client, db, customer, customer_headers, make_product):
        product = make_product(price=4)
        response = api_client.post(
            f"{API}/cart/add", headers=customer_headers, json={"id": str(product["_id"]).upper(), "quantity": 1}
        )
        assert response.status_code == 200
        assert response.json()["id"] == str(product["_id"])
        assert len(db["cart"].find_one({"user": customer["_id"]})["items"]) == 1


class TestOrderFlow:
    def test_create_and_fetch(self, api_client, customer_headers, make_product):
        product = make_product(price=20, stock_quantity=2)
        response = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload((product, 2)))
        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "pending"
        assert order["total"] == "40.00"

        detail = api_client.get(f"{API}/orders/{order['id']}", headers=customer_headers).json()
        assert detail["line_items"][0]["quantity"] == 2
        assert detail["order_notes"] == []

        listed = api_client.get(f"{API}/orders", headers=customer_headers)
        assert listed.headers["X-WP-Total"] == "1"

    def test_insufficient_stock(self, api_client, customer_headers, make_product):
        product = make_product(stock_quantity=1)
        response = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload((product, 5)))
        assert response.status_code == 400
        assert response.json()["code"] == "insufficient_stock"

    def test_empty_line_items_rejected(self, api_client, customer_headers):
        response = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload())
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_other_customer_forbidden(self, api_client, customer_headers, make_user, make_product):
        product = make_product()
        order = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload((product, 1))).json()
        intruder = auth_headers(make_user("intruder"))
        assert api_client.get(f"{API}/orders/{order['id']}", headers=intruder).status_code == 403

    def test_admin_updates_status(self, api_client, customer_headers, admin_headers, make_product):
        product = make_product()
        order = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload((product, 1))).json()

        response = api_client.put(f"{API}/orders/{order['id']}", headers=admin_headers, json={"status": "completed"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["date_completed"] is not None
        assert body["order_notes"][-1]["note"] == "Order status changed from pending to completed."

        response = api_client.put(f"{API}/orders/{order['id']}", headers=admin_headers, json={"status": "shipped"})
        assert response.status_code == 400

    def test_customer_sees_only_customer_notes(self, api_client, customer_headers, admin_headers, make_product):
        product = make_product()
        order = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload((product, 1))).json()
        api_client.post(f"{API}/orders/{order['id']}/notes", headers=admin_headers, json={"note": "internal"})
        api_client.post(f"{API}/orders/{order['id']}/notes", headers=admin_headers, json={"note": "shipped!", "customer_note": True})

        notes = api_client.get(f"{API}/orders/{order['id']}/notes", headers=customer_headers).json()
        assert [n["note"] for n in notes] == ["shipped!"]
        notes = api_client.get(f"{API}/orders/{order['id']}/notes", headers=admin_headers).json()
        assert len(notes) == 2


class TestCoupons:
    @pytest.fixture
    def coupon(self, db):
        return CouponStore(db).put(Coupon(code="TENOFF", type="percent", amount=10, minimum_amount=20))

    def test_validate(self, api_client, customer_headers, coupon):
        response = api_client.post(f"{API}/coupons/validate", headers=customer_headers, json={"code": "tenoff", "cart_total": 150})
        assert response.status_code == 200
        assert response.json()["valid"] is True
        assert response.json()["discount"] == "15.00"

    def test_validate_below_minimum(self, api_client, customer_headers, coupon):
        response = api_client.post(f"{API}/coupons/validate", headers=customer_headers, json={"code": "TENOFF", "cart_total": 10})
        assert response.status_code == 400
        assert response.json()["code"] == "minimum_amount_not_met"

    def test_unknown_code(self, api_client, customer_headers):
        response = api_client.post(f"{API}/coupons/validate", headers=customer_headers, json={"code": "NOPE", "cart_total": 10})
        assert response.status_code == 404
        assert response.json()["message"] == "Invalid coupon code"

    def test_admin_crud(self, api_client, admin_headers, customer_headers, coupon):
        assert api_client.get(f"{API}/coupons", headers=customer_headers).status_code == 403

        response = api_client.post(f"{API}/coupons", headers=admin_headers, json={"code": "TENOFF", "type": "fixed", "amount": 1})
        assert response.status_code == 400
        assert response.json()["code"] == "coupon_exists"

        response = api_client.post(f"{API}/coupons/{coupon['_id']}/apply", headers=customer_headers)
        assert response.json()["usage_count"] == 1


class TestWishlist:
    def test_add_list_remove(self, api_client, customer_headers, make_product):
        product = make_product(name="Lamp")
        response = api_client.post(f"{API}/wishlist/add", headers=customer_headers, json={"product_id": str(product["_id"])})
        assert response.json()["success"] is True

        again = api_client.post(f"{API}/wishlist/add", headers=customer_headers, json={"product_id": str(product["_id"])})
        assert again.status_code == 400
        assert again.json()["code"] == "already_in_wishlist"

        listing = api_client.get(f"{API}/wishlist", headers=customer_headers).json()
        assert listing["count"] == 1
        assert listing["items"][0]["product"]["name"] == "Lamp"

        assert api_client.delete(f"{API}/wishlist/{product['_id']}", headers=customer_headers).status_code == 200
        missing = api_client.delete(f"{API}/wishlist/{product['_id']}", headers=customer_headers)
        assert missing.status_code == 404
        assert missing.json()["code"] == "not_in_wishlist"


class TestShippingAndPayment:
    def test_methods_filtered_by_total(self, api_client):
        ids = [m["id"] for m in api_client.get(f"{API}/shipping/methods", params={"cart_total": 50}).json()]
        assert "free_shipping" not in ids
        ids = [m["id"] for m in api_client.get(f"{API}/shipping/methods", params={"cart_total": 150}).json()]
        assert "free_shipping" in ids

    def test_calculate(self, api_client):
        response = api_client.post(f"{API}/shipping/calculate", json={"method_id": "express", "items": [{}, {}]})
        assert response.json() == {"method": "Express Shipping", "cost": "27.00", "estimated_days": 3}

    def test_unknown_method(self, api_client):
        assert api_client.get(f"{API}/shipping/methods/teleport").status_code == 404

    def test_process_payment_moves_order_to_processing(self, api_client, customer_headers, make_product):
        product = make_product()
        order = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload((product, 1))).json()

        response = api_client.post(f"{API}/payment/process", headers=customer_headers, json={
            "order_id": order["id"], "payment_method_id": "card",
        })
        assert response.status_code == 200
        assert response.json()["transaction_id"].startswith("txn_")
        assert response.json()["order_status"] == "processing"

        detail = api_client.get(f"{API}/orders/{order['id']}", headers=customer_headers).json()
        assert detail["status"] == "processing"
        assert detail["date_paid"] is not None

    def test_invalid_payment_method(self, api_client, customer_headers, make_product):
        product = make_product()
        order = api_client.post(f"{API}/orders", headers=customer_headers, json=order_payload((product, 1))).json()
        response = api_client.post(f"{API}/payment/process", headers=customer_headers, json={
            "order_id": order["id"], "payment_method_id": "bitcoin",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_payment_method"

    def test_gateways(self, api_client, customer_headers):
        assert api_client.get(f"{API}/payment/gateways").status_code == 401
        response = api_client.get(f"{API}/payment/gateways", headers=customer_headers)
        assert [g["id"] for g in response.json()] == ["stripe", "paypal"]

    def test_validate_card(self, api_client, customer_headers):
        response = api_client.post(f"{API}/payment/validate-card", headers=customer_headers, json={
            "card_number": "4111 1111 1111 1111", "expiry_month": 12, "expiry_year": 2099, "cvv": "123",
        })
        assert response.json() == {"valid": True, "card_type": "visa", "last4": "1111"}

        response = api_client.post(f"{API}/payment/validate-card", headers=customer_headers, json={
            "card_number": "4111", "expiry_month": 13, "expiry_year": 2000, "cvv": "1",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_card_details"


def test_seed_populates_demo_catalog(api_client, db):
    response = api_client.post("/api/seed")
    assert response.status_code == 200
    created = response.json()["created"]
    assert created["products"] == 5
    assert created["coupons"] == 3
    denim = db["product"].find_one({"sku": "DNM-JKT-M"})
    assert denim["stock_status"] == "outofstock"
