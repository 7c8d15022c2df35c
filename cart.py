"""
Cart engine.

One cart document per user. Item prices are snapshotted when a line is
first added; totals are always recomputed with a full pass over the items
rather than adjusted incrementally.

Carts are loaded, mutated in memory and written back whole with no
version check, so two concurrent writers to the same cart can lose an
update.
"""
from datetime import timedelta
from typing import Dict, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from catalog import get_product, is_purchasable, permalink
from config import CART_TTL_DAYS
from database import parse_object_id, utcnow
from errors import CartItemNotFoundError, ProductUnavailableError
from logger import get_logger

logger = get_logger("cart")

TOTAL_FIELDS = ("subtotal", "subtotal_tax", "shipping", "shipping_tax", "discount", "discount_tax", "total", "total_tax")


def money(value: Optional[float]) -> str:
    return f"{(value or 0):.2f}"


def empty_totals() -> Dict[str, float]:
    return {field: 0.0 for field in TOTAL_FIELDS}


def calculate_totals(cart: dict) -> Dict[str, float]:
    subtotal = 0.0
    for item in cart["items"]:
        item["subtotal"] = round(item["price"] * item["quantity"], 2)
        item["total"] = item["subtotal"]
        subtotal += item["subtotal"]

    totals = cart.setdefault("totals", empty_totals())
    totals["subtotal"] = round(subtotal, 2)
    totals["total"] = round(totals["subtotal"] + totals.get("shipping", 0.0) - totals.get("discount", 0.0), 2)
    return totals


def get_or_create_cart(db: Database, user_id) -> dict:
    now = utcnow()
    return db["cart"].find_one_and_update(
        {"user": parse_object_id(user_id)},
        {
            "$setOnInsert": {
                "items": [],
                "totals": empty_totals(),
                "coupons": [],
                "shipping_method": None,
                "expires_at": now + timedelta(days=CART_TTL_DAYS),
                "created_at": now,
                "updated_at": now,
            }
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def _save(db: Database, cart: dict) -> dict:
    now = utcnow()
    cart["updated_at"] = now
    cart["expires_at"] = now + timedelta(days=CART_TTL_DAYS)
    db["cart"].replace_one({"_id": cart["_id"]}, cart, upsert=True)
    return cart


def find_item(cart: dict, item_id: str) -> Optional[dict]:
    for item in cart["items"]:
        if item["id"] == item_id:
            return item
    return None


def add_item(db: Database, cart: dict, product_id: str, quantity: int = 1, variation: Optional[dict] = None) -> dict:
    product = get_product(db, product_id)
    if not is_purchasable(product):
        raise ProductUnavailableError(product["name"])

    # TODO: decide with product owners whether variation should split lines
    existing = next((i for i in cart["items"] if str(i["product"]) == str(product["_id"])), None)
    if existing:
        existing["quantity"] += quantity
    else:
        cart["items"].append({
            "id": str(ObjectId()),
            "product": product["_id"],
            "quantity": quantity,
            "variation": variation,
            "price": product["price"],
            "subtotal": product["price"] * quantity,
            "total": product["price"] * quantity,
        })

    calculate_totals(cart)
    logger.debug("Cart %s: added %s x%d", cart["_id"], product["_id"], quantity)
    return _save(db, cart)


def update_item(db: Database, cart: dict, item_id: str, quantity: int) -> dict:
    item = find_item(cart, item_id)
    if item is None:
        raise CartItemNotFoundError(item_id)

    if quantity <= 0:
        cart["items"].remove(item)
    else:
        item["quantity"] = quantity
        item["subtotal"] = item["price"] * quantity
        item["total"] = item["subtotal"]

    calculate_totals(cart)
    return _save(db, cart)


def remove_item(db: Database, cart: dict, item_id: str) -> dict:
    cart["items"] = [i for i in cart["items"] if i["id"] != item_id]
    calculate_totals(cart)
    return _save(db, cart)


def clear_cart(db: Database, cart: dict) -> dict:
    cart["items"] = []
    cart["coupons"] = []
    calculate_totals(cart)
    return _save(db, cart)


def clear_user_cart(db: Database, user_id) -> None:
    cart = db["cart"].find_one({"user": parse_object_id(user_id)})
    if cart:
        clear_cart(db, cart)


def _product_block(product: dict) -> dict:
    return {
        "id": str(product["_id"]),
        "name": product["name"],
        "slug": product["slug"],
        "permalink": permalink(product),
        "price": money(product["price"]),
        "regular_price": money(product.get("regular_price")),
        "sale_price": money(product["sale_price"]) if product.get("sale_price") else "",
        "on_sale": product.get("on_sale", False),
        "purchasable": product.get("purchasable", True),
        "stock_status": product.get("stock_status"),
    }


def item_response(db: Database, item: dict) -> dict:
    product = db["product"].find_one({"_id": item["product"]})
    image = None
    if product and product.get("images"):
        first = product["images"][0]
        image = {k: first.get(k) for k in ("id", "src", "name", "alt")}
    return {
        "key": item["id"],
        "id": str(item["product"]),
        "quantity": item["quantity"],
        "name": product["name"] if product else None,
        "variation": item.get("variation"),
        "subtotal": money(item["subtotal"]),
        "subtotal_tax": "0.00",
        "total": money(item["total"]),
        "total_tax": "0.00",
        "price": money(item["price"]),
        "image": image,
        "product": _product_block(product) if product else None,
    }


def cart_response(db: Database, cart: dict, user: Optional[dict] = None) -> dict:
    totals = cart.get("totals") or empty_totals()
    response = {
        "cart_key": str(cart["_id"]),
        "items": [item_response(db, item) for item in cart["items"]],
        "shipping": {
            "total": money(totals.get("shipping")),
            "total_tax": money(totals.get("shipping_tax")),
            "shipping_methods": [cart["shipping_method"]] if cart.get("shipping_method") else [],
        },
        "fees": [],
        "coupons": cart.get("coupons", []),
        "taxes": [],
        "totals": {field: money(totals.get(field)) for field in TOTAL_FIELDS},
    }
    if user:
        response["customer"] = {
            "id": str(user["_id"]),
            "email": user.get("email"),
            "first_name": user.get("first_name"),
            "last_name": user.get("last_name"),
            "billing": user.get("billing"),
            "shipping": user.get("shipping"),
        }
    return response
