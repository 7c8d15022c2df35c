"""Per-user wishlist entries."""
from typing import List

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from cart import money
from catalog import get_product, permalink
from database import create_document, parse_object_id
from errors import AlreadyInWishlistError, WishlistItemNotFoundError


def list_wishlist(db: Database, user_id) -> List[dict]:
    items = []
    for entry in db["wishlist"].find({"user": parse_object_id(user_id)}).sort("created_at", DESCENDING):
        product = db["product"].find_one({"_id": entry["product"]})
        if not product:
            continue
        image = product["images"][0] if product.get("images") else None
        items.append({
            "id": str(entry["_id"]),
            "product_id": str(product["_id"]),
            "user_id": str(entry["user"]),
            "date_added": entry.get("created_at"),
            "product": {
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
                "image": image,
            },
        })
    return items


def add_to_wishlist(db: Database, user_id, product_id: str) -> str:
    product = get_product(db, product_id)
    user_oid = parse_object_id(user_id)
    if db["wishlist"].find_one({"user": user_oid, "product": product["_id"]}):
        raise AlreadyInWishlistError(product_id)
    try:
        return create_document(db, "wishlist", {"user": user_oid, "product": product["_id"]})
    except DuplicateKeyError:
        raise AlreadyInWishlistError(product_id)


def remove_from_wishlist(db: Database, user_id, product_id: str) -> None:
    result = db["wishlist"].find_one_and_delete(
        {"user": parse_object_id(user_id), "product": parse_object_id(product_id)}
    )
    if not result:
        raise WishlistItemNotFoundError(product_id)
