"""
Catalog store: products, categories and tags.

Derived product fields (slug, price/on-sale, stock status) are computed by
``derive_product_fields`` on every write path instead of a persistence hook,
so they can be checked without a database.
"""
import re
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from database import create_document, paginate, parse_object_id, utcnow
from errors import CategoryNotFoundError, ProductNotFoundError, TagNotFoundError
from logger import get_logger
from schemas import Category, CategoryUpdate, Product, ProductUpdate, Tag, TagUpdate

logger = get_logger("catalog")

PRODUCT_SORTS = {
    "date": "created_at",
    "title": "name",
    "price": "price",
    "popularity": "total_sales",
    "rating": "average_rating",
}

CLEARABLE_PRODUCT_FIELDS = ("sale_price", "sku")


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return slug.strip("-")


def derive_product_fields(product: Dict[str, Any]) -> Dict[str, Any]:
    """Recompute slug, regular/sale price, on_sale and stock_status in place."""
    if not product.get("slug"):
        product["slug"] = slugify(product["name"])

    if not product.get("regular_price"):
        product["regular_price"] = product["price"]

    sale_price = product.get("sale_price")
    if sale_price and sale_price < product["regular_price"]:
        product["on_sale"] = True
        product["price"] = sale_price
    else:
        product["on_sale"] = False
        product["price"] = product["regular_price"]

    if product.get("manage_stock"):
        if product.get("stock_quantity", 0) <= 0:
            product["stock_status"] = "outofstock"
        else:
            product["stock_status"] = "instock"
    return product


def is_purchasable(product: Dict[str, Any]) -> bool:
    return bool(product.get("purchasable", True)) and product.get("stock_status") != "outofstock"


def permalink(product: Dict[str, Any]) -> str:
    return f"/product/{product['slug']}"


def _object_ids(values: List[str]) -> List:
    return [oid for oid in (parse_object_id(v) for v in values) if oid is not None]


# Products

def get_product(db: Database, product_id: str) -> dict:
    oid = parse_object_id(product_id)
    product = db["product"].find_one({"_id": oid}) if oid else None
    if not product:
        raise ProductNotFoundError(product_id)
    return product


def get_product_by_slug(db: Database, slug: str) -> dict:
    product = db["product"].find_one({"slug": slug})
    if not product:
        raise ProductNotFoundError(slug)
    return product


def list_products(
    db: Database,
    page: int = 1,
    per_page: int = 10,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
    orderby: str = "date",
    order: str = "desc",
    status: str = "publish",
    featured: Optional[bool] = None,
    on_sale: Optional[bool] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> Tuple[List[dict], int, int]:
    query: Dict[str, Any] = {"status": status}
    if category:
        query["categories"] = parse_object_id(category)
    if tag:
        query["tags"] = parse_object_id(tag)
    if search:
        query["$or"] = [
            {"name": {"$regex": re.escape(search), "$options": "i"}},
            {"description": {"$regex": re.escape(search), "$options": "i"}},
        ]
    if featured is not None:
        query["featured"] = featured
    if on_sale is not None:
        query["on_sale"] = on_sale
    if min_price is not None or max_price is not None:
        price_filter = {}
        if min_price is not None:
            price_filter["$gte"] = min_price
        if max_price is not None:
            price_filter["$lte"] = max_price
        query["price"] = price_filter

    sort_field = PRODUCT_SORTS.get(orderby, "created_at")
    direction = ASCENDING if order == "asc" else DESCENDING

    total = db["product"].count_documents(query)
    cursor, limit = paginate(db["product"].find(query).sort(sort_field, direction), page, per_page)
    return list(cursor), total, limit


def create_product(db: Database, data: Product) -> dict:
    doc = data.model_dump()
    if doc.get("sku") is None:
        # sparse unique index: leave the field out instead of storing null
        doc.pop("sku")
    doc["categories"] = _object_ids(doc["categories"])
    doc["tags"] = _object_ids(doc["tags"])
    doc.update({"total_sales": 0, "average_rating": 0.0, "rating_count": 0, "on_sale": False})
    derive_product_fields(doc)
    product_id = create_document(db, "product", doc)
    logger.info("Created product %s (%s)", product_id, doc["slug"])

    for category_id in doc["categories"]:
        update_category_count(db, category_id)
    for tag_id in doc["tags"]:
        update_tag_count(db, tag_id)
    return db["product"].find_one({"_id": parse_object_id(product_id)})


def update_product(db: Database, product_id: str, data: ProductUpdate) -> dict:
    product = get_product(db, product_id)
    # an explicit null ends a sale or drops the sku; other nulls are ignored
    updates = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in CLEARABLE_PRODUCT_FIELDS
    }
    if "name" in updates and "slug" not in updates:
        updates["slug"] = None
    if "price" in updates and "regular_price" not in updates:
        updates["regular_price"] = updates["price"]
    for field in ("categories", "tags"):
        if field in updates:
            updates[field] = _object_ids(updates[field])

    old_categories = set(product.get("categories", []))
    old_tags = set(product.get("tags", []))
    product.update(updates)
    if product.get("sku") is None:
        product.pop("sku", None)
    derive_product_fields(product)
    product["updated_at"] = utcnow()
    db["product"].replace_one({"_id": product["_id"]}, product)
    logger.info("Updated product %s", product_id)

    for category_id in old_categories | set(product.get("categories", [])):
        update_category_count(db, category_id)
    for tag_id in old_tags | set(product.get("tags", [])):
        update_tag_count(db, tag_id)
    return product


def delete_product(db: Database, product_id: str) -> dict:
    product = get_product(db, product_id)
    db["product"].delete_one({"_id": product["_id"]})
    logger.info("Deleted product %s", product_id)
    for category_id in product.get("categories", []):
        update_category_count(db, category_id)
    for tag_id in product.get("tags", []):
        update_tag_count(db, tag_id)
    return product


def search_suggestions(db: Database, q: str, limit: int = 8) -> List[dict]:
    cursor = db["product"].find(
        {"name": {"$regex": re.escape(q), "$options": "i"}, "status": "publish"},
        {"name": 1, "slug": 1, "price": 1},
    ).limit(limit)
    return [{"id": str(d["_id"]), "name": d.get("name"), "slug": d.get("slug"), "price": d.get("price")} for d in cursor]


# Categories

def update_category_count(db: Database, category_id) -> None:
    count = db["product"].count_documents({"categories": category_id, "status": "publish"})
    db["category"].update_one({"_id": category_id}, {"$set": {"count": count}})


def get_category(db: Database, category_id: str) -> dict:
    oid = parse_object_id(category_id)
    category = db["category"].find_one({"_id": oid}) if oid else None
    if not category:
        raise CategoryNotFoundError(category_id)
    return category


def list_categories(
    db: Database,
    page: int = 1,
    per_page: int = 10,
    search: Optional[str] = None,
    parent: Optional[str] = None,
    hide_empty: bool = False,
) -> Tuple[List[dict], int, int]:
    query: Dict[str, Any] = {}
    if search:
        query["name"] = {"$regex": re.escape(search), "$options": "i"}
    if parent is not None:
        query["parent"] = None if parent in ("", "0") else parse_object_id(parent)
    if hide_empty:
        query["count"] = {"$gt": 0}

    total = db["category"].count_documents(query)
    cursor = db["category"].find(query).sort([("menu_order", ASCENDING), ("name", ASCENDING)])
    cursor, limit = paginate(cursor, page, per_page)
    return list(cursor), total, limit


def create_category(db: Database, data: Category) -> dict:
    doc = data.model_dump()
    doc["slug"] = doc.get("slug") or slugify(doc["name"])
    doc["parent"] = parse_object_id(doc.get("parent"))
    doc["count"] = 0
    category_id = create_document(db, "category", doc)
    logger.info("Created category %s (%s)", category_id, doc["slug"])
    return db["category"].find_one({"_id": parse_object_id(category_id)})


def update_category(db: Database, category_id: str, data: CategoryUpdate) -> dict:
    category = get_category(db, category_id)
    updates = data.model_dump(exclude_none=True)
    if "name" in updates and "slug" not in updates:
        updates["slug"] = slugify(updates["name"])
    if "parent" in updates:
        updates["parent"] = parse_object_id(updates["parent"])
    updates["updated_at"] = utcnow()
    return db["category"].find_one_and_update(
        {"_id": category["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )


def delete_category(db: Database, category_id: str) -> dict:
    category = get_category(db, category_id)
    db["category"].delete_one({"_id": category["_id"]})
    db["product"].update_many({"categories": category["_id"]}, {"$pull": {"categories": category["_id"]}})
    return category


# Tags

def update_tag_count(db: Database, tag_id) -> None:
    count = db["product"].count_documents({"tags": tag_id, "status": "publish"})
    db["tag"].update_one({"_id": tag_id}, {"$set": {"count": count}})


def get_tag(db: Database, tag_id: str) -> dict:
    oid = parse_object_id(tag_id)
    tag = db["tag"].find_one({"_id": oid}) if oid else None
    if not tag:
        raise TagNotFoundError(tag_id)
    return tag


def list_tags(
    db: Database,
    page: int = 1,
    per_page: int = 10,
    search: Optional[str] = None,
    hide_empty: bool = False,
) -> Tuple[List[dict], int, int]:
    query: Dict[str, Any] = {}
    if search:
        query["name"] = {"$regex": re.escape(search), "$options": "i"}
    if hide_empty:
        query["count"] = {"$gt": 0}
    total = db["tag"].count_documents(query)
    cursor, limit = paginate(db["tag"].find(query).sort("name", ASCENDING), page, per_page)
    return list(cursor), total, limit


def create_tag(db: Database, data: Tag) -> dict:
    doc = data.model_dump()
    doc["slug"] = doc.get("slug") or slugify(doc["name"])
    doc["count"] = 0
    tag_id = create_document(db, "tag", doc)
    return db["tag"].find_one({"_id": parse_object_id(tag_id)})


def update_tag(db: Database, tag_id: str, data: TagUpdate) -> dict:
    tag = get_tag(db, tag_id)
    updates = data.model_dump(exclude_none=True)
    if "name" in updates and "slug" not in updates:
        updates["slug"] = slugify(updates["name"])
    updates["updated_at"] = utcnow()
    return db["tag"].find_one_and_update(
        {"_id": tag["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )


def delete_tag(db: Database, tag_id: str) -> dict:
    tag = get_tag(db, tag_id)
    db["tag"].delete_one({"_id": tag["_id"]})
    db["product"].update_many({"tags": tag["_id"]}, {"$pull": {"tags": tag["_id"]}})
    return tag