"""Demo data for an empty database."""
from typing import Callable, Dict

from pymongo.database import Database

from catalog import create_category, create_product, create_tag
from coupons import CouponStore
from database import create_document
from logger import get_logger
from schemas import Category, Image, Product, Tag

logger = get_logger("seed")

DEMO_USERS = [
    {
        "username": "admin",
        "email": "admin@ecommerce.com",
        "password": "admin123",
        "first_name": "Admin",
        "last_name": "User",
        "role": "admin",
    },
    {
        "username": "johndoe",
        "email": "john@example.com",
        "password": "password123",
        "first_name": "John",
        "last_name": "Doe",
        "role": "customer",
        "billing": {
            "first_name": "John",
            "last_name": "Doe",
            "address_1": "123 Main St",
            "city": "New York",
            "state": "NY",
            "postcode": "10001",
            "country": "US",
            "email": "john@example.com",
            "phone": "+1-555-123-4567",
        },
        "shipping": {
            "first_name": "John",
            "last_name": "Doe",
            "address_1": "123 Main St",
            "city": "New York",
            "state": "NY",
            "postcode": "10001",
            "country": "US",
        },
    },
]

DEMO_CATEGORIES = [
    ("Electronics", "Electronic devices and gadgets"),
    ("Smartphones", "Latest smartphones and accessories"),
    ("Laptops", "High-performance laptops and notebooks"),
    ("Accessories", "Tech accessories and peripherals"),
    ("Clothing", "Fashion and apparel"),
]

DEMO_TAGS = ["New Arrival", "Best Seller", "On Sale", "Featured", "Premium"]

# (name, sku, regular price, sale price, stock, categories, tags, image)
DEMO_PRODUCTS = [
    ("iPhone 15 Pro", "IP15P-256", 1099, 999, 50, ["Electronics", "Smartphones"], ["New Arrival", "Featured"],
     "https://images.unsplash.com/photo-1695048133142-1a20484d2569?w=800"),
    ("MacBook Air M2", "MBA-M2-256", 1199, None, 25, ["Electronics", "Laptops"], ["Best Seller", "Premium"],
     "https://images.unsplash.com/photo-1517336714731-489689fd1ca8?w=800"),
    ("Sony WH-1000XM5", "SONY-XM5", 399, 349, 100, ["Electronics", "Accessories"], ["On Sale"],
     "https://images.unsplash.com/photo-1518441902110-9d8f13635159?w=800"),
    ("Logitech MX Master 3S", "LOGI-MX3S", 99, None, 150, ["Accessories"], ["Best Seller"],
     "https://images.unsplash.com/photo-1527814050087-3793815479db?w=800"),
    ("Classic Denim Jacket", "DNM-JKT-M", 89, None, 0, ["Clothing"], ["New Arrival"],
     "https://images.unsplash.com/photo-1544441892-7d2fbe2d8ffd?w=800"),
]


def seed(db: Database, hash_password: Callable[[str], str]) -> Dict[str, int]:
    created = {"users": 0, "categories": 0, "tags": 0, "products": 0, "coupons": 0}

    if db["user"].count_documents({}) == 0:
        for user in DEMO_USERS:
            data = {k: v for k, v in user.items() if k != "password"}
            data["password_hash"] = hash_password(user["password"])
            data.update({"is_paying_customer": False, "orders_count": 0, "total_spent": 0.0})
            create_document(db, "user", data)
            created["users"] += 1

    if db["product"].count_documents({}) == 0:
        category_ids = {}
        for name, description in DEMO_CATEGORIES:
            category = db["category"].find_one({"name": name}) or create_category(db, Category(name=name, description=description))
            category_ids[name] = str(category["_id"])
            created["categories"] += 1
        tag_ids = {}
        for name in DEMO_TAGS:
            tag = db["tag"].find_one({"name": name}) or create_tag(db, Tag(name=name))
            tag_ids[name] = str(tag["_id"])
            created["tags"] += 1

        for name, sku, regular, sale, stock, cats, tags, image in DEMO_PRODUCTS:
            create_product(db, Product(
                name=name,
                sku=sku,
                description=f"{name} from the demo catalog.",
                price=regular,
                regular_price=regular,
                sale_price=sale,
                stock_quantity=stock,
                categories=[category_ids[c] for c in cats],
                tags=[tag_ids[t] for t in tags],
                images=[Image(src=image, name=name, alt=name)],
            ))
            created["products"] += 1

    created["coupons"] = CouponStore(db).seed_defaults()
    logger.info("Seeded %s", created)
    return created
