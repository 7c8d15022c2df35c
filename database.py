"""
MongoDB access for the shop backend.

Exposes a module-level ``db`` handle (``None`` when DATABASE_URL /
DATABASE_NAME are not set) plus the small document helpers the engines
share. Collection names are the lowercase singular entity name.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL
from errors import ShopError
from logger import get_logger

logger = get_logger("database")

db: Optional[Database] = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL, tz_aware=True)
    db = _client[DATABASE_NAME]
    logger.info("Connected to MongoDB database %s", DATABASE_NAME)
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set, database disabled")


def get_db() -> Database:
    """FastAPI dependency returning the configured database."""
    if db is None:
        raise ShopError("Database not configured")
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Mongo hands back naive datetimes unless the client is tz_aware."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if value is None or not ObjectId.is_valid(str(value)):
        return None
    return ObjectId(str(value))


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    inserted_id = database[collection_name].insert_one(doc).inserted_id
    return str(inserted_id)


def paginate(cursor, page: int, per_page: int, max_per_page: int = 100):
    limit = min(per_page, max_per_page)
    return cursor.skip((page - 1) * limit).limit(limit), limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def serialize_doc(doc: Any) -> Any:
    """Make a Mongo document JSON-safe: ``_id`` -> ``id``, ObjectIds to str, datetimes to ISO."""
    if isinstance(doc, dict):
        out = {}
        for k, v in doc.items():
            if k == "_id":
                out["id"] = str(v)
            else:
                out[k] = serialize_doc(v)
        return out
    if isinstance(doc, list):
        return [serialize_doc(v) for v in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return as_utc(doc).isoformat()
    return doc


def ensure_indexes(database: Database) -> None:
    database["user"].create_index("email", unique=True)
    database["product"].create_index("slug", unique=True)
    database["product"].create_index("sku", unique=True, sparse=True)
    database["product"].create_index([("created_at", DESCENDING)])
    database["category"].create_index("name", unique=True)
    database["category"].create_index("slug", unique=True)
    database["tag"].create_index("name", unique=True)
    database["cart"].create_index("user", unique=True)
    # TTL: expires_at holds the absolute expiry, so zero extra seconds
    database["cart"].create_index("expires_at", expireAfterSeconds=0)
    database["order"].create_index("order_key", unique=True)
    database["order"].create_index([("customer", ASCENDING), ("created_at", DESCENDING)])
    database["review"].create_index([("customer", ASCENDING), ("product", ASCENDING)], unique=True)
    database["wishlist"].create_index([("user", ASCENDING), ("product", ASCENDING)], unique=True)
    database["coupon"].create_index("code", unique=True)
    logger.debug("Indexes ensured")
