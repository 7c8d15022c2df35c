"""Product reviews and rating aggregation."""
from typing import Any, Dict, List, Optional, Tuple

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from catalog import get_product
from database import create_document, paginate, parse_object_id, utcnow
from errors import AlreadyReviewedError, ReviewNotFoundError
from logger import get_logger

logger = get_logger("reviews")


def recalculate_rating(db: Database, product_id) -> Dict[str, Any]:
    """Recompute a product's average_rating and rating_count from approved reviews."""
    product_oid = parse_object_id(product_id)
    ratings = [r["rating"] for r in db["review"].find({"product": product_oid, "status": "approved"}, {"rating": 1})]
    if ratings:
        stats = {"average_rating": round(sum(ratings) / len(ratings), 1), "rating_count": len(ratings)}
    else:
        stats = {"average_rating": 0, "rating_count": 0}
    db["product"].update_one({"_id": product_oid}, {"$set": stats})
    logger.debug("Product %s rating %s over %d reviews", product_id, stats["average_rating"], stats["rating_count"])
    return stats


def get_review(db: Database, review_id: str) -> dict:
    oid = parse_object_id(review_id)
    review = db["review"].find_one({"_id": oid}) if oid else None
    if not review:
        raise ReviewNotFoundError(review_id)
    return review


def list_reviews(
    db: Database,
    product_id: Optional[str] = None,
    status: str = "approved",
    page: int = 1,
    per_page: int = 10,
) -> Tuple[List[dict], int, int]:
    query: Dict[str, Any] = {"status": status}
    if product_id:
        query["product"] = parse_object_id(product_id)
    total = db["review"].count_documents(query)
    cursor, limit = paginate(db["review"].find(query).sort("created_at", DESCENDING), page, per_page)
    return list(cursor), total, limit


def create_review(db: Database, customer: dict, product_id: str, review: str, rating: int, status: str = "hold") -> dict:
    product = get_product(db, product_id)
    if db["review"].find_one({"customer": customer["_id"], "product": product["_id"]}):
        raise AlreadyReviewedError(product_id)

    reviewer = " ".join(p for p in (customer.get("first_name"), customer.get("last_name")) if p)
    doc = {
        "product": product["_id"],
        "customer": customer["_id"],
        "reviewer": reviewer or customer.get("username"),
        "reviewer_email": customer.get("email"),
        "review": review,
        "rating": rating,
        "status": status,
        "verified": False,
    }
    try:
        review_id = create_document(db, "review", doc)
    except DuplicateKeyError:
        raise AlreadyReviewedError(product_id)

    recalculate_rating(db, product["_id"])
    return get_review(db, review_id)


def update_review_status(db: Database, review_id: str, status: str) -> dict:
    review = get_review(db, review_id)
    db["review"].update_one({"_id": review["_id"]}, {"$set": {"status": status, "updated_at": utcnow()}})
    review["status"] = status
    recalculate_rating(db, review["product"])
    return review


def delete_review(db: Database, review_id: str) -> dict:
    review = get_review(db, review_id)
    db["review"].delete_one({"_id": review["_id"]})
    recalculate_rating(db, review["product"])
    return review


def review_response(review: dict) -> dict:
    return {
        "id": str(review["_id"]),
        "date_created": review.get("created_at"),
        "product_id": str(review["product"]),
        "status": review["status"],
        "reviewer": review.get("reviewer"),
        "reviewer_email": review.get("reviewer_email"),
        "review": review["review"],
        "rating": review["rating"],
        "verified": review.get("verified", False),
        "customer_id": str(review["customer"]),
    }
