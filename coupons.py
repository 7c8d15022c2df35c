"""
Coupon store and validator.

``evaluate_coupon`` is a pure rule check over a single coupon document.
Validation never consumes usage; ``apply_coupon`` is a separate call that
bumps ``usage_count`` with an atomic ``$inc`` so concurrent applications
across processes are all counted.
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database

from database import as_utc, create_document, paginate, parse_object_id, utcnow
from errors import (
    CouponExistsError,
    CouponExpiredError,
    CouponInactiveError,
    CouponLimitReachedError,
    CouponNotFoundError,
    MaximumAmountExceededError,
    MinimumAmountNotMetError,
)
from logger import get_logger
from schemas import Coupon, CouponUpdate

logger = get_logger("coupons")

DEFAULT_COUPONS = [
    Coupon(
        code="WELCOME10",
        type="percent",
        amount=10,
        description="10% off for new customers",
        expiry_date=datetime(2026, 12, 31, tzinfo=timezone.utc),
    ),
    Coupon(
        code="SAVE20",
        type="fixed",
        amount=20,
        description="$20 off orders over $100",
        minimum_amount=100,
        usage_limit=100,
        expiry_date=datetime(2026, 6, 30, tzinfo=timezone.utc),
    ),
    Coupon(
        code="FREESHIP",
        type="free_shipping",
        amount=0,
        description="Free shipping on all orders",
        minimum_amount=50,
        expiry_date=datetime(2026, 12, 31, tzinfo=timezone.utc),
    ),
]


class CouponStore:
    """Coupons persisted in the ``coupon`` collection."""

    def __init__(self, db: Database):
        self.collection = db["coupon"]

    def get(self, coupon_id: str) -> dict:
        oid = parse_object_id(coupon_id)
        coupon = self.collection.find_one({"_id": oid}) if oid else None
        if not coupon:
            raise CouponNotFoundError(coupon_id)
        return coupon

    def find_by_code(self, code: str) -> Optional[dict]:
        # codes are stored uppercase, lookups are case-insensitive
        return self.collection.find_one({"code": code.strip().upper()})

    def list(
        self,
        page: int = 1,
        per_page: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[dict], int, int]:
        query: Dict[str, Any] = {}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"code": pattern}, {"description": pattern}]
        if status == "active":
            query["is_active"] = True
        elif status == "inactive":
            query["is_active"] = False

        total = self.collection.count_documents(query)
        cursor, limit = paginate(self.collection.find(query).sort("code", ASCENDING), page, per_page)
        return list(cursor), total, limit

    def put(self, coupon: Coupon) -> dict:
        if self.find_by_code(coupon.code):
            raise CouponExistsError(coupon.code)
        doc = coupon.model_dump()
        doc["usage_count"] = 0
        coupon_id = create_document(self.collection.database, "coupon", doc)
        logger.info("Created coupon %s", coupon.code)
        return self.get(coupon_id)

    def update(self, coupon_id: str, data: CouponUpdate) -> dict:
        coupon = self.get(coupon_id)
        updates = data.model_dump(exclude_unset=True)
        updates["updated_at"] = utcnow()
        return self.collection.find_one_and_update(
            {"_id": coupon["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )

    def delete(self, coupon_id: str) -> dict:
        coupon = self.get(coupon_id)
        self.collection.delete_one({"_id": coupon["_id"]})
        return coupon

    def increment_usage(self, coupon_id: str) -> int:
        oid = parse_object_id(coupon_id)
        coupon = self.collection.find_one_and_update(
            {"_id": oid},
            {"$inc": {"usage_count": 1}},
            return_document=ReturnDocument.AFTER,
        ) if oid else None
        if not coupon:
            raise CouponNotFoundError(coupon_id)
        return coupon["usage_count"]

    def seed_defaults(self) -> int:
        created = 0
        for coupon in DEFAULT_COUPONS:
            if not self.find_by_code(coupon.code):
                self.put(coupon)
                created += 1
        return created


def evaluate_coupon(coupon: dict, cart_total: float, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Check a coupon against a cart total and compute its discount.

    Raises one of the coupon errors when a rule fails; checks run in the
    order active, expiry, usage limit, minimum, maximum.
    """
    now = now or utcnow()
    code = coupon["code"]

    if not coupon.get("is_active", True):
        raise CouponInactiveError(code)

    expiry = coupon.get("expiry_date")
    if expiry and as_utc(expiry) < now:
        raise CouponExpiredError(code)

    usage_limit = coupon.get("usage_limit")
    if usage_limit and coupon.get("usage_count", 0) >= usage_limit:
        raise CouponLimitReachedError(code)

    minimum = coupon.get("minimum_amount")
    if minimum and cart_total < minimum:
        raise MinimumAmountNotMetError(minimum)

    maximum = coupon.get("maximum_amount")
    if maximum and cart_total > maximum:
        raise MaximumAmountExceededError(maximum)

    discount = 0.0
    if coupon["type"] == "percent":
        discount = cart_total * coupon["amount"] / 100
    elif coupon["type"] == "fixed":
        discount = coupon["amount"]

    return {"discount": round(discount, 2), "free_shipping": coupon["type"] == "free_shipping"}


def validate_coupon(store: CouponStore, code: str, cart_total: float, now: Optional[datetime] = None) -> Dict[str, Any]:
    coupon = store.find_by_code(code)
    if not coupon:
        raise CouponNotFoundError(code)
    result = evaluate_coupon(coupon, cart_total, now)
    return {
        "valid": True,
        "coupon": {
            "id": str(coupon["_id"]),
            "code": coupon["code"],
            "type": coupon["type"],
            "description": coupon.get("description", ""),
        },
        **result,
    }


def apply_coupon(store: CouponStore, coupon_id: str) -> int:
    usage_count = store.increment_usage(coupon_id)
    logger.info("Coupon %s applied, usage count %d", coupon_id, usage_count)
    return usage_count
