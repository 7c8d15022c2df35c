"""
Order engine.

Orders are snapshots: line item name/price/quantity are copied from the
product at checkout and never re-read from the catalog afterwards. After
creation an order only changes through status transitions, notes and the
admin address/note update.

Stock and sales counters are adjusted per line item as checkout walks the
request. There is no transaction around the whole checkout: if a later
line fails, the adjustments already made for earlier lines stay applied,
and two checkouts racing for the last unit can both succeed.
"""
import secrets
import string
import time
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from cart import clear_user_cart, money
from catalog import derive_product_fields, get_product, is_purchasable
from config import CURRENCY
from database import create_document, paginate, parse_object_id, utcnow
from errors import (
    InsufficientStockError,
    InvalidOrderStatusError,
    OrderNotFoundError,
    ProductUnavailableError,
)
from logger import get_logger

logger = get_logger("orders")

ORDER_STATUSES = ("pending", "processing", "on-hold", "completed", "cancelled", "refunded", "failed")

_KEY_ALPHABET = string.ascii_lowercase + string.digits


def generate_order_key() -> str:
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(9))
    return f"wc_order_{int(time.time() * 1000)}_{suffix}"


def calculate_totals(order: dict) -> Dict[str, float]:
    subtotal = sum(i["subtotal"] for i in order["line_items"])
    subtotal_tax = sum(i.get("subtotal_tax", 0.0) for i in order["line_items"])
    shipping = sum(l["total"] for l in order.get("shipping_lines", []))
    shipping_tax = sum(l.get("total_tax", 0.0) for l in order.get("shipping_lines", []))
    discount = sum(c.get("discount", 0.0) for c in order.get("coupon_lines", []))
    discount_tax = sum(c.get("discount_tax", 0.0) for c in order.get("coupon_lines", []))

    total_tax = subtotal_tax + shipping_tax - discount_tax
    return {
        "subtotal": round(subtotal, 2),
        "subtotal_tax": round(subtotal_tax, 2),
        "shipping": round(shipping, 2),
        "shipping_tax": round(shipping_tax, 2),
        "discount": round(discount, 2),
        "discount_tax": round(discount_tax, 2),
        "total": round(subtotal + shipping - discount + total_tax, 2),
        "total_tax": round(total_tax, 2),
    }


def _note(note: str, added_by: str = "system", customer_note: bool = False) -> dict:
    return {"note": note, "added_by": added_by, "customer_note": customer_note, "created_at": utcnow()}


def _adjust_stock(db: Database, product: dict, quantity: int) -> dict:
    inc = {"total_sales": quantity}
    if product.get("manage_stock"):
        inc["stock_quantity"] = -quantity
    updated = db["product"].find_one_and_update(
        {"_id": product["_id"]},
        {"$inc": inc, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    stock_status = derive_product_fields(dict(updated))["stock_status"]
    if stock_status != updated.get("stock_status"):
        db["product"].update_one({"_id": updated["_id"]}, {"$set": {"stock_status": stock_status}})
        updated["stock_status"] = stock_status
    logger.debug("Product %s stock now %s", updated["_id"], updated.get("stock_quantity"))
    return updated


def create_order(
    db: Database,
    customer_id: str,
    payment_method: str,
    payment_method_title: str,
    billing: dict,
    shipping: dict,
    line_items: List[dict],
    shipping_lines: Optional[List[dict]] = None,
    customer_note: Optional[str] = None,
    set_paid: bool = False,
) -> dict:
    order_items = []
    subtotal = 0.0

    for line in line_items:
        quantity = line["quantity"]
        product = get_product(db, line["product_id"])

        if not is_purchasable(product):
            raise ProductUnavailableError(product["name"])
        if product.get("manage_stock") and product.get("stock_quantity", 0) < quantity:
            raise InsufficientStockError(product["name"], quantity, product.get("stock_quantity", 0))

        item_subtotal = round(product["price"] * quantity, 2)
        subtotal += item_subtotal
        order_items.append({
            "id": len(order_items) + 1,
            "product": product["_id"],
            "name": product["name"],
            "quantity": quantity,
            "price": product["price"],
            "subtotal": item_subtotal,
            "subtotal_tax": 0.0,
            "total": item_subtotal,
            "total_tax": 0.0,
        })
        _adjust_stock(db, product, quantity)

    order_shipping_lines = [
        {
            "id": n,
            "method_id": line["method_id"],
            "method_title": line["method_title"],
            "total": float(line.get("total") or 0),
            "total_tax": 0.0,
        }
        for n, line in enumerate(shipping_lines or [], start=1)
    ]

    order = {
        "order_key": generate_order_key(),
        "customer": parse_object_id(customer_id),
        "status": "pending",
        "currency": CURRENCY,
        "payment_method": payment_method,
        "payment_method_title": payment_method_title,
        "transaction_id": None,
        "set_paid": set_paid,
        "billing": billing,
        "shipping": shipping,
        "line_items": order_items,
        "shipping_lines": order_shipping_lines,
        "coupon_lines": [],
        "fee_lines": [],
        "tax_lines": [],
        "customer_note": customer_note,
        "order_notes": [],
        "date_paid": None,
        "date_completed": None,
    }
    order["totals"] = calculate_totals(order)

    if set_paid:
        order["date_paid"] = utcnow()
        order["order_notes"].append(_note(f"Order paid via {payment_method_title}"))

    order_id = create_document(db, "order", order)
    order = db["order"].find_one({"_id": parse_object_id(order_id)})
    total = order["totals"]["total"]
    logger.info("Created order %s for customer %s, total %s", order_id, customer_id, money(total))

    db["user"].update_one(
        {"_id": parse_object_id(customer_id)},
        {"$inc": {"orders_count": 1, "total_spent": total}, "$set": {"is_paying_customer": True}},
    )
    clear_user_cart(db, customer_id)
    return order


def get_order(db: Database, order_id: str) -> dict:
    oid = parse_object_id(order_id)
    order = db["order"].find_one({"_id": oid}) if oid else None
    if not order:
        raise OrderNotFoundError(order_id)
    return order


def list_orders(
    db: Database,
    customer_id: Optional[str] = None,
    status: Optional[str] = None,
    orderby: str = "date",
    order: str = "desc",
    page: int = 1,
    per_page: int = 10,
) -> Tuple[List[dict], int, int]:
    query: Dict[str, Any] = {}
    if customer_id:
        query["customer"] = parse_object_id(customer_id)
    if status:
        query["status"] = status

    sort_field = "totals.total" if orderby == "total" else "created_at"
    direction = ASCENDING if order == "asc" else DESCENDING

    total = db["order"].count_documents(query)
    cursor, limit = paginate(db["order"].find(query).sort(sort_field, direction), page, per_page)
    return list(cursor), total, limit


def add_note(db: Database, order: dict, note: str, added_by: str = "system", customer_note: bool = False) -> dict:
    entry = _note(note, added_by, customer_note)
    order.setdefault("order_notes", []).append(entry)
    db["order"].update_one({"_id": order["_id"]}, {"$push": {"order_notes": entry}, "$set": {"updated_at": utcnow()}})
    return entry


def update_status(db: Database, order: dict, new_status: str, note: Optional[str] = None) -> dict:
    if new_status not in ORDER_STATUSES:
        raise InvalidOrderStatusError(new_status)

    old_status = order["status"]
    now = utcnow()
    updates: Dict[str, Any] = {"status": new_status, "updated_at": now}
    if new_status == "completed" and not order.get("date_completed"):
        updates["date_completed"] = now
    if order.get("set_paid") and not order.get("date_paid"):
        updates["date_paid"] = now

    text = f"Order status changed from {old_status} to {new_status}."
    if note:
        text = f"{text} {note}"
    entry = _note(text)

    db["order"].update_one({"_id": order["_id"]}, {"$set": updates, "$push": {"order_notes": entry}})
    order.update(updates)
    order.setdefault("order_notes", []).append(entry)
    logger.info("Order %s: %s -> %s", order["_id"], old_status, new_status)
    return order


def update_order(
    db: Database,
    order: dict,
    status: Optional[str] = None,
    status_note: Optional[str] = None,
    billing: Optional[dict] = None,
    shipping: Optional[dict] = None,
    customer_note: Optional[str] = None,
) -> dict:
    if status and status != order["status"]:
        update_status(db, order, status, status_note)

    updates = {}
    if billing:
        updates["billing"] = billing
    if shipping:
        updates["shipping"] = shipping
    if customer_note:
        updates["customer_note"] = customer_note
    if updates:
        updates["updated_at"] = utcnow()
        db["order"].update_one({"_id": order["_id"]}, {"$set": updates})
        order.update(updates)
    return order


def delete_order(db: Database, order_id: str) -> dict:
    order = get_order(db, order_id)
    db["order"].delete_one({"_id": order["_id"]})
    logger.info("Deleted order %s", order_id)
    return order


def order_response(order: dict, detail: bool = False) -> dict:
    response = {
        "id": str(order["_id"]),
        "order_key": order["order_key"],
        "status": order["status"],
        "currency": order["currency"],
        "payment_method": order["payment_method"],
        "payment_method_title": order["payment_method_title"],
        "transaction_id": order.get("transaction_id"),
        "total": money(order["totals"]["total"]),
        "totals": {k: money(v) for k, v in order["totals"].items()},
        "date_created": order.get("created_at"),
        "date_modified": order.get("updated_at"),
        "customer_id": str(order["customer"]),
        "billing": order["billing"],
        "shipping": order["shipping"],
        "line_items": [
            {
                "id": item["id"],
                "name": item["name"],
                "product_id": str(item["product"]),
                "quantity": item["quantity"],
                "price": money(item["price"]),
                "subtotal": money(item["subtotal"]),
                "total": money(item["total"]),
            }
            for item in order["line_items"]
        ],
        "shipping_lines": [
            {
                "id": line["id"],
                "method_id": line["method_id"],
                "method_title": line["method_title"],
                "total": money(line["total"]),
            }
            for line in order.get("shipping_lines", [])
        ],
        "customer_note": order.get("customer_note"),
    }
    if detail:
        response["date_paid"] = order.get("date_paid")
        response["date_completed"] = order.get("date_completed")
        response["order_notes"] = order.get("order_notes", [])
    return response