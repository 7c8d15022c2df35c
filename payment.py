"""
Payment method catalogue and gateway stubs.

No real gateway is called. ``process_payment`` records a generated
transaction id on the order and moves it along the normal status path.
"""
import re
import secrets
import string
import time
from datetime import datetime
from typing import List, Optional

from pymongo.database import Database

from config import ENVIRONMENT
from database import utcnow
from errors import InvalidPaymentMethodError, PaymentMethodNotFoundError
from logger import get_logger
from orders import get_order, update_status

logger = get_logger("payment")

PAYMENT_METHODS = [
    {
        "id": "cod",
        "title": "Cash on Delivery",
        "description": "Pay with cash when your order is delivered",
        "enabled": True,
        "icon": "cash",
    },
    {
        "id": "bacs",
        "title": "Direct Bank Transfer",
        "description": "Make payment directly into our bank account",
        "enabled": True,
        "icon": "bank",
        "instructions": "Please use your Order ID as the payment reference.",
    },
    {
        "id": "card",
        "title": "Credit/Debit Card",
        "description": "Pay securely with your credit or debit card",
        "enabled": True,
        "icon": "credit-card",
        "supported_cards": ["visa", "mastercard", "amex"],
    },
    {
        "id": "paypal",
        "title": "PayPal",
        "description": "Pay via PayPal; you can pay with your credit card if you don't have a PayPal account",
        "enabled": True,
        "icon": "paypal",
    },
    {
        "id": "stripe",
        "title": "Stripe",
        "description": "Pay securely using Stripe payment gateway",
        "enabled": True,
        "icon": "stripe",
        "supported_cards": ["visa", "mastercard", "amex", "discover"],
    },
    {
        "id": "wallet",
        "title": "Digital Wallet",
        "description": "Pay using Apple Pay, Google Pay, or other digital wallets",
        "enabled": True,
        "icon": "wallet",
        "supported_wallets": ["apple_pay", "google_pay"],
    },
]

PAYMENT_GATEWAYS = [
    {"id": "stripe", "name": "Stripe", "status": "active", "supported_countries": ["US", "CA", "GB", "EU"]},
    {"id": "paypal", "name": "PayPal", "status": "active", "supported_countries": ["*"]},
]

CARD_BRANDS = [
    ("visa", r"^4"),
    ("mastercard", r"^5[1-5]"),
    ("amex", r"^3[47]"),
    ("discover", r"^6(?:011|5)"),
]


def available_methods() -> List[dict]:
    return [m for m in PAYMENT_METHODS if m["enabled"]]


def gateways(environment: str = ENVIRONMENT) -> List[dict]:
    test_mode = environment == "development"
    return [{**gateway, "test_mode": test_mode} for gateway in PAYMENT_GATEWAYS]


def get_method(method_id: str) -> dict:
    for method in PAYMENT_METHODS:
        if method["id"] == method_id:
            return method
    raise PaymentMethodNotFoundError(method_id)


def generate_transaction_id() -> str:
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    return f"txn_{int(time.time() * 1000)}_{suffix}"


def process_payment(db: Database, order_id: str, method_id: str) -> dict:
    method = next((m for m in PAYMENT_METHODS if m["id"] == method_id), None)
    if not method or not method["enabled"]:
        raise InvalidPaymentMethodError(method_id)

    order = get_order(db, order_id)
    transaction_id = generate_transaction_id()
    db["order"].update_one(
        {"_id": order["_id"]},
        {"$set": {"transaction_id": transaction_id, "set_paid": True, "updated_at": utcnow()}},
    )
    order["transaction_id"] = transaction_id
    order["set_paid"] = True

    if order["status"] == "pending":
        update_status(db, order, "processing", f"Payment received via {method['title']} ({transaction_id}).")
    logger.info("Payment for order %s processed via %s", order_id, method_id)
    return {
        "success": True,
        "message": "Payment processed successfully",
        "transaction_id": transaction_id,
        "payment_method": method["title"],
        "status": "completed",
        "order_status": order["status"],
    }


def detect_card_brand(card_number: str) -> str:
    for brand, pattern in CARD_BRANDS:
        if re.match(pattern, card_number):
            return brand
    return "unknown"


def validate_card(card_number: str, expiry_month: Optional[int], expiry_year: Optional[int], cvv: str, today: Optional[datetime] = None) -> List[str]:
    """Return a list of problems with the card details, empty when valid."""
    today = today or utcnow()
    number = re.sub(r"\s", "", card_number or "")
    errors = []
    if len(number) < 13:
        errors.append("Invalid card number")
    if not expiry_month or not 1 <= expiry_month <= 12:
        errors.append("Invalid expiry month")
    if not expiry_year or expiry_year < today.year:
        errors.append("Card has expired")
    if not cvv or len(cvv) < 3:
        errors.append("Invalid CVV")
    return errors
