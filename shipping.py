"""Static shipping methods and cost calculation."""
from typing import List, Optional

from errors import ShippingMethodNotFoundError

SHIPPING_METHODS = [
    {
        "id": "flat_rate",
        "title": "Flat Rate",
        "cost": "10.00",
        "description": "Standard shipping - 5-7 business days",
        "enabled": True,
    },
    {
        "id": "free_shipping",
        "title": "Free Shipping",
        "cost": "0.00",
        "description": "Free standard shipping - 7-10 business days",
        "enabled": True,
        "min_order_amount": 100,
    },
    {
        "id": "express",
        "title": "Express Shipping",
        "cost": "25.00",
        "description": "Express delivery - 2-3 business days",
        "enabled": True,
    },
    {
        "id": "overnight",
        "title": "Overnight Shipping",
        "cost": "50.00",
        "description": "Next business day delivery",
        "enabled": True,
    },
]

ESTIMATED_DAYS = {"overnight": 1, "express": 3, "free_shipping": 9}
PER_ITEM_SURCHARGE = {"express": 1.0, "overnight": 1.0}


def available_methods(cart_total: Optional[float] = None) -> List[dict]:
    methods = [m for m in SHIPPING_METHODS if m["enabled"]]
    if cart_total is not None:
        methods = [m for m in methods if cart_total >= m.get("min_order_amount", 0)]
    return methods


def get_method(method_id: str) -> dict:
    for method in SHIPPING_METHODS:
        if method["id"] == method_id:
            return method
    raise ShippingMethodNotFoundError(method_id)


def calculate_shipping(method_id: str, items: Optional[list] = None) -> dict:
    method = get_method(method_id)
    cost = float(method["cost"]) + PER_ITEM_SURCHARGE.get(method_id, 0.0) * len(items or [])
    return {
        "method": method["title"],
        "cost": f"{cost:.2f}",
        "estimated_days": ESTIMATED_DAYS.get(method_id, 6),
    }


def shipping_zones() -> List[dict]:
    enabled = [m for m in SHIPPING_METHODS if m["enabled"]]
    return [
        {"id": 1, "name": "United States", "regions": ["US"], "methods": enabled},
        {"id": 2, "name": "International", "regions": ["*"], "methods": [m for m in enabled if m["id"] != "overnight"]},
    ]
