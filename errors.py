"""Custom exceptions for the shop backend.

Every error carries a WooCommerce-style ``code`` and the HTTP status the
API layer renders it with.
"""


class ShopError(Exception):
    """Base exception for all shop errors."""

    code = "server_error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Not found

class NotFoundError(ShopError):
    code = "resource_not_found"
    status_code = 404


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found")


class CategoryNotFoundError(NotFoundError):
    code = "category_not_found"

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__("Category not found")


class TagNotFoundError(NotFoundError):
    code = "tag_not_found"

    def __init__(self, tag_id: str):
        self.tag_id = tag_id
        super().__init__("Tag not found")


class CartItemNotFoundError(NotFoundError):
    code = "cart_item_not_found"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("Cart item not found")


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order not found")


class CustomerNotFoundError(NotFoundError):
    code = "customer_not_found"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__("Customer not found")


class CouponNotFoundError(NotFoundError):
    code = "coupon_not_found"

    def __init__(self, code_or_id: str):
        self.code_or_id = code_or_id
        super().__init__("Invalid coupon code")


class ReviewNotFoundError(NotFoundError):
    code = "review_not_found"

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__("Review not found")


class WishlistItemNotFoundError(NotFoundError):
    code = "not_in_wishlist"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("Product not found in wishlist")


class ShippingMethodNotFoundError(NotFoundError):
    code = "shipping_method_not_found"

    def __init__(self, method_id: str):
        self.method_id = method_id
        super().__init__("Shipping method not found")


class PaymentMethodNotFoundError(NotFoundError):
    code = "payment_method_not_found"

    def __init__(self, method_id: str):
        self.method_id = method_id
        super().__init__("Payment method not found")


# Availability

class UnavailableError(ShopError):
    code = "not_available"
    status_code = 400


class ProductUnavailableError(UnavailableError):
    code = "product_not_available"

    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"Product {product_name} is not available")


class InsufficientStockError(ShopError):
    code = "insufficient_stock"
    status_code = 400

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {product_name}")


# Duplicates

class AlreadyExistsError(ShopError):
    code = "already_exists"
    status_code = 400


class AlreadyReviewedError(AlreadyExistsError):
    code = "already_reviewed"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("You have already reviewed this product")


class AlreadyInWishlistError(AlreadyExistsError):
    code = "already_in_wishlist"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("Product already in wishlist")


class CouponExistsError(AlreadyExistsError):
    code = "coupon_exists"

    def __init__(self, coupon_code: str):
        self.coupon_code = coupon_code
        super().__init__("Coupon code already exists")


class EmailExistsError(AlreadyExistsError):
    code = "email_exists"

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered")


class DuplicateFieldError(AlreadyExistsError):
    """Raised when a unique index rejects a write."""

    def __init__(self, field: str):
        self.field = field
        self.code = f"{field}_exists"
        super().__init__(f"{field.capitalize()} already exists")


# Coupons

class CouponError(ShopError):
    status_code = 400


class CouponInactiveError(CouponError):
    code = "coupon_inactive"

    def __init__(self, coupon_code: str):
        self.coupon_code = coupon_code
        super().__init__("This coupon is no longer active")


class CouponExpiredError(CouponError):
    code = "coupon_expired"

    def __init__(self, coupon_code: str):
        self.coupon_code = coupon_code
        super().__init__("This coupon has expired")


class CouponLimitReachedError(CouponError):
    code = "coupon_limit_reached"

    def __init__(self, coupon_code: str):
        self.coupon_code = coupon_code
        super().__init__("This coupon has reached its usage limit")


class MinimumAmountNotMetError(CouponError):
    code = "minimum_amount_not_met"

    def __init__(self, minimum: float):
        self.minimum = minimum
        super().__init__(f"Minimum order amount of ${minimum:g} required")


class MaximumAmountExceededError(CouponError):
    code = "maximum_amount_exceeded"

    def __init__(self, maximum: float):
        self.maximum = maximum
        super().__init__(f"This coupon is only valid for orders up to ${maximum:g}")


# Input, auth

class ValidationError(ShopError):
    code = "validation_error"
    status_code = 400


class InvalidOrderStatusError(ValidationError):
    code = "invalid_order_status"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Invalid order status: {status}")


class InvalidPaymentMethodError(ValidationError):
    code = "invalid_payment_method"

    def __init__(self, method_id: str):
        self.method_id = method_id
        super().__init__("Invalid or disabled payment method")


class InvalidPasswordError(ValidationError):
    code = "invalid_password"

    def __init__(self):
        super().__init__("Current password is incorrect")


class SamePasswordError(ValidationError):
    code = "same_password"

    def __init__(self):
        super().__init__("New password must be different from current password")


class UnauthorizedError(ShopError):
    code = "unauthorized"
    status_code = 401


class ForbiddenError(ShopError):
    code = "forbidden"
    status_code = 403
