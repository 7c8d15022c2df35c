"""
Database and request schemas for the shop API

Pydantic models that map to a MongoDB collection use the lowercase class
name as collection name (product, category, tag, coupon, review, user).
The remaining models are request bodies for the /wp-json/wc/v3 routes.
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

ProductType = Literal["simple", "variable", "grouped", "external"]
ProductStatus = Literal["publish", "draft", "pending", "private"]
StockStatus = Literal["instock", "outofstock", "onbackorder"]
OrderStatus = Literal["pending", "processing", "on-hold", "completed", "cancelled", "refunded", "failed"]
CouponType = Literal["percent", "fixed", "free_shipping"]
ReviewStatus = Literal["approved", "hold", "spam", "trash"]
Role = Literal["customer", "admin", "vendor"]


# Users

class BillingAddress(BaseModel):
    first_name: str
    last_name: str
    company: Optional[str] = None
    address_1: str
    address_2: Optional[str] = None
    city: str
    state: str
    postcode: str
    country: str
    email: EmailStr
    phone: str


class ShippingAddress(BaseModel):
    first_name: str
    last_name: str
    company: Optional[str] = None
    address_1: str
    address_2: Optional[str] = None
    city: str
    state: str
    postcode: str
    country: str


class User(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="Hashed password")
    first_name: str = ""
    last_name: str = ""
    role: Role = "customer"
    avatar_url: Optional[str] = Field(None)
    billing: Dict[str, Optional[str]] = Field(default_factory=dict)
    shipping: Dict[str, Optional[str]] = Field(default_factory=dict)
    is_paying_customer: bool = False
    orders_count: int = 0
    total_spent: float = 0.0


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = ""
    last_name: str = ""


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, pattern=r"^.*\d.*$", description="Must contain a digit")


class CustomerUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    billing: Optional[Dict[str, Optional[str]]] = None
    shipping: Optional[Dict[str, Optional[str]]] = None


# Catalog

class Image(BaseModel):
    id: Optional[str] = None
    src: str
    name: Optional[str] = None
    alt: Optional[str] = None
    position: int = 0


class Product(BaseModel):
    name: str = Field(..., max_length=200)
    slug: Optional[str] = Field(None, description="Derived from name when omitted")
    description: str = ""
    short_description: str = Field("", max_length=500)
    sku: Optional[str] = None
    price: float = Field(..., ge=0)
    regular_price: Optional[float] = Field(None, ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    type: ProductType = "simple"
    status: ProductStatus = "publish"
    featured: bool = False
    purchasable: bool = True
    manage_stock: bool = True
    stock_quantity: int = 0
    stock_status: StockStatus = "instock"
    categories: List[str] = Field(default_factory=list, description="Category ids")
    tags: List[str] = Field(default_factory=list, description="Tag ids")
    images: List[Image] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    slug: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    sku: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    regular_price: Optional[float] = Field(None, ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    type: Optional[ProductType] = None
    status: Optional[ProductStatus] = None
    featured: Optional[bool] = None
    purchasable: Optional[bool] = None
    manage_stock: Optional[bool] = None
    stock_quantity: Optional[int] = None
    stock_status: Optional[StockStatus] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    images: Optional[List[Image]] = None


class Category(BaseModel):
    name: str = Field(..., max_length=100)
    slug: Optional[str] = None
    parent: Optional[str] = None
    description: str = ""
    display: Literal["default", "products", "subcategories", "both"] = "default"
    image: Optional[Image] = None
    menu_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    slug: Optional[str] = None
    parent: Optional[str] = None
    description: Optional[str] = None
    display: Optional[Literal["default", "products", "subcategories", "both"]] = None
    image: Optional[Image] = None
    menu_order: Optional[int] = None


class Tag(BaseModel):
    name: str
    slug: Optional[str] = None
    description: str = ""


class TagUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None


# Cart

class CartAddRequest(BaseModel):
    id: str = Field(..., description="Product id")
    quantity: int = Field(1, ge=1)
    variation: Optional[Dict[str, str]] = None


class CartUpdateRequest(BaseModel):
    key: str = Field(..., description="Cart item id")
    quantity: int


class CartRemoveRequest(BaseModel):
    key: str


# Orders

class LineItemIn(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class ShippingLineIn(BaseModel):
    method_id: str
    method_title: str
    total: float = Field(0.0, ge=0)


class OrderCreateRequest(BaseModel):
    payment_method: str
    payment_method_title: str
    set_paid: bool = False
    billing: BillingAddress
    shipping: ShippingAddress
    line_items: List[LineItemIn] = Field(..., min_length=1)
    shipping_lines: List[ShippingLineIn] = Field(default_factory=list)
    customer_note: Optional[str] = None


class OrderUpdateRequest(BaseModel):
    status: Optional[OrderStatus] = None
    status_note: Optional[str] = None
    billing: Optional[BillingAddress] = None
    shipping: Optional[ShippingAddress] = None
    customer_note: Optional[str] = None


class OrderNoteRequest(BaseModel):
    note: str = Field(..., min_length=1)
    customer_note: bool = False


# Coupons

class Coupon(BaseModel):
    code: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Z0-9]+$")
    type: CouponType
    amount: float = Field(..., ge=0)
    description: str = ""
    minimum_amount: float = Field(0.0, ge=0)
    maximum_amount: Optional[float] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    usage_count: int = 0
    expiry_date: Optional[datetime] = None
    is_active: bool = True


class CouponUpdate(BaseModel):
    type: Optional[CouponType] = None
    amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    minimum_amount: Optional[float] = Field(None, ge=0)
    maximum_amount: Optional[float] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    expiry_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    cart_total: float = Field(..., ge=0)


# Reviews, wishlist

class ReviewCreate(BaseModel):
    product_id: str
    review: str = Field(..., min_length=1, max_length=2000)
    rating: int = Field(..., ge=1, le=5)
    status: ReviewStatus = "hold"


class ReviewStatusUpdate(BaseModel):
    status: ReviewStatus


class WishlistAddRequest(BaseModel):
    product_id: str


# Shipping, payment

class ShippingCalculateRequest(BaseModel):
    method_id: str
    destination: Optional[Dict[str, str]] = None
    items: List[Dict] = Field(default_factory=list)


class PaymentProcessRequest(BaseModel):
    order_id: str
    payment_method_id: str
    payment_details: Optional[Dict[str, str]] = None


class CardValidateRequest(BaseModel):
    card_number: str = ""
    expiry_month: Optional[int] = None
    expiry_year: Optional[int] = None
    cvv: str = ""
