from pydantic import BaseModel, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional
from email_validator import validate_email, EmailNotValidError
import math
import re
import uuid

from retrade.domain.models import UserType, OrderStatus

PRODUCT_CATEGORIES = [
    "Electronics",
    "Clothing",
    "Furniture",
    "Books",
    "Sports & Outdoors",
    "Home & Garden",
    "Automotive",
    "Other",
]

PRODUCT_TYPES = [
    {"value": "household", "label": "Household", "description": "For general consumer items used in homes"},
    {"value": "industrial", "label": "Industrial", "description": "For products used in commercial, manufacturing, or heavy-duty settings"},
]

PRODUCT_CONDITIONS = [
    {"value": "excellent", "label": "Excellent", "description": "Item is used but well-maintained. Very minor signs of usage, fully functional"},
    {"value": "good", "label": "Good", "description": "Noticeable signs of use (light scratches, minor wear) but still in good working condition"},
    {"value": "fair", "label": "Fair", "description": "Heavily used with visible wear and tear, but functional. May need minor repairs"},
]

SRI_LANKAN_CITIES = [
    "Colombo", "Kandy", "Galle", "Jaffna", "Negombo", "Anuradhapura",
    "Polonnaruwa", "Trincomalee", "Batticaloa", "Ampara", "Kurunegala",
    "Puttalam", "Ratnapura", "Kegalle", "Kalutara", "Matara", "Hambantota",
    "Monaragala", "Badulla", "Nuwara Eliya", "Matale", "Other",
]

MIN_PRICE = 1
MAX_PRICE = 10_000_000

PRODUCT_NAME_PATTERN = re.compile(r"[A-Za-z0-9\s\-]+")
CONTACT_NUMBER_PATTERN = re.compile(r"(\+94|0)[1-9][0-9]{8}")

def _check_email(value: str, message: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError(message)
    return value

# ---------- Accounts ----------

class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None
    user_type: UserType = UserType.buyer

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        if len(v) < 1:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _check_email(v, "Invalid email address").lower()

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _check_email(v, "Invalid email address").lower()

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if len(v) < 1:
            raise ValueError("Password is required")
        return v

class UserRead(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    user_type: UserType
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CurrentUser(BaseModel):
    user_id: uuid.UUID
    name: str
    email: str
    phone: str = ""
    role: UserType

# ---------- Products ----------

class ProductInput(BaseModel):
    name: str
    description: str
    category: str
    product_type: str
    condition: str
    price: float
    location: str
    contact_number: str

    @field_validator("name")
    @classmethod
    def name_rules(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Product name must be at least 3 characters")
        if len(v) > 100:
            raise ValueError("Product name must be less than 100 characters")
        if not PRODUCT_NAME_PATTERN.fullmatch(v):
            raise ValueError("Product name can only contain letters, numbers, spaces, and hyphens")
        return v

    @field_validator("description")
    @classmethod
    def description_rules(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Description must be at least 10 characters")
        if len(v) > 1000:
            raise ValueError("Description must be less than 1000 characters")
        return v

    @field_validator("category")
    @classmethod
    def category_known(cls, v: str) -> str:
        if v not in PRODUCT_CATEGORIES:
            raise ValueError("Please select a valid category")
        return v

    @field_validator("product_type")
    @classmethod
    def product_type_known(cls, v: str) -> str:
        if v not in {t["value"] for t in PRODUCT_TYPES}:
            raise ValueError("Please select a valid product type")
        return v

    @field_validator("condition")
    @classmethod
    def condition_known(cls, v: str) -> str:
        if v not in {c["value"] for c in PRODUCT_CONDITIONS}:
            raise ValueError("Please select a valid condition")
        return v

    @field_validator("price")
    @classmethod
    def price_range(cls, v: float) -> float:
        if math.isnan(v) or v < MIN_PRICE:
            raise ValueError("Price must be at least 1 LKR")
        if v > MAX_PRICE:
            raise ValueError("Price cannot exceed 10,000,000 LKR")
        return v

    @field_validator("location")
    @classmethod
    def location_required(cls, v: str) -> str:
        if len(v) < 1:
            raise ValueError("Please select a location")
        return v

    @field_validator("contact_number")
    @classmethod
    def contact_number_format(cls, v: str) -> str:
        if not CONTACT_NUMBER_PATTERN.fullmatch(v):
            raise ValueError("Please enter a valid Sri Lankan phone number")
        return v

class SellerInfo(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str
    email: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True

class ProductRead(BaseModel):
    id: uuid.UUID
    seller_id: uuid.UUID
    name: str
    description: str
    category: str
    product_type: str
    condition: str
    price: Decimal
    images: list[str] = []
    location: str
    contact_number: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("images", mode="before")
    @classmethod
    def null_images(cls, v):
        return v or []

class ProductListing(BaseModel):
    """Active product as shown to buyers, with its seller."""
    id: uuid.UUID
    name: str
    description: str
    category: str
    product_type: str
    condition: str
    price: Decimal
    images: list[str] = []
    location: str
    contact_number: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    seller: SellerInfo

    class Config:
        from_attributes = True

    @field_validator("images", mode="before")
    @classmethod
    def null_images(cls, v):
        return v or []

class ProductFilters(BaseModel):
    search: Optional[str] = None
    category: list[str] = []
    product_type: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    location: list[str] = []

class ProductsPage(BaseModel):
    products: list[ProductListing]
    total: int
    has_more: bool

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

class SellerProductsPage(BaseModel):
    products: list[ProductRead]
    pagination: Pagination

class SellerStats(BaseModel):
    total_products: int
    active_products: int
    total_value: float

# ---------- Cart ----------

class CartAddRequest(BaseModel):
    product_id: uuid.UUID
    quantity: int = 1

class CartUpdateRequest(BaseModel):
    quantity: int

class CartProduct(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    category: str
    condition: str
    price: Decimal
    images: list[str] = []
    location: str
    seller: SellerInfo

    class Config:
        from_attributes = True

    @field_validator("images", mode="before")
    @classmethod
    def null_images(cls, v):
        return v or []

class CartLine(BaseModel):
    id: uuid.UUID
    quantity: int
    added_at: datetime
    product: CartProduct

    class Config:
        from_attributes = True

class CartSummary(BaseModel):
    items: list[CartLine] = []
    total_items: int = 0
    total_amount: float = 0

# ---------- Orders ----------

class CheckoutRequest(BaseModel):
    buyer_name: str
    buyer_email: str
    buyer_phone: str
    shipping_address: str

    @field_validator("buyer_name")
    @classmethod
    def name_length(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("buyer_email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _check_email(v, "Please enter a valid email address")

    @field_validator("buyer_phone")
    @classmethod
    def phone_length(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("shipping_address")
    @classmethod
    def address_length(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Please enter a complete shipping address")
        return v

class OrderItemProduct(BaseModel):
    id: uuid.UUID
    images: list[str] = []
    category: str
    condition: str
    location: str

    class Config:
        from_attributes = True

    @field_validator("images", mode="before")
    @classmethod
    def null_images(cls, v):
        return v or []

class OrderItemRead(BaseModel):
    id: uuid.UUID
    quantity: int
    price: Decimal
    product_name: str
    # None once the seller has deleted the product
    product: Optional[OrderItemProduct] = None

    class Config:
        from_attributes = True

class OrderRead(BaseModel):
    id: uuid.UUID
    order_number: str
    total_amount: Decimal
    status: OrderStatus
    buyer_name: str
    buyer_email: str
    buyer_phone: str
    shipping_address: str
    created_at: datetime
    items: list[OrderItemRead] = []

    class Config:
        from_attributes = True

class OrderListEntry(BaseModel):
    id: uuid.UUID
    order_number: str
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime

    class Config:
        from_attributes = True

class OrdersPage(BaseModel):
    orders: list[OrderListEntry]
    total: int
    has_more: bool

class OrderTotals(BaseModel):
    total_items: int
    subtotal: float
    delivery_fee: float = 0
    total: float

class OrderSummary(BaseModel):
    order: OrderRead
    summary: OrderTotals

class OrderStats(BaseModel):
    total_orders: int = 0
    total_spent: float = 0
    pending_orders: int = 0
    completed_orders: int = 0

class PlacedOrder(BaseModel):
    success: bool = True
    order_id: uuid.UUID
    order_number: str
    message: str = "Order placed successfully"
