# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal
from datetime import datetime


class UserCreate(BaseModel):
    """Schema for creating a user."""

    id: int = Field(..., gt=0, description="User ID (must be > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: str = Field(..., min_length=3, max_length=254, description="Email address")
    role: Literal["user", "admin"] = "user"


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    """Catalog entry (response)."""

    id: int
    name: str
    description: str
    image_url: str
    category: str
    price: float
    effective_price: float
    stock: int
    discount: float
    is_featured: bool


MAX_QUANTITY = 10_000
MAX_ID = 2**31 - 1


class ItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, le=MAX_ID, description="Product ID (must be > 0)")
    quantity: int = Field(1, gt=0, le=MAX_QUANTITY, description="Quantity (must be > 0)")


class QuantityIn(BaseModel):
    """Schema for overwriting a line quantity; 0 or less removes the line."""

    quantity: int = Field(..., le=MAX_QUANTITY)


class ClientItemIn(BaseModel):
    product_id: int = Field(..., gt=0, le=MAX_ID)
    quantity: int = Field(..., le=MAX_QUANTITY)


class SyncIn(BaseModel):
    """Client-local cart snapshot sent on login/sync."""

    items: List[ClientItemIn] = Field(default_factory=list)


class CouponIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class CouponAppliedOut(BaseModel):
    message: str
    discount: float


class CartItemOut(BaseModel):
    """Cart line (response)."""

    product_id: int
    name: str
    quantity: int
    unit_price: float
    discount: float
    line_total: float


class CartOut(BaseModel):
    """Cart (response)."""

    cart_id: int | None
    user_id: int
    items: List[CartItemOut]
    discount: float
    item_count: int
    subtotal: float
    total: float


class CartTotalsOut(BaseModel):
    total_items: int
    subtotal: float
    total_price: float


class CheckoutIn(BaseModel):
    """Checkout form. Fields are validated by the checkout service so every
    problem is reported at once."""

    full_name: str = ""
    email: str = ""
    phone_number: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    payment_method: str = ""
    payment_method_nonce: str | None = None


class CheckoutOut(BaseModel):
    success: bool
    order_id: int
    total_amount: float


class OrderItemOut(BaseModel):
    product_id: int
    name: str
    unit_price: float
    discount: float
    quantity: int
    image_url: str

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Order (response)."""

    id: int
    user_id: int
    full_name: str
    email: str
    address: str
    city: str
    state: str
    zip: str
    country: str
    items: List[OrderItemOut]
    payment_method: str
    payment_status: str
    order_status: str
    transaction_id: str | None = None
    subtotal: float
    discount: float
    total_amount: float
    tracking_number: str
    delivery_date: datetime | None = None
    order_notes: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderStatusIn(BaseModel):
    status: str


class OrderNoteIn(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)
