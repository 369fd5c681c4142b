# agrimarket/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import List
from decimal import Decimal
from datetime import datetime

from agrimarket.domain.enums import OrderStatus, PaymentMethod, PaymentStatus, UserRole


# ===================== users =====================

class UserCreate(BaseModel):
    """Schema for creating a user."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: EmailStr
    role: UserRole = UserRole.USER


class UserRead(BaseModel):
    """Schema for a user (response)."""

    id: int
    name: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


# ===================== cart =====================

class CartItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product id (must be > 0)")
    quantity: int = Field(..., ge=1, description="Quantity (at least 1)")


class CartItemUpdate(BaseModel):
    """Schema for changing the quantity of a cart line."""

    quantity: int = Field(..., ge=1, description="New quantity (at least 1)")


class CartItemOut(BaseModel):
    product_id: int
    product_name: str
    product_price: Decimal
    quantity: int
    total_price: Decimal


class CartOut(BaseModel):
    """Schema for the cart (response). Prices are live product prices."""

    cart_id: int
    user_id: int
    items: List[CartItemOut]
    total_items: int
    total_price: Decimal


# ===================== orders =====================

class CustomerInfo(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=20)


class DeliveryInfo(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    county: str = Field(..., min_length=1, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    delivery_notes: str | None = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Schema for creating an order from the caller's cart."""

    customer_info: CustomerInfo
    delivery_info: DeliveryInfo
    payment_reference: str | None = Field(None, max_length=255)


class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    product_price: Decimal
    quantity: int
    total_price: Decimal


class OrderOut(BaseModel):
    """Schema for an order (response)."""

    id: str
    user_id: int
    customer_info: CustomerInfo
    delivery_info: DeliveryInfo
    items: List[OrderItemOut]
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    payment_reference: str | None = None
    order_date: datetime


class OrderPage(BaseModel):
    items: List[OrderOut]
    page: int
    size: int
    total_elements: int
    total_pages: int


# ===================== payments =====================

class PaymentCreate(BaseModel):
    """Schema for paying an order."""

    order_id: str = Field(..., min_length=1)
    payment_method: PaymentMethod
    phone_number: str | None = Field(None, max_length=20)
    account_reference: str | None = Field(None, max_length=255)
    transaction_desc: str | None = Field(None, max_length=255)


class PaymentOut(BaseModel):
    id: int
    order_id: str
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: str | None = None
    receipt_number: str | None = None
    payment_date: datetime


class MpesaCallbackIn(BaseModel):
    """Flattened result of a Daraja STK callback."""

    checkout_request_id: str
    merchant_request_id: str | None = None
    result_code: int
    result_desc: str | None = None
    mpesa_receipt_number: str | None = None


# ===================== auth =====================

class RefreshTokenIn(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AuthOut(BaseModel):
    user: UserRead
    refresh_token: str
    expiry_date: datetime
