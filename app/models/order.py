# app/models/order.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from decimal import Decimal
from enum import Enum

class OrderStatus(str, Enum):
    INITIATED = "initiated"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    UNHANDLED = "unhandled"

TERMINAL_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.FAILED})

class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[Union[int, str]] = Field(None, alias="productId")
    name: str = Field(..., min_length=1)
    quantity: int = Field(1, gt=0)
    price: Decimal = Field(..., ge=0)

class CustomerInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., min_length=2, alias="fullName")
    email: EmailStr
    address: str = Field(..., min_length=5)
    city: str = Field(..., min_length=2)
    postal_code: str = Field(..., min_length=4, alias="postalCode")
    phone: Optional[str] = None

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartItem] = Field(..., min_length=1)
    total_price: Decimal = Field(..., gt=0, alias="totalPrice")
    customer_info: CustomerInfo = Field(..., alias="customerInfo")

class OrderRecord(BaseModel):
    tran_id: str
    status: OrderStatus = OrderStatus.INITIATED
    total_amount: Decimal
    currency: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    items: List[Dict[str, Any]] = []
    gateway_status: Optional[str] = None
    val_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class OrderStatusResponse(BaseModel):
    tran_id: str
    status: OrderStatus
    gateway_status: Optional[str] = None
    total_amount: float
    currency: str
    updated_at: Optional[datetime] = None
