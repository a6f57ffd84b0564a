# app/models/payment.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from decimal import Decimal
from enum import Enum

from app.models.order import OrderStatus

class GatewayStatus(str, Enum):
    VALID = "VALID"
    VALIDATED = "VALIDATED"
    PENDING = "PENDING"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    UNATTEMPTED = "UNATTEMPTED"

# APIConnect value reported by the validation API when it could serve the request
API_CONNECT_DONE = "DONE"

class SessionResult(BaseModel):
    """Response of the gateway session-creation endpoint."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: Optional[str] = None
    gateway_page_url: Optional[str] = Field(None, alias="GatewayPageURL")
    failed_reason: Optional[str] = Field(None, alias="failedreason")
    session_key: Optional[str] = Field(None, alias="sessionkey")

    @property
    def succeeded(self) -> bool:
        return self.status == "SUCCESS" and bool(self.gateway_page_url)

class ValidationResult(BaseModel):
    """Response of the gateway order-validation endpoint."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_connect: Optional[str] = Field(None, alias="APIConnect")
    status: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    tran_id: Optional[str] = None
    val_id: Optional[str] = None
    bank_tran_id: Optional[str] = None
    card_type: Optional[str] = None

    @field_validator("amount", "currency", "status", "tran_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def connected(self) -> bool:
        return self.api_connect == API_CONNECT_DONE

class InitiatePaymentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gateway_page_url: str = Field(..., serialization_alias="GatewayPageURL")
    tran_id: str

class NotificationOutcome(BaseModel):
    tran_id: str
    status: OrderStatus
    gateway_status: Optional[str] = None
    applied: bool

class IPNAcknowledgement(BaseModel):
    success: bool
    message: str
