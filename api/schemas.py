"""
API Schemas Module

This module defines Pydantic models for request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from db.models import OrderStatus


class BillingAddress(BaseModel):
    name: str
    email: str
    phone: str


class CheckoutParams(BaseModel):
    """Everything the checkout page needs to open the Zoho payment widget."""

    script_url: str
    account_id: str
    domain: str
    api_key: str
    amount: str
    currency_code: str
    payments_session_id: str
    business: str
    description: str
    invoice_number: str
    address: BillingAddress
    order_id: int
    integrity_token: str
    confirm_url: str


class ConfirmationIn(BaseModel):
    order_id: int
    session_id: str = Field(min_length=1)
    account_id: str = Field(min_length=1)
    integrity_token: str = Field(min_length=1)


class ConfirmationResponse(BaseModel):
    success: bool
    order_id: int
    status: OrderStatus
    payment_id: Optional[str] = None
    message: str

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    total: Decimal
    currency: str
    status: OrderStatus
    payment_id: Optional[str] = None
    payment_session_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenStatus(BaseModel):
    """Cached token summary. The token value itself is never returned."""

    cached: bool
    stale: bool
    issued_at: Optional[str] = None
    age_seconds: Optional[int] = None
