"""Payment configuration, intent and provider admin schemas.

``secret_key`` is accepted on input models only; no output model carries it.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.payment import PaymentProviderName
from app.schemas.common import Money


def _currency(v):
    if v is None:
        return v
    v = str(v).strip().upper()
    if len(v) != 3 or not v.isalpha():
        raise ValueError("currency must be a 3-letter ISO code")
    return v


class PaymentConfigIn(BaseModel):
    """Body for PUT /payments/config."""

    provider: PaymentProviderName
    live_mode: bool = False
    currency: str = "USD"
    enabled_methods: List[str] = Field(default_factory=list, max_length=20)
    publishable_key: Optional[str] = Field(None, max_length=255)
    secret_key: Optional[str] = Field(None, max_length=255, repr=False)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        return _currency(v)


class PaymentConfigOut(BaseModel):
    configured: bool
    provider: Optional[str] = None
    live_mode: Optional[bool] = None
    currency: Optional[str] = None
    enabled_methods: Optional[List[str]] = None
    publishable_key: Optional[str] = None


class IntentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    currency: str
    order_id: Optional[str] = Field(None, max_length=36)
    method: Optional[str] = Field(None, max_length=40)
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        return _currency(v)


class IntentOut(BaseModel):
    intent_id: str
    provider: str
    status: str
    client_secret: Optional[str] = None
    amount: Money
    currency: str


class CaptureRequest(BaseModel):
    intent_id: str = Field(..., min_length=1, max_length=64)
    provider: Optional[PaymentProviderName] = None
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    metadata: Optional[Dict[str, Any]] = None


class CaptureOut(BaseModel):
    success: bool
    payment_id: str
    status: str
    amount: Money
    captured_at: datetime


class RefundRequest(BaseModel):
    payment_id: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    provider: Optional[PaymentProviderName] = None
    reason: Optional[str] = Field(None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None


class RefundOut(BaseModel):
    success: bool
    refund_id: str
    status: str
    amount: Money
    reason: str
    refunded_at: datetime


class SplitLine(BaseModel):
    amount: Decimal = Field(..., ge=0)
    payer_type: str = Field(..., min_length=1, max_length=40)
    note: Optional[str] = Field(None, max_length=500)


class SplitRequest(BaseModel):
    total: Decimal = Field(..., ge=0)
    currency: str
    splits: List[SplitLine] = Field(..., min_length=1)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        return _currency(v)


class SplitLineOut(BaseModel):
    split_item_id: str
    amount: Money
    payer_type: str
    note: Optional[str] = None


class SplitOut(BaseModel):
    success: bool = True
    split_id: str
    total: Money
    currency: str
    splits: List[SplitLineOut]
    created_at: datetime


class PaymentEventIn(BaseModel):
    event_type: str = Field(..., min_length=1, max_length=60)
    payload: Dict[str, Any] = Field(default_factory=dict)


class PaymentEventOut(BaseModel):
    """A recorded payment event.

    ``persisted`` is False for the synthetic ``fallback_`` event returned when
    the event table is missing.
    """

    id: str
    payment_intent_id: str
    provider: Optional[str] = None
    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    intent_status: Optional[str] = None
    created_at: datetime
    persisted: bool = True


class ProviderCreate(BaseModel):
    provider: PaymentProviderName
    display_name: str = Field(..., min_length=1, max_length=100)
    publishable_key: Optional[str] = Field(None, max_length=255)
    secret_key: Optional[str] = Field(None, max_length=255, repr=False)
    is_live: bool = False
    is_enabled: bool = True
    is_default: bool = False
    currency: str = "USD"
    enabled_methods: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        return _currency(v)


class ProviderUpdate(BaseModel):
    """Partial update; omitted fields are left alone."""

    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    publishable_key: Optional[str] = Field(None, max_length=255)
    secret_key: Optional[str] = Field(None, max_length=255, repr=False)
    is_live: Optional[bool] = None
    is_enabled: Optional[bool] = None
    currency: Optional[str] = None
    enabled_methods: Optional[List[str]] = Field(None, max_length=20)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        return _currency(v)


class ProviderOut(BaseModel):
    id: str
    provider: str
    display_name: Optional[str] = None
    is_live: bool
    is_enabled: bool
    is_default: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProviderList(BaseModel):
    providers: List[ProviderOut]


class WebhookAck(BaseModel):
    message: str
