"""Cart and checkout schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.sanitize import sanitize_text
from app.models.order import OrderType
from app.models.payment import PaymentProviderName
from app.schemas.common import Money


def _normalize_order_type(value):
    if isinstance(value, str):
        return value.strip().lower().replace("-", "_")
    return value


class CartItemIn(BaseModel):
    """One requested cart line."""

    menu_item_id: str = Field(..., min_length=1, max_length=36)
    qty: int = Field(..., ge=1, le=99)
    note: Optional[str] = Field(None, max_length=500)

    @field_validator("note", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class CartCreate(BaseModel):
    """Body for POST /cart."""

    tenant_code: str = Field(..., min_length=1, max_length=50)
    order_type: OrderType
    table_id: Optional[str] = Field(None, max_length=36)
    items: List[CartItemIn] = Field(..., min_length=1)

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_order_type(cls, v):
        return _normalize_order_type(v)


class CartCreated(BaseModel):
    cart_id: str


class CartTotals(BaseModel):
    subtotal: Money
    tax: Money
    total: Money


class CartOut(BaseModel):
    id: str
    tenant_id: str
    order_type: str
    table_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CartLine(BaseModel):
    """Cart line joined to the live menu item."""

    id: str
    menu_item_id: str
    name: str
    description: Optional[str] = None
    price: Money
    quantity: int
    note: Optional[str] = None


class CartDetail(BaseModel):
    cart: CartOut
    items: List[CartLine]
    totals: CartTotals


class CheckoutIntentRequest(BaseModel):
    """Body for POST /checkout/create-intent."""

    cart_id: str = Field(..., min_length=1, max_length=36)
    provider: PaymentProviderName = PaymentProviderName.MOCK


class CheckoutIntent(BaseModel):
    id: str
    amount: Money
    currency: str
    status: str


class CheckoutIntentResponse(BaseModel):
    intent: CheckoutIntent
    client_secret: Optional[str] = None
    provider_params: Dict[str, Any] = Field(default_factory=dict)


class CheckoutConfirmRequest(BaseModel):
    intent_id: str = Field(..., min_length=1, max_length=64)
    provider_payload: Optional[Dict[str, Any]] = None


class CheckoutConfirmResponse(BaseModel):
    status: str
    order_id: str


class CheckoutCancelRequest(BaseModel):
    intent_id: str = Field(..., min_length=1, max_length=64)


class CheckoutCancelResponse(BaseModel):
    status: str = "canceled"

