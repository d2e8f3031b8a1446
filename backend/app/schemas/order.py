"""Order, status event and kitchen display schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.sanitize import sanitize_text
from app.models.order import OrderType
from app.schemas.common import Money


class OrderItemIn(BaseModel):
    menu_item_id: str = Field(..., min_length=1, max_length=36)
    quantity: int = Field(..., ge=1, le=99)
    note: Optional[str] = Field(None, max_length=500)

    @field_validator("note", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class OrderCreate(BaseModel):
    """Direct order entry by staff."""

    order_type: OrderType = OrderType.DINE_IN
    table_id: Optional[str] = Field(None, max_length=36)
    items: List[OrderItemIn] = Field(..., min_length=1)

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_order_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v


class StatusChangeRequest(BaseModel):
    """Body for emit-status and kitchen advance.

    ``to_status`` is checked against the caller's allowed set by the service,
    so the kitchen and general endpoints can report their own error.
    """

    to_status: str = Field(..., min_length=1, max_length=20)
    note: Optional[str] = Field(None, max_length=500)

    @field_validator("note", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class StatusEventOut(BaseModel):
    id: str
    order_id: str
    seq: int
    from_status: str
    to_status: str
    note: Optional[str] = None
    created_by_staff_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EmitStatusResponse(BaseModel):
    ok: bool = True
    event: StatusEventOut


class OrderItemOut(BaseModel):
    id: str
    menu_item_id: Optional[str] = None
    name: Optional[str] = None
    quantity: int
    unit_price: Money
    note: Optional[str] = None


class OrderOut(BaseModel):
    id: str
    tenant_id: str
    table_id: Optional[str] = None
    table_number: Optional[str] = None
    order_type: str
    status: str
    total_amount: Money
    payment_intent_id: Optional[str] = None
    payment_status: str
    created_at: datetime
    updated_at: datetime


class OrderDetail(OrderOut):
    items: List[OrderItemOut] = []


class OrderHistory(BaseModel):
    """Order Tracking view: derived status plus the ordered event log."""

    order_id: str
    status: str
    events: List[StatusEventOut]


class LaneOrder(BaseModel):
    id: str
    table_id: Optional[str] = None
    table_number: Optional[str] = None
    order_type: str
    total_amount: Money
    created_at: datetime
    current_status: str
    status_updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class Lanes(BaseModel):
    queued: List[LaneOrder] = []
    preparing: List[LaneOrder] = []
    ready: List[LaneOrder] = []


class OrderPage(BaseModel):
    items: List[OrderOut]
    total: int
    skip: int
    limit: int
    has_more: bool
