"""Public menu, QR context and receipt schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.common import Money


class PublicCategory(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    sort_order: int

    model_config = {"from_attributes": True}


class PublicMenuItem(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Money
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    is_available: bool
    image_url: Optional[str] = None


class PublicMenu(BaseModel):
    categories: List[PublicCategory]
    items: List[PublicMenuItem]


class QrTenant(BaseModel):
    id: str
    name: str
    code: str
    branding: Dict[str, Any] = Field(default_factory=dict)


class QrTable(BaseModel):
    id: str
    number: str
    section: Optional[str] = None
    capacity: int


class QrContext(BaseModel):
    tenant: QrTenant
    table: QrTable


class ReceiptSendRequest(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=36)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)


class ReceiptPrintRequest(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=36)
    printer_id: Optional[str] = Field(None, max_length=64)


class ReceiptAccepted(BaseModel):
    accepted: bool = True
    message: str
    order_id: str
    delivery_methods: Optional[Dict[str, bool]] = None
    printer_id: Optional[str] = None
