"""Payloads pushed over the live view sockets."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel

from app.schemas.common import Money
from app.schemas.order import OrderDetail, OrderHistory


class DashboardSummary(BaseModel):
    orders_today: int
    revenue_today: Money
    lanes: Dict[str, int]
    intents_by_status: Dict[str, int]


class OrderTracking(BaseModel):
    order: OrderDetail
    history: OrderHistory
