"""Analytics response schemas."""

from typing import List, Optional

from pydantic import BaseModel

from app.schemas.common import Money


class FunnelRow(BaseModel):
    stage: str
    stage_order: int
    intents: int
    amount: Money
    conversion_rate: float


class FunnelOut(BaseModel):
    window: str
    rows: List[FunnelRow]


class PeakHourRow(BaseModel):
    hour: int
    orders: int
    revenue: Money


class PeakHoursOut(BaseModel):
    window: str
    rows: List[PeakHourRow]


class RevenuePoint(BaseModel):
    period: str
    orders: int
    revenue: Money


class RevenueSeriesOut(BaseModel):
    window: str
    granularity: str
    series: List[RevenuePoint]


class BreakdownRow(BaseModel):
    key: str
    orders: int
    revenue: Money


class RevenueBreakdownOut(BaseModel):
    window: str
    by_order_type: List[BreakdownRow]
    by_provider: List[BreakdownRow]


class FulfillmentRow(BaseModel):
    day: str
    orders: int
    avg_queue_minutes: Optional[float] = None
    avg_prep_minutes: Optional[float] = None
    avg_serve_minutes: Optional[float] = None


class FulfillmentOut(BaseModel):
    window: str
    rows: List[FulfillmentRow]
