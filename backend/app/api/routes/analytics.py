"""Analytics routes. Every endpoint takes ``window`` in 7d, 30d, 90d, mtd, qtd or ytd."""

from fastapi import APIRouter, Query, Request

from app.core.auth import CurrentTenant
from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.analytics import (
    FulfillmentOut,
    FunnelOut,
    PeakHoursOut,
    RevenueBreakdownOut,
    RevenueSeriesOut,
)
from app.services.analytics_service import AnalyticsService

router = APIRouter()

WindowParam = Query("7d", description="7d, 30d, 90d, mtd, qtd or ytd")


@router.get("/payment-funnel", response_model=FunnelOut)
@limiter.limit("30/minute")
def payment_funnel(request: Request, db: DbSession, auth: CurrentTenant, window: str = WindowParam):
    """Intents per funnel stage reached, with amount and conversion from created."""
    return AnalyticsService(db).payment_funnel(auth.tenant_id, window)


@router.get("/peak-hours", response_model=PeakHoursOut)
@limiter.limit("30/minute")
def peak_hours(request: Request, db: DbSession, auth: CurrentTenant, window: str = WindowParam):
    return AnalyticsService(db).peak_hours(auth.tenant_id, window)


@router.get("/revenue-series", response_model=RevenueSeriesOut)
@limiter.limit("30/minute")
def revenue_series(request: Request, db: DbSession, auth: CurrentTenant, window: str = WindowParam):
    return AnalyticsService(db).revenue_series(auth.tenant_id, window)


@router.get("/revenue-breakdown", response_model=RevenueBreakdownOut)
@limiter.limit("30/minute")
def revenue_breakdown(request: Request, db: DbSession, auth: CurrentTenant, window: str = WindowParam):
    return AnalyticsService(db).revenue_breakdown(auth.tenant_id, window)


@router.get("/fulfillment-timeline", response_model=FulfillmentOut)
@limiter.limit("30/minute")
def fulfillment_timeline(request: Request, db: DbSession, auth: CurrentTenant, window: str = WindowParam):
    return AnalyticsService(db).fulfillment_timeline(auth.tenant_id, window)
