"""Order routes: reads, direct entry and status emission."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from app.core.auth import CurrentTenant
from app.core.rate_limit import limiter
from app.core.responses import paginated_response
from app.db.session import DbSession
from app.schemas.order import (
    EmitStatusResponse,
    OrderCreate,
    OrderDetail,
    OrderHistory,
    OrderPage,
    StatusChangeRequest,
)
from app.services.order_service import OrderService, derived_status, serialize_order

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=OrderPage)
@limiter.limit("60/minute")
def list_orders(
    request: Request,
    db: DbSession,
    auth: CurrentTenant,
    status_filter: Optional[str] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """Tenant orders, newest first, with their derived status."""
    orders, total = OrderService(db).list_orders(auth.tenant_id, status_filter, skip, limit)
    return paginated_response([serialize_order(o) for o in orders], total, skip, limit)


@router.post("", response_model=OrderDetail, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_order(request: Request, payload: OrderCreate, db: DbSession, auth: CurrentTenant):
    """Direct order entry, priced from the menu at entry time."""
    order = OrderService(db).create_order(auth.tenant_id, payload, staff_id=auth.user_id)
    return serialize_order(order, include_items=True)


@router.get("/{order_id}", response_model=OrderDetail)
@limiter.limit("60/minute")
def get_order(request: Request, order_id: str, db: DbSession, auth: CurrentTenant):
    order = OrderService(db).get_order(auth.tenant_id, order_id)
    return serialize_order(order, include_items=True)


@router.get("/{order_id}/events", response_model=OrderHistory)
@limiter.limit("60/minute")
def get_order_events(request: Request, order_id: str, db: DbSession, auth: CurrentTenant):
    """Status history, oldest first."""
    order, events = OrderService(db).history(auth.tenant_id, order_id)
    return {"order_id": order.id, "status": derived_status(order), "events": events}


@router.post("/{order_id}/emit-status", response_model=EmitStatusResponse)
@limiter.limit("60/minute")
def emit_status(
    request: Request,
    order_id: str,
    payload: StatusChangeRequest,
    db: DbSession,
    auth: CurrentTenant,
):
    """Append a status transition to the order's event log."""
    event = OrderService(db).emit_status(
        auth.tenant_id,
        order_id,
        payload.to_status,
        note=payload.note,
        staff_id=auth.user_id,
    )
    return {"ok": True, "event": event}
