"""Kitchen Display System routes.

Both endpoints answer 503 ``feature_flag_off`` when ENABLE_KDS_RT is off,
before authentication is looked at.
"""

from fastapi import APIRouter, Depends, Request

from app.core.auth import CurrentTenant
from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.order import EmitStatusResponse, Lanes, StatusChangeRequest
from app.services.kitchen_display_service import KitchenDisplayService, ensure_kds_enabled

router = APIRouter(dependencies=[Depends(ensure_kds_enabled)])


@router.get("/lanes", response_model=Lanes)
@limiter.limit("120/minute")
def get_lanes(request: Request, db: DbSession, auth: CurrentTenant):
    """Active orders grouped into queued, preparing and ready lanes."""
    return KitchenDisplayService(db).lanes(auth.tenant_id)


@router.post("/orders/{order_id}/advance", response_model=EmitStatusResponse)
@limiter.limit("60/minute")
def advance_order(
    request: Request,
    order_id: str,
    payload: StatusChangeRequest,
    db: DbSession,
    auth: CurrentTenant,
):
    """Move an order to preparing, ready or served."""
    event = KitchenDisplayService(db).advance(
        auth.tenant_id,
        order_id,
        payload.to_status,
        staff_id=auth.user_id,
        note=payload.note,
    )
    return {"ok": True, "event": event}
