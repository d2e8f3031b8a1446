"""Receipt routes. Delivery integrations are stubs; requests are accepted with 202."""

from fastapi import APIRouter, Request, status

from app.core.auth import CurrentTenant
from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.menu import ReceiptAccepted, ReceiptPrintRequest, ReceiptSendRequest
from app.services.receipt_service import ReceiptService

router = APIRouter()


@router.post(
    "/send",
    response_model=ReceiptAccepted,
    response_model_exclude_none=True,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit("20/minute")
def send_receipt(request: Request, payload: ReceiptSendRequest, db: DbSession, auth: CurrentTenant):
    """Queue a receipt for e-mail and/or SMS delivery."""
    return ReceiptService(db).send(auth.tenant_id, payload.order_id, email=payload.email, phone=payload.phone)


@router.post(
    "/invoice/{order_id}",
    response_model=ReceiptAccepted,
    response_model_exclude_none=True,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit("20/minute")
def request_invoice(request: Request, order_id: str, db: DbSession, auth: CurrentTenant):
    return ReceiptService(db).invoice(auth.tenant_id, order_id)


@router.post(
    "/print",
    response_model=ReceiptAccepted,
    response_model_exclude_none=True,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit("30/minute")
def print_receipt(request: Request, payload: ReceiptPrintRequest, db: DbSession, auth: CurrentTenant):
    return ReceiptService(db).print_receipt(auth.tenant_id, payload.order_id, printer_id=payload.printer_id)
