"""Payment routes: provider config, intent lifecycle, events, providers, webhooks."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.core.auth import CurrentTenant, RequireManager
from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.payments import (
    CaptureOut,
    CaptureRequest,
    IntentCreate,
    IntentOut,
    PaymentConfigIn,
    PaymentConfigOut,
    PaymentEventIn,
    PaymentEventOut,
    ProviderCreate,
    ProviderList,
    ProviderOut,
    ProviderUpdate,
    RefundOut,
    RefundRequest,
    SplitOut,
    SplitRequest,
    WebhookAck,
)
from app.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter()

# Header each provider signs its webhooks with.
SIGNATURE_HEADERS = {
    "stripe": "Stripe-Signature",
    "razorpay": "X-Razorpay-Signature",
    "mock": "X-Mock-Signature",
}


# ==================== CONFIG ====================

@router.get("/config", response_model=PaymentConfigOut, response_model_exclude_none=True)
@limiter.limit("60/minute")
def get_payment_config(request: Request, db: DbSession, auth: CurrentTenant):
    """The tenant's active provider configuration, without the secret key."""
    return PaymentService(db).get_config(auth.tenant_id)


@router.put("/config", response_model=PaymentConfigOut, response_model_exclude_none=True)
@limiter.limit("20/minute")
def update_payment_config(request: Request, payload: PaymentConfigIn, db: DbSession, auth: RequireManager):
    return PaymentService(db).upsert_config(auth.tenant_id, payload)


# ==================== INTENT LIFECYCLE ====================

@router.post("/intent", response_model=IntentOut)
@limiter.limit("30/minute")
def create_payment_intent(request: Request, payload: IntentCreate, db: DbSession, auth: CurrentTenant):
    return PaymentService(db).create_intent(auth.tenant_id, payload)


@router.post("/capture", response_model=CaptureOut)
@limiter.limit("30/minute")
def capture_payment(request: Request, payload: CaptureRequest, db: DbSession, auth: CurrentTenant):
    return PaymentService(db).capture(auth.tenant_id, payload)


@router.post("/refund", response_model=RefundOut)
@limiter.limit("10/minute")
def refund_payment(request: Request, payload: RefundRequest, db: DbSession, auth: RequireManager):
    return PaymentService(db).refund(auth.tenant_id, payload)


@router.post("/split", response_model=SplitOut)
@limiter.limit("30/minute")
def split_payment(request: Request, payload: SplitRequest, db: DbSession, auth: CurrentTenant):
    """Validate that the split lines add up to the total (within 0.01)."""
    return PaymentService(db).split(auth.tenant_id, payload)


@router.post("/intents/{intent_id}/emit-event", response_model=PaymentEventOut)
@limiter.limit("60/minute")
def emit_payment_event(
    request: Request,
    intent_id: str,
    payload: PaymentEventIn,
    db: DbSession,
    auth: CurrentTenant,
):
    """Append a payment event and move the intent status it implies."""
    return PaymentService(db).emit_payment_event(auth.tenant_id, intent_id, payload)


# ==================== PROVIDER ADMIN ====================

@router.get("/providers", response_model=ProviderList)
@limiter.limit("60/minute")
def list_providers(request: Request, db: DbSession, auth: CurrentTenant):
    return {"providers": PaymentService(db).list_providers(auth.tenant_id)}


@router.post("/providers", response_model=ProviderOut)
@limiter.limit("20/minute")
def create_provider(request: Request, payload: ProviderCreate, db: DbSession, auth: RequireManager):
    return PaymentService(db).create_provider(auth.tenant_id, payload)


@router.patch("/providers/{provider_id}", response_model=ProviderOut)
@limiter.limit("20/minute")
def update_provider(
    request: Request,
    provider_id: str,
    payload: ProviderUpdate,
    db: DbSession,
    auth: RequireManager,
):
    return PaymentService(db).update_provider(auth.tenant_id, provider_id, payload)


@router.post("/providers/{provider_id}/make-default", response_model=ProviderOut)
@limiter.limit("20/minute")
def make_default_provider(request: Request, provider_id: str, db: DbSession, auth: RequireManager):
    return PaymentService(db).make_default(auth.tenant_id, provider_id)


# ==================== WEBHOOKS ====================

@router.post("/webhook/{provider}", response_model=WebhookAck)
@limiter.limit("120/minute")
async def payment_webhook(request: Request, provider: str, db: DbSession, auth: CurrentTenant):
    """Acknowledge a provider webhook.

    Always answers 2xx so the provider does not start a retry storm; a
    processing failure is logged and acknowledged with 202.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADERS.get(provider, "X-Webhook-Signature"))
    code, message = await run_in_threadpool(_process_webhook, db, auth.tenant_id, provider, body, signature)
    return JSONResponse(status_code=code, content={"message": message})


def _process_webhook(db, tenant_id: str, provider: str, body: bytes, signature):
    try:
        return PaymentService(db).handle_webhook(tenant_id, provider, body, signature)
    except Exception:
        db.rollback()
        logger.error(f"Webhook processing failed for {provider} (tenant {tenant_id})", exc_info=True)
        return status.HTTP_202_ACCEPTED, "Webhook received but could not process"
