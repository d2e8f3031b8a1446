"""Guest checkout routes: cart -> intent -> order."""

from fastapi import APIRouter, Request

from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.cart import (
    CheckoutCancelRequest,
    CheckoutCancelResponse,
    CheckoutConfirmRequest,
    CheckoutConfirmResponse,
    CheckoutIntentRequest,
    CheckoutIntentResponse,
)
from app.services.checkout_service import CheckoutService

router = APIRouter()


@router.post("/create-intent", response_model=CheckoutIntentResponse)
@limiter.limit("30/minute")
def create_checkout_intent(request: Request, payload: CheckoutIntentRequest, db: DbSession):
    return CheckoutService(db).create_intent(payload)


@router.post("/confirm", response_model=CheckoutConfirmResponse)
@limiter.limit("30/minute")
def confirm_checkout(request: Request, payload: CheckoutConfirmRequest, db: DbSession):
    """Confirm a mock intent and create the order. Other providers answer 501."""
    return CheckoutService(db).confirm(payload)


@router.post("/cancel", response_model=CheckoutCancelResponse)
@limiter.limit("30/minute")
def cancel_checkout(request: Request, payload: CheckoutCancelRequest, db: DbSession):
    return CheckoutService(db).cancel(payload.intent_id)
