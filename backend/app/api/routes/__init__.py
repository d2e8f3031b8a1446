"""API routes."""

import logging
from fastapi import APIRouter

from app.api.routes import (
    analytics, carts, checkout, kds, menu, orders, payments, qr, receipts,
)
from app.core.config import settings

logger = logging.getLogger(__name__)

api_router = APIRouter()

# Guest QR ordering flow (public)
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(qr.router, prefix="/qr", tags=["qr"])
if settings.enable_cart_checkout:
    api_router.include_router(carts.router, prefix="/cart", tags=["cart"])
else:
    logger.info("Cart routes disabled (ENABLE_CART_CHECKOUT=false)")
if settings.enable_payments:
    api_router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])
else:
    logger.info("Checkout routes disabled (ENABLE_PAYMENTS=false)")

# Staff surfaces (bearer token with a tenant)
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(kds.router, prefix="/kds", tags=["kds"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(receipts.router, prefix="/receipts", tags=["receipts"])
