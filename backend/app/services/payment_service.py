"""Payment intent lifecycle service.

Covers provider configuration, intent creation, capture, refund, bill
splitting, payment event emission and the multi-provider admin. Provider
specifics live behind ``app.services.payments``; this module only talks to
the adapter interface.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    IntentNotFound,
    OrderNotFound,
    ProviderNotFound,
    ServiceDegraded,
    SplitMismatch,
    ValidationFailed,
)
from app.core.metrics import metrics
from app.db.base import utcnow
from app.db.errors import is_missing_table
from app.models.order import Order
from app.models.payment import PaymentEvent, PaymentIntent, PaymentProviderConfig
from app.schemas.payments import (
    CaptureRequest,
    IntentCreate,
    PaymentConfigIn,
    PaymentEventIn,
    ProviderCreate,
    ProviderUpdate,
    RefundRequest,
    SplitRequest,
)
from app.services.payment_config_store import PaymentConfigStore
from app.services.payments import get_provider

logger = logging.getLogger(__name__)

# Event types that move an intent; anything else leaves its status alone.
EVENT_STATUS: Dict[str, str] = {
    "payment_started": "processing",
    "payment_succeeded": "succeeded",
    "payment_failed": "failed",
}

DEFAULT_REFUND_REASON = "requested_by_customer"

# Provider fields a PATCH may clear with an explicit null.
CLEARABLE_PROVIDER_FIELDS = frozenset({"display_name", "publishable_key", "secret_key"})


def infer_intent_status(event_type: str, current: str) -> str:
    return EVENT_STATUS.get(event_type, current)


def validate_split(total: Decimal, amounts: List[Decimal], tolerance: Optional[Decimal] = None) -> Decimal:
    """Check that split amounts add up to ``total`` within ``tolerance``.

    Returns the sum of the amounts. Raises SplitMismatch otherwise.
    """
    tol = settings.split_tolerance if tolerance is None else tolerance
    split_total = sum(amounts, Decimal("0"))
    if abs(split_total - total) > tol:
        raise SplitMismatch(f"Split amounts ({split_total}) do not match total ({total})")
    return split_total


class PaymentService:
    """Tenant-scoped payment operations."""

    def __init__(self, db: Session):
        self.db = db
        self.config_store = PaymentConfigStore(db)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_config(self, tenant_id: str) -> dict:
        config = self.config_store.get(tenant_id)
        if config is None:
            return {"configured": False}
        return config.public_view()

    def upsert_config(self, tenant_id: str, payload: PaymentConfigIn) -> dict:
        return self.config_store.upsert(tenant_id, payload).public_view()

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def _get_intent(self, tenant_id: str, intent_id: str) -> PaymentIntent:
        intent = (
            self.db.query(PaymentIntent)
            .filter(PaymentIntent.id == intent_id, PaymentIntent.tenant_id == tenant_id)
            .first()
        )
        if intent is None:
            raise IntentNotFound()
        return intent

    def create_intent(self, tenant_id: str, payload: IntentCreate) -> dict:
        """Open an intent with the tenant's configured provider and record it.

        Raises:
            NotConfigured: no provider configured, or a hosted provider lacks keys.
            ProviderNotImplemented: a hosted provider's SDK path was reached.
        """
        config = self.config_store.require(tenant_id)
        adapter = get_provider(config)

        if payload.order_id:
            owned = (
                self.db.query(Order.id)
                .filter(Order.id == payload.order_id, Order.tenant_id == tenant_id)
                .first()
            )
            if owned is None:
                raise OrderNotFound()

        result = adapter.create_intent(
            payload.amount,
            payload.currency,
            order_id=payload.order_id,
            method=payload.method,
            metadata=payload.metadata,
        )

        intent = PaymentIntent(
            id=result.intent_id,
            tenant_id=tenant_id,
            order_id=payload.order_id,
            provider=result.provider,
            amount=result.amount,
            currency=result.currency,
            status=result.status,
            client_secret=result.client_secret,
            method=payload.method,
        )
        self.db.add(intent)
        self.db.commit()

        logger.info(
            f"Payment intent {intent.id} created via {result.provider} for tenant {tenant_id}: "
            f"{result.amount} {result.currency}"
        )
        return {
            "intent_id": result.intent_id,
            "provider": result.provider,
            "status": result.status,
            "client_secret": result.client_secret,
            "amount": result.amount,
            "currency": result.currency,
        }

    def capture(self, tenant_id: str, payload: CaptureRequest) -> dict:
        config = self.config_store.require(tenant_id)
        intent = self._get_intent(tenant_id, payload.intent_id)
        amount = payload.amount if payload.amount is not None else intent.amount

        result = get_provider(config).capture(intent.id, amount)

        intent.status = result.status
        self.db.commit()
        logger.info(f"Payment intent {intent.id} captured ({result.payment_id}) for tenant {tenant_id}")
        return {
            "success": result.success,
            "payment_id": result.payment_id,
            "status": result.status,
            "amount": result.amount,
            "captured_at": result.captured_at,
        }

    def refund(self, tenant_id: str, payload: RefundRequest) -> dict:
        config = self.config_store.require(tenant_id)
        reason = payload.reason or DEFAULT_REFUND_REASON

        result = get_provider(config).refund(payload.payment_id, payload.amount, reason)

        logger.info(
            f"Refund {result.refund_id} of {result.amount} for payment {payload.payment_id} "
            f"(tenant {tenant_id}, reason {reason})"
        )
        return {
            "success": result.success,
            "refund_id": result.refund_id,
            "status": result.status,
            "amount": result.amount,
            "reason": result.reason,
            "refunded_at": result.refunded_at,
        }

    def split(self, tenant_id: str, payload: SplitRequest) -> dict:
        """Validate a bill split and give every line an id. Nothing is persisted."""
        validate_split(payload.total, [line.amount for line in payload.splits])
        split_suffix = uuid.uuid4()
        return {
            "success": True,
            "split_id": f"split_{split_suffix}",
            "total": payload.total,
            "currency": payload.currency,
            "splits": [
                {
                    "split_item_id": f"split_item_{index}_{uuid.uuid4()}",
                    "amount": line.amount,
                    "payer_type": line.payer_type,
                    "note": line.note,
                }
                for index, line in enumerate(payload.splits, start=1)
            ],
            "created_at": datetime.now(timezone.utc),
        }

    # ------------------------------------------------------------------
    # Payment events
    # ------------------------------------------------------------------

    def emit_payment_event(self, tenant_id: str, intent_id: str, payload: PaymentEventIn) -> dict:
        """Move the intent according to ``event_type`` and append the event.

        When the event table has not been migrated the intent status change is
        still applied, and a synthetic ``fallback_`` event flagged
        ``persisted: False`` is returned, unless ``payment_events_fail_loudly``
        is set, in which case ServiceDegraded is raised.
        """
        intent = self._get_intent(tenant_id, intent_id)
        new_status = infer_intent_status(payload.event_type, intent.status)

        intent.status = new_status
        event = PaymentEvent(
            tenant_id=tenant_id,
            payment_intent_id=intent.id,
            provider=intent.provider,
            event_type=payload.event_type,
            payload=payload.payload,
        )
        self.db.add(event)
        try:
            self.db.commit()
        except DBAPIError as exc:
            self.db.rollback()
            if not is_missing_table(exc):
                raise
            return self._fallback_event(tenant_id, intent_id, new_status, payload)

        metrics.payment_events_emitted += 1
        logger.info(f"Payment event {payload.event_type} on intent {intent_id}; status now {new_status}")
        return {
            "id": event.id,
            "payment_intent_id": event.payment_intent_id,
            "provider": event.provider,
            "event_type": event.event_type,
            "payload": event.payload,
            "intent_status": new_status,
            "created_at": event.created_at,
            "persisted": True,
        }

    def _fallback_event(self, tenant_id: str, intent_id: str, new_status: str, payload: PaymentEventIn) -> dict:
        if settings.payment_events_fail_loudly:
            logger.error(f"Payment events table missing; event {payload.event_type} on {intent_id} rejected")
            raise ServiceDegraded("Payment event log unavailable")

        intent = self._get_intent(tenant_id, intent_id)
        intent.status = new_status
        self.db.commit()

        metrics.payment_events_emitted += 1
        logger.warning(
            f"Payment events table not found; event {payload.event_type} on intent {intent_id} not persisted"
        )
        return {
            "id": f"fallback_{int(time.time() * 1000)}",
            "payment_intent_id": intent_id,
            "provider": intent.provider,
            "event_type": payload.event_type,
            "payload": payload.payload,
            "intent_status": new_status,
            "created_at": datetime.now(timezone.utc),
            "persisted": False,
        }

    # ------------------------------------------------------------------
    # Multi-provider admin
    # ------------------------------------------------------------------

    def _get_provider_row(self, tenant_id: str, provider_id: str) -> PaymentProviderConfig:
        row = (
            self.db.query(PaymentProviderConfig)
            .filter(
                PaymentProviderConfig.id == provider_id,
                PaymentProviderConfig.tenant_id == tenant_id,
            )
            .first()
        )
        if row is None:
            raise ProviderNotFound()
        return row

    def _unset_defaults(self, tenant_id: str) -> None:
        (
            self.db.query(PaymentProviderConfig)
            .filter(
                PaymentProviderConfig.tenant_id == tenant_id,
                PaymentProviderConfig.is_default == True,
            )
            .update({"is_default": False, "updated_at": utcnow()}, synchronize_session="fetch")
        )

    def list_providers(self, tenant_id: str) -> List[PaymentProviderConfig]:
        """Default provider first, then oldest first."""
        return (
            self.db.query(PaymentProviderConfig)
            .filter(PaymentProviderConfig.tenant_id == tenant_id)
            .order_by(
                PaymentProviderConfig.is_default.desc(),
                PaymentProviderConfig.created_at.asc(),
            )
            .all()
        )

    def create_provider(self, tenant_id: str, payload: ProviderCreate) -> PaymentProviderConfig:
        if payload.is_default:
            self._unset_defaults(tenant_id)

        row = PaymentProviderConfig(
            tenant_id=tenant_id,
            provider=payload.provider.value,
            display_name=payload.display_name,
            publishable_key=payload.publishable_key,
            secret_key=payload.secret_key,
            is_live=payload.is_live,
            is_enabled=payload.is_enabled,
            is_default=payload.is_default,
            currency=payload.currency,
            enabled_methods=list(payload.enabled_methods),
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Payment provider {row.provider} ({row.id}) added for tenant {tenant_id}")
        return row

    def update_provider(self, tenant_id: str, provider_id: str, payload: ProviderUpdate) -> PaymentProviderConfig:
        updates = payload.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationFailed("No updates provided")
        for key, value in updates.items():
            if value is None and key not in CLEARABLE_PROVIDER_FIELDS:
                raise ValidationFailed(f"{key} cannot be null")

        row = self._get_provider_row(tenant_id, provider_id)
        for key, value in updates.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Payment provider {provider_id} updated for tenant {tenant_id}: {sorted(k for k in updates if k != 'secret_key')}")
        return row

    def make_default(self, tenant_id: str, provider_id: str) -> PaymentProviderConfig:
        row = self._get_provider_row(tenant_id, provider_id)
        self._unset_defaults(tenant_id)
        row.is_default = True
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Payment provider {provider_id} is now default for tenant {tenant_id}")
        return row

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def handle_webhook(
        self,
        tenant_id: str,
        provider: str,
        body: bytes,
        signature: Optional[str] = None,
    ) -> Tuple[int, str]:
        """Acknowledge an inbound provider webhook.

        Returns ``(status_code, message)``. Only signature-verified webhooks
        count as processed; everything else is accepted with 202 so the
        provider does not retry.
        """
        config = self.config_store.get(tenant_id)
        if config is None:
            logger.warning(f"Webhook received for unconfigured provider: {provider}")
            return 202, "Webhook received but provider not configured"

        if provider == config.provider and get_provider(config).verify_webhook(body, signature):
            logger.info(f"{provider} webhook processed for tenant {tenant_id}")
            return 200, f"{provider.title()} webhook processed"

        logger.info(f"Webhook received for {provider} but signature verification not implemented")
        return 202, "Webhook received"
