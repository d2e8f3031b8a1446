"""Mock payment provider.

Synthesizes ids and secrets locally and succeeds every operation; no
network calls are made. Used for demos, development and tests.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from app.services.payments.base import (
    CaptureResult,
    IntentResult,
    PaymentProviderAdapter,
    RefundResult,
)


class MockProvider(PaymentProviderAdapter):

    @property
    def name(self) -> str:
        return "mock"

    def create_intent(
        self,
        amount: Decimal,
        currency: str,
        order_id: Optional[str] = None,
        method: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> IntentResult:
        return IntentResult(
            intent_id=f"mock_intent_{uuid.uuid4()}",
            provider=self.name,
            status="requires_capture",
            amount=amount,
            currency=currency,
            client_secret=f"mock_{uuid.uuid4()}",
        )

    def capture(self, intent_id: str, amount: Decimal) -> CaptureResult:
        return CaptureResult(
            success=True,
            payment_id=f"mock_payment_{uuid.uuid4()}",
            status="succeeded",
            amount=amount,
            captured_at=datetime.now(timezone.utc),
        )

    def refund(self, payment_id: str, amount: Decimal, reason: str) -> RefundResult:
        return RefundResult(
            success=True,
            refund_id=f"mock_refund_{uuid.uuid4()}",
            status="succeeded",
            amount=amount,
            reason=reason,
            refunded_at=datetime.now(timezone.utc),
        )

    def confirm(self, intent_id: str, provider_payload: Optional[Dict[str, Any]] = None) -> str:
        return "succeeded"

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> bool:
        return True
