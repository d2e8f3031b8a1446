"""Base class for payment provider adapters.

This defines the interface every payment provider must implement.
To add a real provider integration:
1. Subclass PaymentProviderAdapter in a new module of this package
2. Implement the abstract methods against the provider's API
3. Register the class in ``PROVIDERS`` in ``__init__``

Calling code only ever talks to this interface, so a provider can go from
"not implemented" to live without touching routes or services.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.core.errors import NotConfigured, ProviderNotImplemented


@dataclass
class ProviderSettings:
    """Resolved provider configuration for one tenant."""

    provider: str
    live_mode: bool = False
    currency: str = "USD"
    enabled_methods: List[str] = field(default_factory=list)
    publishable_key: Optional[str] = None
    secret_key: Optional[str] = field(default=None, repr=False)

    def public_view(self) -> Dict[str, Any]:
        """Client-safe view; never includes the secret key."""
        return {
            "configured": True,
            "provider": self.provider,
            "live_mode": self.live_mode,
            "currency": self.currency,
            "enabled_methods": list(self.enabled_methods),
            "publishable_key": self.publishable_key,
        }


@dataclass
class IntentResult:
    """Result of creating a payment intent."""

    intent_id: str
    provider: str
    status: str
    amount: Decimal
    currency: str
    client_secret: Optional[str] = None


@dataclass
class CaptureResult:
    """Result of a capture operation."""

    success: bool
    payment_id: str
    status: str
    amount: Decimal
    captured_at: datetime


@dataclass
class RefundResult:
    """Result of a refund operation."""

    success: bool
    refund_id: str
    status: str
    amount: Decimal
    reason: str
    refunded_at: datetime


class PaymentProviderAdapter(ABC):
    """Abstract base class for payment providers."""

    def __init__(self, config: ProviderSettings):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'mock', 'stripe')."""

    @abstractmethod
    def create_intent(
        self,
        amount: Decimal,
        currency: str,
        order_id: Optional[str] = None,
        method: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> IntentResult:
        """Open a payment intent with the provider."""

    @abstractmethod
    def capture(self, intent_id: str, amount: Decimal) -> CaptureResult:
        """Capture funds for an authorized intent."""

    @abstractmethod
    def refund(self, payment_id: str, amount: Decimal, reason: str) -> RefundResult:
        """Refund a captured payment, fully or partially."""

    @abstractmethod
    def confirm(self, intent_id: str, provider_payload: Optional[Dict[str, Any]] = None) -> str:
        """Confirm a checkout intent; returns the resulting intent status."""

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> bool:
        """Verify a webhook signature. Unverified webhooks are only acknowledged."""
        return False


class HostedProviderAdapter(PaymentProviderAdapter):
    """A third-party provider whose SDK integration is not wired up yet.

    Every operation first requires API keys (``NotConfigured`` without them)
    and then reports ``ProviderNotImplemented``.
    """

    def _unsupported(self, operation: str):
        if not self.config.publishable_key:
            raise NotConfigured(f"{self.name} provider not configured yet - missing API keys")
        raise ProviderNotImplemented(f"{self.name} {operation} not implemented yet")

    def create_intent(self, amount, currency, order_id=None, method=None, metadata=None) -> IntentResult:
        self._unsupported("integration")

    def capture(self, intent_id: str, amount: Decimal) -> CaptureResult:
        self._unsupported("capture")

    def refund(self, payment_id: str, amount: Decimal, reason: str) -> RefundResult:
        self._unsupported("refund")

    def confirm(self, intent_id: str, provider_payload: Optional[Dict[str, Any]] = None) -> str:
        self._unsupported("confirmation")
