# Payment provider adapters

from typing import Dict, Type

from app.core.errors import NotConfigured
from app.services.payments.base import (
    CaptureResult,
    IntentResult,
    PaymentProviderAdapter,
    ProviderSettings,
    RefundResult,
)
from app.services.payments.mock import MockProvider
from app.services.payments.razorpay import RazorpayProvider
from app.services.payments.stripe import StripeProvider

PROVIDERS: Dict[str, Type[PaymentProviderAdapter]] = {
    "mock": MockProvider,
    "stripe": StripeProvider,
    "razorpay": RazorpayProvider,
}


def get_provider(config: ProviderSettings) -> PaymentProviderAdapter:
    """Instantiate the adapter for a tenant's resolved configuration."""
    provider_cls = PROVIDERS.get(config.provider)
    if provider_cls is None:
        raise NotConfigured(f"Unknown payment provider: {config.provider}")
    return provider_cls(config)


__all__ = [
    "PROVIDERS",
    "get_provider",
    "PaymentProviderAdapter",
    "ProviderSettings",
    "IntentResult",
    "CaptureResult",
    "RefundResult",
    "MockProvider",
    "StripeProvider",
    "RazorpayProvider",
]
