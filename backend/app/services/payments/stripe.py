"""Stripe payment provider (integration pending)."""

from app.services.payments.base import HostedProviderAdapter


class StripeProvider(HostedProviderAdapter):
    """Stripe PaymentIntents.

    Amounts are sent in minor units and captures use ``capture_method=manual``
    once the SDK calls are wired in.
    """

    STRIPE_API_BASE = "https://api.stripe.com/v1"
    API_VERSION = "2023-10-16"

    @property
    def name(self) -> str:
        return "stripe"
