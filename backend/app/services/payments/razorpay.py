"""Razorpay payment provider (integration pending)."""

from app.services.payments.base import HostedProviderAdapter


class RazorpayProvider(HostedProviderAdapter):

    RAZORPAY_API_BASE = "https://api.razorpay.com/v1"

    @property
    def name(self) -> str:
        return "razorpay"
