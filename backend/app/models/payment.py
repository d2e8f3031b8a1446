"""Payment models: intents, the payment event log, and provider configuration."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin, new_id
from app.models.validators import non_negative


class PaymentProviderName(str, Enum):
    MOCK = "mock"
    STRIPE = "stripe"
    RAZORPAY = "razorpay"


class IntentStatus(str, Enum):
    """Payment intent statuses, in rough lifecycle order."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_CAPTURE = "requires_capture"
    REQUIRES_ACTION = "requires_action"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class PaymentIntent(Base, TimestampMixin):
    """One payment attempt.

    The id is wide enough for provider-style prefixed ids
    (``mock_intent_<uuid>``) as well as plain UUIDs.
    """

    __tablename__ = "payment_intents"
    __table_args__ = (
        Index("idx_payment_intents_tenant_created", "tenant_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cart_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("carts.id", ondelete="SET NULL"), nullable=True
    )
    order_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    client_secret: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    @validates("amount")
    def _validate_amount(self, key, value):
        return non_negative(key, value)


class PaymentEvent(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Append-only payment audit row; also drives intent status changes."""

    __tablename__ = "payment_events"

    tenant_id: Mapped[str] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    payment_intent_id: Mapped[str] = mapped_column(
        ForeignKey("payment_intents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    event_type: Mapped[str] = mapped_column(String(60), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)


class PaymentProviderConfig(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Per-tenant provider credentials and preferences.

    A tenant may hold several rows; at most one carries ``is_default``.
    ``secret_key`` is write-only from the API's point of view.
    """

    __tablename__ = "payment_providers"

    tenant_id: Mapped[str] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_live: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    enabled_methods: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    publishable_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    secret_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<PaymentProviderConfig {self.provider} tenant={self.tenant_id} default={self.is_default}>"
