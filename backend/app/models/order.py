"""Order models: orders, their item snapshots, and the status event log."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.validators import non_negative, positive


class OrderStatus(str, Enum):
    """Lifecycle values an order status event may carry."""

    NEW = "new"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    PAID = "paid"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"


class Order(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A placed order.

    Orders are never deleted; cancellation is a status. The lifecycle status
    lives in ``order_status_events``. ``current_status`` mirrors the newest
    event and is written in the same transaction as that event; it is NULL
    until the first event exists.
    """

    __tablename__ = "orders"
    __table_args__ = (
        Index("idx_orders_tenant_created", "tenant_id", "created_at"),
    )

    tenant_id: Mapped[str] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    table_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("tables.id", ondelete="SET NULL"), nullable=True
    )
    order_type: Mapped[str] = mapped_column(String(20), default=OrderType.DINE_IN.value, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_intent_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, unique=True, index=True)
    payment_status: Mapped[str] = mapped_column(String(20), default="unpaid", nullable=False)
    current_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )
    status_events: Mapped[list["OrderStatusEvent"]] = relationship(
        "OrderStatusEvent", back_populates="order", order_by="OrderStatusEvent.seq"
    )
    table: Mapped[Optional["DiningTable"]] = relationship("DiningTable")

    @validates("total_amount")
    def _validate_total(self, key, value):
        return non_negative(key, value)


class OrderItem(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Line snapshot taken when the order is created.

    ``unit_price`` is copied from the menu item; later menu price changes never
    alter historical orders.
    """

    __tablename__ = "order_items"

    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    menu_item: Mapped[Optional["MenuItem"]] = relationship("MenuItem")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates("unit_price")
    def _validate_unit_price(self, key, value):
        return non_negative(key, value)


class OrderStatusEvent(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Immutable, append-only status transition.

    ``seq`` numbers the events of one order from 1; the unique constraint on
    ``(order_id, seq)`` makes a second writer that read the same predecessor
    fail instead of forking the history.
    """

    __tablename__ = "order_status_events"
    __table_args__ = (
        UniqueConstraint("order_id", "seq", name="uq_order_status_events_order_seq"),
        Index("idx_status_events_tenant_created", "tenant_id", "created_at"),
    )

    tenant_id: Mapped[str] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    from_status: Mapped[str] = mapped_column(String(20), nullable=False)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by_staff_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="status_events")


# Forward references
from app.models.menu import MenuItem
from app.models.tenant import DiningTable
