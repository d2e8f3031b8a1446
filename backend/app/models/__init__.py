"""SQLAlchemy models."""

from app.models.tenant import Tenant, DiningTable
from app.models.menu import MenuCategory, MenuItem
from app.models.cart import Cart, CartItem
from app.models.order import Order, OrderItem, OrderStatusEvent, OrderStatus, OrderType
from app.models.payment import (
    PaymentIntent,
    PaymentEvent,
    PaymentProviderConfig,
    PaymentProviderName,
    IntentStatus,
)

__all__ = [
    "Tenant",
    "DiningTable",
    "MenuCategory",
    "MenuItem",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatusEvent",
    "OrderStatus",
    "OrderType",
    "PaymentIntent",
    "PaymentEvent",
    "PaymentProviderConfig",
    "PaymentProviderName",
    "IntentStatus",
]
