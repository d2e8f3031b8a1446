# Services module

from app.services.analytics_service import AnalyticsService
from app.services.cart_service import CartService, compute_totals
from app.services.checkout_service import CheckoutService
from app.services.kitchen_display_service import KitchenDisplayService
from app.services.menu_service import MenuService
from app.services.order_service import OrderService
from app.services.payment_config_store import PaymentConfigStore
from app.services.payment_service import PaymentService
from app.services.receipt_service import ReceiptService

__all__ = [
    # Ordering
    "CartService",
    "CheckoutService",
    "OrderService",
    "KitchenDisplayService",
    "MenuService",
    "compute_totals",
    # Payments
    "PaymentService",
    "PaymentConfigStore",
    # Reporting & receipts
    "AnalyticsService",
    "ReceiptService",
]
