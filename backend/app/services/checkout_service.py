"""Checkout: cart -> payment intent -> order."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import CartNotFound, IntentNotFound, ProviderNotImplemented, ValidationFailed
from app.db.base import new_id
from app.models.cart import Cart
from app.models.order import Order, OrderItem
from app.models.payment import IntentStatus, PaymentIntent, PaymentProviderName
from app.schemas.cart import CheckoutConfirmRequest, CheckoutIntentRequest
from app.services.cart_service import cart_lines, compute_totals
from app.services.payments import ProviderSettings, get_provider

logger = logging.getLogger(__name__)


class CheckoutService:
    """Public checkout operations of the QR ordering flow."""

    def __init__(self, db: Session):
        self.db = db

    def create_intent(self, payload: CheckoutIntentRequest) -> dict:
        """Price the cart as it is now and open a payment intent for it."""
        cart = self.db.query(Cart).filter(Cart.id == payload.cart_id).first()
        if cart is None:
            raise CartNotFound()

        rows = cart_lines(self.db, cart.id)
        if not rows:
            raise ValidationFailed("Cart is empty")
        totals = compute_totals((menu_item.price, cart_item.quantity) for cart_item, menu_item in rows)

        provider = payload.provider.value
        intent_id = new_id()
        intent = PaymentIntent(
            id=intent_id,
            tenant_id=cart.tenant_id,
            cart_id=cart.id,
            provider=provider,
            amount=totals["total"],
            currency=settings.default_currency,
            status=IntentStatus.REQUIRES_PAYMENT_METHOD.value,
            client_secret=f"mock_{intent_id}" if provider == PaymentProviderName.MOCK.value else None,
        )
        self.db.add(intent)
        self.db.commit()

        logger.info(f"Checkout intent {intent_id} ({provider}) for cart {cart.id}: {totals['total']}")
        return {
            "intent": {
                "id": intent.id,
                "amount": intent.amount,
                "currency": intent.currency,
                "status": intent.status,
            },
            "client_secret": intent.client_secret,
            "provider_params": {"mock": True} if provider == PaymentProviderName.MOCK.value else {},
        }

    def confirm(self, payload: CheckoutConfirmRequest) -> dict:
        """Confirm a mock intent and materialize the order from its cart.

        Order items snapshot the menu price at confirm time. The order's
        ``total_amount`` is the intent amount. Intent update and order
        creation commit together. Confirming an intent that already produced
        an order returns that order instead of creating a second one.

        The intent row is locked for the transaction, and the unique
        ``orders.payment_intent_id`` index rejects a second order on backends
        without row locks.
        """
        intent = (
            self.db.query(PaymentIntent)
            .filter(PaymentIntent.id == payload.intent_id)
            .with_for_update()
            .first()
        )
        if intent is None:
            raise IntentNotFound()

        if intent.provider != PaymentProviderName.MOCK.value:
            raise ProviderNotImplemented("Provider not implemented")

        if intent.order_id:
            return {"status": intent.status, "order_id": intent.order_id}
        if intent.status == IntentStatus.CANCELED.value:
            raise ValidationFailed("Payment intent was canceled")
        if not intent.cart_id:
            raise ValidationFailed("Payment intent has no cart")

        cart = self.db.query(Cart).filter(Cart.id == intent.cart_id).first()
        if cart is None:
            raise CartNotFound()

        status = get_provider(ProviderSettings(provider=intent.provider)).confirm(
            intent.id, payload.provider_payload
        )

        order = Order(
            tenant_id=cart.tenant_id,
            table_id=cart.table_id,
            order_type=cart.order_type,
            total_amount=intent.amount,
            payment_intent_id=intent.id,
            payment_status="paid",
        )
        order.items = [
            OrderItem(
                menu_item_id=menu_item.id,
                quantity=cart_item.quantity,
                unit_price=menu_item.price,
                note=cart_item.note,
            )
            for cart_item, menu_item in cart_lines(self.db, cart.id)
        ]
        self.db.add(order)
        try:
            self.db.flush()
            intent.status = status
            intent.order_id = order.id
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.db.query(Order).filter(Order.payment_intent_id == payload.intent_id).first()
            if existing is None:
                raise
            logger.warning(f"Concurrent confirm on intent {payload.intent_id}; returning order {existing.id}")
            return {"status": intent.status, "order_id": existing.id}

        logger.info(f"Checkout confirmed: intent {intent.id} -> order {order.id} ({len(order.items)} items)")
        return {"status": status, "order_id": order.id}

    def cancel(self, intent_id: str) -> dict:
        """Mark an intent canceled.

        Unconditional: an unknown or already canceled intent is not an
        error, and repeated calls all succeed.
        """
        intent = self.db.query(PaymentIntent).filter(PaymentIntent.id == intent_id).first()
        if intent is not None:
            intent.status = IntentStatus.CANCELED.value
            self.db.commit()
            logger.info(f"Checkout intent {intent_id} canceled")
        else:
            logger.debug(f"Cancel requested for unknown intent {intent_id}")
        return {"status": IntentStatus.CANCELED.value}
