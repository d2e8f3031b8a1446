"""Order lifecycle service.

The status of an order is derived from its status event log: the ``to_status``
of the newest event, or the configured default when no event exists yet.
Every transition is appended as a new ``OrderStatusEvent``; nothing is ever
updated in place except the denormalised ``orders.current_status`` mirror,
which is written in the same transaction as the event it mirrors.
"""

import logging
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.config import settings
from app.core.errors import InvalidTransition, OrderNotFound, TableNotFound, ValidationFailed
from app.core.metrics import metrics
from app.models.menu import MenuItem
from app.models.order import Order, OrderItem, OrderStatus, OrderStatusEvent
from app.models.tenant import DiningTable
from app.schemas.order import OrderCreate
from app.services.cart_service import compute_totals

logger = logging.getLogger(__name__)

ORDER_STATUSES: FrozenSet[str] = frozenset(s.value for s in OrderStatus)
KITCHEN_STATUSES: FrozenSet[str] = frozenset({"preparing", "ready", "served"})

# Legal edges, only consulted when strict_order_transitions is on.
ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "new": frozenset({"confirmed", "preparing", "cancelled"}),
    "pending": frozenset({"confirmed", "preparing", "cancelled"}),
    "confirmed": frozenset({"preparing", "cancelled"}),
    "preparing": frozenset({"ready", "cancelled"}),
    "ready": frozenset({"served", "cancelled"}),
    "served": frozenset({"paid", "cancelled"}),
    "paid": frozenset(),
    "cancelled": frozenset(),
}


def default_status() -> str:
    """Status reported for an order that has no events yet."""
    return settings.order_default_status


def is_transition_allowed(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def derived_status(order: Order) -> str:
    return order.current_status or default_status()


def status_column():
    """SQL expression for the derived status of an ``orders`` row."""
    return func.coalesce(Order.current_status, default_status())


def serialize_event(event: OrderStatusEvent) -> dict:
    return {
        "id": event.id,
        "order_id": event.order_id,
        "seq": event.seq,
        "from_status": event.from_status,
        "to_status": event.to_status,
        "note": event.note,
        "created_by_staff_id": event.created_by_staff_id,
        "created_at": event.created_at,
    }


def serialize_item(item: OrderItem) -> dict:
    return {
        "id": item.id,
        "menu_item_id": item.menu_item_id,
        "name": item.menu_item.name if item.menu_item else None,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "note": item.note,
    }


def serialize_order(order: Order, include_items: bool = False) -> dict:
    data = {
        "id": order.id,
        "tenant_id": order.tenant_id,
        "table_id": order.table_id,
        "table_number": order.table.table_number if order.table else None,
        "order_type": order.order_type,
        "status": derived_status(order),
        "total_amount": order.total_amount,
        "payment_intent_id": order.payment_intent_id,
        "payment_status": order.payment_status,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
    if include_items:
        data["items"] = [serialize_item(item) for item in order.items]
    return data


class OrderService:
    """Tenant-scoped order reads, order entry and status emission."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Status log
    # ------------------------------------------------------------------

    def _latest_event(self, order_id: str) -> Optional[OrderStatusEvent]:
        return (
            self.db.query(OrderStatusEvent)
            .filter(OrderStatusEvent.order_id == order_id)
            .order_by(OrderStatusEvent.seq.desc())
            .first()
        )

    def current_status(self, tenant_id: str, order_id: str) -> str:
        """Derive the status of an order from its newest event."""
        self.get_order(tenant_id, order_id)
        latest = self._latest_event(order_id)
        return latest.to_status if latest else default_status()

    def emit_status(
        self,
        tenant_id: str,
        order_id: str,
        to_status: str,
        note: Optional[str] = None,
        staff_id: Optional[str] = None,
        allowed: FrozenSet[str] = ORDER_STATUSES,
    ) -> OrderStatusEvent:
        """Append a status transition for an order owned by ``tenant_id``.

        The order row is locked for the duration of the transaction, so two
        concurrent emits for the same order are applied one after the other
        and each sees the other's event as its predecessor. On backends
        without row locks (SQLite) the ``(order_id, seq)`` unique constraint
        rejects the loser instead.

        Raises:
            ValidationFailed: ``to_status`` is not in ``allowed``.
            OrderNotFound: no such order for this tenant; nothing is written.
            InvalidTransition: strict mode is on and the edge is not legal,
                or a concurrent writer won the race.
        """
        if to_status not in allowed:
            raise ValidationFailed("Invalid status")

        order = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.tenant_id == tenant_id)
            .with_for_update()
            .first()
        )
        if order is None:
            self.db.rollback()
            raise OrderNotFound()

        latest = self._latest_event(order.id)
        from_status = latest.to_status if latest else default_status()

        if settings.strict_order_transitions and not is_transition_allowed(from_status, to_status):
            self.db.rollback()
            raise InvalidTransition(f"Cannot move order from {from_status} to {to_status}")

        event = OrderStatusEvent(
            tenant_id=tenant_id,
            order_id=order.id,
            seq=(latest.seq + 1) if latest else 1,
            from_status=from_status,
            to_status=to_status,
            note=note,
            created_by_staff_id=staff_id,
        )
        self.db.add(event)
        order.current_status = to_status

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Concurrent status change on order {order_id}; {to_status} rejected")
            raise InvalidTransition(
                "Order status changed concurrently, retry", reason="concurrent_update"
            )

        self.db.refresh(event)
        metrics.status_events_emitted += 1
        logger.info(
            f"Order {order_id} status {from_status} -> {to_status} "
            f"(tenant {tenant_id}, staff {staff_id or '-'})"
        )
        return event

    def history(self, tenant_id: str, order_id: str) -> Tuple[Order, List[OrderStatusEvent]]:
        """The order and its status events, oldest first."""
        order = self.get_order(tenant_id, order_id)
        events = (
            self.db.query(OrderStatusEvent)
            .filter(
                OrderStatusEvent.order_id == order.id,
                OrderStatusEvent.tenant_id == tenant_id,
            )
            .order_by(OrderStatusEvent.seq)
            .all()
        )
        return order, events

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def get_order(self, tenant_id: str, order_id: str) -> Order:
        order = (
            self.db.query(Order)
            .options(joinedload(Order.table), selectinload(Order.items).joinedload(OrderItem.menu_item))
            .filter(Order.id == order_id, Order.tenant_id == tenant_id)
            .first()
        )
        if order is None:
            raise OrderNotFound()
        return order

    def list_orders(
        self,
        tenant_id: str,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Order], int]:
        """Tenant orders, newest first, optionally filtered by derived status."""
        query = self.db.query(Order).filter(Order.tenant_id == tenant_id)
        if status:
            if status not in ORDER_STATUSES:
                raise ValidationFailed("Invalid status")
            query = query.filter(status_column() == status)

        total = query.count()
        orders = (
            query.options(joinedload(Order.table))
            .order_by(Order.created_at.desc(), Order.id)
            .offset(skip)
            .limit(limit)
            .all()
        )
        return orders, total

    def create_order(self, tenant_id: str, payload: OrderCreate, staff_id: Optional[str] = None) -> Order:
        """Direct order entry.

        Items are priced from the live menu at entry time and the prices are
        snapshotted onto the order items. No initial status event is written;
        the order reports the default status until its first transition.
        """
        if payload.table_id:
            table = (
                self.db.query(DiningTable)
                .filter(DiningTable.id == payload.table_id, DiningTable.tenant_id == tenant_id)
                .first()
            )
            if table is None:
                raise TableNotFound()

        requested_ids = {item.menu_item_id for item in payload.items}
        menu_items = {
            m.id: m
            for m in self.db.query(MenuItem).filter(
                MenuItem.tenant_id == tenant_id,
                MenuItem.id.in_(requested_ids),
                MenuItem.is_active == True,
                MenuItem.is_available == True,
            )
        }
        for menu_item_id in requested_ids:
            if menu_item_id not in menu_items:
                raise ValidationFailed(f"Menu item not available: {menu_item_id}")

        totals = compute_totals(
            (menu_items[item.menu_item_id].price, item.quantity) for item in payload.items
        )

        order = Order(
            tenant_id=tenant_id,
            table_id=payload.table_id,
            order_type=payload.order_type.value,
            total_amount=totals["total"],
            payment_status="unpaid",
        )
        order.items = [
            OrderItem(
                menu_item_id=item.menu_item_id,
                quantity=item.quantity,
                unit_price=menu_items[item.menu_item_id].price,
                note=item.note,
            )
            for item in payload.items
        ]
        self.db.add(order)
        self.db.commit()

        logger.info(
            f"Order {order.id} entered by staff {staff_id or '-'} for tenant {tenant_id}: "
            f"{len(order.items)} items, total {totals['total']}"
        )
        return self.get_order(tenant_id, order.id)
