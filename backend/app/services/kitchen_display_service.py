"""Kitchen Display System (KDS) lane projection.

A read model over orders: every order whose derived status is still active
for the kitchen is placed in exactly one lane, oldest order first. Served,
paid and cancelled orders are done from the kitchen's point of view and
appear in no lane.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.config import settings
from app.core.errors import ServiceDegraded, ValidationFailed
from app.models.order import Order, OrderItem, OrderStatusEvent
from app.services.order_service import (
    KITCHEN_STATUSES,
    OrderService,
    default_status,
    derived_status,
    serialize_item,
    status_column,
)

logger = logging.getLogger(__name__)

LANES = ("queued", "preparing", "ready")

LANE_BY_STATUS: Dict[str, str] = {
    "new": "queued",
    "pending": "queued",
    "confirmed": "queued",
    "preparing": "preparing",
    "ready": "ready",
}


def lane_for(status: str) -> Optional[str]:
    """Lane for a derived status, or None when the kitchen is done with it."""
    return LANE_BY_STATUS.get(status)


def ensure_kds_enabled() -> None:
    if not settings.enable_kds_rt:
        raise ServiceDegraded("KDS features disabled", reason="feature_flag_off")


class KitchenDisplayService:
    """Lane view and the kitchen's restricted status advance."""

    def __init__(self, db: Session):
        self.db = db

    def lanes(self, tenant_id: str) -> Dict[str, List[dict]]:
        orders = (
            self.db.query(Order)
            .options(
                joinedload(Order.table),
                selectinload(Order.items).joinedload(OrderItem.menu_item),
            )
            .filter(
                Order.tenant_id == tenant_id,
                status_column().in_(list(LANE_BY_STATUS)),
            )
            .order_by(Order.created_at.asc(), Order.id)
            .all()
        )

        status_times = {}
        if orders:
            status_times = dict(
                self.db.query(OrderStatusEvent.order_id, func.max(OrderStatusEvent.created_at))
                .filter(OrderStatusEvent.order_id.in_([o.id for o in orders]))
                .group_by(OrderStatusEvent.order_id)
                .all()
            )

        lanes: Dict[str, List[dict]] = {lane: [] for lane in LANES}
        for order in orders:
            status = derived_status(order)
            lane = lane_for(status)
            if lane is None:
                continue
            lanes[lane].append({
                "id": order.id,
                "table_id": order.table_id,
                "table_number": order.table.table_number if order.table else None,
                "order_type": order.order_type,
                "total_amount": order.total_amount,
                "created_at": order.created_at,
                "current_status": status,
                "status_updated_at": status_times.get(order.id),
                "items": [serialize_item(item) for item in order.items],
            })
        return lanes

    def lane_counts(self, tenant_id: str) -> Dict[str, int]:
        rows = (
            self.db.query(Order.current_status, func.count(Order.id))
            .filter(Order.tenant_id == tenant_id)
            .group_by(Order.current_status)
            .all()
        )
        counts = {lane: 0 for lane in LANES}
        for status, count in rows:
            lane = lane_for(status or default_status())
            if lane:
                counts[lane] += count
        return counts

    def advance(
        self,
        tenant_id: str,
        order_id: str,
        to_status: str,
        staff_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> OrderStatusEvent:
        """Kitchen entry point into the order lifecycle: preparing, ready or served only."""
        if to_status not in KITCHEN_STATUSES:
            raise ValidationFailed("Invalid status for kitchen")
        return OrderService(self.db).emit_status(
            tenant_id,
            order_id,
            to_status,
            note=note,
            staff_id=staff_id,
            allowed=KITCHEN_STATUSES,
        )
