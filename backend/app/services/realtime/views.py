"""Read projections pushed to live connections, as JSON-ready dicts."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.order import Order
from app.models.payment import PaymentIntent
from app.schemas.order import Lanes, OrderDetail, OrderHistory, StatusEventOut
from app.schemas.realtime import DashboardSummary, OrderTracking
from app.services.kitchen_display_service import KitchenDisplayService
from app.services.order_service import OrderService, derived_status, serialize_order, status_column


def kds_view(db: Session, tenant_id: str) -> dict:
    return Lanes(**KitchenDisplayService(db).lanes(tenant_id)).model_dump(mode="json")


def dashboard_view(db: Session, tenant_id: str) -> dict:
    """Today's (UTC) order count and revenue, lane counts and intent statuses."""
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

    orders_today, revenue_today = (
        db.query(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .filter(
            Order.tenant_id == tenant_id,
            Order.created_at >= today,
            status_column() != "cancelled",
        )
        .one()
    )
    intents = dict(
        db.query(PaymentIntent.status, func.count(PaymentIntent.id))
        .filter(PaymentIntent.tenant_id == tenant_id, PaymentIntent.created_at >= today)
        .group_by(PaymentIntent.status)
        .all()
    )

    return DashboardSummary(
        orders_today=orders_today,
        revenue_today=Decimal(str(revenue_today)),
        lanes=KitchenDisplayService(db).lane_counts(tenant_id),
        intents_by_status=intents,
    ).model_dump(mode="json")


def order_tracking_view(db: Session, tenant_id: str, order_id: str) -> dict:
    order, events = OrderService(db).history(tenant_id, order_id)
    return OrderTracking(
        order=OrderDetail(**serialize_order(order, include_items=True)),
        history=OrderHistory(
            order_id=order.id,
            status=derived_status(order),
            events=[StatusEventOut.model_validate(e) for e in events],
        ),
    ).model_dump(mode="json")
