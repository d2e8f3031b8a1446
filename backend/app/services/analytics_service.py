"""
Analytics Service
Payment funnel, peak hours, revenue series/breakdown and fulfillment timing.

All projections are pure reads over orders, the status event log and payment
intents. Bucketing happens in Python on UTC timestamps so the same code runs
on SQLite and PostgreSQL.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import func
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.errors import ValidationFailed
from app.db.errors import is_missing_table
from app.models.order import Order, OrderStatusEvent
from app.models.payment import PaymentEvent, PaymentIntent
from app.services.order_service import status_column
from app.services.payment_service import EVENT_STATUS

logger = logging.getLogger(__name__)

WINDOWS = ("7d", "30d", "90d", "mtd", "qtd", "ytd")
ROLLING_DAYS = {"7d": 7, "30d": 30, "90d": 90}
WEEKLY_WINDOWS = ("90d", "qtd", "ytd")

FUNNEL_STAGES: List[Tuple[str, int]] = [
    ("created", 1),
    ("requires_action", 2),
    ("confirmed", 3),
    ("processing", 4),
    ("succeeded", 5),
    ("failed", 6),
    ("canceled", 7),
]

# Intent statuses that have not reached a customer action yet count as created.
STAGE_BY_STATUS: Dict[str, str] = {
    "requires_payment_method": "created",
    "requires_confirmation": "created",
    "requires_capture": "created",
    "requires_action": "requires_action",
    "confirmed": "confirmed",
    "processing": "processing",
    "succeeded": "succeeded",
    "failed": "failed",
    "canceled": "canceled",
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _minutes(start: datetime, end: datetime) -> float:
    return (_as_utc(end) - _as_utc(start)).total_seconds() / 60.0


def _avg(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def window_start(window: str, now: Optional[datetime] = None) -> datetime:
    """Start of an analytics window (UTC).

    ``7d/30d/90d`` are rolling; ``mtd/qtd/ytd`` start at the beginning of the
    current month, quarter or year.
    """
    if window not in WINDOWS:
        raise ValidationFailed("Invalid window parameter", reason="invalid_window")
    now = _as_utc(now or datetime.now(timezone.utc))
    if window in ROLLING_DAYS:
        return now - timedelta(days=ROLLING_DAYS[window])
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == "mtd":
        return midnight.replace(day=1)
    if window == "qtd":
        quarter_month = 3 * ((now.month - 1) // 3) + 1
        return midnight.replace(month=quarter_month, day=1)
    return midnight.replace(month=1, day=1)


def granularity_for(window: str) -> str:
    return "week" if window in WEEKLY_WINDOWS else "day"


def bucket_key(moment: datetime, granularity: str) -> date:
    day = _as_utc(moment).date()
    if granularity == "week":
        return day - timedelta(days=day.weekday())
    return day


class AnalyticsService:
    """Read-only dashboard aggregations for one tenant."""

    def __init__(self, db: Session):
        self.db = db

    def _revenue_orders(self, tenant_id: str, start: datetime):
        """Non-cancelled orders created since ``start``."""
        return self.db.query(Order).filter(
            Order.tenant_id == tenant_id,
            Order.created_at >= start,
            status_column() != "cancelled",
        )

    def _reached_stages(self, tenant_id: str, start: datetime) -> Dict[str, Set[str]]:
        """Stages each intent passed through, from its payment event history."""
        rows = (
            self.db.query(PaymentEvent.payment_intent_id, PaymentEvent.event_type)
            .join(PaymentIntent, PaymentIntent.id == PaymentEvent.payment_intent_id)
            .filter(PaymentIntent.tenant_id == tenant_id, PaymentIntent.created_at >= start)
            .all()
        )
        reached: Dict[str, Set[str]] = defaultdict(set)
        for intent_id, event_type in rows:
            stage = STAGE_BY_STATUS.get(EVENT_STATUS.get(event_type, ""))
            if stage:
                reached[intent_id].add(stage)
        return reached

    def payment_funnel(self, tenant_id: str, window: str) -> dict:
        """Intents per stage reached within the window.

        Every intent counts as ``created``; it also counts under each stage
        implied by its payment events and under the stage of its current
        status. Conversion rates are relative to ``created``.
        """
        start = window_start(window)
        intents = (
            self.db.query(PaymentIntent.id, PaymentIntent.status, PaymentIntent.amount)
            .filter(PaymentIntent.tenant_id == tenant_id, PaymentIntent.created_at >= start)
            .all()
        )
        try:
            reached = self._reached_stages(tenant_id, start)
        except DBAPIError as exc:
            if not is_missing_table(exc):
                raise
            self.db.rollback()
            logger.warning("payment_events table missing; funnel built from current intent status only")
            reached = {}

        counts: Dict[str, int] = defaultdict(int)
        amounts: Dict[str, Decimal] = defaultdict(Decimal)
        for intent_id, status, amount in intents:
            stages = {"created"} | reached.get(intent_id, set())
            current = STAGE_BY_STATUS.get(status)
            if current is None:
                logger.debug(f"Intent status {status} has no funnel stage")
            else:
                stages.add(current)
            for stage in stages:
                counts[stage] += 1
                amounts[stage] += Decimal(str(amount))

        created = counts["created"]
        return {
            "window": window,
            "rows": [
                {
                    "stage": stage,
                    "stage_order": order,
                    "intents": counts[stage],
                    "amount": amounts[stage],
                    "conversion_rate": round(counts[stage] / created, 4) if created else 0.0,
                }
                for stage, order in FUNNEL_STAGES
            ],
        }

    def peak_hours(self, tenant_id: str, window: str) -> dict:
        start = window_start(window)
        orders: Dict[int, int] = defaultdict(int)
        revenue: Dict[int, Decimal] = defaultdict(Decimal)
        for order in self._revenue_orders(tenant_id, start):
            hour = _as_utc(order.created_at).hour
            orders[hour] += 1
            revenue[hour] += order.total_amount

        return {
            "window": window,
            "rows": [
                {"hour": hour, "orders": orders[hour], "revenue": revenue[hour]}
                for hour in range(24)
            ],
        }

    def revenue_series(self, tenant_id: str, window: str) -> dict:
        start = window_start(window)
        granularity = granularity_for(window)

        orders: Dict[date, int] = defaultdict(int)
        revenue: Dict[date, Decimal] = defaultdict(Decimal)
        for order in self._revenue_orders(tenant_id, start):
            key = bucket_key(order.created_at, granularity)
            orders[key] += 1
            revenue[key] += order.total_amount

        step = timedelta(days=7 if granularity == "week" else 1)
        period = bucket_key(start, granularity)
        last = bucket_key(datetime.now(timezone.utc), granularity)
        series = []
        while period <= last:
            series.append({
                "period": period.isoformat(),
                "orders": orders[period],
                "revenue": revenue[period],
            })
            period += step

        return {"window": window, "granularity": granularity, "series": series}

    def revenue_breakdown(self, tenant_id: str, window: str) -> dict:
        start = window_start(window)
        rows = (
            self._revenue_orders(tenant_id, start)
            .outerjoin(PaymentIntent, Order.payment_intent_id == PaymentIntent.id)
            .with_entities(Order.order_type, PaymentIntent.provider, Order.total_amount)
            .all()
        )

        by_type: Dict[str, List] = defaultdict(lambda: [0, Decimal("0")])
        by_provider: Dict[str, List] = defaultdict(lambda: [0, Decimal("0")])
        for order_type, provider, amount in rows:
            for bucket, key in ((by_type, order_type), (by_provider, provider or "direct")):
                bucket[key][0] += 1
                bucket[key][1] += amount

        def _rows(bucket):
            return [
                {"key": key, "orders": count, "revenue": total}
                for key, (count, total) in sorted(bucket.items(), key=lambda kv: kv[1][1], reverse=True)
            ]

        return {"window": window, "by_order_type": _rows(by_type), "by_provider": _rows(by_provider)}

    def fulfillment_timeline(self, tenant_id: str, window: str) -> dict:
        """Average minutes per kitchen stage, per day of order creation.

        Queue time runs from order creation to the first ``preparing`` event,
        prep time from ``preparing`` to ``ready`` and serve time from
        ``ready`` to ``served``. Orders without status events are skipped.
        """
        start = window_start(window)
        orders = dict(
            self.db.query(Order.id, Order.created_at)
            .filter(Order.tenant_id == tenant_id, Order.created_at >= start)
            .all()
        )
        if not orders:
            return {"window": window, "rows": []}

        reached: Dict[str, Dict[str, datetime]] = defaultdict(dict)
        events = (
            self.db.query(OrderStatusEvent.order_id, OrderStatusEvent.to_status, OrderStatusEvent.created_at)
            .filter(
                OrderStatusEvent.tenant_id == tenant_id,
                OrderStatusEvent.order_id.in_(list(orders)),
            )
            .order_by(OrderStatusEvent.order_id, OrderStatusEvent.seq)
            .all()
        )
        for order_id, to_status, created_at in events:
            reached[order_id].setdefault(to_status, created_at)

        per_day: Dict[date, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))
        for order_id, stamps in reached.items():
            day = _as_utc(orders[order_id]).date()
            bucket = per_day[day]
            bucket["orders"].append(1)
            if "preparing" in stamps:
                bucket["queue"].append(_minutes(orders[order_id], stamps["preparing"]))
            if "preparing" in stamps and "ready" in stamps:
                bucket["prep"].append(_minutes(stamps["preparing"], stamps["ready"]))
            if "ready" in stamps and "served" in stamps:
                bucket["serve"].append(_minutes(stamps["ready"], stamps["served"]))

        return {
            "window": window,
            "rows": [
                {
                    "day": day.isoformat(),
                    "orders": len(bucket["orders"]),
                    "avg_queue_minutes": _avg(bucket["queue"]),
                    "avg_prep_minutes": _avg(bucket["prep"]),
                    "avg_serve_minutes": _avg(bucket["serve"]),
                }
                for day, bucket in sorted(per_day.items())
            ],
        }
