"""
Database change capture.

SQLAlchemy session events record INSERT/UPDATE/DELETE of watched rows at
flush time and publish them to the hub only once the transaction commits.
Work that is rolled back is discarded without ever reaching a subscriber.
"""
import logging
from typing import List

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.models.order import Order, OrderStatusEvent
from app.models.payment import PaymentIntent
from app.services.realtime.hub import ChangeEvent, hub

logger = logging.getLogger(__name__)

WATCHED_MODELS = (Order, OrderStatusEvent, PaymentIntent)

_PENDING_KEY = "realtime_pending_changes"


def change_for(obj, event_type: str) -> ChangeEvent:
    if isinstance(obj, Order):
        order_id, status = obj.id, obj.current_status
    elif isinstance(obj, OrderStatusEvent):
        order_id, status = obj.order_id, obj.to_status
    else:
        order_id, status = obj.order_id, obj.status
    return ChangeEvent(
        table=obj.__tablename__,
        event_type=event_type,
        tenant_id=obj.tenant_id,
        record_id=obj.id,
        order_id=order_id,
        status=status,
    )


def _collect(session: Session, flush_context) -> None:
    pending: List[ChangeEvent] = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        if isinstance(obj, WATCHED_MODELS):
            pending.append(change_for(obj, "INSERT"))
    for obj in session.dirty:
        if isinstance(obj, WATCHED_MODELS) and session.is_modified(obj, include_collections=False):
            pending.append(change_for(obj, "UPDATE"))
    for obj in session.deleted:
        if isinstance(obj, WATCHED_MODELS):
            pending.append(change_for(obj, "DELETE"))


def _publish(session: Session) -> None:
    for change in session.info.pop(_PENDING_KEY, []):
        hub.publish(change)


def _discard(session: Session) -> None:
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.debug(f"Discarded {len(dropped)} uncommitted realtime changes")


def install_change_capture() -> None:
    """Attach the capture listeners to every Session (idempotent)."""
    if event.contains(Session, "after_flush", _collect):
        return
    event.listen(Session, "after_flush", _collect)
    event.listen(Session, "after_commit", _publish)
    event.listen(Session, "after_rollback", _discard)
    logger.debug("Realtime change capture installed")
