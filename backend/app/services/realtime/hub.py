"""
In-process change hub.

Committed row changes are published on ``{table}:tenant:{tenant_id}``
channels. Subscribers are plain callables invoked on the publishing thread
(usually a request worker), so anything that touches an event loop must hop
over with ``call_soon_threadsafe``. A failing subscriber is logged and never
affects the publisher or the other subscribers.
"""
import itertools
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from app.core.metrics import metrics

logger = logging.getLogger(__name__)


def channel_name(table: str, tenant_id: str) -> str:
    return f"{table}:tenant:{tenant_id}"


@dataclass(frozen=True)
class ChangeEvent:
    """One committed INSERT/UPDATE/DELETE on a watched table."""
    table: str
    event_type: str
    tenant_id: str
    record_id: str
    order_id: Optional[str] = None
    status: Optional[str] = None
    committed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def channel(self) -> str:
        return channel_name(self.table, self.tenant_id)


Subscriber = Callable[[ChangeEvent], None]


class RealtimeHub:
    """Channel -> subscribers registry with thread-safe publish."""

    def __init__(self):
        self._subscribers: Dict[str, Dict[int, Subscriber]] = {}
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)

    def subscribe(self, channel: str, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` on ``channel``; returns the unsubscribe function."""
        with self._lock:
            token = next(self._tokens)
            self._subscribers.setdefault(channel, {})[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                subscribers = self._subscribers.get(channel)
                if subscribers is None:
                    return
                subscribers.pop(token, None)
                if not subscribers:
                    del self._subscribers[channel]

        return unsubscribe

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every subscriber of its channel; returns the count."""
        with self._lock:
            callbacks = list(self._subscribers.get(event.channel, {}).values())

        metrics.realtime_changes_published += 1
        delivered = 0
        for callback in callbacks:
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(f"Realtime subscriber failed on {event.channel}")
        return delivered

    def subscriber_count(self, channel: Optional[str] = None) -> int:
        with self._lock:
            if channel is not None:
                return len(self._subscribers.get(channel, {}))
            return sum(len(subs) for subs in self._subscribers.values())

    def reset(self) -> None:
        with self._lock:
            self._subscribers.clear()


hub = RealtimeHub()
