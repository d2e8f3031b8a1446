"""
Debounced subscriptions for live views.

A view (KDS lanes, dashboard summary, order tracking) watches several
channels but only needs one refetch per burst of writes. ``SubscriptionSet``
owns the hub subscriptions of one connection and keeps a single coalescing
timer per view key; closing it releases everything deterministically.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from app.core.config import settings
from app.services.realtime.hub import ChangeEvent, RealtimeHub, hub as default_hub

logger = logging.getLogger(__name__)

Refresh = Callable[[], Awaitable[None]]
EventFilter = Callable[[ChangeEvent], bool]


class Debouncer:
    """Trailing-edge debounce of an async callback on one event loop.

    ``trigger`` may be called from any thread. Each trigger restarts the
    timer; the callback runs once the triggers have been quiet for ``delay``
    seconds.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, delay: float, callback: Refresh):
        self._loop = loop
        self._delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._closed or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._arm)

    def _arm(self) -> None:
        if self._closed:
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        task = self._loop.create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self) -> None:
        try:
            await self._callback()
        except Exception:
            logger.warning("Debounced refresh failed", exc_info=True)

    def cancel(self) -> None:
        self._closed = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class SubscriptionSet:
    """Scoped bundle of hub subscriptions for one live connection.

    Usage::

        with SubscriptionSet() as subs:
            subs.watch("lanes", [channel_name("orders", tenant_id)], push_lanes)
            ...
    """

    def __init__(
        self,
        hub: Optional[RealtimeHub] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        delay: Optional[float] = None,
    ):
        self._hub = hub or default_hub
        self._loop = loop or asyncio.get_running_loop()
        self._delay = settings.realtime_debounce_seconds if delay is None else delay
        self._debouncers: Dict[str, Debouncer] = {}
        self._unsubscribers: List[Callable[[], None]] = []
        self._closed = False

    @property
    def keys(self) -> List[str]:
        return list(self._debouncers)

    @property
    def closed(self) -> bool:
        return self._closed

    def watch(
        self,
        key: str,
        channels: Iterable[str],
        refresh: Refresh,
        event_filter: Optional[EventFilter] = None,
    ) -> Debouncer:
        """Refresh view ``key`` after changes on any of ``channels``.

        Watching the same key again adds channels to the existing timer.
        """
        if self._closed:
            raise RuntimeError("SubscriptionSet is closed")

        debouncer = self._debouncers.get(key)
        if debouncer is None:
            debouncer = Debouncer(self._loop, self._delay, refresh)
            self._debouncers[key] = debouncer

        def on_change(event: ChangeEvent) -> None:
            if event_filter is None or event_filter(event):
                debouncer.trigger()

        for channel in channels:
            self._unsubscribers.append(self._hub.subscribe(channel, on_change))
        return debouncer

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        self._debouncers.clear()

    def __enter__(self) -> "SubscriptionSet":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
