# Realtime change capture and live view fan-out

from app.services.realtime.capture import install_change_capture
from app.services.realtime.hub import ChangeEvent, RealtimeHub, channel_name, hub
from app.services.realtime.subscriptions import Debouncer, SubscriptionSet

__all__ = [
    "ChangeEvent",
    "RealtimeHub",
    "channel_name",
    "hub",
    "install_change_capture",
    "Debouncer",
    "SubscriptionSet",
]
