"""
eventbus: in-process publish/subscribe.

Handlers are registered against a key and invoked synchronously, in
registration order, whenever that key is emitted. Wildcard handlers see
every emission. A failing handler never stops the others.
"""

from eventbus.bus import (
    EventBus,
    EventHandler,
    Subscription,
    WildcardEventHandler,
    create_event_bus,
    emit,
    get_event_bus,
    off,
    off_all,
    on,
    on_all,
    once,
    subscribe,
)
from eventbus.config import EventBusConfig, load_config
from eventbus.errors import EventBusError, InvalidHandlerError
from eventbus.keys import EventKey, OpaqueKey

__version__ = "0.1.0"

__all__ = [
    "EventBus",
    "EventBusConfig",
    "EventBusError",
    "EventHandler",
    "EventKey",
    "InvalidHandlerError",
    "OpaqueKey",
    "Subscription",
    "WildcardEventHandler",
    "create_event_bus",
    "emit",
    "get_event_bus",
    "load_config",
    "off",
    "off_all",
    "on",
    "on_all",
    "once",
    "subscribe",
]
