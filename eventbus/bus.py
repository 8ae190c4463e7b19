"""
Event bus for in-process pub/sub.

Provides:
- Keyed subscriptions with cancellation handles
- One-shot subscriptions
- Wildcard subscriptions receiving every emission
- Per-handler error isolation with a pluggable error callback
- A lazily created process-wide bus plus module-level shortcuts

Dispatch is synchronous: ``emit`` returns only after every handler has run.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import Any

from eventbus.config import EventBusConfig, resolve_config
from eventbus.errors import InvalidHandlerError
from eventbus.keys import EventKey, describe_key
from eventbus.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Types
# =============================================================================

EventHandler = Callable[[Any], Any]
WildcardEventHandler = Callable[[EventKey, Any], Any]

# Ordered set: dict keys keep insertion order and reject duplicates.
HandlerSet = dict[Callable[..., Any], None]


class _Wildcard:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<wildcard>"


WILDCARD = _Wildcard()


def _handler_name(handler: Any) -> str:
    return getattr(handler, "__name__", None) or repr(handler)


def _validate_handler(handler: Any) -> None:
    if not callable(handler):
        raise InvalidHandlerError(handler)
    try:
        hash(handler)
    except TypeError as e:
        raise InvalidHandlerError(
            handler, f"Event handler must be hashable: {_handler_name(handler)}"
        ) from e


# =============================================================================
# Subscription handles
# =============================================================================


class Subscription:
    """
    Cancellation handle returned by ``on``, ``once`` and ``on_all``.

    Calling the handle (or ``cancel()``) removes the registration. The
    ``cancelled`` flag makes repeated calls no-ops.

    Example:
        unsubscribe = bus.on("job.done", handler)
        ...
        unsubscribe()

        with bus.on("job.done", handler):
            run_job()
    """

    __slots__ = ("_bus", "key", "handler", "_cancelled")

    def __init__(self, bus: EventBus, key: EventKey, handler: Callable[..., Any]):
        self._bus = bus
        self.key = key
        self.handler = handler
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def wildcard(self) -> bool:
        return self.key is WILDCARD

    @property
    def active(self) -> bool:
        """Whether this registration is still present on the bus."""
        if self._cancelled:
            return False
        return self._bus._has_handler(self.key, self.handler)

    def cancel(self) -> None:
        with self._bus._lock:
            if self._cancelled:
                return
            self._cancelled = True

        if self.key is WILDCARD:
            self._bus._off_wildcard(self.handler)
        else:
            self._bus.off(self.key, self.handler)

    def __call__(self) -> None:
        self.cancel()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "live"
        return f"<Subscription key={describe_key(self.key)} handler={_handler_name(self.handler)} {state}>"


class _OnceHandler:
    """Adapter that runs ``listener`` at most once, then removes itself."""

    __slots__ = ("_bus", "key", "listener", "_fired")

    def __init__(self, bus: EventBus, key: EventKey, listener: EventHandler):
        self._bus = bus
        self.key = key
        self.listener = listener
        self._fired = False

    def __call__(self, payload: Any = None) -> None:
        with self._bus._lock:
            if self._fired:
                return
            self._fired = True
        try:
            self.listener(payload)
        finally:
            self._bus.off(self.key, self)

    def __repr__(self) -> str:
        return f"<once {_handler_name(self.listener)}>"


# =============================================================================
# Event Bus
# =============================================================================


class EventBus:
    """
    Central event bus for pub/sub communication.

    Features:
    - Handlers run synchronously in registration order
    - Each emission works on a snapshot of the registered handlers, so
      handlers may subscribe, unsubscribe or emit while being dispatched
    - A failing handler never stops the others; failures go to ``on_error``
    - Soft ``max_listeners`` limit per key (warning only)

    Example:
        bus = EventBus(max_listeners=50)
        cancel = bus.on("user.created", lambda user: print(user))
        bus.emit("user.created", {"id": 1})
        cancel()
    """

    def __init__(
        self,
        config: EventBusConfig | Mapping[str, Any] | None = None,
        **overrides: Any,
    ):
        """
        Initialize event bus.

        Args:
            config: An EventBusConfig, a mapping of options, or None for defaults
            **overrides: Individual options applied on top of ``config``
        """
        self._config = resolve_config(config, **overrides)
        self._handlers: dict[EventKey, HandlerSet] = {}
        self._wildcard_handlers: HandlerSet = {}
        self._lock = threading.RLock()

    @property
    def config(self) -> EventBusConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def on(self, key: EventKey, handler: EventHandler) -> Subscription:
        """
        Subscribe ``handler`` to emissions on ``key``.

        Args:
            key: Event key
            handler: Callable receiving the payload

        Returns:
            Cancellation handle

        Raises:
            InvalidHandlerError: If handler is not callable or not hashable
        """
        _validate_handler(handler)
        if key is None:
            raise ValueError("event key is required")
        try:
            hash(key)
        except TypeError as e:
            raise TypeError(f"event key must be hashable, got {type(key).__name__}") from e

        max_listeners = self._config.max_listeners
        with self._lock:
            handlers = self._handlers.setdefault(key, {})
            over_limit = bool(max_listeners) and len(handlers) >= max_listeners
            handlers[handler] = None

        if over_limit:
            logger.warning(
                "event_max_listeners_exceeded",
                key=describe_key(key),
                max_listeners=max_listeners,
            )

        logger.debug(
            "event_subscribed",
            key=describe_key(key),
            handler=_handler_name(handler),
        )
        return Subscription(self, key, handler)

    def once(self, key: EventKey, handler: EventHandler) -> Subscription:
        """
        Subscribe ``handler`` for a single emission on ``key``.

        The registration is removed after the handler runs, even if it raises.
        """
        _validate_handler(handler)
        return self.on(key, _OnceHandler(self, key, handler))

    def on_all(self, handler: WildcardEventHandler) -> Subscription:
        """
        Subscribe ``handler`` to every emission.

        Wildcard handlers are called with ``(key, payload)``.
        """
        _validate_handler(handler)
        with self._lock:
            self._wildcard_handlers[handler] = None

        logger.debug("event_subscribed", key=repr(WILDCARD), handler=_handler_name(handler))
        return Subscription(self, WILDCARD, handler)

    def off(self, key: EventKey, handler: EventHandler) -> None:
        """Remove ``handler`` from ``key``. Unknown keys and handlers are ignored."""
        with self._lock:
            try:
                handlers = self._handlers.get(key)
                if handlers is None or handler not in handlers:
                    return
            except TypeError:
                # unhashable key or handler: never registered
                return
            del handlers[handler]
            if not handlers:
                del self._handlers[key]

        logger.debug(
            "event_unsubscribed",
            key=describe_key(key),
            handler=_handler_name(handler),
        )

    def off_all(self, key: EventKey | None = None) -> None:
        """
        Unsubscribe all handlers.

        Args:
            key: Key to clear, or None to clear every key and all wildcard handlers
        """
        with self._lock:
            if key is not None:
                removed = self._handlers.pop(key, None)
                if removed is None:
                    return
            else:
                self._handlers.clear()
                self._wildcard_handlers.clear()

        logger.debug(
            "event_handlers_cleared",
            key=describe_key(key) if key is not None else None,
        )

    def _off_wildcard(self, handler: WildcardEventHandler) -> None:
        with self._lock:
            if handler not in self._wildcard_handlers:
                return
            del self._wildcard_handlers[handler]

        logger.debug("event_unsubscribed", key=repr(WILDCARD), handler=_handler_name(handler))

    def _has_handler(self, key: EventKey, handler: Callable[..., Any]) -> bool:
        with self._lock:
            if key is WILDCARD:
                return handler in self._wildcard_handlers
            return handler in self._handlers.get(key, ())

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def emit(self, key: EventKey, payload: Any = None) -> None:
        """
        Emit ``payload`` on ``key``.

        Keyed handlers run first, then wildcard handlers. Each group is
        snapshotted right before it is dispatched: keyed handlers added during
        this emission are not called by it and removed ones still are, while
        the wildcard group reflects any changes keyed handlers made.
        Exceptions raised by handlers never escape this method.
        """
        with self._lock:
            try:
                handlers = tuple(self._handlers.get(key, ()))
            except TypeError:
                # unhashable key: nothing can be registered under it
                handlers = ()

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                self._handle_error(e, key, payload)

        with self._lock:
            wildcard_handlers = tuple(self._wildcard_handlers)

        for handler in wildcard_handlers:
            try:
                handler(key, payload)
            except Exception as e:
                self._handle_error(e, key, payload)

    def _handle_error(self, error: Exception, key: EventKey, payload: Any) -> None:
        on_error = self._config.on_error or _log_handler_error
        try:
            on_error(error, key, payload)
        except Exception:
            logger.exception(
                "event_error_callback_failed",
                key=describe_key(key),
                error=str(error),
            )

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def all(self) -> dict[EventKey, list[EventHandler]]:
        """
        Get a copy of the keyed registry.

        Returns:
            Mapping of key to its handlers in registration order. Wildcard
            handlers are not included.
        """
        with self._lock:
            return {key: list(handlers) for key, handlers in self._handlers.items()}

    def listener_count(self, key: EventKey | None = None) -> int:
        """Handlers on ``key``, or every keyed and wildcard handler if key is None."""
        with self._lock:
            if key is not None:
                return len(self._handlers.get(key, ()))
            keyed = sum(len(handlers) for handlers in self._handlers.values())
            return keyed + len(self._wildcard_handlers)

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics."""
        with self._lock:
            return {
                "keys": len(self._handlers),
                "total_handlers": sum(len(h) for h in self._handlers.values()),
                "wildcard_handlers": len(self._wildcard_handlers),
                "max_listeners": self._config.max_listeners,
            }


def _log_handler_error(error: BaseException, key: EventKey, payload: Any) -> None:
    logger.error(
        "event_handler_error",
        key=describe_key(key),
        error=str(error),
        error_type=type(error).__name__,
        exc_info=error,
    )


def create_event_bus(
    config: EventBusConfig | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> EventBus:
    """Create an independent event bus."""
    return EventBus(config, **overrides)


# =============================================================================
# Global Instance
# =============================================================================

_event_bus: EventBus | None = None
_event_bus_lock = threading.Lock()


def get_event_bus() -> EventBus:
    """
    Get or create the global event bus instance.

    The instance uses the default configuration and lives for the rest of the
    process; it is never reset implicitly. Call ``off_all()`` to drop every
    handler it holds.
    """
    global _event_bus
    if _event_bus is None:
        with _event_bus_lock:
            if _event_bus is None:
                _event_bus = EventBus()
    return _event_bus


# =============================================================================
# Convenience Functions
# =============================================================================


def on(key: EventKey, handler: EventHandler) -> Subscription:
    """Subscribe on the global bus."""
    return get_event_bus().on(key, handler)


def once(key: EventKey, handler: EventHandler) -> Subscription:
    """Subscribe once on the global bus."""
    return get_event_bus().once(key, handler)


def on_all(handler: WildcardEventHandler) -> Subscription:
    """Subscribe to every emission on the global bus."""
    return get_event_bus().on_all(handler)


def off(key: EventKey, handler: EventHandler) -> None:
    get_event_bus().off(key, handler)


def off_all(key: EventKey | None = None) -> None:
    get_event_bus().off_all(key)


def emit(key: EventKey, payload: Any = None) -> None:
    """Emit on the global bus."""
    get_event_bus().emit(key, payload)


def subscribe(key: EventKey, handler: EventHandler | None = None):
    """
    Subscribe on the global bus (can be used as decorator).

    Usage:
        @subscribe("model.downloaded")
        def on_download(payload):
            ...

        # Or:
        cancel = subscribe("model.downloaded", handler)
    """
    bus = get_event_bus()

    if handler is not None:
        return bus.on(key, handler)

    # Decorator usage
    def decorator(fn: EventHandler) -> EventHandler:
        bus.on(key, fn)
        return fn

    return decorator
