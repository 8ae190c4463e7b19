"""
Exceptions raised by the event bus.
"""

from __future__ import annotations

from typing import Any


class EventBusError(Exception):
    """Base class for event bus errors."""


class InvalidHandlerError(EventBusError, TypeError):
    """Raised when a handler cannot be registered (not callable or not hashable)."""

    def __init__(self, handler: Any, message: str | None = None):
        self.handler = handler
        self.message = message or f"Event handler must be a function, got {type(handler).__name__}"
        super().__init__(self.message)
