"""
Event keys.

Any hashable value can name an event channel. Plain strings compare by
value; ``OpaqueKey`` instances compare by identity only, so two keys created
independently never collide even when they carry the same label.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any

EventKey = Hashable


class OpaqueKey:
    """Unforgeable event key, equal only to itself.

    Example:
        READY = OpaqueKey("ready")
        bus.on(READY, handler)
        bus.emit(READY)  # handlers on the string "ready" are not called
    """

    __slots__ = ("label",)

    def __init__(self, label: str = ""):
        self.label = label

    # Identity equality and hashing are inherited from object.

    def __repr__(self) -> str:
        return f"OpaqueKey({self.label!r})"


def describe_key(key: Any) -> str:
    """Human-readable form of a key for log output."""
    if isinstance(key, str):
        return key
    return repr(key)
