"""Benchmark fixtures and configuration."""
import pytest

from eventbus import EventBus


@pytest.fixture
def loaded_bus():
    """Bus with 20 handlers on "bench" plus 5 wildcard handlers."""
    bus = EventBus(max_listeners=None)
    for _ in range(20):
        bus.on("bench", lambda payload: None)
    for _ in range(5):
        bus.on_all(lambda key, payload: None)
    return bus
