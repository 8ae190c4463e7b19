import pytest

import eventbus
from eventbus import get_event_bus


@pytest.fixture(autouse=True)
def clean_global_bus():
    get_event_bus().off_all()
    yield
    get_event_bus().off_all()


def test_global_bus_is_shared():
    assert get_event_bus() is get_event_bus()
    assert get_event_bus().config.max_listeners == 20


def test_module_level_shortcuts():
    seen = []

    def handler(payload):
        seen.append(("on", payload))

    cancel = eventbus.on("ping", handler)
    eventbus.once("ping", lambda p: seen.append(("once", p)))
    eventbus.on_all(lambda k, p: seen.append(("all", k, p)))

    eventbus.emit("ping", 1)
    eventbus.emit("ping", 2)
    cancel()
    eventbus.emit("ping", 3)

    assert seen == [
        ("on", 1),
        ("once", 1),
        ("all", "ping", 1),
        ("on", 2),
        ("all", "ping", 2),
        ("all", "ping", 3),
    ]


def test_module_level_off_and_off_all():
    seen = []

    def handler(payload):
        seen.append(payload)

    eventbus.on("a", handler)
    eventbus.on("b", handler)
    eventbus.off("a", handler)
    eventbus.emit("a", 1)
    eventbus.emit("b", 2)
    eventbus.off_all()
    eventbus.emit("b", 3)

    assert seen == [2]
    assert get_event_bus().all() == {}


def test_subscribe_decorator():
    seen = []

    @eventbus.subscribe("model.downloaded")
    def on_download(payload):
        seen.append(payload)

    eventbus.emit("model.downloaded", {"name": "m"})

    assert callable(on_download)
    assert seen == [{"name": "m"}]
    assert get_event_bus().all() == {"model.downloaded": [on_download]}


def test_subscribe_direct_returns_handle():
    seen = []

    def handler(payload):
        seen.append(payload)

    cancel = eventbus.subscribe("a", handler)
    eventbus.emit("a", 1)
    cancel()
    eventbus.emit("a", 2)
    assert seen == [1]


def test_independent_instances_do_not_share_handlers():
    seen = []

    def handler(payload):
        seen.append(payload)

    bus = eventbus.create_event_bus()
    bus.on("a", handler)
    eventbus.emit("a", 1)
    assert seen == []
    assert bus is not get_event_bus()
