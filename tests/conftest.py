"""Pytest configuration and shared fixtures."""
import logging
import os

import pytest
import structlog


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "benchmark: mark test as benchmark")


@pytest.fixture(autouse=True)
def quiet_structlog():
    """Drop debug-level bus chatter unless EVENTBUS_TEST_DEBUG=1."""
    level = logging.DEBUG if os.environ.get("EVENTBUS_TEST_DEBUG") in ("1", "true") else logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))
    yield
    structlog.reset_defaults()
