import json
import logging

import pytest
import structlog

from eventbus.logging_config import configure_from_env, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) in (logging.StreamHandler, logging.FileHandler) and handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.reset_defaults()


def test_json_output_to_file(tmp_path):
    log_file = tmp_path / "logs" / "bus.log"
    configure_logging(
        level="DEBUG", json_output=True, log_file=log_file, cache_logger_on_first_use=False
    )

    get_logger("eventbus.test").warning("event_max_listeners_exceeded", key="a", max_listeners=1)
    logging.getLogger().handlers[0].flush()

    record = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert record["event"] == "event_max_listeners_exceeded"
    assert record["level"] == "warning"
    assert record["logger"] == "eventbus.test"
    assert record["key"] == "a"
    assert "timestamp" in record


def test_level_filters_debug(tmp_path):
    log_file = tmp_path / "bus.log"
    configure_logging(
        level="INFO", json_output=True, log_file=log_file, cache_logger_on_first_use=False
    )

    logger = get_logger("eventbus.test")
    logger.debug("event_subscribed", key="a")
    logger.info("visible")
    logging.getLogger().handlers[0].flush()

    events = [json.loads(line)["event"] for line in log_file.read_text().splitlines()]
    assert events == ["visible"]


def test_configure_from_env(tmp_path):
    log_file = tmp_path / "env.log"
    configure_from_env(
        {
            "EVENTBUS_LOG_LEVEL": "warning",
            "EVENTBUS_LOG_JSON": "true",
            "EVENTBUS_LOG_FILE": str(log_file),
        }
    )

    assert logging.getLogger().level == logging.WARNING
    get_logger("eventbus.env").error("event_handler_error", key="k")
    logging.getLogger().handlers[0].flush()

    record = json.loads(log_file.read_text().strip())
    assert record["event"] == "event_handler_error"


def test_reconfigure_closes_previous_log_file(tmp_path):
    configure_logging(log_file=tmp_path / "first.log", cache_logger_on_first_use=False)
    [first] = logging.getLogger().handlers
    assert isinstance(first, logging.FileHandler)
    assert first.stream is not None

    configure_logging(log_file=tmp_path / "second.log", cache_logger_on_first_use=False)
    [second] = logging.getLogger().handlers

    assert first.stream is None
    assert second is not first
    assert second.baseFilename == str(tmp_path / "second.log")


def test_console_output_uses_stderr(capsys):
    configure_logging(json_output=True, cache_logger_on_first_use=False)
    [handler] = logging.getLogger().handlers
    assert type(handler) is logging.StreamHandler

    get_logger("eventbus.console").info("event_subscribed", key="a")

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["event"] == "event_subscribed"
