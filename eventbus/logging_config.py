"""Structured logging configuration for eventbus.

Uses structlog for structured, context-rich logging with
support for both console and JSON output formats. The library
itself never configures logging; applications call
``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import structlog


def _build_handler(log_file: Path | None) -> logging.Handler:
    if log_file is None:
        return logging.StreamHandler(sys.stderr)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_file, mode="a", encoding="utf-8")


def _processors(json_output: bool, colors: bool) -> list[structlog.types.Processor]:
    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)

    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Path | None = None,
    colors: bool = True,
    cache_logger_on_first_use: bool = True,
) -> None:
    """Route eventbus log events through stdlib logging.

    Calling this again replaces the previous configuration; the handler it
    installed (including an open log file) is closed.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render one JSON object per line instead of console text
        log_file: Append to this file instead of writing to stderr
        colors: Colorize console output (ignored for JSON)
        cache_logger_on_first_use: Freeze logger configuration after first use
    """
    logging.basicConfig(
        format="%(message)s",
        handlers=[_build_handler(log_file)],
        level=getattr(logging, level.upper()),
        force=True,
    )

    structlog.configure(
        processors=_processors(json_output, colors),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_logger_on_first_use,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger bound to ``name``; emits through whatever ``configure_logging`` set up."""
    return structlog.get_logger(name)


def configure_from_env(environ: dict[str, str] | None = None) -> None:
    """Configure logging from ``EVENTBUS_LOG_*`` environment variables.

    Recognized variables:
        EVENTBUS_LOG_LEVEL: Log level name (default INFO)
        EVENTBUS_LOG_JSON: "1"/"true" for JSON output
        EVENTBUS_LOG_FILE: Optional path to append logs to
    """
    env = os.environ if environ is None else environ
    json_output = env.get("EVENTBUS_LOG_JSON", "0").lower() in ("1", "true", "yes")
    log_file = env.get("EVENTBUS_LOG_FILE")

    configure_logging(
        level=env.get("EVENTBUS_LOG_LEVEL", "INFO"),
        json_output=json_output,
        log_file=Path(log_file) if log_file else None,
        colors=not json_output,
    )
