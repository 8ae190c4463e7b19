"""
Event bus configuration.

Options are merged field by field over the defaults: anything not supplied
keeps its default value, anything unrecognized is ignored.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from eventbus.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_LISTENERS = 20

# (error, key, payload)
ErrorCallback = Callable[[BaseException, Any, Any], None]

_ALIASES = {
    "maxListeners": "max_listeners",
    "onError": "on_error",
}


@dataclass(frozen=True)
class EventBusConfig:
    """
    Configuration for an EventBus.

    Args:
        max_listeners: Soft per-key handler limit; reaching it only logs a
            warning. ``None`` or ``0`` disables the check.
        on_error: Called with ``(error, key, payload)`` when a handler raises
            during dispatch. ``None`` logs the failure and carries on.
    """

    max_listeners: int | None = DEFAULT_MAX_LISTENERS
    on_error: ErrorCallback | None = None

    def __post_init__(self):
        if self.max_listeners is not None:
            if isinstance(self.max_listeners, bool) or not isinstance(self.max_listeners, int):
                raise ValueError("max_listeners must be an integer or None")
            if self.max_listeners < 0:
                raise ValueError("max_listeners must be >= 0")
        if self.on_error is not None and not callable(self.on_error):
            raise ValueError("on_error must be callable")

    @classmethod
    def from_mapping(
        cls,
        options: Mapping[str, Any] | None,
        base: EventBusConfig | None = None,
    ) -> EventBusConfig:
        """Shallow-merge ``options`` over ``base`` (or the defaults)."""
        base = base or cls()
        if not options:
            return base

        known = {f.name for f in fields(cls)}
        overrides: dict[str, Any] = {}
        for name, value in options.items():
            name = _ALIASES.get(name, name)
            if name in known:
                overrides[name] = value
            else:
                logger.debug("config_option_ignored", option=name)

        return replace(base, **overrides)

    def merged(self, **overrides: Any) -> EventBusConfig:
        """Return a copy with ``overrides`` applied."""
        return EventBusConfig.from_mapping(overrides, base=self)


def resolve_config(
    config: EventBusConfig | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> EventBusConfig:
    """Build the effective configuration from any accepted config form."""
    if config is None:
        resolved = EventBusConfig()
    elif isinstance(config, EventBusConfig):
        resolved = config
    elif isinstance(config, Mapping):
        resolved = EventBusConfig.from_mapping(config)
    else:
        raise TypeError(f"Unsupported config type: {type(config).__name__}")

    if overrides:
        resolved = resolved.merged(**overrides)
    return resolved


def load_config(path: Path | str) -> EventBusConfig:
    """
    Load configuration from a JSON or YAML file.

    The options may sit at the top level or under an ``event_bus`` section:

        event_bus:
          max_listeners: 50

    Args:
        path: Path to a .json, .yml or .yaml file

    Returns:
        Parsed configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: For unsupported file types or malformed content
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    content = config_path.read_text()

    if config_path.suffix == ".json":
        data = json.loads(content) if content.strip() else {}
    elif config_path.suffix in (".yml", ".yaml"):
        data = yaml.safe_load(content) or {}
    else:
        raise ValueError(f"Unsupported config file type: {config_path.suffix}")

    if not isinstance(data, Mapping):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    section = data.get("event_bus", data)
    if not isinstance(section, Mapping):
        raise ValueError("'event_bus' section must be a mapping")

    options = {k: v for k, v in section.items() if _ALIASES.get(k, k) != "on_error"}
    config = EventBusConfig.from_mapping(options)
    logger.debug("config_loaded", path=str(config_path), max_listeners=config.max_listeners)
    return config
