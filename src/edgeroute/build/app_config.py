"""Application runtime configuration loading.

The application ships an ``app.config.py`` module whose ``config``
attribute is either a plain mapping or a producer function::

    # app.config.py
    config = {"trailingSlash": True}

    # or
    def config(phase, options):
        return {"trailingSlash": phase == "phase-production-server"}

Both shapes load into a tagged variant that is resolved exactly once,
at compile time, into a plain dict.  Nothing downstream ever sees the
producer.
"""

from __future__ import annotations

import importlib.util
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from edgeroute.errors import ConfigurationError

PRODUCTION_PHASE = "phase-production-server"


@dataclass(frozen=True, slots=True)
class StaticConfig:
    """Configuration declared as a plain mapping."""

    values: dict[str, Any] = field(default_factory=dict)

    def resolve(self) -> dict[str, Any]:
        return dict(self.values)


@dataclass(frozen=True, slots=True)
class ConfigProducer:
    """Configuration declared as ``config(phase, options) -> mapping``."""

    func: Callable[[str, dict[str, Any]], Mapping[str, Any]]

    def resolve(self) -> dict[str, Any]:
        result = self.func(PRODUCTION_PHASE, {})
        if result is None:
            return {}
        if not isinstance(result, Mapping):
            msg = (
                f"App config producer returned {type(result).__name__}; "
                "expected a mapping of configuration values."
            )
            raise ConfigurationError(msg)
        return dict(result)


AppConfigSource = StaticConfig | ConfigProducer


def load_app_config(config_file: Path) -> AppConfigSource | None:
    """Load ``config`` from an ``app.config.py`` file.

    Returns ``None`` if the file does not exist, and an empty
    ``StaticConfig`` if the module defines no ``config``.
    """
    if not config_file.is_file():
        return None

    spec = importlib.util.spec_from_file_location("_edgeroute_app_config", config_file)
    if spec is None or spec.loader is None:
        msg = f"Cannot load app config module {config_file}"
        raise ConfigurationError(msg)

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    value = getattr(module, "config", None)
    if value is None:
        return StaticConfig()
    if isinstance(value, Mapping):
        return StaticConfig(dict(value))
    if callable(value):
        return ConfigProducer(value)

    msg = (
        f"{config_file.name}: 'config' must be a mapping or a function, "
        f"got {type(value).__name__}."
    )
    raise ConfigurationError(msg)


def resolve_app_config(source: AppConfigSource | None) -> dict[str, Any]:
    """Resolve a config source into plain values (empty when absent)."""
    if source is None:
        return {}
    return source.resolve()
