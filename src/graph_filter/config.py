"""Configuration for the graph-filter front ends.

Configuration is read from a YAML file and overridden by environment
variables. Missing or malformed files fall back to defaults with a warning;
configuration never stops the REPL or the language server from starting.

Example ``graph-filter.yaml``::

    registry_file: ./snapshot-registries.yaml
    suggestions:
      limit: 10
      entity_limit: 3
    logging:
      level: debug
      file: ~/.graph-filter.log
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from graph_filter.suggestions import DEFAULT_ENTITY_LIMIT, DEFAULT_LIMIT

_log = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "graph-filter.yaml"


@dataclass
class SuggestionConfig:
    """Bounds on the suggestion dropdown."""

    limit: int = DEFAULT_LIMIT
    entity_limit: int = DEFAULT_ENTITY_LIMIT


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # debug, info, warning, error
    file: str | None = None


@dataclass
class FilterConfig:
    """Top-level configuration."""

    registry_file: str | None = None
    suggestions: SuggestionConfig = field(default_factory=SuggestionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def env_overrides(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Build a config dict from ``GRAPH_FILTER_*`` environment variables."""
    env = os.environ if environ is None else environ
    result: dict[str, Any] = {}
    if env.get("GRAPH_FILTER_REGISTRY"):
        result["registry_file"] = env["GRAPH_FILTER_REGISTRY"]
    if env.get("GRAPH_FILTER_LOG"):
        result.setdefault("logging", {})["file"] = env["GRAPH_FILTER_LOG"]
    if env.get("GRAPH_FILTER_LOG_LEVEL"):
        result.setdefault("logging", {})["level"] = env["GRAPH_FILTER_LOG_LEVEL"]
    limit = env.get("GRAPH_FILTER_SUGGESTION_LIMIT")
    if limit:
        try:
            result.setdefault("suggestions", {})["limit"] = int(limit)
        except ValueError:
            _log.warning("Ignoring non-integer GRAPH_FILTER_SUGGESTION_LIMIT=%r", limit)
    return result


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _positive_int(value: Any, default: int, name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    _log.warning("Ignoring invalid %s=%r, using %d", name, value, default)
    return default


def config_from_dict(data: dict[str, Any]) -> FilterConfig:
    """Convert a raw mapping into a :class:`FilterConfig`."""
    suggestions = data.get("suggestions")
    if not isinstance(suggestions, dict):
        suggestions = {}
    log_cfg = data.get("logging")
    if not isinstance(log_cfg, dict):
        log_cfg = {}
    registry_file = data.get("registry_file")
    if registry_file is not None and not isinstance(registry_file, str):
        _log.warning("Ignoring invalid registry_file=%r", registry_file)
        registry_file = None
    config = FilterConfig(registry_file=registry_file)
    if "limit" in suggestions:
        config.suggestions.limit = _positive_int(suggestions["limit"], DEFAULT_LIMIT, "suggestions.limit")
    if "entity_limit" in suggestions:
        config.suggestions.entity_limit = _positive_int(
            suggestions["entity_limit"], DEFAULT_ENTITY_LIMIT, "suggestions.entity_limit"
        )
    config.logging.level = log_cfg.get("level")
    config.logging.file = log_cfg.get("file")
    return config


def load_config(path: Path | None = None, environ: dict[str, str] | None = None) -> FilterConfig:
    """Load configuration from *path* (default ``./graph-filter.yaml``) plus env overrides."""
    config_path = path if path is not None else Path.cwd() / DEFAULT_CONFIG_FILE
    data = _merge(load_yaml_file(config_path), env_overrides(environ))
    config = config_from_dict(data)
    _log.debug("loaded config from %s: %s", config_path, config)
    return config
