"""Logging configuration for graph-filter.

The library modules only log at DEBUG through ``logging.getLogger(__name__)``
and stay silent unless :func:`setup_logging` is called by a front end (the
REPL or the language server).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graph_filter.config import LoggingConfig

logger = logging.getLogger("graph_filter")

_initialized = False

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(level: str | None, default: int = logging.WARNING) -> int:
    """Map a level name such as ``"debug"`` to its logging constant."""
    if not level:
        return default
    return _LEVEL_MAP.get(level.upper(), default)


def setup_logging(config: LoggingConfig | None = None, verbose: bool = False) -> None:
    """Initialize logging once; later calls are no-ops.

    The log file comes from the config (which already folds in the
    ``GRAPH_FILTER_LOG`` environment variable) and falls back to stderr when
    stderr is an interactive console. The language server talks JSON-RPC over
    stdio, so it must pass a config with a file or accept no output.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    log_level = logging.DEBUG if verbose else resolve_level(config.level if config else None)
    logger.setLevel(log_level)

    formatter = _LowercaseLevelFormatter("%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S")

    log_path = config.file if config and config.file else os.environ.get("GRAPH_FILTER_LOG")
    if log_path:
        log_path = os.path.expanduser(log_path)
        try:
            file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[graph-filter] Failed to open log file: {e}", file=sys.stderr)
                _add_stderr_handler(formatter, log_level)
            return
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    elif sys.stderr.isatty():
        _add_stderr_handler(formatter, log_level)


def _add_stderr_handler(formatter: logging.Formatter, level: int) -> None:
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)
