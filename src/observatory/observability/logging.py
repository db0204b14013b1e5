"""Structured logging: structlog loggers over stdlib handlers.

Every observatory module logs through get_logger(name): a structlog
BoundLogger wrapping the stdlib logger of the same name. Events are dotted
names ("collector.delivery.failed") with context passed as kwargs.

setup_logging(config) decides where lines go and how they render:
    OBSERVATORY_LOG_DESTINATION=stderr   (default; keeps stdout free for MCP stdio)
    OBSERVATORY_LOG_DESTINATION=jsonl    (append to OBSERVATORY_LOG_PATH)
    OBSERVATORY_LOG_FORMAT=json | console

Before setup_logging() runs, records go to whatever handlers the host
process has on the root logger.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from observatory.observability.config import ObservabilityConfig

DEFAULT_LOG_PATH = "observatory.log.jsonl"

# Set on the single root handler this module owns
_MANAGED_ATTR = "_observatory_managed"

_PROCESSORS: list = [
    structlog.stdlib.filter_by_level,
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
]

# Applied to records from plain stdlib loggers (fastmcp, asyncio, ...)
_FOREIGN_PRE_CHAIN: list = [
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def get_logger(name: str = "", **initial_values: Any) -> Any:
    """Structured logger for ``name``. Works before and after setup_logging()."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        **initial_values,
    )


def _stderr_handler(config: ObservabilityConfig) -> logging.Handler:
    return logging.StreamHandler(sys.stderr)


def _jsonl_handler(config: ObservabilityConfig) -> logging.Handler:
    path = Path(config.log_path or DEFAULT_LOG_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


_DESTINATIONS: dict[str, Callable[[ObservabilityConfig], logging.Handler]] = {
    "stderr": _stderr_handler,
    "jsonl": _jsonl_handler,
}


def _formatter(config: ObservabilityConfig) -> logging.Formatter:
    if config.log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_FOREIGN_PRE_CHAIN,
    )


def _detach_managed(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        if getattr(handler, _MANAGED_ATTR, False):
            root.removeHandler(handler)
            handler.close()


def setup_logging(config: ObservabilityConfig) -> None:
    """Attach one rendering handler to the root logger.

    A previous observatory handler is replaced; handlers installed by anyone
    else (pytest caplog, the host app) are left alone.
    """
    make_handler = _DESTINATIONS.get(config.log_destination)
    if make_handler is None:
        raise ValueError(
            f"Unknown log destination: {config.log_destination!r}. "
            f"Available: {list(_DESTINATIONS)}."
        )

    handler = make_handler(config)
    handler.setFormatter(_formatter(config))
    setattr(handler, _MANAGED_ATTR, True)

    root = logging.getLogger()
    _detach_managed(root)
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))


def shutdown_logging() -> None:
    """Flush, close and detach the observatory handler. Call on process exit."""
    _detach_managed(logging.getLogger())
