"""Observability configuration, env-var driven.

All settings have safe defaults: zero config gives JSON log lines on stderr.

    Destination: OBSERVATORY_LOG_DESTINATION=stderr (default) | jsonl
    Renderer:    OBSERVATORY_LOG_FORMAT=json (default) | console
    Level:       OBSERVATORY_LOG_LEVEL=INFO
    JSONL path:  OBSERVATORY_LOG_PATH
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class ObservabilityConfig:
    """Observability configuration, env-var driven."""

    log_destination: str = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_LOG_DESTINATION", "stderr")
    )  # "stderr" | "jsonl"

    log_level: str = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_LOG_LEVEL", "INFO")
    )

    log_format: str = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_LOG_FORMAT", "json")
    )  # "json" | "console" (dev-friendly renderer)

    # JSONL file destination
    log_path: str | None = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_LOG_PATH")
    )
