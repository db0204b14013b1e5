"""Collector and query configuration: env vars, optional YAML file, defaults.

Priority: env var > YAML file > default.
Env vars use the OBSERVATORY_ prefix (e.g. OBSERVATORY_BATCH_SIZE=100).

Every value is validated at construction; a bad value raises ValueError
instead of being silently replaced by a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

DEFAULT_LOG_FILE = "./mcp-metrics.ndjson"

# Field name -> env var, used to let env vars win over config file values
_COLLECTOR_ENV = {
    "sink": "OBSERVATORY_SINK",
    "file_path": "OBSERVATORY_FILE",
    "batch_size": "OBSERVATORY_BATCH_SIZE",
    "batch_timeout": "OBSERVATORY_BATCH_TIMEOUT",
    "sampling": "OBSERVATORY_SAMPLING",
    "source_id": "OBSERVATORY_SOURCE_ID",
    "debug": "OBSERVATORY_DEBUG",
}
_QUERY_ENV = {
    "source": "OBSERVATORY_QUERY_SOURCE",
    "file_path": "OBSERVATORY_FILE",
    "cache_ttl": "OBSERVATORY_CACHE_TTL",
    "cost_per_call": "OBSERVATORY_COST_PER_CALL",
    "debug": "OBSERVATORY_DEBUG",
}

_TRUTHY = {"1", "true", "on", "yes"}
_FALSY = {"0", "false", "off", "no", ""}


def _int_env(name: str, default: int) -> int:
    """Parse an integer from an env var with a helpful error on bad input."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {raw!r}.") from None


def _float_env(name: str, default: float) -> float:
    """Parse a float from an env var with a helpful error on bad input."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid number for {name}: {raw!r}.") from None


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in _TRUTHY:
        return True
    if val in _FALSY:
        return False
    raise ValueError(f"Invalid boolean for {name}: {raw!r}. Use one of {sorted(_TRUTHY | _FALSY)}.")


def _load_yaml(cls: type, path: Path, env_vars: dict[str, str]) -> dict[str, Any]:
    """Read a YAML mapping for ``cls``, dropping keys overridden by env vars."""
    raw = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(
            f"Unknown keys in {path}: {sorted(unknown)}. Allowed: {sorted(known)}."
        )
    return {k: v for k, v in raw.items() if env_vars[k] not in os.environ}


@dataclass
class CollectorConfig:
    """Producer-side settings: sink selection, batching, sampling."""

    sink: str = field(default_factory=lambda: os.environ.get("OBSERVATORY_SINK", "file"))
    file_path: str = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_FILE", DEFAULT_LOG_FILE)
    )
    batch_size: int = field(default_factory=lambda: _int_env("OBSERVATORY_BATCH_SIZE", 50))
    # Seconds before a partial batch is delivered
    batch_timeout: float = field(
        default_factory=lambda: _float_env("OBSERVATORY_BATCH_TIMEOUT", 5.0)
    )
    # Fraction of invocation records kept, 0.0-1.0. Errors are never sampled.
    sampling: float = field(default_factory=lambda: _float_env("OBSERVATORY_SAMPLING", 1.0))
    source_id: str | None = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_SOURCE_ID") or None
    )
    debug: bool = field(default_factory=lambda: _bool_env("OBSERVATORY_DEBUG"))

    def __post_init__(self) -> None:
        if not self.sink:
            raise ValueError("sink is required")
        if self.sink == "file" and not self.file_path:
            raise ValueError("file_path is required for the file sink")
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int):
            raise ValueError(f"batch_size must be an integer, got {self.batch_size!r}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.batch_timeout <= 0:
            raise ValueError(f"batch_timeout must be positive, got {self.batch_timeout}")
        if not 0.0 <= self.sampling <= 1.0:
            raise ValueError(f"sampling must be between 0 and 1, got {self.sampling}")
        if self.source_id is not None and not self.source_id:
            raise ValueError("source_id must be non-empty when given")

    @classmethod
    def load(cls, path: Path | str) -> CollectorConfig:
        """Load from a YAML file, then let env vars override."""
        return cls(**_load_yaml(cls, Path(path), _COLLECTOR_ENV))


@dataclass
class QueryConfig:
    """Consumer-side settings: query source selection, cache, cost model."""

    source: str = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_QUERY_SOURCE", "file")
    )
    file_path: str = field(
        default_factory=lambda: os.environ.get("OBSERVATORY_FILE", DEFAULT_LOG_FILE)
    )
    # Staleness bound for the cached snapshot, seconds
    cache_ttl: float = field(default_factory=lambda: _float_env("OBSERVATORY_CACHE_TTL", 5.0))
    # Placeholder linear cost model, USD per invocation
    cost_per_call: float = field(
        default_factory=lambda: _float_env("OBSERVATORY_COST_PER_CALL", 0.001)
    )
    debug: bool = field(default_factory=lambda: _bool_env("OBSERVATORY_DEBUG"))

    def __post_init__(self) -> None:
        if not self.source:
            raise ValueError("source is required")
        if self.source == "file" and not self.file_path:
            raise ValueError("file_path is required for the file query source")
        if self.cache_ttl < 0:
            raise ValueError(f"cache_ttl must not be negative, got {self.cache_ttl}")
        if self.cost_per_call < 0:
            raise ValueError(f"cost_per_call must not be negative, got {self.cost_per_call}")

    @classmethod
    def load(cls, path: Path | str) -> QueryConfig:
        """Load from a YAML file, then let env vars override."""
        return cls(**_load_yaml(cls, Path(path), _QUERY_ENV))
