"""MCP server exposing the observatory query views as tools.

Tools exposed:
- get_source_metrics: Overall call metrics for a source (or all sources)
- get_subject_stats: Detailed statistics for one subject
- get_error_logs: Grouped error log, most frequent first
- get_cost_estimate: Placeholder per-call cost projection
- analyze_performance: Heuristic insights and a health score

Architecture:
    Each tool has a plain `_<name>_impl()` function with the core logic,
    plus an `@mcp.tool`-decorated wrapper that delegates to it.
    Tests call the `_impl` functions directly; MCP clients hit the wrappers.

    Invalid input (selector, window, limit) comes back as {"error": "..."}
    instead of raising, so the calling model can correct itself.

    The query source is built lazily from QueryConfig (env vars:
    OBSERVATORY_FILE, OBSERVATORY_QUERY_SOURCE, OBSERVATORY_CACHE_TTL, ...).
"""

from __future__ import annotations

import atexit
from typing import Any

from fastmcp import FastMCP

from observatory.config import QueryConfig
from observatory.observability.logging import get_logger
from observatory.query.base import ALL_SOURCES, DEFAULT_ERROR_LIMIT, QuerySource

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Server-level state: initialized once via create_server() or serve()
# ---------------------------------------------------------------------------

_source: QuerySource | None = None
_shutdown_registered: bool = False

mcp = FastMCP("observatory")


def _shutdown_source() -> None:
    """atexit handler: drop the query source's cache."""
    if _source is not None:
        try:
            _source.shutdown()
        except Exception:
            logger.warning("query.source.shutdown.failed", exc_info=True)


def _ensure_initialized(config: QueryConfig | None = None) -> None:
    """Lazy initialization: configure observability, build the query source."""
    global _source, _shutdown_registered

    if _source is not None:
        return

    # Initialize observability (env-var driven, zero-config by default)
    from observatory.observability import configure

    configure()

    from observatory.factory import create_query_source

    cfg = config or QueryConfig()
    _source = create_query_source(cfg)
    logger.info("mcp.source.ready", source=cfg.source, file=cfg.file_path)

    if not _shutdown_registered:
        atexit.register(_shutdown_source)
        _shutdown_registered = True


def create_server(source: QuerySource | None = None) -> FastMCP:
    """Create the MCP server around an explicit query source.

    Used by tests and embedding applications. For normal usage, call serve().
    """
    global _source

    _source = source
    return mcp


def _require_source() -> QuerySource:
    _ensure_initialized()
    if _source is None:
        raise RuntimeError("Query source failed to initialize")
    return _source


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------


def _get_source_metrics_impl(source_id: str, time_range: str = "1h") -> dict[str, Any]:
    try:
        return _require_source().metrics(source_id, time_range)
    except ValueError as e:
        return {"error": str(e)}


def _get_subject_stats_impl(
    source_id: str, subject_name: str, time_range: str = "1h"
) -> dict[str, Any]:
    try:
        return _require_source().subject_stats(source_id, subject_name, time_range)
    except ValueError as e:
        return {"error": str(e)}


def _get_error_logs_impl(source_id: str, limit: int = DEFAULT_ERROR_LIMIT) -> dict[str, Any]:
    try:
        return _require_source().error_log(source_id, limit)
    except ValueError as e:
        return {"error": str(e)}


def _get_cost_estimate_impl(source_id: str, time_range: str = "24h") -> dict[str, Any]:
    try:
        return _require_source().cost_estimate(source_id, time_range)
    except ValueError as e:
        return {"error": str(e)}


def _analyze_performance_impl(source_id: str, time_range: str = "24h") -> dict[str, Any]:
    try:
        return _require_source().insights(source_id, time_range)
    except ValueError as e:
        return {"error": str(e)}


# ---------------------------------------------------------------------------
# MCP tool wrappers (thin delegates to _impl functions)
# ---------------------------------------------------------------------------


@mcp.tool
def get_source_metrics(source_id: str = ALL_SOURCES, time_range: str = "1h") -> dict:
    """Get call metrics for an instrumented tool server.

    Returns total calls, success and error rates, mean and p50/p95/p99
    latency, and the ten most-called subjects.

    Args:
        source_id: Source identifier, or "all" to aggregate every source
            (adds a per-source breakdown under "by_source").
        time_range: One of "5m", "1h", "24h", "7d", "30d" (default "1h").
    """
    return _get_source_metrics_impl(source_id, time_range)


@mcp.tool
def get_subject_stats(
    subject_name: str, source_id: str = ALL_SOURCES, time_range: str = "1h"
) -> dict:
    """Get detailed statistics for one tool (subject).

    Args:
        subject_name: Name of the tool to analyze.
        source_id: Source identifier, or "all".
        time_range: One of "5m", "1h", "24h", "7d", "30d" (default "1h").
    """
    return _get_subject_stats_impl(source_id, subject_name, time_range)


@mcp.tool
def get_error_logs(source_id: str = ALL_SOURCES, limit: int = DEFAULT_ERROR_LIMIT) -> dict:
    """Retrieve grouped error logs for debugging.

    Identical (category, message) errors are collapsed into one entry with
    a frequency count; most frequent first.

    Args:
        source_id: Source identifier, or "all".
        limit: Maximum number of error groups to return (default 50).
    """
    return _get_error_logs_impl(source_id, limit)


@mcp.tool
def get_cost_estimate(source_id: str = ALL_SOURCES, time_range: str = "24h") -> dict:
    """Estimate the cost of recorded calls (flat per-call rate).

    Args:
        source_id: Source identifier, or "all".
        time_range: One of "5m", "1h", "24h", "7d", "30d" (default "24h").
    """
    return _get_cost_estimate_impl(source_id, time_range)


@mcp.tool
def analyze_performance(source_id: str = ALL_SOURCES, time_range: str = "24h") -> dict:
    """Analyze performance: slow subjects, error spikes and a health score.

    Args:
        source_id: Source identifier, or "all" (adds per-source analyses and
            a cross-source "critical_insights" list).
        time_range: One of "5m", "1h", "24h", "7d", "30d" (default "24h").
    """
    return _analyze_performance_impl(source_id, time_range)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def serve(transport: str = "stdio", config: QueryConfig | None = None) -> None:
    """Start the observatory MCP server.

    Args:
        transport: "stdio" (default) or "sse".
        config: Query configuration. Defaults to QueryConfig() (env-driven).
    """
    _ensure_initialized(config)
    mcp.run(transport=transport)
