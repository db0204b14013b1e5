"""Typed lifecycle events for the ingestion pipeline and query engine.

All events are frozen (immutable) dataclasses. Pipeline code emits these;
it doesn't know about logs. Subscribers handle routing.

Grouped by side: producer (collector/sink), consumer (loader/queries).
"""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Producer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BatchDelivered:
    source_id: str
    record_count: int
    sink: str  # sink class name
    latency_ms: float


@dataclass(frozen=True)
class DeliveryFailed:
    source_id: str
    record_count: int
    sink: str
    error: str
    pending: int  # buffer size after the failed batch was requeued


@dataclass(frozen=True)
class CollectorShutdown:
    source_id: str
    pending: int  # records still buffered after the final flush


# ---------------------------------------------------------------------------
# Consumer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LogReloaded:
    path: str
    record_count: int
    skipped_lines: int
    reason: str  # "cold" | "expired" | "modified"
    latency_ms: float


@dataclass(frozen=True)
class QueryServed:
    operation: str  # "metrics" | "subject_stats" | "error_log" | "cost_estimate" | "insights"
    selector: str
    time_range: str | None
    record_count: int
    latency_ms: float


ALL_EVENTS = (
    BatchDelivered,
    DeliveryFailed,
    CollectorShutdown,
    LogReloaded,
    QueryServed,
)
