"""Aggregation engine: pure views over a record sequence.

Every function takes the records and an explicit ``now_ms`` and returns a
JSON-ready dict. Nothing here does I/O or reads the clock, so a view computed
from one snapshot is always internally consistent.

Selector handling is shared by all views: a concrete source id restricts the
input to that source; ALL_SOURCES partitions the matching records by source
id (first-seen order), computes the single-source view per partition under
``by_source``, and computes one combined view over the union. Sources with no
matching records are absent from ``by_source``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from observatory.query.base import ALL_SOURCES, DEFAULT_ERROR_LIMIT
from observatory.query.stats import mean, summarize
from observatory.query.windows import TimeWindow
from observatory.records import ErrorRecord, InvocationRecord, Record

TOP_SUBJECTS_LIMIT = 10
DEFAULT_COST_PER_CALL = 0.001

SLOW_SUBJECT_MS = 1000
VERY_SLOW_SUBJECT_MS = 5000
ERROR_SPIKE_RATE = 0.1
CRITICAL_ERROR_RATE = 0.3

UNKNOWN_SUBJECT = "unknown"


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def filter_window(records: Iterable[Record], window: TimeWindow, now_ms: int) -> list[Record]:
    cutoff = window.cutoff(now_ms)
    return [r for r in records if r.timestamp >= cutoff]


def invocations(records: Iterable[Record]) -> list[InvocationRecord]:
    return [r for r in records if isinstance(r, InvocationRecord)]


def errors(records: Iterable[Record]) -> list[ErrorRecord]:
    return [r for r in records if isinstance(r, ErrorRecord)]


def for_selector(records: Iterable[Record], selector: str) -> list[Record]:
    if selector == ALL_SOURCES:
        return list(records)
    return [r for r in records if r.source_id == selector]


def partition_by_source(records: Iterable[Record]) -> dict[str, list[Record]]:
    """Group records by source id, keeping first-seen source order."""
    parts: dict[str, list[Record]] = {}
    for r in records:
        parts.setdefault(r.source_id, []).append(r)
    return parts


# ---------------------------------------------------------------------------
# Metrics / subject stats
# ---------------------------------------------------------------------------


def _durations(calls: Iterable[InvocationRecord]) -> list[float]:
    return [c.duration for c in calls if c.duration is not None]


def _subject_mean(calls: Sequence[InvocationRecord]) -> float:
    """Mean duration of a subject: summed durations over every call.

    Calls without a duration count toward the denominator, unlike the
    overall average.
    """
    return sum(_durations(calls)) / len(calls) if calls else 0


def compute_metrics(calls: Sequence[InvocationRecord]) -> dict[str, Any]:
    total = len(calls)
    successes = sum(1 for c in calls if c.success)
    success_rate = successes / total if total else 0
    latency = summarize(_durations(calls))

    by_subject: dict[str, list[InvocationRecord]] = {}
    for c in calls:
        by_subject.setdefault(c.subject_name, []).append(c)

    top = [
        {
            "name": name,
            "calls": len(subject_calls),
            "avg_duration_ms": _subject_mean(subject_calls),
        }
        for name, subject_calls in by_subject.items()
    ]
    top.sort(key=lambda s: s["calls"], reverse=True)

    return {
        "total_calls": total,
        "success_rate": success_rate,
        "avg_duration_ms": latency.avg_ms,
        "p50_duration_ms": latency.p50_ms,
        "p95_duration_ms": latency.p95_ms,
        "p99_duration_ms": latency.p99_ms,
        "error_rate": 1 - success_rate,
        "top_subjects": top[:TOP_SUBJECTS_LIMIT],
    }


def metrics_view(
    records: Iterable[Record], selector: str, window: TimeWindow, now_ms: int
) -> dict[str, Any]:
    calls = invocations(for_selector(filter_window(records, window, now_ms), selector))
    result: dict[str, Any] = {
        "source_id": selector,
        "time_range": window.value,
        "metrics": compute_metrics(calls),
    }
    if selector == ALL_SOURCES:
        result["by_source"] = {
            sid: compute_metrics(part) for sid, part in partition_by_source(calls).items()
        }
    return result


def compute_subject_stats(calls: Sequence[InvocationRecord]) -> dict[str, Any]:
    total = len(calls)
    successes = sum(1 for c in calls if c.success)
    latency = summarize(_durations(calls))
    return {
        "total_calls": total,
        "success_count": successes,
        "error_count": total - successes,
        "avg_duration_ms": latency.avg_ms,
        "p50_duration_ms": latency.p50_ms,
        "p95_duration_ms": latency.p95_ms,
        "p99_duration_ms": latency.p99_ms,
    }


def subject_stats_view(
    records: Iterable[Record],
    selector: str,
    subject_name: str,
    window: TimeWindow,
    now_ms: int,
) -> dict[str, Any]:
    calls = [
        c
        for c in invocations(for_selector(filter_window(records, window, now_ms), selector))
        if c.subject_name == subject_name
    ]
    result: dict[str, Any] = {
        "source_id": selector,
        "subject_name": subject_name,
        "time_range": window.value,
        "stats": compute_subject_stats(calls),
    }
    if selector == ALL_SOURCES:
        result["by_source"] = {
            sid: compute_subject_stats(part) for sid, part in partition_by_source(calls).items()
        }
    return result


# ---------------------------------------------------------------------------
# Error log
# ---------------------------------------------------------------------------


def _iso_utc(timestamp_ms: float) -> str:
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def group_errors(errs: Iterable[ErrorRecord]) -> list[dict[str, Any]]:
    """One entry per (category, message), most frequent first.

    Each entry describes the latest occurrence (highest timestamp; the later
    record wins a tie).
    """
    groups: dict[tuple[str, str], tuple[ErrorRecord, int]] = {}
    for e in errs:
        key = (e.error_category, e.message)
        if key in groups:
            latest, count = groups[key]
            if e.timestamp >= latest.timestamp:
                latest = e
            groups[key] = (latest, count + 1)
        else:
            groups[key] = (e, 1)

    entries = []
    for latest, count in groups.values():
        entry: dict[str, Any] = {
            "id": latest.id,
            "timestamp": _iso_utc(latest.timestamp),
            "subject_name": latest.subject_name or UNKNOWN_SUBJECT,
            "error_category": latest.error_category,
            "message": latest.message,
        }
        if latest.stack is not None:
            entry["stack"] = latest.stack
        entry["frequency"] = count
        entries.append(entry)

    # sort() is stable: equal frequencies keep first-seen order
    entries.sort(key=lambda g: g["frequency"], reverse=True)
    return entries


def error_log_view(
    records: Iterable[Record], selector: str, limit: int = DEFAULT_ERROR_LIMIT
) -> dict[str, Any]:
    errs = errors(for_selector(records, selector))
    result: dict[str, Any] = {"source_id": selector, "time_range": "all"}

    if selector != ALL_SOURCES:
        result["errors"] = group_errors(errs)[:limit]
        result["total_count"] = len(errs)
        return result

    combined: list[dict[str, Any]] = []
    by_source: dict[str, Any] = {}
    for sid, part in partition_by_source(errs).items():
        grouped = group_errors(part)
        combined.extend({**g, "source_id": sid} for g in grouped)
        by_source[sid] = {"errors": grouped[:limit], "total_count": len(part)}

    combined.sort(key=lambda g: g["frequency"], reverse=True)
    result["errors"] = combined[:limit]
    result["total_count"] = len(errs)
    result["by_source"] = by_source
    return result


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------


def compute_cost(call_count: int, cost_per_call: float) -> dict[str, Any]:
    return {
        "estimated_cost_usd": call_count * cost_per_call,
        "breakdown": {
            "invocations": call_count,
            "cost_per_call": cost_per_call,
            "total_calls": call_count,
        },
    }


def cost_view(
    records: Iterable[Record],
    selector: str,
    window: TimeWindow,
    now_ms: int,
    cost_per_call: float = DEFAULT_COST_PER_CALL,
) -> dict[str, Any]:
    calls = invocations(for_selector(filter_window(records, window, now_ms), selector))
    result: dict[str, Any] = {
        "source_id": selector,
        "time_range": window.value,
        **compute_cost(len(calls), cost_per_call),
    }
    if selector == ALL_SOURCES:
        result["by_source"] = {
            sid: compute_cost(len(part), cost_per_call)
            for sid, part in partition_by_source(calls).items()
        }
    return result


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Insight:
    type: str  # "slow_subject" | "error_spike"
    severity: str  # "medium" | "high" | "critical"
    message: str
    recommendation: str
    subject_name: str | None = None

    @property
    def is_critical(self) -> bool:
        return self.severity in ("high", "critical")

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type, "severity": self.severity}
        if self.subject_name is not None:
            d["subject_name"] = self.subject_name
        d["message"] = self.message
        d["recommendation"] = self.recommendation
        return d


def derive_insights(metrics: dict[str, Any]) -> list[Insight]:
    """Heuristic insights from a metrics dict.

    An empty window reports an error rate of 1, so it raises a critical
    error spike like any other window where nothing succeeded.
    """
    found: list[Insight] = []
    for subject in metrics["top_subjects"]:
        avg = subject["avg_duration_ms"]
        if avg > SLOW_SUBJECT_MS:
            name = subject["name"]
            found.append(
                Insight(
                    type="slow_subject",
                    severity="high" if avg > VERY_SLOW_SUBJECT_MS else "medium",
                    subject_name=name,
                    message=f'Subject "{name}" has high average duration: {avg:.0f}ms',
                    recommendation=f'Consider optimizing "{name}" or adding caching',
                )
            )

    error_rate = metrics["error_rate"]
    if error_rate > ERROR_SPIKE_RATE:
        found.append(
            Insight(
                type="error_spike",
                severity="critical" if error_rate > CRITICAL_ERROR_RATE else "high",
                message=f"High error rate detected: {error_rate * 100:.1f}%",
                recommendation="Review error logs and fix failing subjects",
            )
        )
    return found


def health_score(metrics: dict[str, Any]) -> float:
    return max(0.0, 1 - metrics["error_rate"])


def _analysis(calls: Sequence[InvocationRecord]) -> tuple[list[Insight], float]:
    metrics = compute_metrics(calls)
    return derive_insights(metrics), health_score(metrics)


def insights_view(
    records: Iterable[Record], selector: str, window: TimeWindow, now_ms: int
) -> dict[str, Any]:
    calls = invocations(for_selector(filter_window(records, window, now_ms), selector))
    found, score = _analysis(calls)
    result: dict[str, Any] = {
        "source_id": selector,
        "time_range": window.value,
        "insights": [i.to_dict() for i in found],
        "health_score": score,
        # No history is kept, so there is nothing to trend against
        "trend": "stable",
    }
    if selector != ALL_SOURCES:
        return result

    by_source: dict[str, Any] = {}
    critical: list[dict[str, Any]] = []
    scores: list[float] = []
    for sid, part in partition_by_source(calls).items():
        source_insights, source_score = _analysis(part)
        scores.append(source_score)
        by_source[sid] = {
            "insights": [i.to_dict() for i in source_insights],
            "health_score": source_score,
            "trend": "stable",
        }
        critical.extend(
            {**i.to_dict(), "source_id": sid} for i in source_insights if i.is_critical
        )

    # With no sources in the window the combined score stands
    if scores:
        result["health_score"] = mean(scores)
    result["by_source"] = by_source
    result["critical_insights"] = critical
    return result
