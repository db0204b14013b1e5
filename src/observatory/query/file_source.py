"""FileQuerySource: answers queries from the NDJSON log via a CachedLoader.

Each call takes exactly one snapshot and computes the whole view from it.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from observatory.observability import emit
from observatory.observability.events import QueryServed
from observatory.observability.logging import get_logger
from observatory.query import engine
from observatory.query.base import DEFAULT_ERROR_LIMIT, validate_limit, validate_selector
from observatory.query.loader import DEFAULT_CACHE_TTL, CachedLoader
from observatory.query.windows import TimeWindow
from observatory.records import Record, now_ms

logger = get_logger(__name__)


class FileQuerySource:
    """QuerySource backed by a local log file."""

    def __init__(
        self,
        path: Path | str,
        *,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        cost_per_call: float = engine.DEFAULT_COST_PER_CALL,
        debug: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._loader = CachedLoader(path, cache_ttl, clock=clock)
        self._cost_per_call = cost_per_call
        self._debug = debug
        self._clock = clock

    @property
    def loader(self) -> CachedLoader:
        return self._loader

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _serve(
        self,
        operation: str,
        selector: str,
        time_range: str | None,
        compute: Callable[[tuple[Record, ...], int], dict[str, Any]],
    ) -> dict[str, Any]:
        start = time.perf_counter()
        records = self._loader.load()
        result = compute(records, self._now_ms())
        latency_ms = (time.perf_counter() - start) * 1000

        if self._debug:
            logger.debug(
                "query.served",
                operation=operation,
                selector=selector,
                records=len(records),
                latency_ms=round(latency_ms, 3),
            )
        emit(
            QueryServed(
                operation=operation,
                selector=selector,
                time_range=time_range,
                record_count=len(records),
                latency_ms=latency_ms,
            )
        )
        return result

    def metrics(
        self, selector: str, window: TimeWindow | str = TimeWindow.ONE_HOUR
    ) -> dict[str, Any]:
        validate_selector(selector)
        tw = TimeWindow.parse(window)
        return self._serve(
            "metrics",
            selector,
            tw.value,
            lambda records, now: engine.metrics_view(records, selector, tw, now),
        )

    def subject_stats(
        self,
        selector: str,
        subject_name: str,
        window: TimeWindow | str = TimeWindow.ONE_HOUR,
    ) -> dict[str, Any]:
        validate_selector(selector)
        if not subject_name:
            raise ValueError("subject_name is required")
        tw = TimeWindow.parse(window)
        return self._serve(
            "subject_stats",
            selector,
            tw.value,
            lambda records, now: engine.subject_stats_view(
                records, selector, subject_name, tw, now
            ),
        )

    def error_log(self, selector: str, limit: int = DEFAULT_ERROR_LIMIT) -> dict[str, Any]:
        validate_selector(selector)
        validate_limit(limit)
        return self._serve(
            "error_log",
            selector,
            None,
            lambda records, _now: engine.error_log_view(records, selector, limit),
        )

    def cost_estimate(
        self, selector: str, window: TimeWindow | str = TimeWindow.ONE_DAY
    ) -> dict[str, Any]:
        validate_selector(selector)
        tw = TimeWindow.parse(window)
        return self._serve(
            "cost_estimate",
            selector,
            tw.value,
            lambda records, now: engine.cost_view(
                records, selector, tw, now, self._cost_per_call
            ),
        )

    def insights(
        self, selector: str, window: TimeWindow | str = TimeWindow.ONE_DAY
    ) -> dict[str, Any]:
        validate_selector(selector)
        tw = TimeWindow.parse(window)
        return self._serve(
            "insights",
            selector,
            tw.value,
            lambda records, now: engine.insights_view(records, selector, tw, now),
        )

    def shutdown(self) -> None:
        self._loader.invalidate()
        if self._debug:
            logger.debug("query.source.shutdown", path=str(self._loader.path))
