"""QuerySource protocol: the read side of the log, one method per view.

Every method takes a selector: a concrete source id, or ALL_SOURCES to
aggregate over every source present in the window. Views are plain dicts
ready for JSON.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from observatory.query.windows import TimeWindow

ALL_SOURCES = "all"

DEFAULT_ERROR_LIMIT = 50


def validate_selector(selector: str) -> str:
    if not isinstance(selector, str) or not selector.strip():
        raise ValueError(
            f"Invalid source selector: {selector!r}. Use a source id or {ALL_SOURCES!r}."
        )
    return selector


def validate_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    return limit


@runtime_checkable
class QuerySource(Protocol):
    """Answers analytical queries over recorded invocations and errors."""

    def metrics(
        self, selector: str, window: TimeWindow | str = TimeWindow.ONE_HOUR
    ) -> dict[str, Any]: ...

    def subject_stats(
        self,
        selector: str,
        subject_name: str,
        window: TimeWindow | str = TimeWindow.ONE_HOUR,
    ) -> dict[str, Any]: ...

    def error_log(self, selector: str, limit: int = DEFAULT_ERROR_LIMIT) -> dict[str, Any]: ...

    def cost_estimate(
        self, selector: str, window: TimeWindow | str = TimeWindow.ONE_DAY
    ) -> dict[str, Any]: ...

    def insights(
        self, selector: str, window: TimeWindow | str = TimeWindow.ONE_DAY
    ) -> dict[str, Any]: ...

    def shutdown(self) -> None: ...
