"""@instrument decorator: record every call of a tool handler.

Usage:
    from observatory import create_collector, instrument

    collector = create_collector()

    @instrument(collector)
    async def search(query: str, limit: int = 10) -> list[str]:
        ...

On return a successful invocation is recorded with its wall-clock duration.
On exception a failed invocation and an error record are recorded, then the
exception propagates unchanged.
"""

from __future__ import annotations

import functools
import inspect
import time
import traceback
from collections.abc import Callable
from typing import Any, TypeVar

from observatory.collector import EventCollector
from observatory.records import SUBJECT_METADATA_KEY

F = TypeVar("F", bound=Callable[..., Any])


def _parameters(args: tuple, kwargs: dict[str, Any]) -> dict[str, Any]:
    params = dict(kwargs)
    if args:
        params["args"] = list(args)
    return params


def instrument(collector: EventCollector, name: str | None = None) -> Callable[[F], F]:
    """Decorator factory. ``name`` defaults to the function's ``__name__``."""

    def decorator(fn: F) -> F:
        subject = name or fn.__name__

        def _succeeded(params: dict[str, Any], t0: float) -> None:
            collector.record_invocation(
                subject,
                params,
                duration=(time.perf_counter() - t0) * 1000,
                success=True,
            )

        def _failed(params: dict[str, Any], t0: float, exc: Exception) -> None:
            collector.record_invocation(
                subject,
                params,
                duration=(time.perf_counter() - t0) * 1000,
                success=False,
                failure_detail=str(exc),
            )
            collector.record_error(
                type(exc).__name__,
                str(exc),
                stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                metadata={SUBJECT_METADATA_KEY: subject},
            )

        @functools.wraps(fn)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            params = _parameters(args, kwargs)
            t0 = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception as exc:
                _failed(params, t0, exc)
                raise
            _succeeded(params, t0)
            return result

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            params = _parameters(args, kwargs)
            t0 = time.perf_counter()
            try:
                result = await fn(*args, **kwargs)
            except Exception as exc:
                _failed(params, t0, exc)
                raise
            _succeeded(params, t0)
            return result

        if inspect.iscoroutinefunction(fn):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper  # type: ignore[return-value]

    return decorator
