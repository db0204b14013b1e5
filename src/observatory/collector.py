"""EventCollector: buffer records in memory, deliver them to a sink in batches.

Lifecycle:
    1. record_invocation()/record_error() stamp and enqueue a record.
       Invocations are sampled; errors never are.
    2. A full batch (len >= batch_size) schedules a delivery right away.
       Otherwise one delayed delivery is armed (batch_timeout seconds).
       Both triggers need a running event loop.
    3. flush() swaps the buffer out and hands the batch to the sink.
       If the sink raises, the batch is put back at the front of the buffer
       and retried on the next trigger.
    4. shutdown() flushes what's left, then shuts the sink down.

Delivery policy on failure: a failed batch is requeued once per failure,
ahead of anything recorded meanwhile. No dedup is attempted, so a sink that
wrote part of a batch before failing will see those records again.

The collector owns its buffer and timer exclusively; the buffer swap in
flush() is the only transition between buffer generations.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Coroutine
from typing import Any

from observatory.config import CollectorConfig
from observatory.observability import emit
from observatory.observability.events import BatchDelivered, CollectorShutdown, DeliveryFailed
from observatory.observability.logging import get_logger
from observatory.records import (
    ErrorRecord,
    InvocationRecord,
    Record,
    new_record_id,
    new_source_id,
    now_ms,
)
from observatory.sinks.base import Sink

logger = get_logger(__name__)


class EventCollector:
    """Samples, batches and delivers records for one source.

    record_*() never waits on I/O. Deliveries run as tasks on the running
    asyncio loop. Records made with no running loop stay buffered, with no
    trigger, until flush() or shutdown() is awaited.
    """

    def __init__(
        self,
        sink: Sink,
        config: CollectorConfig | None = None,
        *,
        source_id: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._sink = sink
        self._config = config or CollectorConfig()
        self._source_id = source_id or self._config.source_id or new_source_id()
        self._rng = rng or random.Random()
        self._buffer: list[Record] = []
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: asyncio.Future | None = None
        self._tasks: set[asyncio.Task] = set()

        if self._config.debug:
            logger.debug(
                "collector.initialized",
                source_id=self._source_id,
                sink=type(sink).__name__,
                sampling=self._config.sampling,
                batch_size=self._config.batch_size,
                batch_timeout=self._config.batch_timeout,
            )

    @property
    def source_id(self) -> str:
        return self._source_id

    @property
    def sink(self) -> Sink:
        return self._sink

    @property
    def pending(self) -> int:
        """Number of records buffered and not yet delivered."""
        return len(self._buffer)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_invocation(
        self,
        subject_name: str,
        parameters: dict[str, Any] | None = None,
        *,
        duration: float | None = None,
        success: bool = True,
        failure_detail: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record one tool invocation, subject to sampling. Drops are silent."""
        sampling = self._config.sampling
        if sampling == 0.0 or self._rng.random() > sampling:
            return
        self._enqueue(
            InvocationRecord(
                id=new_record_id(),
                timestamp=now_ms(),
                source_id=self._source_id,
                subject_name=subject_name,
                parameters=parameters or {},
                duration=duration,
                success=success,
                failure_detail=failure_detail,
                metadata=metadata,
            )
        )

    def record_error(
        self,
        error_category: str,
        message: str,
        *,
        stack: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record one error. Errors are never sampled."""
        self._enqueue(
            ErrorRecord(
                id=new_record_id(),
                timestamp=now_ms(),
                source_id=self._source_id,
                error_category=error_category,
                message=message,
                stack=stack,
                metadata=metadata,
            )
        )

    def _enqueue(self, record: Record) -> None:
        self._buffer.append(record)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: hold the record until flush() or shutdown()
            return

        if len(self._buffer) >= self._config.batch_size:
            self._spawn(loop, self.flush())
        elif self._timer is None:
            self._timer = loop.call_later(self._config.batch_timeout, self._on_timer)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, None]) -> None:
        """Run a delivery without making the caller wait for it."""
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_timer(self) -> None:
        self._timer = None
        self._spawn(asyncio.get_running_loop(), self.flush())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Deliver the current buffer. Waits for an in-flight delivery first."""
        while self._inflight is not None and not self._inflight.done():
            await asyncio.wait({self._inflight})

        if not self._buffer:
            return

        batch = self._buffer
        self._buffer = []
        self._cancel_timer()

        self._inflight = asyncio.ensure_future(self._deliver(batch))
        await self._inflight

    async def _deliver(self, batch: list[Record]) -> None:
        sink_name = type(self._sink).__name__
        start = time.perf_counter()
        try:
            await self._sink.deliver(batch)
        except Exception as exc:
            self._buffer[:0] = batch
            logger.warning(
                "collector.delivery.failed",
                source_id=self._source_id,
                records=len(batch),
                sink=sink_name,
                error=str(exc),
            )
            emit(
                DeliveryFailed(
                    source_id=self._source_id,
                    record_count=len(batch),
                    sink=sink_name,
                    error=str(exc),
                    pending=len(self._buffer),
                )
            )
            return

        latency_ms = (time.perf_counter() - start) * 1000
        if self._config.debug:
            logger.debug(
                "collector.delivered",
                source_id=self._source_id,
                records=len(batch),
                latency_ms=round(latency_ms, 3),
            )
        emit(
            BatchDelivered(
                source_id=self._source_id,
                record_count=len(batch),
                sink=sink_name,
                latency_ms=latency_ms,
            )
        )

    async def shutdown(self) -> None:
        """Deliver remaining records, then shut the sink down."""
        self._cancel_timer()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.flush()
        await self._sink.shutdown()
        emit(CollectorShutdown(source_id=self._source_id, pending=len(self._buffer)))
