"""Routes lifecycle events to structured log lines.

Always-on subscriber. Registered by emitter.configure() on startup.
"""

from __future__ import annotations

from dataclasses import asdict

from observatory.observability.events import (
    BatchDelivered,
    CollectorShutdown,
    LogReloaded,
    QueryServed,
)
from observatory.observability.linker import ObservatoryEventLinker
from observatory.observability.logging import get_logger

logger = get_logger("observatory.events")

_registered = False


def _to_dict(event: object) -> dict:
    return asdict(event)  # type: ignore[arg-type]


def register_structlog_subscriber() -> None:
    """Register log handlers on ObservatoryEventLinker.

    Handlers live on the linker class, so they are registered once per process.
    """
    global _registered
    if _registered:
        return

    # Producer
    @ObservatoryEventLinker.on(BatchDelivered)
    def _log_batch_delivered(event: BatchDelivered) -> None:
        logger.debug("collector.batch.delivered", **_to_dict(event))

    # DeliveryFailed is logged by the collector itself (collector.delivery.failed)

    @ObservatoryEventLinker.on(CollectorShutdown)
    def _log_collector_shutdown(event: CollectorShutdown) -> None:
        logger.info("collector.shutdown", **_to_dict(event))

    # Consumer
    @ObservatoryEventLinker.on(LogReloaded)
    def _log_reloaded(event: LogReloaded) -> None:
        logger.info("loader.reloaded", **_to_dict(event))

    @ObservatoryEventLinker.on(QueryServed)
    def _log_query_served(event: QueryServed) -> None:
        logger.debug("query.served", **_to_dict(event))

    _registered = True
