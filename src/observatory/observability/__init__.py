"""observatory observability: lifecycle events and structured logging.

Public API:
    emit(event)       Fire-and-forget event emission (no-op if not configured)
    configure(cfg)    Set up logging, the emitter and the log subscriber
    reset()           Reset for testing
    get_logger(name)  structlog logger bound to a stdlib logger

Collector, sink, loader and query code import `emit` and fire typed events.
They don't know about log routing; the subscriber does.
"""

from observatory.observability.config import ObservabilityConfig
from observatory.observability.emitter import configure, emit, is_configured, reset
from observatory.observability.events import (
    BatchDelivered,
    CollectorShutdown,
    DeliveryFailed,
    LogReloaded,
    QueryServed,
)
from observatory.observability.logging import get_logger

__all__ = [
    # Core API
    "emit",
    "configure",
    "is_configured",
    "reset",
    "ObservabilityConfig",
    "get_logger",
    # Producer
    "BatchDelivered",
    "DeliveryFailed",
    "CollectorShutdown",
    # Consumer
    "LogReloaded",
    "QueryServed",
]
