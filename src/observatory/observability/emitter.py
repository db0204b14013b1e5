"""Singleton emitter: configure once, emit everywhere.

The global emit() function is the only API pipeline modules need.
It's a no-op when not configured (zero overhead in tests and in
instrumented servers that don't opt in).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pyventus.events import EventEmitter

if TYPE_CHECKING:
    from observatory.observability.config import ObservabilityConfig

_emitter: EventEmitter | None = None
_configured: bool = False


def emit(event: Any) -> None:
    """Fire-and-forget event emission. No-op if not configured."""
    if _emitter is not None:
        _emitter.emit(event)


def configure(config: ObservabilityConfig | None = None) -> EventEmitter:
    """Initialize logging, the global emitter, and the log subscriber.

    Called once at startup (MCP server, CLI entry, test setup).
    Idempotent -- second call returns the existing emitter.
    """
    global _emitter, _configured

    if _configured and _emitter is not None:
        return _emitter

    from observatory.observability.config import ObservabilityConfig

    cfg = config or ObservabilityConfig()

    from observatory.observability.logging import setup_logging

    setup_logging(cfg)

    from pyventus.core.processing.asyncio import AsyncIOProcessingService

    from observatory.observability.linker import ObservatoryEventLinker

    _emitter = EventEmitter(
        event_linker=ObservatoryEventLinker,
        event_processor=AsyncIOProcessingService(),
    )

    from observatory.observability.subscribers.structlog_sub import (
        register_structlog_subscriber,
    )

    register_structlog_subscriber()

    _configured = True
    return _emitter


def is_configured() -> bool:
    return _configured


def reset() -> None:
    """Reset for testing."""
    global _emitter, _configured

    from observatory.observability.logging import shutdown_logging

    shutdown_logging()

    _emitter = None
    _configured = False
