"""Config-driven construction of collectors and query sources.

Sinks and query sources are looked up by name in small registries. The file
implementations are built in; anything else (console, network, database)
plugs in through register_sink() / register_query_source():

    from observatory.factory import register_sink

    register_sink("console", lambda cfg: ConsoleSink(debug=cfg.debug))
"""

from __future__ import annotations

from collections.abc import Callable

from observatory.collector import EventCollector
from observatory.config import CollectorConfig, QueryConfig
from observatory.query.base import QuerySource
from observatory.query.file_source import FileQuerySource
from observatory.sinks.base import Sink
from observatory.sinks.file import NdjsonFileSink

SinkFactory = Callable[[CollectorConfig], Sink]
QuerySourceFactory = Callable[[QueryConfig], QuerySource]


def _file_sink(config: CollectorConfig) -> Sink:
    return NdjsonFileSink(config.file_path, debug=config.debug)


def _file_query_source(config: QueryConfig) -> QuerySource:
    return FileQuerySource(
        config.file_path,
        cache_ttl=config.cache_ttl,
        cost_per_call=config.cost_per_call,
        debug=config.debug,
    )


_SINKS: dict[str, SinkFactory] = {
    "file": _file_sink,
}

_QUERY_SOURCES: dict[str, QuerySourceFactory] = {
    "file": _file_query_source,
}


def register_sink(name: str, factory: SinkFactory) -> None:
    """Register a sink factory under ``name`` for CollectorConfig.sink."""
    _SINKS[name] = factory


def register_query_source(name: str, factory: QuerySourceFactory) -> None:
    """Register a query source factory under ``name`` for QueryConfig.source."""
    _QUERY_SOURCES[name] = factory


def create_sink(config: CollectorConfig) -> Sink:
    factory = _SINKS.get(config.sink)
    if factory is None:
        raise ValueError(
            f"Unknown sink: {config.sink!r}. "
            f"Available: {list(_SINKS)}. "
            f"Register custom sinks with register_sink()."
        )
    return factory(config)


def create_collector(
    config: CollectorConfig | None = None, *, sink: Sink | None = None
) -> EventCollector:
    """Build an EventCollector, resolving the sink from config unless given."""
    cfg = config or CollectorConfig()
    return EventCollector(sink or create_sink(cfg), cfg)


def create_query_source(config: QueryConfig | None = None) -> QuerySource:
    cfg = config or QueryConfig()
    factory = _QUERY_SOURCES.get(cfg.source)
    if factory is None:
        raise ValueError(
            f"Unknown query source: {cfg.source!r}. "
            f"Available: {list(_QUERY_SOURCES)}. "
            f"Register custom query sources with register_query_source()."
        )
    return factory(cfg)
