"""observatory: record tool-server invocations, query them later.

Producer side:
    create_collector(cfg)   — EventCollector with the configured sink
    instrument(collector)   — Decorator recording every call of a handler

Consumer side:
    create_query_source(cfg) — QuerySource (metrics, subject stats, error
                               log, cost estimate, insights)

The two sides share nothing but the NDJSON log file.
"""

from observatory.collector import EventCollector
from observatory.config import CollectorConfig, QueryConfig
from observatory.factory import (
    create_collector,
    create_query_source,
    create_sink,
    register_query_source,
    register_sink,
)
from observatory.instrument import instrument
from observatory.query import ALL_SOURCES, FileQuerySource, QuerySource, TimeWindow
from observatory.records import ErrorRecord, InvocationRecord
from observatory.sinks import NdjsonFileSink, Sink

__all__ = [
    # Producer
    "EventCollector",
    "CollectorConfig",
    "Sink",
    "NdjsonFileSink",
    "create_collector",
    "create_sink",
    "register_sink",
    "instrument",
    # Records
    "InvocationRecord",
    "ErrorRecord",
    # Consumer
    "QueryConfig",
    "QuerySource",
    "FileQuerySource",
    "TimeWindow",
    "ALL_SOURCES",
    "create_query_source",
    "register_query_source",
]
