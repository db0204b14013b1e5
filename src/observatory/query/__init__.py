"""Query side: cached log loading and aggregate views."""

from observatory.query.base import ALL_SOURCES, QuerySource
from observatory.query.file_source import FileQuerySource
from observatory.query.loader import CachedLoader, Snapshot
from observatory.query.windows import TimeWindow

__all__ = [
    "ALL_SOURCES",
    "QuerySource",
    "FileQuerySource",
    "CachedLoader",
    "Snapshot",
    "TimeWindow",
]
