"""Record sinks: strategy pattern for delivery destinations."""

from observatory.sinks.base import Sink
from observatory.sinks.file import NdjsonFileSink

__all__ = ["Sink", "NdjsonFileSink"]
