"""Sink protocol: strategy pattern for record delivery destinations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from observatory.records import Record


@runtime_checkable
class Sink(Protocol):
    """Where batches of records get delivered.

    deliver() raises on failure; retrying is the collector's job.
    """

    async def deliver(self, records: Sequence[Record]) -> None: ...

    async def flush(self) -> None: ...

    async def shutdown(self) -> None: ...
