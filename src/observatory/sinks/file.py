"""NDJSON file sink: append each batch to a log file, one record per line.

The log is what the query side reads. jq/grep-friendly, and importable
into any database that takes JSON lines.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

from observatory.observability.logging import get_logger
from observatory.records import Record, serialize

logger = get_logger(__name__)


class NdjsonFileSink:
    """Append batches of records to an NDJSON file.

    The parent directory is created on the first non-empty delivery.
    One write per batch; batches from one collector never interleave
    because the collector delivers one batch at a time.
    """

    def __init__(self, path: Path | str, *, debug: bool = False) -> None:
        self._path = Path(path)
        self._debug = debug
        self._dir_ready = False

    @property
    def path(self) -> Path:
        return self._path

    async def deliver(self, records: Sequence[Record]) -> None:
        if not records:
            return
        payload = "\n".join(serialize(r) for r in records) + "\n"
        await asyncio.to_thread(self._append, payload)
        if self._debug:
            logger.debug("sink.file.wrote", records=len(records), path=str(self._path))

    def _append(self, payload: str) -> None:
        if not self._dir_ready:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._dir_ready = True
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(payload)

    async def flush(self) -> None:
        # Writes are immediate
        if self._debug:
            logger.debug("sink.file.flush", path=str(self._path))

    async def shutdown(self) -> None:
        await self.flush()
        if self._debug:
            logger.debug("sink.file.shutdown", path=str(self._path))
