"""Cached loader: a bounded-staleness snapshot of the NDJSON log.

A cached snapshot is reused while both hold:
    - it is younger than the TTL (wall clock), and
    - the file's mtime (ns) and size match the values seen at capture.

Otherwise the whole file is re-read and re-parsed. Corrupt lines are skipped
and counted; a missing file is an empty log.

Not thread-safe. The loader never writes and takes no locks; concurrent
readers may both reload, which is harmless.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from observatory.observability import emit
from observatory.observability.events import LogReloaded
from observatory.observability.logging import get_logger
from observatory.records import Record, parse_line

logger = get_logger(__name__)

DEFAULT_CACHE_TTL = 5.0
_PREVIEW_CHARS = 50


@dataclass(frozen=True)
class Snapshot:
    """Parsed records plus the file stamp they were read at."""

    records: tuple[Record, ...]
    captured_at: float  # wall-clock seconds
    mtime_ns: int
    size: int
    skipped: int = 0


_EMPTY = Snapshot(records=(), captured_at=0.0, mtime_ns=0, size=0)


class CachedLoader:
    """Loads and caches the records of one log file."""

    def __init__(
        self,
        path: Path | str,
        ttl: float = DEFAULT_CACHE_TTL,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = Path(path)
        self._ttl = ttl
        self._clock = clock
        self._cache: Snapshot | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> tuple[Record, ...]:
        return self.snapshot().records

    def snapshot(self) -> Snapshot:
        """Current snapshot, reloading if the cache is stale or the file changed."""
        try:
            st = os.stat(self._path)
        except FileNotFoundError:
            self._cache = None
            return _EMPTY

        now = self._clock()
        cached = self._cache
        if cached is None:
            reason = "cold"
        elif now - cached.captured_at >= self._ttl:
            reason = "expired"
        elif cached.mtime_ns != st.st_mtime_ns or cached.size != st.st_size:
            reason = "modified"
        else:
            return cached

        self._cache = self._read(st, now, reason)
        return self._cache

    def invalidate(self) -> None:
        self._cache = None

    def _read(self, st: os.stat_result, now: float, reason: str) -> Snapshot:
        start = time.perf_counter()
        text = self._path.read_text(encoding="utf-8", errors="replace")

        records: list[Record] = []
        skipped = 0
        for line in text.split("\n"):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(parse_line(line))
            except ValueError as exc:
                skipped += 1
                logger.debug(
                    "loader.line.skipped",
                    path=str(self._path),
                    preview=line[:_PREVIEW_CHARS],
                    error=str(exc),
                )

        latency_ms = (time.perf_counter() - start) * 1000
        emit(
            LogReloaded(
                path=str(self._path),
                record_count=len(records),
                skipped_lines=skipped,
                reason=reason,
                latency_ms=latency_ms,
            )
        )
        return Snapshot(
            records=tuple(records),
            captured_at=now,
            mtime_ns=st.st_mtime_ns,
            size=st.st_size,
            skipped=skipped,
        )
