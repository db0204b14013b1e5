"""Shared fixtures: in-memory sink, record builders, clean observability state."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

import pytest

from observatory.observability import reset as obs_reset
from observatory.records import ErrorRecord, InvocationRecord, Record, serialize

NOW_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z


@pytest.fixture(autouse=True)
def _reset_observability():
    obs_reset()
    yield
    obs_reset()


class MemorySink:
    """Sink that keeps delivered batches in memory; can fail on demand."""

    def __init__(self, fail_times: int = 0) -> None:
        self.batches: list[list[Record]] = []
        self.fail_times = fail_times
        self.attempts = 0
        self.shutdown_called = False

    @property
    def records(self) -> list[Record]:
        return [r for batch in self.batches for r in batch]

    async def deliver(self, records: Sequence[Record]) -> None:
        self.attempts += 1
        if self.fail_times > 0:
            self.fail_times -= 1
            raise OSError("disk full")
        self.batches.append(list(records))

    async def flush(self) -> None:
        pass

    async def shutdown(self) -> None:
        self.shutdown_called = True


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


def call(
    source_id: str,
    subject: str,
    *,
    success: bool = True,
    duration: float | None = None,
    ts: int = NOW_MS - 1000,
    rid: str | None = None,
) -> InvocationRecord:
    return InvocationRecord(
        id=rid or f"evt_{ts}_{subject}",
        timestamp=ts,
        source_id=source_id,
        subject_name=subject,
        duration=duration,
        success=success,
    )


def error(
    source_id: str,
    category: str,
    message: str,
    *,
    subject: str | None = None,
    ts: int = NOW_MS - 1000,
    rid: str | None = None,
    stack: str | None = None,
) -> ErrorRecord:
    return ErrorRecord(
        id=rid or f"err_{ts}",
        timestamp=ts,
        source_id=source_id,
        error_category=category,
        message=message,
        stack=stack,
        metadata={"subjectName": subject} if subject else None,
    )


def write_log(path: Path, records: Sequence[Record], extra_lines: Sequence[str] = ()) -> Path:
    lines = [serialize(r) for r in records] + list(extra_lines)
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path


def read_log(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]
