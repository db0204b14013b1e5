"""Event records: the two shapes written to the log, and their wire form.

Records are frozen dataclasses. The class is the discriminant in Python;
on the wire each line also carries an explicit ``kind`` tag. Lines written
without a tag are still accepted and told apart by their distinguishing
key (``subjectName`` vs ``errorCategory``).

Wire format (NDJSON, one record per line):
    invocation: {kind, id, timestamp, sourceId, subjectName, parameters,
                 duration?, success, failureDetail?, metadata?}
    error:      {kind, id, timestamp, sourceId, errorCategory, message,
                 stack?, metadata?}
"""

from __future__ import annotations

import json
import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Union

INVOCATION_KIND = "invocation"
ERROR_KIND = "error"

# Metadata key that links an error record back to the subject that raised it
SUBJECT_METADATA_KEY = "subjectName"

# Latest instant datetime can represent: 9999-12-31T23:59:59.999Z
MAX_TIMESTAMP_MS = 253_402_300_799_999


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_record_id() -> str:
    return f"evt_{now_ms()}_{uuid.uuid4().hex[:8]}"


def new_source_id() -> str:
    return f"src_{now_ms()}_{uuid.uuid4().hex[:6]}"


@dataclass(frozen=True)
class InvocationRecord:
    """One call to a tool (subject) on a source."""

    id: str
    timestamp: int  # epoch ms
    source_id: str
    subject_name: str
    parameters: dict[str, Any] = field(default_factory=dict)
    duration: float | None = None  # ms
    success: bool = True
    failure_detail: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class ErrorRecord:
    """An error raised on a source, usually while serving a subject."""

    id: str
    timestamp: int
    source_id: str
    error_category: str
    message: str
    stack: str | None = None
    metadata: dict[str, Any] | None = None

    @property
    def subject_name(self) -> str | None:
        if not self.metadata:
            return None
        value = self.metadata.get(SUBJECT_METADATA_KEY)
        return value if isinstance(value, str) and value else None


Record = Union[InvocationRecord, ErrorRecord]


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def to_wire(record: Record) -> dict[str, Any]:
    """Convert a record to its wire dict. Absent optional fields are omitted."""
    if isinstance(record, InvocationRecord):
        d: dict[str, Any] = {
            "kind": INVOCATION_KIND,
            "id": record.id,
            "timestamp": record.timestamp,
            "sourceId": record.source_id,
            "subjectName": record.subject_name,
            "parameters": record.parameters,
        }
        if record.duration is not None:
            d["duration"] = record.duration
        d["success"] = record.success
        if record.failure_detail is not None:
            d["failureDetail"] = record.failure_detail
    elif isinstance(record, ErrorRecord):
        d = {
            "kind": ERROR_KIND,
            "id": record.id,
            "timestamp": record.timestamp,
            "sourceId": record.source_id,
            "errorCategory": record.error_category,
            "message": record.message,
        }
        if record.stack is not None:
            d["stack"] = record.stack
    else:
        raise TypeError(f"Not a record: {type(record).__name__}")
    if record.metadata is not None:
        d["metadata"] = record.metadata
    return d


def serialize(record: Record) -> str:
    """One JSON line (without the trailing newline)."""
    return json.dumps(to_wire(record), default=str)


def _require(d: dict, key: str, types: type | tuple[type, ...]) -> Any:
    if key not in d:
        raise ValueError(f"missing field {key!r}")
    value = d[key]
    # bool is an int subclass; never accept it where a number is expected
    if isinstance(value, bool) and bool not in (types if isinstance(types, tuple) else (types,)):
        raise ValueError(f"field {key!r} has wrong type bool")
    if not isinstance(value, types):
        raise ValueError(f"field {key!r} has wrong type {type(value).__name__}")
    return value


def _optional(d: dict, key: str, types: type | tuple[type, ...]) -> Any:
    if d.get(key) is None:
        return None
    return _require(d, key, types)


def _timestamp(d: dict) -> int | float:
    value = _require(d, "timestamp", (int, float))
    if not (math.isfinite(value) and 0 <= value <= MAX_TIMESTAMP_MS):
        raise ValueError(f"timestamp out of range: {value!r}")
    return value


def _duration(d: dict) -> float | None:
    value = _optional(d, "duration", (int, float))
    if value is not None and not math.isfinite(value):
        raise ValueError(f"duration must be finite, got {value!r}")
    return value


def from_wire(d: Any) -> Record:
    """Build a record from a decoded wire dict.

    Raises ValueError when the value is not a well-formed record.
    """
    if not isinstance(d, dict):
        raise ValueError(f"record must be an object, got {type(d).__name__}")

    kind = d.get("kind")
    if kind is None:
        has_subject = "subjectName" in d
        has_category = "errorCategory" in d
        if has_subject == has_category:
            raise ValueError("cannot tell invocation from error record")
        kind = INVOCATION_KIND if has_subject else ERROR_KIND

    common = {
        "id": _require(d, "id", str),
        "timestamp": _timestamp(d),
        "source_id": _require(d, "sourceId", str),
        "metadata": _optional(d, "metadata", dict),
    }

    if kind == INVOCATION_KIND:
        return InvocationRecord(
            subject_name=_require(d, "subjectName", str),
            parameters=_optional(d, "parameters", dict) or {},
            duration=_duration(d),
            success=_require(d, "success", bool),
            failure_detail=_optional(d, "failureDetail", str),
            **common,
        )
    if kind == ERROR_KIND:
        return ErrorRecord(
            error_category=_require(d, "errorCategory", str),
            message=_require(d, "message", str),
            stack=_optional(d, "stack", str),
            **common,
        )
    raise ValueError(f"unknown record kind {kind!r}")


def parse_line(line: str) -> Record:
    """Parse one log line. Raises ValueError (incl. JSONDecodeError) if corrupt."""
    return from_wire(json.loads(line))
