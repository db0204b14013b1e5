"""Tests for records: wire form, tag discrimination, line parsing."""

from __future__ import annotations

import json
import re
from dataclasses import FrozenInstanceError

import pytest

from observatory.records import (
    MAX_TIMESTAMP_MS,
    ErrorRecord,
    InvocationRecord,
    new_record_id,
    new_source_id,
    parse_line,
    serialize,
    to_wire,
)


class TestIds:
    def test_record_id_shape(self):
        assert re.fullmatch(r"evt_\d+_[0-9a-f]{8}", new_record_id())

    def test_source_id_shape(self):
        assert re.fullmatch(r"src_\d+_[0-9a-f]{6}", new_source_id())

    def test_ids_unique(self):
        assert len({new_record_id() for _ in range(100)}) == 100


class TestWireForm:
    def test_invocation_omits_absent_optionals(self):
        r = InvocationRecord(id="e1", timestamp=1, source_id="s", subject_name="search")
        d = to_wire(r)
        assert d == {
            "kind": "invocation",
            "id": "e1",
            "timestamp": 1,
            "sourceId": "s",
            "subjectName": "search",
            "parameters": {},
            "success": True,
        }

    def test_invocation_full(self):
        r = InvocationRecord(
            id="e1",
            timestamp=1,
            source_id="s",
            subject_name="search",
            parameters={"q": "x"},
            duration=12.5,
            success=False,
            failure_detail="boom",
            metadata={"region": "eu"},
        )
        d = json.loads(serialize(r))
        assert d["duration"] == 12.5
        assert d["failureDetail"] == "boom"
        assert d["metadata"] == {"region": "eu"}
        assert d["success"] is False

    def test_error_record(self):
        r = ErrorRecord(
            id="e2",
            timestamp=2,
            source_id="s",
            error_category="TimeoutError",
            message="slow",
            metadata={"subjectName": "search"},
        )
        d = to_wire(r)
        assert d["kind"] == "error"
        assert d["errorCategory"] == "TimeoutError"
        assert "stack" not in d
        assert r.subject_name == "search"

    def test_error_without_subject(self):
        r = ErrorRecord(id="e", timestamp=1, source_id="s", error_category="E", message="m")
        assert r.subject_name is None

    def test_serialize_is_one_line(self):
        r = InvocationRecord(
            id="e", timestamp=1, source_id="s", subject_name="t", parameters={"text": "a\nb"}
        )
        assert "\n" not in serialize(r)

    def test_records_frozen(self):
        r = InvocationRecord(id="e", timestamp=1, source_id="s", subject_name="t")
        with pytest.raises(FrozenInstanceError):
            r.success = False  # type: ignore[misc]


class TestParseLine:
    def test_parses_what_serialize_writes(self):
        r = ErrorRecord(
            id="e", timestamp=5, source_id="s", error_category="E", message="m", stack="tb"
        )
        assert parse_line(serialize(r)) == r

    def test_untagged_invocation(self):
        line = json.dumps(
            {"id": "e", "timestamp": 1, "sourceId": "s", "subjectName": "t", "success": True}
        )
        r = parse_line(line)
        assert isinstance(r, InvocationRecord)
        assert r.parameters == {}

    def test_untagged_error(self):
        line = json.dumps(
            {"id": "e", "timestamp": 1, "sourceId": "s", "errorCategory": "E", "message": "m"}
        )
        assert isinstance(parse_line(line), ErrorRecord)

    def test_tag_wins_over_structure(self):
        line = json.dumps(
            {
                "kind": "error",
                "id": "e",
                "timestamp": 1,
                "sourceId": "s",
                "errorCategory": "E",
                "message": "m",
                "subjectName": "t",
            }
        )
        assert isinstance(parse_line(line), ErrorRecord)

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": "e", "timestamp": 1, "sourceId": "s"},
            {
                "id": "e",
                "timestamp": 1,
                "sourceId": "s",
                "subjectName": "t",
                "errorCategory": "E",
                "message": "m",
                "success": True,
            },
            {"kind": "metric", "id": "e", "timestamp": 1, "sourceId": "s"},
            {"kind": "invocation", "id": "e", "timestamp": 1, "sourceId": "s", "subjectName": "t"},
            {"kind": "invocation", "id": "e", "timestamp": True, "sourceId": "s",
             "subjectName": "t", "success": True},
            {"kind": "invocation", "id": "e", "timestamp": 1, "sourceId": "s",
             "subjectName": "t", "success": "yes"},
            [1, 2, 3],
        ],
    )
    def test_corrupt_records_rejected(self, payload):
        with pytest.raises(ValueError):
            parse_line(json.dumps(payload))

    def test_invalid_json_rejected(self):
        with pytest.raises(ValueError):
            parse_line('{"id": "e", "timestamp"')

    @pytest.mark.parametrize("timestamp", ["1e20", "-1", "NaN", "Infinity"])
    def test_unrepresentable_timestamp_rejected(self, timestamp):
        line = (
            '{"kind": "error", "id": "e", "sourceId": "s", "errorCategory": "E",'
            f' "message": "m", "timestamp": {timestamp}}}'
        )
        with pytest.raises(ValueError, match="timestamp"):
            parse_line(line)

    def test_latest_representable_timestamp_accepted(self):
        line = json.dumps(
            {"id": "e", "timestamp": MAX_TIMESTAMP_MS, "sourceId": "s",
             "errorCategory": "E", "message": "m"}
        )
        assert parse_line(line).timestamp == MAX_TIMESTAMP_MS

    def test_non_finite_duration_rejected(self):
        line = (
            '{"id": "e", "timestamp": 1, "sourceId": "s", "subjectName": "t",'
            ' "success": true, "duration": NaN}'
        )
        with pytest.raises(ValueError, match="duration"):
            parse_line(line)
