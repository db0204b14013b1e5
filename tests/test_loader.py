"""Tests for CachedLoader: TTL, modification coherence, corrupt lines."""

from __future__ import annotations

import os

from conftest import call, error, write_log

from observatory.observability import configure
from observatory.query.loader import CachedLoader
from observatory.records import serialize


class FakeClock:
    def __init__(self, t: float = 1000.0) -> None:
        self.t = t

    def __call__(self) -> float:
        return self.t


def _bump_mtime(path, seconds: int = 10) -> None:
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


class TestCachedLoader:
    def test_missing_file_is_empty(self, tmp_path):
        loader = CachedLoader(tmp_path / "absent.ndjson")
        assert loader.load() == ()
        assert loader.snapshot().skipped == 0

    def test_loads_records(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a"), error("s", "E", "m")])
        assert len(CachedLoader(path).load()) == 2

    def test_cache_hit_returns_same_snapshot(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")])
        loader = CachedLoader(path, clock=FakeClock())
        first = loader.snapshot()
        second = loader.snapshot()
        assert second is first
        assert len(second.records) == 1

    def test_modification_invalidates_before_ttl(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")])
        loader = CachedLoader(path, ttl=3600, clock=FakeClock())
        assert len(loader.load()) == 1

        with open(path, "a", encoding="utf-8") as f:
            f.write(serialize(call("s", "b")) + "\n")
        _bump_mtime(path)

        assert len(loader.load()) == 2

    def test_size_change_invalidates_with_same_mtime(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")])
        st = path.stat()
        loader = CachedLoader(path, ttl=3600, clock=FakeClock())
        assert len(loader.load()) == 1

        with open(path, "a", encoding="utf-8") as f:
            f.write(serialize(call("s", "b")) + "\n")
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns))

        assert len(loader.load()) == 2

    def test_ttl_expiry_reloads(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")])
        clock = FakeClock()
        loader = CachedLoader(path, ttl=5.0, clock=clock)
        first = loader.snapshot()

        clock.t += 4.9
        assert loader.snapshot() is first

        clock.t += 0.2
        reloaded = loader.snapshot()
        assert reloaded is not first
        assert reloaded.captured_at == clock.t

    def test_corrupt_lines_skipped(self, tmp_path):
        path = write_log(
            tmp_path / "m.ndjson",
            [call("s", "a"), call("s", "b")],
            extra_lines=['{"truncated": ', "not json at all", '{"id": "x"}', "   "],
        )
        snap = CachedLoader(path).snapshot()
        assert len(snap.records) == 2
        assert snap.skipped == 3

    def test_undecodable_bytes_do_not_abort(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")])
        with open(path, "ab") as f:
            f.write(b"\xff\xfe garbage\n")
        snap = CachedLoader(path).snapshot()
        assert len(snap.records) == 1
        assert snap.skipped == 1

    def test_file_removed_drops_cache(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")])
        loader = CachedLoader(path, ttl=3600, clock=FakeClock())
        assert len(loader.load()) == 1
        path.unlink()
        assert loader.load() == ()

    def test_invalidate_forces_reload(self, tmp_path):
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")])
        loader = CachedLoader(path, clock=FakeClock())
        first = loader.snapshot()
        loader.invalidate()
        assert loader.snapshot() is not first

    def test_reload_emits_event_when_configured(self, tmp_path):
        configure()
        path = write_log(tmp_path / "m.ndjson", [call("s", "a")], extra_lines=["junk"])
        assert len(CachedLoader(path).load()) == 1

    def test_out_of_range_timestamp_line_skipped(self, tmp_path):
        path = write_log(
            tmp_path / "m.ndjson",
            [error("s", "E", "m")],
            extra_lines=[
                '{"id": "x", "timestamp": 1e20, "sourceId": "s",'
                ' "errorCategory": "X", "message": "far future"}'
            ],
        )
        snap = CachedLoader(path).snapshot()
        assert len(snap.records) == 1
        assert snap.skipped == 1
