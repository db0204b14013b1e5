"""Tests for observatory MCP server tools.

Tests the _impl functions directly via create_server() with a FileQuerySource.
No MCP transport needed: we call the plain Python impl functions.
"""

from __future__ import annotations

import pytest
from conftest import NOW_MS, call, error, write_log

from observatory.mcp import server as mcp_server
from observatory.query import FileQuerySource


@pytest.fixture(autouse=True)
def _reset_state():
    mcp_server._source = None
    yield
    mcp_server._source = None


@pytest.fixture
def log_path(tmp_path):
    return write_log(
        tmp_path / "m.ndjson",
        [
            call("src_1", "search", duration=1200),
            call("src_1", "search", duration=800, success=False),
            call("src_2", "fetch", duration=50),
            error("src_1", "TimeoutError", "slow", subject="search"),
            error("src_1", "TimeoutError", "slow", subject="search"),
        ],
    )


@pytest.fixture
def server(log_path):
    mcp_server.create_server(FileQuerySource(log_path, clock=lambda: NOW_MS / 1000))
    return mcp_server


class TestTools:
    def test_source_metrics(self, server):
        result = server._get_source_metrics_impl("all", "1h")
        assert result["metrics"]["total_calls"] == 3
        assert set(result["by_source"]) == {"src_1", "src_2"}

    def test_subject_stats(self, server):
        result = server._get_subject_stats_impl("src_1", "search")
        assert result["stats"]["total_calls"] == 2
        assert result["stats"]["avg_duration_ms"] == 1000

    def test_error_logs(self, server):
        result = server._get_error_logs_impl("src_1", 5)
        assert result["total_count"] == 2
        assert result["errors"][0]["frequency"] == 2

    def test_cost_estimate(self, server):
        result = server._get_cost_estimate_impl("src_2")
        assert result["estimated_cost_usd"] == pytest.approx(0.001)

    def test_analyze_performance(self, server):
        result = server._analyze_performance_impl("all")
        assert result["by_source"]["src_1"]["health_score"] == pytest.approx(0.5)
        assert result["critical_insights"][0]["source_id"] == "src_1"


class TestErrorPayloads:
    def test_bad_window(self, server):
        result = server._get_source_metrics_impl("all", "2h")
        assert "Unknown time window" in result["error"]

    def test_empty_selector(self, server):
        assert "error" in server._analyze_performance_impl("")

    def test_bad_limit(self, server):
        assert "limit" in server._get_error_logs_impl("all", 0)["error"]

    def test_missing_subject(self, server):
        assert "error" in server._get_subject_stats_impl("all", "")


class TestLazyInit:
    def test_builds_source_from_env(self, log_path, monkeypatch):
        monkeypatch.setenv("OBSERVATORY_FILE", str(log_path))
        monkeypatch.setattr(mcp_server, "_shutdown_registered", True)
        result = mcp_server._get_error_logs_impl("src_1")
        assert result["total_count"] == 2
        assert isinstance(mcp_server._source, FileQuerySource)

    def test_unknown_source_is_reported(self, monkeypatch):
        monkeypatch.setenv("OBSERVATORY_QUERY_SOURCE", "nope")
        monkeypatch.setattr(mcp_server, "_shutdown_registered", True)
        assert "Unknown query source" in mcp_server._get_source_metrics_impl("all")["error"]

    def test_shutdown_handler(self, server):
        server._get_source_metrics_impl("all")
        server._shutdown_source()

    def test_source_missing_after_init_raises(self, monkeypatch):
        from observatory import factory

        monkeypatch.setitem(factory._QUERY_SOURCES, "broken", lambda cfg: None)
        monkeypatch.setenv("OBSERVATORY_QUERY_SOURCE", "broken")
        monkeypatch.setattr(mcp_server, "_shutdown_registered", True)
        with pytest.raises(RuntimeError, match="failed to initialize"):
            mcp_server._require_source()
