"""CLI commands for reporting on a recorded log."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from observatory.cli._errors import exits_on_error
from observatory.config import QueryConfig
from observatory.query.base import ALL_SOURCES, DEFAULT_ERROR_LIMIT, QuerySource

app = typer.Typer(help="Report metrics, errors, cost and insights from a log file.")

_FILE_HELP = "NDJSON log to read (default: $OBSERVATORY_FILE or ./mcp-metrics.ndjson)."
_SOURCE_HELP = "Source id, or 'all' to aggregate every source."
_WINDOW_HELP = "Time window: 5m, 1h, 24h, 7d or 30d."


def _open(file: Path | None, config: Path | None) -> QuerySource:
    from observatory.factory import create_query_source

    cfg = QueryConfig.load(config) if config else QueryConfig()
    if file is not None:
        cfg.file_path = str(file)
    return create_query_source(cfg)


def _print(result: dict[str, Any]) -> None:
    typer.echo(json.dumps(result, indent=2))


@app.command()
@exits_on_error
def metrics(
    file: Path = typer.Option(None, "--file", "-f", help=_FILE_HELP),
    source: str = typer.Option(ALL_SOURCES, "--source", "-s", help=_SOURCE_HELP),
    window: str = typer.Option("1h", "--window", "-w", help=_WINDOW_HELP),
    config: Path = typer.Option(None, "--config", help="YAML query config file."),
) -> None:
    """Call counts, success rate, latency percentiles and top subjects."""
    _print(_open(file, config).metrics(source, window))


@app.command()
@exits_on_error
def subject(
    name: str = typer.Argument(..., help="Subject (tool) name."),
    file: Path = typer.Option(None, "--file", "-f", help=_FILE_HELP),
    source: str = typer.Option(ALL_SOURCES, "--source", "-s", help=_SOURCE_HELP),
    window: str = typer.Option("1h", "--window", "-w", help=_WINDOW_HELP),
    config: Path = typer.Option(None, "--config", help="YAML query config file."),
) -> None:
    """Statistics for a single subject."""
    _print(_open(file, config).subject_stats(source, name, window))


@app.command()
@exits_on_error
def errors(
    file: Path = typer.Option(None, "--file", "-f", help=_FILE_HELP),
    source: str = typer.Option(ALL_SOURCES, "--source", "-s", help=_SOURCE_HELP),
    limit: int = typer.Option(DEFAULT_ERROR_LIMIT, "--limit", "-n", help="Max error groups."),
    config: Path = typer.Option(None, "--config", help="YAML query config file."),
) -> None:
    """Grouped error log, most frequent first (whole log, no window)."""
    _print(_open(file, config).error_log(source, limit))


@app.command()
@exits_on_error
def cost(
    file: Path = typer.Option(None, "--file", "-f", help=_FILE_HELP),
    source: str = typer.Option(ALL_SOURCES, "--source", "-s", help=_SOURCE_HELP),
    window: str = typer.Option("24h", "--window", "-w", help=_WINDOW_HELP),
    config: Path = typer.Option(None, "--config", help="YAML query config file."),
) -> None:
    """Estimated cost of recorded calls."""
    _print(_open(file, config).cost_estimate(source, window))


@app.command()
@exits_on_error
def insights(
    file: Path = typer.Option(None, "--file", "-f", help=_FILE_HELP),
    source: str = typer.Option(ALL_SOURCES, "--source", "-s", help=_SOURCE_HELP),
    window: str = typer.Option("24h", "--window", "-w", help=_WINDOW_HELP),
    config: Path = typer.Option(None, "--config", help="YAML query config file."),
) -> None:
    """Slow subjects, error spikes and a health score."""
    _print(_open(file, config).insights(source, window))
