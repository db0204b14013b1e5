"""Observatory CLI -- typer-based command interface.

Commands:
    observatory report metrics|subject|errors|cost|insights   Query a log file
    observatory mcp-serve                                     Start MCP server (stdio or sse)
"""

from __future__ import annotations

from pathlib import Path

import typer

from observatory.cli import report
from observatory.cli._errors import handle_error

app = typer.Typer(
    name="observatory",
    help="Query recorded tool-server metrics: reports and an MCP query server.",
    no_args_is_help=True,
)

app.add_typer(report.app, name="report")


@app.command("mcp-serve")
def mcp_serve(
    file: Path = typer.Option(None, "--file", "-f", help="NDJSON log to serve queries from."),
    transport: str = typer.Option("stdio", help="Transport: 'stdio' or 'sse'."),
    config: Path = typer.Option(None, "--config", help="YAML query config file."),
) -> None:
    """Start the observatory MCP server.

    Exposes the log as tools any MCP client can use:
    get_source_metrics, get_subject_stats, get_error_logs,
    get_cost_estimate, analyze_performance.
    """
    from observatory.config import QueryConfig
    from observatory.mcp.server import serve

    try:
        cfg = QueryConfig.load(config) if config else QueryConfig()
    except (OSError, ValueError) as e:
        handle_error(str(e))
    if file is not None:
        cfg.file_path = str(file)

    serve(transport=transport, config=cfg)


def main() -> None:
    """Entry point for the observatory CLI."""
    app()
