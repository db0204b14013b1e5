"""CLI error handling and decorators."""

from __future__ import annotations

import functools
from typing import Any, Callable

import typer


def handle_error(msg: str) -> None:
    """Print an error message and exit."""
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(1)


def exits_on_error(f: Callable) -> Callable:
    """Decorator turning bad input (config, selector, window, unreadable file) into exit 1."""

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except (OSError, ValueError) as e:
            handle_error(str(e))

    return wrapper
