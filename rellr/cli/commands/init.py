"""Init command - create rellr.json."""

from __future__ import annotations

import typer

from rellr.cli.commands._helpers import exit_on_error
from rellr.cli.context import build_context


def init(
    name: str = typer.Argument(..., help="Project name (as in Cargo.toml / package.json)"),
    version: str | None = typer.Option(
        None, "--version", "-v", help="Current project version (default: 0.0.0)"
    ),
) -> None:
    """Create the rellr.json configuration file."""
    ctx = build_context()
    exit_on_error(ctx.service().init(name, version), ctx)
