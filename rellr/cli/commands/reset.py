"""Reset command - undo the last release commit."""

from __future__ import annotations

import typer

from rellr.cli.commands._helpers import exit_on_error, require_config
from rellr.cli.context import build_context


def reset(
    version: str | None = typer.Argument(None, help="Version to reset (default: current)"),
) -> None:
    """Delete the release tag and remove the last commit."""
    ctx = build_context()
    config = require_config(ctx)
    exit_on_error(ctx.service().reset(config, version), ctx)
