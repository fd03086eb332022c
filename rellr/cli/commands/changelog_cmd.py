"""Changelog command."""

from __future__ import annotations

from pathlib import Path

import typer

from rellr.cli.commands._helpers import exit_on_error, require_config
from rellr.cli.context import build_context


def changelog(
    directories: list[Path] | None = typer.Argument(
        None, help="Repositories to scan (default: current directory)"
    ),
) -> None:
    """Regenerate the changelog; with several repositories, list their versions."""
    ctx = build_context()
    config = require_config(ctx)
    exit_on_error(ctx.service().changelog(config, directories or []), ctx)
