"""Release command - merge, promote, update files, commit+tag, publish."""

from __future__ import annotations

from pathlib import Path

import typer

from rellr.cli.commands._helpers import exit_on_error, require_config
from rellr.cli.context import build_context
from rellr.output.console import Style


def release(
    directory: Path | None = typer.Argument(
        None, help="Folder holding the package manifests (default: current directory)"
    ),
    merge_commit: bool = typer.Option(
        False, "--merge-commit", help="Create a merge commit when main has diverged"
    ),
    no_publish: bool = typer.Option(False, "--no-publish", help="Skip cargo/npm publish"),
) -> None:
    """Release the staged version."""
    ctx = build_context()
    config = require_config(ctx)
    ctx.console.header(f"Release {config.name} {config.next or ''}".rstrip())

    outcome = exit_on_error(
        ctx.service().release(
            config,
            directory=directory,
            allow_merge_commit=merge_commit,
            publish=not no_publish,
        ),
        ctx,
    )
    ctx.console.print(f"files: {', '.join(outcome.files)}", Style.DIM)
    for manager in outcome.published:
        ctx.console.success(f"published ({manager})")
