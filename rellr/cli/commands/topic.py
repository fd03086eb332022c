"""Feature and hotfix branch commands."""

from __future__ import annotations

import typer

from rellr.cli.commands._helpers import exit_on_error, require_config
from rellr.cli.context import build_context
from rellr.core.version import BranchScheme


def feat(name: str = typer.Argument(..., help="Feature name")) -> None:
    """Create and check out feature/<name>."""
    ctx = build_context()
    config = require_config(ctx)
    exit_on_error(ctx.service().start_topic(config, name, BranchScheme.FEATURE), ctx)


def fix(name: str = typer.Argument(..., help="Hotfix name")) -> None:
    """Create and check out hotfix/<name>."""
    ctx = build_context()
    config = require_config(ctx)
    exit_on_error(ctx.service().start_topic(config, name, BranchScheme.HOTFIX), ctx)
