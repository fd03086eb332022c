"""Bump command - stage the next version and switch to its branch."""

from __future__ import annotations

from enum import Enum

import typer

from rellr.cli.commands._helpers import exit_on_error, require_config
from rellr.cli.context import build_context


class BumpChoice(str, Enum):
    patch = "patch"
    minor = "minor"
    major = "major"


def bump(
    kind: BumpChoice = typer.Argument(BumpChoice.patch, help="Version part to bump"),
) -> None:
    """Stage the next release version (creates or renames release/<version>)."""
    ctx = build_context()
    config = require_config(ctx)
    exit_on_error(ctx.service().bump(config, kind.value), ctx)
