"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import typer

from rellr.core.config import ProjectConfig
from rellr.core.result import Err, Result
from rellr.output.errors import print_release_error, release_error_exit_code
from rellr.release.errors import ReleaseError

if TYPE_CHECKING:
    from rellr.cli.context import CLIContext

T = TypeVar("T")


def exit_on_error(result: Result[T, ReleaseError], ctx: CLIContext) -> T:
    """Return the value of ``result``, or print the error and exit.

    This helper reduces boilerplate for the common pattern:
        match result:
            case Err(e):
                print_release_error(e, ctx.console)
                raise typer.Exit(code=release_error_exit_code(e))
            case Ok(value):
                ...
    """
    if isinstance(result, Err):
        print_release_error(result.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(result.error))
    return result.value


def require_config(ctx: CLIContext) -> ProjectConfig:
    return exit_on_error(ctx.service().load(), ctx)
