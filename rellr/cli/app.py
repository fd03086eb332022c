from __future__ import annotations

import typer

from rellr import __version__
from rellr.cli.commands.bump import bump
from rellr.cli.commands.changelog_cmd import changelog
from rellr.cli.commands.init import init
from rellr.cli.commands.release_cmd import release
from rellr.cli.commands.reset import reset
from rellr.cli.commands.topic import feat, fix

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(init)
app.command()(bump)
app.command()(feat)
app.command()(fix)
app.command()(release)
app.command()(reset)
app.command()(changelog)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
) -> None:
    """Semantic-version release workflow for git projects."""


def main() -> None:
    app()
