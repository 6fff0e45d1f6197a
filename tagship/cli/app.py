from __future__ import annotations

import typer

from tagship import __version__
from tagship.cli.commands.formula_cmd import formula
from tagship.cli.commands.info import url, version
from tagship.cli.commands.run_cmd import build, run

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command()(run)
app.command()(build)
app.command()(version)
app.command()(url)
app.command()(formula)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Release a tagged build: GitHub release, asset upload, Homebrew formula bump."""


def main() -> None:
    app()
