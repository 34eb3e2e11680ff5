from __future__ import annotations

import typer

from rbr import __version__
from rbr.cli.commands.release import branch, bump_formula_cmd, package, run, verify


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command()(branch)
app.command()(package)
app.command()(verify)
app.command("bump-formula")(bump_formula_cmd)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def main() -> None:
    app()
