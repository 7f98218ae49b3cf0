"""Root Typer application for the formflow developer CLI.

Global options are parsed once in the callback into ``CliOptions`` and
stored on the Typer context; logging is configured there so every
command starts from the same state.
"""

from typing import Optional

import typer
from pydantic import BaseModel, ConfigDict

from formflow import __version__
from formflow.cli._common import setup_logging

app = typer.Typer(
    name="formflow",
    help="Lint, convert and score dynamic form schemas.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)


class CliOptions(BaseModel):
    """Global options shared by every command."""

    model_config = ConfigDict(frozen=True)

    verbose: bool = False
    quiet: bool = False
    json_output: bool = False


def get_options(ctx: typer.Context) -> CliOptions:
    return ctx.obj if isinstance(ctx.obj, CliOptions) else CliOptions()


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"formflow {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log rule evaluation and import details"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
    json_output: bool = typer.Option(False, "--json", help="Write machine-readable JSON to stdout"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_print_version, is_eager=True, help="Show the formflow version"
    ),
):
    """Developer tooling for formflow schemas (outside the form engine itself)."""
    if verbose and quiet:
        raise typer.BadParameter("--verbose and --quiet are mutually exclusive")
    ctx.obj = CliOptions(verbose=verbose, quiet=quiet, json_output=json_output)
    setup_logging(verbose=verbose, quiet=quiet)
