"""Convert command: normalize any accepted shape to canonical JSON."""

from pathlib import Path
from typing import Optional

import typer

from formflow.cli._app import app, get_options
from formflow.cli._common import load_schema_file
from formflow.cli._console import print_err, print_ok, print_schema_summary
from formflow.codec.exporter import export_json


@app.command("convert", help="Convert a schema file to the canonical advanced shape.")
def convert_cmd(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Schema JSON file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    options = get_options(ctx)
    result = load_schema_file(file)
    if not result.ok:
        for error in result.errors:
            print_err(f"{error.path}: {error.message}")
        raise SystemExit(1)

    text = export_json(result.form_schema)
    if output is None:
        typer.echo(text)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    if not options.quiet:
        print_schema_summary(result.form_schema, result.shape)
    print_ok(f"Wrote schema '{result.form_schema.id}' to {output}")
