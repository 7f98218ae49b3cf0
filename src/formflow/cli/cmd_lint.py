"""Lint command: import a schema file and report every problem."""

from pathlib import Path

import typer

from formflow.cli._app import app, get_options
from formflow.cli._common import load_schema_file
from formflow.cli._console import emit_json, print_err, print_ok, print_problems, print_warn


@app.command("lint", help="Check a schema file for parse errors and integrity issues.")
def lint_cmd(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Schema JSON file (simple or advanced shape)"),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as failures"),
):
    options = get_options(ctx)
    result = load_schema_file(file)

    problems = [
        {"severity": "error", "code": e.code.value, "path": e.path, "message": e.message}
        for e in result.errors
    ]
    problems.extend(
        {"severity": i.severity.value, "code": i.code.value, "path": i.path, "message": i.message}
        for i in result.issues
    )
    errors = sum(1 for p in problems if p["severity"] == "error")
    warnings = len(problems) - errors

    if options.json_output:
        emit_json({
            "file": str(file),
            "shape": result.shape,
            "ok": result.ok and errors == 0,
            "problems": problems,
            "warnings": result.warnings,
        })
    else:
        print_problems(problems, title=f"{file.name} ({result.shape or 'unknown shape'})")
        for message in result.warnings:
            print_warn(message)

    if errors or (strict and warnings):
        if not options.json_output:
            print_err(f"{errors} error(s), {warnings} warning(s)")
        raise SystemExit(1)
    if not options.json_output:
        print_ok(f"{file.name} is publishable ({warnings} warning(s))")
