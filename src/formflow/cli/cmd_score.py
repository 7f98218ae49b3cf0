"""Score command: run a schema's completion actions over saved answers."""

from pathlib import Path
from typing import Optional

import typer

from formflow.cli._app import app, get_options
from formflow.cli._common import load_schema_file, read_json_file
from formflow.cli._console import emit_json, print_err, print_pipeline_result
from formflow.config.settings import load_settings
from formflow.exceptions import ConfigError
from formflow.runtime.completion import CompletionPipeline


@app.command("score", help="Run completion actions (scores, alerts) over an answers file.")
def score_cmd(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Schema JSON file"),
    answers_file: Path = typer.Argument(..., help="JSON object of field id -> answer"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Engine settings YAML"),
):
    options = get_options(ctx)
    try:
        settings = load_settings(config)
    except ConfigError as e:
        print_err(str(e))
        raise SystemExit(1)

    result = load_schema_file(file)
    if not result.ok:
        for error in result.errors:
            print_err(f"{error.path}: {error.message}")
        raise SystemExit(1)

    answers = read_json_file(answers_file)
    if not isinstance(answers, dict):
        print_err(f"{answers_file} must contain a JSON object")
        raise SystemExit(1)

    pipeline = CompletionPipeline(average_excludes_missing=settings.average_excludes_missing)
    outcome = pipeline.run(result.form_schema.completion_actions, answers)

    if options.json_output:
        emit_json(outcome.model_dump(mode="json"))
    else:
        print_pipeline_result(outcome, title=result.form_schema.title or result.form_schema.id)
