"""Rich consoles and the report renderers used by the CLI commands.

Human-readable reports go to stderr; ``emit_json`` writes to stdout so
``--json`` output can be piped into other tools.
"""

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from formflow.schemas.form import FormSchema
from formflow.schemas.submission import PipelineResult

console = Console(stderr=True)
stdout_console = Console()

_SEVERITY_STYLE = {"error": "red", "warning": "yellow"}


def print_ok(msg: str) -> None:
    console.print(f"[green]✓[/green] {msg}")


def print_err(msg: str) -> None:
    console.print(f"[red]✗[/red] {msg}")


def print_warn(msg: str) -> None:
    console.print(f"[yellow]![/yellow] {msg}")


def emit_json(data: Any) -> None:
    stdout_console.print_json(data=data)


def print_problems(problems: List[Dict[str, str]], *, title: str) -> None:
    """Table of parse errors and integrity issues, one row per problem."""
    if not problems:
        console.print(f"[dim]{title}: no problems found[/dim]")
        return

    table = Table(title=title, show_lines=False)
    table.add_column("severity")
    table.add_column("code")
    table.add_column("path", overflow="fold")
    table.add_column("message")
    for problem in problems:
        style = _SEVERITY_STYLE.get(problem["severity"], "")
        table.add_row(
            f"[{style}]{problem['severity']}[/{style}]" if style else problem["severity"],
            problem["code"],
            Text(problem["path"]),
            Text(problem["message"]),
        )
    console.print(table)


def print_pipeline_result(result: PipelineResult, *, title: str) -> None:
    """Computed scores as a table, then each fired alert."""
    table = Table(title=title, show_lines=False)
    table.add_column("result field")
    table.add_column("value", justify="right")
    for field_id, value in result.computed_results.items():
        table.add_row(field_id, str(value))
    console.print(table)

    if not result.fired_alerts:
        console.print("[dim]No alerts fired[/dim]")
    for alert in result.fired_alerts:
        print_warn(alert)


def print_schema_summary(schema: FormSchema, shape: Optional[str]) -> None:
    fields = schema.field_ids()
    console.print(
        f"[bold]{schema.title or schema.id}[/bold] ({shape or 'unknown'} shape): "
        f"{len(schema.pages)} page(s), {len(fields)} field(s), "
        f"{len(schema.conditional_rules)} rule(s), "
        f"{len(schema.completion_actions)} completion action(s)"
    )
