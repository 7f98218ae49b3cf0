"""CLI package: Typer-based developer tooling.

Usage:
    python -m formflow.cli --help
    formflow lint intake.json
"""

from formflow.cli._app import app

# Register command modules (side-effect imports)
import formflow.cli.cmd_lint  # noqa: F401
import formflow.cli.cmd_convert  # noqa: F401
import formflow.cli.cmd_score  # noqa: F401

__all__ = ["app"]
