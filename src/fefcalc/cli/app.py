"""
fefcalc command-line application.

Builds the typer app, loads settings in the main callback and registers
the formula commands.
"""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import typer

from fefcalc.cli.formula import (
    calc_command,
    create_command,
    evaluate_command,
    tokens_command,
)
from fefcalc.cli.utils import configure_logging, fail, version_callback
from fefcalc.core.config import load_settings
from fefcalc.core.errors import ConfigError

# =============================================================================
# Main Application
# =============================================================================

app = typer.Typer(
    help="""fefcalc – arithmetic formula parser and evaluator

Commands:
  • tokens    Show how a formula is tokenized
  • calc      Evaluate a formula
  • create    Save a formula as a document
  • evaluate  Evaluate a saved document
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to fefcalc.toml (default: ./fefcalc.toml)"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    ),
) -> None:
    """fefcalc CLI main callback for global options."""
    try:
        settings = load_settings(config)
        if log_level is not None:
            settings = replace(settings, log_level=log_level)
    except ConfigError as e:
        raise fail(e) from None

    configure_logging(settings)
    ctx.obj = settings


# =============================================================================
# Formula Commands (imported from cli.formula)
# =============================================================================

app.command(name="tokens")(tokens_command)
app.command(name="calc")(calc_command)
app.command(name="create")(create_command)
app.command(name="evaluate")(evaluate_command)


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


if __name__ == "__main__":
    main(sys.argv[1:])
