"""
fefcalc CLI Utilities.

Shared helpers used across CLI modules.
"""

from __future__ import annotations

import logging
import platform

import typer
from rich.console import Console
from rich.markup import escape

from fefcalc._version import get_version
from fefcalc.core.config import Settings
from fefcalc.core.errors import FormulaError

console = Console()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
RULE = "=" * 60


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"fefcalc {get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger("fefcalc").setLevel(settings.log_level)


def settings_from(ctx: typer.Context) -> Settings:
    """Settings loaded by the main callback, or defaults."""
    if isinstance(ctx.obj, Settings):
        return ctx.obj
    return Settings()


def fail(error: FormulaError | str) -> typer.Exit:
    """Print an error in red and return the exit to raise."""
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    return typer.Exit(code=1)


def prompt_float(label: str) -> float:
    """Prompt until the user enters a number."""
    value: float = typer.prompt(f"Enter value for variable '{label}'", type=float)
    return value


def parse_assignments(assignments: list[str]) -> dict[str, float]:
    """Parse ``name=value`` pairs given on the command line.

    Raises:
        typer.BadParameter: If a pair is malformed.
    """
    values: dict[str, float] = {}
    for item in assignments:
        name, sep, raw = item.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected name=value, got {item!r}", param_hint="--var")
        try:
            values[name.strip()] = float(raw)
        except ValueError as e:
            raise typer.BadParameter(
                f"Value for {name.strip()!r} is not a number: {raw!r}", param_hint="--var"
            ) from e
    return values
