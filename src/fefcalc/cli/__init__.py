"""
fefcalc CLI Package.

- app.py: Main typer app, global options and entry point
- formula.py: tokens, calc, create and evaluate commands
- utils.py: Shared utilities
"""

from fefcalc.cli.app import app, main
from fefcalc.cli.utils import version_callback

__all__ = [
    "app",
    "main",
    "version_callback",
]
