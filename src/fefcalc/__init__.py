"""
fefcalc - arithmetic formula parser and evaluator.

Turns a textual formula such as ``-3 + 2 * (x ^ 2)`` into an immutable
expression tree plus an ordered variable table, and folds trees into
results through a generic composition interface.
"""

from __future__ import annotations

from ._version import get_version
from .core import ir
from .core.errors import (
    ComposeError,
    DocumentError,
    ExpressionEvalError,
    ExpressionParseError,
    ExpressionTokenError,
    FormulaError,
    UnboundVariableError,
)
from .core.expression_lang import evaluate, evaluate_formula, parse_expr, parse_formula

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "evaluate",
    "evaluate_formula",
    "parse_expr",
    "parse_formula",
    "ComposeError",
    "DocumentError",
    "ExpressionEvalError",
    "ExpressionParseError",
    "ExpressionTokenError",
    "FormulaError",
    "UnboundVariableError",
]
