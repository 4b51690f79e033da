"""
fefcalc formula language.

Tokenizer, operator-precedence parser, composition engine and the
composers built on it (float evaluator, infix renderer).

Usage:
    from fefcalc.core.expression_lang import evaluate_formula, parse_formula

    parsed = parse_formula("x ^ 2 + 3 * y")
    result = evaluate_formula(parsed, {"x": 4.0, "y": 2.0})
    # result == 22.0
"""

from fefcalc.core.expression_lang.composer import Composer, compose
from fefcalc.core.expression_lang.evaluator import (
    FloatEvaluator,
    evaluate,
    evaluate_formula,
    referenced_variables,
)
from fefcalc.core.expression_lang.parser import parse_expr, parse_formula
from fefcalc.core.expression_lang.renderer import InfixRenderer, render
from fefcalc.core.expression_lang.tokenizer import Tokenizer, tokenize

__all__ = [
    "Composer",
    "FloatEvaluator",
    "InfixRenderer",
    "Tokenizer",
    "compose",
    "evaluate",
    "evaluate_formula",
    "parse_expr",
    "parse_formula",
    "referenced_variables",
    "render",
    "tokenize",
]
