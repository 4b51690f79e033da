"""
fefcalc Intermediate Representation.

Expression tree node types and the variable table produced by parsing.
"""

from .expressions import (
    FALSE_LITERAL,
    TRUE_LITERAL,
    VARIABLE,
    BinaryExpr,
    BinaryOp,
    BoolLiteral,
    Expr,
    LiteralKind,
    NumberLiteral,
    UnaryExpr,
    UnaryOp,
    Variable,
    float32,
    float64,
    signed_int,
    unsigned_int,
)
from .variables import ParsedFormula, VariableTable

__all__ = [
    # Nodes
    "BinaryExpr",
    "BoolLiteral",
    "Expr",
    "NumberLiteral",
    "UnaryExpr",
    "Variable",
    # Kinds
    "BinaryOp",
    "LiteralKind",
    "UnaryOp",
    "FALSE_LITERAL",
    "TRUE_LITERAL",
    "VARIABLE",
    # Constructors
    "float32",
    "float64",
    "signed_int",
    "unsigned_int",
    # Variables
    "ParsedFormula",
    "VariableTable",
]
