"""
Expression tree types for fefcalc IR.

Every node is a frozen pydantic model that owns its children outright.
Variables are stored as dense integer indices; their names live in the
variable table returned alongside the tree.

Node kinds:
- Literals: unsigned/signed int, 32/64-bit float, true, false
- Variable(index)
- Unary: negation, reciprocal, square, cube, square root, cube root
- Binary: +, -, *, /, //, %, power, root, int root
"""

from __future__ import annotations

import math
import struct
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1

# ---------------------------------------------------------------------------
# Node kinds
# ---------------------------------------------------------------------------


class LiteralKind(StrEnum):
    """Kinds of numeric literal nodes."""

    UNSIGNED_INT = "unsigned_int_literal"
    SIGNED_INT = "signed_int_literal"
    FLOAT32 = "float32_literal"
    FLOAT64 = "float64_literal"


class UnaryOp(StrEnum):
    """Unary node kinds."""

    NEGATION = "negation"
    RECIPROCAL = "reciprocal"
    SQUARE = "square"
    CUBE = "cube"
    SQUARE_ROOT = "square_root"
    CUBE_ROOT = "cube_root"


class BinaryOp(StrEnum):
    """Binary node kinds.

    For ROOT and INT_ROOT the left operand is the root degree and the right
    operand the radicand.
    """

    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"
    INT_DIVISION = "int_division"
    MODULO = "modulo"
    POWER = "power"
    ROOT = "root"
    INT_ROOT = "int_root"


TRUE_LITERAL = "true_literal"
FALSE_LITERAL = "false_literal"
VARIABLE = "variable"

BINARY_SYMBOLS: dict[BinaryOp, str] = {
    BinaryOp.ADDITION: "+",
    BinaryOp.SUBTRACTION: "-",
    BinaryOp.MULTIPLICATION: "*",
    BinaryOp.DIVISION: "/",
    BinaryOp.INT_DIVISION: "//",
    BinaryOp.MODULO: "%",
    BinaryOp.POWER: "^",
}

UNARY_FUNCTIONS: dict[UnaryOp, str] = {
    UnaryOp.RECIPROCAL: "recip",
    UnaryOp.SQUARE: "sqr",
    UnaryOp.CUBE: "cube",
    UnaryOp.SQUARE_ROOT: "sqrt",
    UnaryOp.CUBE_ROOT: "cbrt",
}


def to_float32(value: float) -> float:
    """Round a float to the nearest single-precision value.

    Values beyond the single-precision range saturate to infinity.
    """
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class NumberLiteral(BaseModel):
    """A numeric literal: unsigned/signed 64-bit int or 32/64-bit float."""

    kind: LiteralKind = Field(description="Literal width and signedness")
    value: int | float = Field(description="The literal value")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _widen_floats(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("value"), int | float):
            if data.get("kind") == LiteralKind.FLOAT32:
                return {**data, "value": to_float32(float(data["value"]))}
            if data.get("kind") == LiteralKind.FLOAT64:
                return {**data, "value": float(data["value"])}
        return data

    @model_validator(mode="after")
    def _check_range(self) -> NumberLiteral:
        if self.kind == LiteralKind.UNSIGNED_INT:
            if not isinstance(self.value, int) or not 0 <= self.value <= UINT64_MAX:
                raise ValueError(f"{self.value!r} is not an unsigned 64-bit integer")
        elif self.kind == LiteralKind.SIGNED_INT:
            if not isinstance(self.value, int) or not INT64_MIN <= self.value <= INT64_MAX:
                raise ValueError(f"{self.value!r} is not a signed 64-bit integer")
        return self

    def __str__(self) -> str:
        return str(self.value)


class BoolLiteral(BaseModel):
    """A boolean literal: true or false."""

    value: bool

    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> str:
        return TRUE_LITERAL if self.value else FALSE_LITERAL

    def __str__(self) -> str:
        return "true" if self.value else "false"


class Variable(BaseModel):
    """Reference to a variable by its index in the formula's variable table."""

    index: int = Field(ge=0, description="Dense first-occurrence index")

    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> str:
        return VARIABLE

    def __str__(self) -> str:
        return f"${self.index}"


class UnaryExpr(BaseModel):
    """Unary operation: op operand."""

    op: UnaryOp
    operand: Expr

    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> str:
        return self.op.value

    def __str__(self) -> str:
        return _render(self)


class BinaryExpr(BaseModel):
    """Binary operation: lhs op rhs."""

    op: BinaryOp
    lhs: Expr
    rhs: Expr

    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> str:
        return self.op.value

    def __str__(self) -> str:
        return _render(self)


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = NumberLiteral | BoolLiteral | Variable | UnaryExpr | BinaryExpr

# Rebuild models for recursive forward references
UnaryExpr.model_rebuild()
BinaryExpr.model_rebuild()


def _render(expr: Expr) -> str:
    # Deferred: the renderer module imports these node types
    from fefcalc.core.expression_lang.renderer import render

    return render(expr)


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def signed_int(value: int) -> NumberLiteral:
    return NumberLiteral(kind=LiteralKind.SIGNED_INT, value=value)


def unsigned_int(value: int) -> NumberLiteral:
    return NumberLiteral(kind=LiteralKind.UNSIGNED_INT, value=value)


def float64(value: float) -> NumberLiteral:
    return NumberLiteral(kind=LiteralKind.FLOAT64, value=value)


def float32(value: float) -> NumberLiteral:
    return NumberLiteral(kind=LiteralKind.FLOAT32, value=value)
