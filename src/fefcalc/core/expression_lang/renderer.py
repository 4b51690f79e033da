"""
Infix rendering of expression trees.

Binary operators with a symbol render fully parenthesised; other kinds
render as function calls. Variables are named through the formula's
variable table when one is given.
"""

from __future__ import annotations

from fefcalc.core.expression_lang.composer import Composer, compose
from fefcalc.core.ir.expressions import BINARY_SYMBOLS, UNARY_FUNCTIONS, BinaryOp, Expr, UnaryOp
from fefcalc.core.ir.variables import VariableTable


class InfixRenderer(Composer[str]):
    """Composer producing formula text."""

    def __init__(self, variables: VariableTable | None = None) -> None:
        self.variables = variables

    def _binary(self, op: BinaryOp, lhs: str, rhs: str) -> str:
        if op in BINARY_SYMBOLS:
            return f"({lhs} {BINARY_SYMBOLS[op]} {rhs})"
        return f"{op.value}({lhs}, {rhs})"

    def _call(self, op: UnaryOp, operand: str) -> str:
        return f"{UNARY_FUNCTIONS[op]}({operand})"

    def compose_unsigned_int_literal(self, value: int) -> str:
        return str(value)

    def compose_signed_int_literal(self, value: int) -> str:
        return str(value)

    def compose_float32_literal(self, value: float) -> str:
        return repr(value)

    def compose_float64_literal(self, value: float) -> str:
        return repr(value)

    def compose_true_literal(self) -> str:
        return "true"

    def compose_false_literal(self) -> str:
        return "false"

    def compose_variable(self, index: int) -> str:
        if self.variables is not None and index < len(self.variables):
            return self.variables.name_of(index)
        return f"${index}"

    def compose_negation(self, operand: str) -> str:
        return f"-{operand}"

    def compose_reciprocal(self, operand: str) -> str:
        return self._call(UnaryOp.RECIPROCAL, operand)

    def compose_square(self, operand: str) -> str:
        return self._call(UnaryOp.SQUARE, operand)

    def compose_cube(self, operand: str) -> str:
        return self._call(UnaryOp.CUBE, operand)

    def compose_square_root(self, operand: str) -> str:
        return self._call(UnaryOp.SQUARE_ROOT, operand)

    def compose_cube_root(self, operand: str) -> str:
        return self._call(UnaryOp.CUBE_ROOT, operand)

    def compose_addition(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.ADDITION, lhs, rhs)

    def compose_subtraction(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.SUBTRACTION, lhs, rhs)

    def compose_multiplication(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.MULTIPLICATION, lhs, rhs)

    def compose_division(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.DIVISION, lhs, rhs)

    def compose_int_division(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.INT_DIVISION, lhs, rhs)

    def compose_modulo(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.MODULO, lhs, rhs)

    def compose_power(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.POWER, lhs, rhs)

    def compose_root(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.ROOT, lhs, rhs)

    def compose_int_root(self, lhs: str, rhs: str) -> str:
        return self._binary(BinaryOp.INT_ROOT, lhs, rhs)


def render(expr: Expr, variables: VariableTable | None = None) -> str:
    """Render ``expr`` as infix text, e.g. ``((x ^ 2) + (3 * y))``."""
    return compose(expr, InfixRenderer(variables))
