"""
Floating-point evaluator for fefcalc expression trees.

Folds a tree into a ``float`` given variable bindings. Pure evaluation: no
I/O, no side effects, and no Python ``eval()``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence

from fefcalc.core.errors import ComposeError, ExpressionEvalError, UnboundVariableError
from fefcalc.core.expression_lang.composer import Composer, compose
from fefcalc.core.ir.expressions import BinaryExpr, Expr, UnaryExpr, Variable
from fefcalc.core.ir.variables import ParsedFormula, VariableTable

logger = logging.getLogger(__name__)

# Dense values indexed by variable index, or a sparse index -> value mapping
Bindings = Sequence[float] | Mapping[int, float]


class FloatEvaluator(Composer[float]):
    """Composer producing 64-bit floats.

    Args:
        bindings: Value for each variable index referenced by the tree.
        variables: Optional table used to name variables in errors.
    """

    error_types = (ExpressionEvalError,)

    def __init__(self, bindings: Bindings, variables: VariableTable | None = None) -> None:
        self.bindings = bindings
        self.variables = variables

    def _lookup(self, index: int) -> float:
        if isinstance(self.bindings, Mapping):
            if index in self.bindings:
                return float(self.bindings[index])
        elif 0 <= index < len(self.bindings):
            return float(self.bindings[index])
        name = None
        if self.variables is not None and index < len(self.variables):
            name = self.variables.name_of(index)
        raise UnboundVariableError(index, name)

    # -- Literals --

    def compose_unsigned_int_literal(self, value: int) -> float:
        return float(value)

    def compose_signed_int_literal(self, value: int) -> float:
        return float(value)

    def compose_float32_literal(self, value: float) -> float:
        return float(value)

    def compose_float64_literal(self, value: float) -> float:
        return value

    def compose_true_literal(self) -> float:
        return 1.0

    def compose_false_literal(self) -> float:
        return 0.0

    def compose_variable(self, index: int) -> float:
        return self._lookup(index)

    # -- Unary --

    def compose_negation(self, operand: float) -> float:
        return -operand

    def compose_reciprocal(self, operand: float) -> float:
        return _divide(1.0, operand)

    def compose_square(self, operand: float) -> float:
        return _power(operand, 2.0)

    def compose_cube(self, operand: float) -> float:
        return _power(operand, 3.0)

    def compose_square_root(self, operand: float) -> float:
        if operand < 0:
            raise ExpressionEvalError(f"Square root of negative number {operand}")
        return math.sqrt(operand)

    def compose_cube_root(self, operand: float) -> float:
        return math.cbrt(operand)

    # -- Binary --

    def compose_addition(self, lhs: float, rhs: float) -> float:
        return lhs + rhs

    def compose_subtraction(self, lhs: float, rhs: float) -> float:
        return lhs - rhs

    def compose_multiplication(self, lhs: float, rhs: float) -> float:
        return lhs * rhs

    def compose_division(self, lhs: float, rhs: float) -> float:
        return _divide(lhs, rhs)

    def compose_int_division(self, lhs: float, rhs: float) -> float:
        return _floor(_divide(lhs, rhs))

    def compose_modulo(self, lhs: float, rhs: float) -> float:
        if rhs == 0:
            raise ExpressionEvalError("Modulo by zero")
        # Remainder takes the sign of the dividend
        return math.fmod(lhs, rhs)

    def compose_power(self, lhs: float, rhs: float) -> float:
        return _power(lhs, rhs)

    def compose_root(self, lhs: float, rhs: float) -> float:
        return _power(rhs, _divide(1.0, lhs))

    def compose_int_root(self, lhs: float, rhs: float) -> float:
        return _floor(self.compose_root(lhs, rhs))


def _divide(dividend: float, divisor: float) -> float:
    if divisor == 0:
        raise ExpressionEvalError("Division by zero")
    return dividend / divisor


def _floor(value: float) -> float:
    if not math.isfinite(value):
        return value
    return float(math.floor(value))


def _power(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError as e:
        raise ExpressionEvalError(f"{base} ^ {exponent} overflows") from e
    except ValueError as e:
        raise ExpressionEvalError(f"{base} ^ {exponent} has no real result") from e


def referenced_variables(expr: Expr) -> set[int]:
    """Indices of every variable occurring in ``expr``."""
    found: set[int] = set()
    work: list[Expr] = [expr]
    while work:
        node = work.pop()
        if isinstance(node, Variable):
            found.add(node.index)
        elif isinstance(node, UnaryExpr):
            work.append(node.operand)
        elif isinstance(node, BinaryExpr):
            work.extend((node.lhs, node.rhs))
    return found


def evaluate(
    expr: Expr,
    bindings: Bindings = (),
    variables: VariableTable | None = None,
) -> float:
    """Evaluate an expression tree to a float.

    Every variable the tree references must be bound before evaluation
    begins; nothing is defaulted.

    Args:
        expr: Parsed expression tree.
        bindings: Dense list indexed by variable index, or index -> value map.
        variables: Optional variable table, used to name unbound variables.

    Returns:
        The computed value.

    Raises:
        UnboundVariableError: If a referenced variable has no value.
        ExpressionEvalError: If an operation has no real result.
    """
    evaluator = FloatEvaluator(bindings, variables)
    for index in sorted(referenced_variables(expr)):
        evaluator.compose_variable(index)

    try:
        result = compose(expr, evaluator)
    except ComposeError as e:
        raise e.error from None
    logger.debug("Evaluated expression to %s", result)
    return result


def evaluate_formula(formula: ParsedFormula, values: Mapping[str, float]) -> float:
    """Evaluate a parsed formula with values given by variable name.

    Raises:
        UnboundVariableError: If a variable of the formula has no value.
        ExpressionEvalError: If an operation has no real result.
    """
    table = formula.variable_table()
    bindings = {
        index: values[name] for index, name in enumerate(formula.variables) if name in values
    }
    return evaluate(formula.expression, bindings, table)
