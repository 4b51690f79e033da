"""
Symbol stream transforms for the formula parser.

A symbol is a token reinterpreted as either a ready operand (an expression
tree) or an operator. Two passes run over a flat symbol list:

1. ``fold_unary`` binds prefix ``+``/``-`` chains to the operand that
   follows them, leaving only genuine binary operator candidates.
2. ``to_postfix`` reorders the infix sequence into postfix with the
   shunting-yard algorithm.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from fefcalc.core.errors import ExpressionParseError, Span
from fefcalc.core.expression_lang.tokenizer import Operator
from fefcalc.core.ir.expressions import Expr, UnaryExpr, UnaryOp


@dataclass(frozen=True, slots=True)
class Operand:
    """An expression tree in operand position."""

    expr: Expr
    span: Span


@dataclass(frozen=True, slots=True)
class OperatorSymbol:
    """An operator awaiting a unary or binary interpretation."""

    op: Operator
    span: Span


Symbol = Operand | OperatorSymbol


class _FoldState(Enum):
    EXPECTING_OPERAND = auto()
    EXPECTING_OPERATOR = auto()


def fold_unary(symbols: list[Symbol]) -> list[Symbol]:
    """Fold operators found in operand position into the next operand.

    ``- - x`` becomes ``negation(negation(x))``; unary ``+`` is dropped.

    Raises:
        ExpressionParseError: On an operator that is illegal in the position
            it occupies, two adjacent operands, or a trailing operator.
    """
    output: list[Symbol] = []
    pending: list[OperatorSymbol] = []
    state = _FoldState.EXPECTING_OPERAND

    for symbol in symbols:
        if isinstance(symbol, OperatorSymbol):
            if state == _FoldState.EXPECTING_OPERAND:
                pending.append(symbol)
            else:
                _precedence(symbol)
                output.append(symbol)
                state = _FoldState.EXPECTING_OPERAND
            continue

        if state == _FoldState.EXPECTING_OPERATOR:
            raise ExpressionParseError("Expected operator, found expression", symbol.span)

        expr = symbol.expr
        for unary in reversed(pending):
            if unary.op == Operator.MINUS:
                expr = UnaryExpr(op=UnaryOp.NEGATION, operand=expr)
            elif unary.op != Operator.PLUS:
                raise ExpressionParseError(
                    f"Illegal use of {unary.op.value!r} as a unary operator", unary.span
                )
        span = pending[0].span.cover(symbol.span) if pending else symbol.span
        pending.clear()
        output.append(Operand(expr, span))
        state = _FoldState.EXPECTING_OPERATOR

    if state == _FoldState.EXPECTING_OPERAND and output:
        last = pending[-1].span if pending else output[-1].span
        raise ExpressionParseError("Incomplete expression: expected an operand", last)
    if pending:
        raise ExpressionParseError(
            "Incomplete expression: expected an operand", pending[0].span.cover(pending[-1].span)
        )
    return output


def _precedence(symbol: OperatorSymbol) -> int:
    tier = symbol.op.binary_precedence()
    if tier is None:
        raise ExpressionParseError(
            f"Illegal use of {symbol.op.value!r} as a binary operator", symbol.span
        )
    return tier


def to_postfix(symbols: list[Symbol]) -> list[Symbol]:
    """Reorder an infix symbol sequence into postfix order.

    Operators of equal tier pop each other (``>=``), so every tier is
    left-associative: ``2 ^ 3 ^ 2`` is ``(2 ^ 3) ^ 2``.

    Raises:
        ExpressionParseError: If an operator has no binary precedence.
    """
    output: list[Symbol] = []
    stack: list[OperatorSymbol] = []

    for symbol in symbols:
        if isinstance(symbol, Operand):
            output.append(symbol)
            continue
        tier = _precedence(symbol)
        while stack and _precedence(stack[-1]) >= tier:
            output.append(stack.pop())
        stack.append(symbol)

    while stack:
        output.append(stack.pop())
    return output
