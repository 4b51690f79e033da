"""
Postfix-to-tree composition.

The postfix sequence is read back to front. Each operator opens a frame;
the next two operands read fill its right-hand then left-hand side, and a
full frame is composed into a binary node at once and handed to the frame
beneath it. No intermediate parse tree is built.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from fefcalc.core.errors import ExpressionParseError, Span
from fefcalc.core.expression_lang.symbols import Operand, OperatorSymbol, Symbol
from fefcalc.core.expression_lang.tokenizer import Operator
from fefcalc.core.ir.expressions import BinaryExpr, BinaryOp, Expr

BINARY_OPERATORS: dict[Operator, BinaryOp] = {
    Operator.PLUS: BinaryOp.ADDITION,
    Operator.MINUS: BinaryOp.SUBTRACTION,
    Operator.STAR: BinaryOp.MULTIPLICATION,
    Operator.SLASH: BinaryOp.DIVISION,
    Operator.DOUBLE_SLASH: BinaryOp.INT_DIVISION,
    Operator.PERCENT: BinaryOp.MODULO,
    Operator.CARET: BinaryOp.POWER,
    Operator.DOUBLE_STAR: BinaryOp.POWER,
}


class FrameState(Enum):
    """How much of a frame has been filled."""

    OPERATOR = auto()
    RHS = auto()
    LHS = auto()


@dataclass(slots=True)
class _Frame:
    operator: OperatorSymbol
    rhs: Operand | None = None
    lhs: Operand | None = None

    @property
    def state(self) -> FrameState:
        if self.lhs is not None:
            return FrameState.LHS
        if self.rhs is not None:
            return FrameState.RHS
        return FrameState.OPERATOR

    def add_operand(self, operand: Operand) -> None:
        if self.rhs is None:
            self.rhs = operand
        else:
            self.lhs = operand

    def compose(self) -> Operand:
        assert self.lhs is not None and self.rhs is not None
        op = BINARY_OPERATORS.get(self.operator.op)
        if op is None:
            raise ExpressionParseError(
                f"Illegal binary operator {self.operator.op.value!r}", self.operator.span
            )
        expr = BinaryExpr(op=op, lhs=self.lhs.expr, rhs=self.rhs.expr)
        return Operand(expr, self.lhs.span.cover(self.rhs.span))

    def __str__(self) -> str:
        return f"{self.operator.op.value} [{self.state.name}]"


def build_tree(postfix: list[Symbol]) -> Expr:
    """Reduce a postfix symbol sequence to exactly one expression tree.

    Raises:
        ExpressionParseError: If the sequence does not reduce to one tree.
    """
    if not postfix:
        raise ExpressionParseError("Empty expression")
    if len(postfix) == 1 and isinstance(postfix[0], Operand):
        return postfix[0].expr

    stack: list[_Frame] = []
    results: list[Operand] = []

    for symbol in reversed(postfix):
        if isinstance(symbol, OperatorSymbol):
            stack.append(_Frame(symbol))
            continue

        operand: Operand = symbol
        while True:
            if not stack:
                raise ExpressionParseError(
                    "Expected operator, found expression after converting to postfix",
                    operand.span,
                )
            top = stack[-1]
            top.add_operand(operand)
            if top.state != FrameState.LHS:
                break
            stack.pop()
            operand = top.compose()
            if not stack:
                results.append(operand)
                break

    if stack or len(results) != 1:
        unreduced = ", ".join(str(frame) for frame in stack) or "<empty>"
        span = _stack_span(stack, results)
        raise ExpressionParseError(
            f"Expression did not reduce to a single tree; composition stack: {unreduced}",
            span,
        )
    return results[0].expr


def _stack_span(stack: list[_Frame], results: list[Operand]) -> Span | None:
    spans = [frame.operator.span for frame in stack] + [r.span for r in results]
    if not spans:
        return None
    first = spans[0]
    for span in spans[1:]:
        first = first.cover(span)
    return first
