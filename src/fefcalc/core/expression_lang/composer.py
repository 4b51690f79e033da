"""
Generic composition (fold) over expression trees.

A ``Composer[T]`` supplies one ``compose_<kind>`` method per node kind and
receives the already-reduced children of each node. ``compose`` walks the
tree bottom-up and returns the composer's result for the root. This is the
only seam between trees and back ends such as evaluation, rendering or
document encoding.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from fefcalc.core.errors import ComposeError
from fefcalc.core.ir.expressions import (
    BinaryExpr,
    BoolLiteral,
    Expr,
    NumberLiteral,
    UnaryExpr,
    Variable,
)

T = TypeVar("T")


class Composer(ABC, Generic[T]):
    """Per-node-kind reduction of an expression tree into a ``T``.

    ``error_types`` names the composer's own failures. ``compose`` wraps
    them in ``ComposeError``; anything else propagates untouched.
    """

    error_types: ClassVar[tuple[type[Exception], ...]] = ()

    # -- Literals --

    @abstractmethod
    def compose_unsigned_int_literal(self, value: int) -> T: ...

    @abstractmethod
    def compose_signed_int_literal(self, value: int) -> T: ...

    @abstractmethod
    def compose_float32_literal(self, value: float) -> T: ...

    @abstractmethod
    def compose_float64_literal(self, value: float) -> T: ...

    @abstractmethod
    def compose_true_literal(self) -> T: ...

    @abstractmethod
    def compose_false_literal(self) -> T: ...

    @abstractmethod
    def compose_variable(self, index: int) -> T: ...

    # -- Unary --

    @abstractmethod
    def compose_negation(self, operand: T) -> T: ...

    @abstractmethod
    def compose_reciprocal(self, operand: T) -> T: ...

    @abstractmethod
    def compose_square(self, operand: T) -> T: ...

    @abstractmethod
    def compose_cube(self, operand: T) -> T: ...

    @abstractmethod
    def compose_square_root(self, operand: T) -> T: ...

    @abstractmethod
    def compose_cube_root(self, operand: T) -> T: ...

    # -- Binary --

    @abstractmethod
    def compose_addition(self, lhs: T, rhs: T) -> T: ...

    @abstractmethod
    def compose_subtraction(self, lhs: T, rhs: T) -> T: ...

    @abstractmethod
    def compose_multiplication(self, lhs: T, rhs: T) -> T: ...

    @abstractmethod
    def compose_division(self, lhs: T, rhs: T) -> T: ...

    @abstractmethod
    def compose_int_division(self, lhs: T, rhs: T) -> T: ...

    @abstractmethod
    def compose_modulo(self, lhs: T, rhs: T) -> T: ...

    @abstractmethod
    def compose_power(self, lhs: T, rhs: T) -> T: ...

    @abstractmethod
    def compose_root(self, lhs: T, rhs: T) -> T:
        """``lhs`` is the root degree, ``rhs`` the radicand."""

    @abstractmethod
    def compose_int_root(self, lhs: T, rhs: T) -> T:
        """``lhs`` is the root degree, ``rhs`` the radicand."""


def call_composer(composer: Composer[T], kind: str, *args: Any) -> T:
    """Invoke ``compose_<kind>``, wrapping the composer's declared errors."""
    method = getattr(composer, f"compose_{kind}")
    try:
        return method(*args)
    except composer.error_types as e:
        raise ComposeError(kind, e) from e


def compose(expr: Expr, composer: Composer[T]) -> T:
    """Fold ``expr`` into a single ``T`` using ``composer``.

    Children are composed before their parent, lhs before rhs. The walk uses
    an explicit stack, so tree depth is not limited by the interpreter's
    recursion limit.

    Raises:
        ComposeError: If a compose method raises one of the composer's
            ``error_types``.
    """
    results: list[T] = []
    # (node, children_done)
    work: list[tuple[Expr, bool]] = [(expr, False)]

    while work:
        node, children_done = work.pop()

        if isinstance(node, NumberLiteral):
            results.append(call_composer(composer, node.kind, node.value))
        elif isinstance(node, BoolLiteral):
            results.append(call_composer(composer, node.kind))
        elif isinstance(node, Variable):
            results.append(call_composer(composer, node.kind, node.index))
        elif isinstance(node, UnaryExpr):
            if children_done:
                operand = results.pop()
                results.append(call_composer(composer, node.kind, operand))
            else:
                work.append((node, True))
                work.append((node.operand, False))
        elif isinstance(node, BinaryExpr):
            if children_done:
                rhs = results.pop()
                lhs = results.pop()
                results.append(call_composer(composer, node.kind, lhs, rhs))
            else:
                work.append((node, True))
                work.append((node.rhs, False))
                work.append((node.lhs, False))
        else:
            raise TypeError(f"Unknown expression type: {type(node).__name__}")

    assert len(results) == 1
    return results[0]
