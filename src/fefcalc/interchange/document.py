"""
Formula documents: a named formula with its variable names and tree.

A document is stored as JSON:

    {
      "version": 0,
      "name": "kinetic energy",
      "variables": [{"index": 0, "name": "m"}, {"index": 1, "name": "v"}],
      "expression": [
        {"kind": "variable", "index": 0},
        {"kind": "variable", "index": 1},
        {"kind": "multiplication"}
      ]
    }

The expression is the tree's nodes in postfix order, children before their
parent and lhs before rhs, so the file has the same shape however deep the
tree is. Number literals carry ``value`` and variables carry ``index``;
unary and binary nodes take their operands from the nodes before them.
Writing folds a tree through ``DocumentEncoder``; reading drives any
composer straight from the node list, so a document can be evaluated
without first rebuilding the tree.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fefcalc.core.errors import ComposeError, DocumentError, UnboundVariableError
from fefcalc.core.expression_lang.composer import Composer, call_composer, compose
from fefcalc.core.expression_lang.evaluator import FloatEvaluator
from fefcalc.core.ir.expressions import (
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
)
from fefcalc.core.ir.variables import ParsedFormula, VariableTable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOCUMENT_VERSION = 0

Node = dict[str, Any]

_LITERAL_KINDS = frozenset(k.value for k in LiteralKind)
_UNARY_KINDS = frozenset(k.value for k in UnaryOp)
_BINARY_KINDS = frozenset(k.value for k in BinaryOp)


class VariableName(BaseModel):
    """Metadata record naming one variable index."""

    index: int = Field(ge=0)
    name: str

    model_config = ConfigDict(frozen=True)


class FormulaDocument(BaseModel):
    """Serialized formula with name and variable-name metadata."""

    version: int = DOCUMENT_VERSION
    name: str | None = Field(default=None, description="Optional formula name")
    variables: list[VariableName] = Field(default_factory=list)
    expression: list[Node] = Field(description="Encoded expression nodes in postfix order")

    # Infinite float literals are written as Infinity rather than null
    model_config = ConfigDict(frozen=True, ser_json_inf_nan="constants")


# ---------------------------------------------------------------------------
# Composers
# ---------------------------------------------------------------------------


class DocumentEncoder(Composer[int]):
    """Composer appending JSON-ready nodes to ``nodes`` in postfix order.

    Each compose method returns the position of the node it appended.
    """

    def __init__(self) -> None:
        self.nodes: list[Node] = []

    def _emit(self, node: Node) -> int:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def _literal(self, kind: LiteralKind, value: int | float) -> int:
        return self._emit({"kind": kind.value, "value": value})

    def _operation(self, kind: UnaryOp | BinaryOp) -> int:
        return self._emit({"kind": kind.value})

    def compose_unsigned_int_literal(self, value: int) -> int:
        return self._literal(LiteralKind.UNSIGNED_INT, value)

    def compose_signed_int_literal(self, value: int) -> int:
        return self._literal(LiteralKind.SIGNED_INT, value)

    def compose_float32_literal(self, value: float) -> int:
        return self._literal(LiteralKind.FLOAT32, value)

    def compose_float64_literal(self, value: float) -> int:
        return self._literal(LiteralKind.FLOAT64, value)

    def compose_true_literal(self) -> int:
        return self._emit({"kind": TRUE_LITERAL})

    def compose_false_literal(self) -> int:
        return self._emit({"kind": FALSE_LITERAL})

    def compose_variable(self, index: int) -> int:
        return self._emit({"kind": VARIABLE, "index": index})

    def compose_negation(self, operand: int) -> int:
        return self._operation(UnaryOp.NEGATION)

    def compose_reciprocal(self, operand: int) -> int:
        return self._operation(UnaryOp.RECIPROCAL)

    def compose_square(self, operand: int) -> int:
        return self._operation(UnaryOp.SQUARE)

    def compose_cube(self, operand: int) -> int:
        return self._operation(UnaryOp.CUBE)

    def compose_square_root(self, operand: int) -> int:
        return self._operation(UnaryOp.SQUARE_ROOT)

    def compose_cube_root(self, operand: int) -> int:
        return self._operation(UnaryOp.CUBE_ROOT)

    def compose_addition(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.ADDITION)

    def compose_subtraction(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.SUBTRACTION)

    def compose_multiplication(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.MULTIPLICATION)

    def compose_division(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.DIVISION)

    def compose_int_division(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.INT_DIVISION)

    def compose_modulo(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.MODULO)

    def compose_power(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.POWER)

    def compose_root(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.ROOT)

    def compose_int_root(self, lhs: int, rhs: int) -> int:
        return self._operation(BinaryOp.INT_ROOT)


class TreeBuilder(Composer[Expr]):
    """Composer rebuilding expression tree nodes."""

    error_types = (ValidationError,)

    def compose_unsigned_int_literal(self, value: int) -> Expr:
        return NumberLiteral(kind=LiteralKind.UNSIGNED_INT, value=value)

    def compose_signed_int_literal(self, value: int) -> Expr:
        return NumberLiteral(kind=LiteralKind.SIGNED_INT, value=value)

    def compose_float32_literal(self, value: float) -> Expr:
        return NumberLiteral(kind=LiteralKind.FLOAT32, value=value)

    def compose_float64_literal(self, value: float) -> Expr:
        return NumberLiteral(kind=LiteralKind.FLOAT64, value=value)

    def compose_true_literal(self) -> Expr:
        return BoolLiteral(value=True)

    def compose_false_literal(self) -> Expr:
        return BoolLiteral(value=False)

    def compose_variable(self, index: int) -> Expr:
        return Variable(index=index)

    def compose_negation(self, operand: Expr) -> Expr:
        return UnaryExpr(op=UnaryOp.NEGATION, operand=operand)

    def compose_reciprocal(self, operand: Expr) -> Expr:
        return UnaryExpr(op=UnaryOp.RECIPROCAL, operand=operand)

    def compose_square(self, operand: Expr) -> Expr:
        return UnaryExpr(op=UnaryOp.SQUARE, operand=operand)

    def compose_cube(self, operand: Expr) -> Expr:
        return UnaryExpr(op=UnaryOp.CUBE, operand=operand)

    def compose_square_root(self, operand: Expr) -> Expr:
        return UnaryExpr(op=UnaryOp.SQUARE_ROOT, operand=operand)

    def compose_cube_root(self, operand: Expr) -> Expr:
        return UnaryExpr(op=UnaryOp.CUBE_ROOT, operand=operand)

    def compose_addition(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.ADDITION, lhs=lhs, rhs=rhs)

    def compose_subtraction(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.SUBTRACTION, lhs=lhs, rhs=rhs)

    def compose_multiplication(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.MULTIPLICATION, lhs=lhs, rhs=rhs)

    def compose_division(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.DIVISION, lhs=lhs, rhs=rhs)

    def compose_int_division(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.INT_DIVISION, lhs=lhs, rhs=rhs)

    def compose_modulo(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.MODULO, lhs=lhs, rhs=rhs)

    def compose_power(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.POWER, lhs=lhs, rhs=rhs)

    def compose_root(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.ROOT, lhs=lhs, rhs=rhs)

    def compose_int_root(self, lhs: Expr, rhs: Expr) -> Expr:
        return BinaryExpr(op=BinaryOp.INT_ROOT, lhs=lhs, rhs=rhs)


# ---------------------------------------------------------------------------
# Reading encoded nodes
# ---------------------------------------------------------------------------


def _node_kind(position: int, node: Any) -> str:
    if not isinstance(node, Mapping) or not isinstance(node.get("kind"), str):
        raise DocumentError(f"Malformed expression node at position {position}: {node!r}")
    return node["kind"]


def _operands(results: list[T], count: int, kind: str, position: int) -> list[T]:
    if len(results) < count:
        raise DocumentError(
            f"Node '{kind}' at position {position} is missing its operand"
            f"{'s' if count > 1 else ''}"
        )
    operands = results[-count:]
    del results[-count:]
    return operands


def compose_document(expression: Sequence[Any], composer: Composer[T]) -> T:
    """Fold encoded postfix nodes straight into ``composer``.

    Raises:
        DocumentError: If a node is malformed or of an unknown kind, or the
            nodes do not form exactly one tree.
        ComposeError: If the composer fails on a node.
    """
    results: list[T] = []

    for position, node in enumerate(expression):
        kind = _node_kind(position, node)

        if kind in _LITERAL_KINDS:
            value = node.get("value")
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise DocumentError(f"Literal '{kind}' has no numeric value")
            results.append(call_composer(composer, kind, value))
        elif kind in (TRUE_LITERAL, FALSE_LITERAL):
            results.append(call_composer(composer, kind))
        elif kind == VARIABLE:
            index = node.get("index")
            if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                raise DocumentError(f"Variable node has invalid index {index!r}")
            results.append(call_composer(composer, kind, index))
        elif kind in _UNARY_KINDS:
            results.append(call_composer(composer, kind, *_operands(results, 1, kind, position)))
        elif kind in _BINARY_KINDS:
            results.append(call_composer(composer, kind, *_operands(results, 2, kind, position)))
        else:
            raise DocumentError(f"Unknown expression node kind '{kind}'")

    if len(results) != 1:
        raise DocumentError(
            f"Expression nodes form {len(results)} trees, expected exactly one"
        )
    return results[0]


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def encode_document(formula: ParsedFormula, name: str | None = None) -> FormulaDocument:
    """Build a document for ``formula``; variable records keep table order."""
    encoder = DocumentEncoder()
    compose(formula.expression, encoder)
    return FormulaDocument(
        name=name or None,
        variables=[VariableName(index=i, name=n) for i, n in enumerate(formula.variables)],
        expression=encoder.nodes,
    )


def variable_names(document: FormulaDocument) -> tuple[str, ...]:
    """Variable names ordered by index.

    Raises:
        DocumentError: If the indices are not exactly ``0..n-1`` or a name
            repeats.
    """
    records = sorted(document.variables, key=lambda r: r.index)
    if [r.index for r in records] != list(range(len(records))):
        raise DocumentError("Variable indices must be dense and start at 0")
    names = tuple(r.name for r in records)
    if len(set(names)) != len(names):
        raise DocumentError("Variable names must be distinct")
    return names


def decode_document(document: FormulaDocument) -> ParsedFormula:
    """Rebuild the parsed formula stored in ``document``.

    Raises:
        DocumentError: If the document is malformed.
    """
    names = variable_names(document)
    try:
        expr = compose_document(document.expression, TreeBuilder())
    except ComposeError as e:
        raise DocumentError(f"Invalid expression node: {e.error}") from e
    return ParsedFormula(expression=expr, variables=names)


def write_document(path: Path, document: FormulaDocument) -> None:
    """Write ``document`` as JSON to ``path``."""
    path.write_text(document.model_dump_json(indent=2) + "\n", encoding="utf-8")
    logger.debug("Wrote formula document to %s", path)


def read_document(path: Path) -> FormulaDocument:
    """Read a formula document from ``path``.

    Raises:
        DocumentError: If the file is unreadable, not a document, or of an
            unsupported version.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentError(f"Cannot read {path}: {e}") from e
    try:
        document = FormulaDocument.model_validate_json(text)
    except ValidationError as e:
        raise DocumentError(f"{path} is not a formula document: {e}") from e
    if document.version != DOCUMENT_VERSION:
        raise DocumentError(f"Unsupported version: {document.version}")
    return document


def evaluate_document(document: FormulaDocument, values: Mapping[str, float]) -> float:
    """Evaluate a document's expression with values given by variable name.

    The encoded tree is folded directly into a ``FloatEvaluator``.

    Raises:
        DocumentError: If the document is malformed.
        UnboundVariableError: If a variable has no value.
        ExpressionEvalError: If an operation has no real result.
    """
    names = variable_names(document)
    for index, name in enumerate(names):
        if name not in values:
            raise UnboundVariableError(index, name)
    bindings = [float(values[name]) for name in names]
    evaluator = FloatEvaluator(bindings, VariableTable(names))
    try:
        return compose_document(document.expression, evaluator)
    except ComposeError as e:
        raise e.error from None
