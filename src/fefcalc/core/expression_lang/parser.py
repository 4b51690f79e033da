"""
Operator-precedence parser for fefcalc formulas.

Each nesting level runs the same pipeline over the tokens up to its closing
parenthesis:

    tokens -> symbols -> unary-folded symbols -> postfix -> one tree

An opening parenthesis recurses into a new level, whose tree becomes a
single operand of the enclosing level. All levels of one parse share the
token stream and the variable table.

Precedence (low to high), all tiers left-associative:
    + -
    * / // %
    ^ **
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from fefcalc.core.config import DEFAULT_MAX_NESTING_DEPTH
from fefcalc.core.errors import (
    ExpressionParseError,
    ExpressionTokenError,
    FormulaError,
    NestingDepthError,
)
from fefcalc.core.expression_lang.builder import build_tree
from fefcalc.core.expression_lang.symbols import (
    Operand,
    OperatorSymbol,
    Symbol,
    fold_unary,
    to_postfix,
)
from fefcalc.core.expression_lang.tokenizer import (
    Operator,
    PositionedToken,
    Tokenizer,
    TokenKind,
)
from fefcalc.core.ir.expressions import BoolLiteral, Expr, Variable, float64, signed_int
from fefcalc.core.ir.variables import ParsedFormula, VariableTable

logger = logging.getLogger(__name__)


class _FormulaParser:
    """Parenthesis-recursive driver over one shared token stream."""

    def __init__(
        self,
        tokens: Iterator[PositionedToken],
        variables: VariableTable,
        max_depth: int,
    ) -> None:
        self.tokens = tokens
        self.variables = variables
        self.max_depth = max_depth

    def _next_token(self) -> PositionedToken | None:
        try:
            return next(self.tokens)
        except StopIteration:
            return None
        except ExpressionTokenError as e:
            raise ExpressionParseError(e.message, e.span) from e

    def parse_level(self, depth: int = 0, opener: PositionedToken | None = None) -> Operand:
        """Parse one nesting level into a single operand.

        ``opener`` is the ``(`` that opened this level, None at top level.
        """
        symbols, closer = self.symbolize(depth, opener)

        folded = fold_unary(symbols)
        if not folded:
            span = opener.span.cover(closer.span) if opener and closer else None
            raise ExpressionParseError("Empty expression", span)
        expr = build_tree(to_postfix(folded))

        span = folded[0].span.cover(folded[-1].span)
        if opener is not None and closer is not None:
            span = opener.span.cover(closer.span)
        return Operand(expr, span)

    def symbolize(
        self, depth: int, opener: PositionedToken | None
    ) -> tuple[list[Symbol], PositionedToken | None]:
        """Read this level's symbols; return them and the closing ``)``."""
        symbols: list[Symbol] = []

        while (tok := self._next_token()) is not None:
            if tok.kind == TokenKind.OPERATOR:
                if tok.is_operator(Operator.LPAREN):
                    if depth + 1 > self.max_depth:
                        raise NestingDepthError(
                            f"Parentheses nest deeper than {self.max_depth} levels", tok.span
                        )
                    symbols.append(self.parse_level(depth + 1, tok))
                elif tok.is_operator(Operator.RPAREN):
                    if opener is None:
                        raise ExpressionParseError("Unexpected closing parenthesis", tok.span)
                    return symbols, tok
                else:
                    assert isinstance(tok.value, Operator)
                    symbols.append(OperatorSymbol(tok.value, tok.span))
            else:
                symbols.append(Operand(self._operand(tok), tok.span))

        if opener is not None:
            raise ExpressionParseError("Unterminated parenthesis", opener.span)
        return symbols, None

    def _operand(self, tok: PositionedToken) -> Expr:
        if tok.kind == TokenKind.IDENT:
            assert isinstance(tok.value, str)
            return Variable(index=self.variables.intern(tok.value))
        if tok.kind == TokenKind.BOOL:
            return BoolLiteral(value=bool(tok.value))
        if tok.kind == TokenKind.INT:
            assert isinstance(tok.value, int)
            return signed_int(tok.value)
        assert isinstance(tok.value, float)
        return float64(tok.value)


def parse_expr(
    source: Iterable[str],
    variables: VariableTable | None = None,
    *,
    max_depth: int = DEFAULT_MAX_NESTING_DEPTH,
) -> Expr:
    """Parse a formula into an expression tree.

    Args:
        source: Formula text, or any iterable of characters.
        variables: Table to intern identifiers into; a fresh one if omitted.
        max_depth: Maximum parenthesis nesting depth.

    Returns:
        Root of the expression tree.

    Raises:
        ExpressionParseError: If the formula is invalid, including lexical
            errors, which are chained as the cause.
    """
    table = variables if variables is not None else VariableTable()
    parser = _FormulaParser(iter(Tokenizer(source)), table, max_depth)
    try:
        return parser.parse_level().expr
    except FormulaError as e:
        if isinstance(source, str):
            e.with_source(source)
        raise


def parse_formula(
    source: Iterable[str],
    *,
    max_depth: int = DEFAULT_MAX_NESTING_DEPTH,
) -> ParsedFormula:
    """Parse a formula into a tree plus its variable names.

    Example:
        >>> parsed = parse_formula("x ^ 2 + 3 * y")
        >>> parsed.variables
        ('x', 'y')
    """
    table = VariableTable()
    expr = parse_expr(source, table, max_depth=max_depth)
    logger.debug("Parsed formula with %d variable(s)", len(table))
    return ParsedFormula(expression=expr, variables=table.names)
