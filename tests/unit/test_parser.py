"""Tests for the formula parser.

Covers:
- Operand kinds and variable interning
- Precedence and left associativity of every tier
- Unary folding and parenthesis recursion
- Error handling with spans
"""

from __future__ import annotations

import pytest

from fefcalc.core.errors import (
    ExpressionParseError,
    ExpressionTokenError,
    NestingDepthError,
    Span,
)
from fefcalc.core.expression_lang.builder import build_tree
from fefcalc.core.expression_lang.parser import parse_expr, parse_formula
from fefcalc.core.expression_lang.symbols import (
    Operand,
    OperatorSymbol,
    fold_unary,
    to_postfix,
)
from fefcalc.core.expression_lang.tokenizer import Operator
from fefcalc.core.ir import (
    BinaryExpr,
    BinaryOp,
    BoolLiteral,
    Expr,
    LiteralKind,
    NumberLiteral,
    UnaryExpr,
    UnaryOp,
    Variable,
    VariableTable,
    float64,
    signed_int,
)


def _bin(op: BinaryOp, lhs: Expr, rhs: Expr) -> BinaryExpr:
    return BinaryExpr(op=op, lhs=lhs, rhs=rhs)


def _neg(operand: Expr) -> UnaryExpr:
    return UnaryExpr(op=UnaryOp.NEGATION, operand=operand)


# ============================================================================
# Operands
# ============================================================================


class TestOperands:
    """Single tokens become literal or variable nodes."""

    def test_int_literal(self) -> None:
        expr = parse_expr("42")
        assert isinstance(expr, NumberLiteral)
        assert expr.kind == LiteralKind.SIGNED_INT
        assert expr.value == 42

    def test_float_literal(self) -> None:
        expr = parse_expr("2.5")
        assert expr == float64(2.5)
        assert expr.kind == LiteralKind.FLOAT64

    def test_bool_literal(self) -> None:
        assert parse_expr("true") == BoolLiteral(value=True)
        assert parse_expr("false") == BoolLiteral(value=False)

    def test_variable(self) -> None:
        table = VariableTable()
        expr = parse_expr("rate", table)
        assert expr == Variable(index=0)
        assert table.names == ("rate",)

    def test_repeated_variable_shares_index(self) -> None:
        parsed = parse_formula("x + x")
        assert parsed.expression == _bin(BinaryOp.ADDITION, Variable(index=0), Variable(index=0))
        assert parsed.variables == ("x",)

    def test_variables_in_first_occurrence_order(self) -> None:
        parsed = parse_formula("b * (a + b) - c")
        assert parsed.variables == ("b", "a", "c")

    def test_variables_shared_across_parentheses(self) -> None:
        parsed = parse_formula("(x + (y * x))")
        assert parsed.variables == ("x", "y")
        assert parsed.expression == _bin(
            BinaryOp.ADDITION,
            Variable(index=0),
            _bin(BinaryOp.MULTIPLICATION, Variable(index=1), Variable(index=0)),
        )

    def test_existing_table_is_extended(self) -> None:
        table = VariableTable(["a"])
        expr = parse_expr("b + a", table)
        assert expr == _bin(BinaryOp.ADDITION, Variable(index=1), Variable(index=0))
        assert table.names == ("a", "b")
        assert "b" in table
        assert "c" not in table


# ============================================================================
# Precedence and associativity
# ============================================================================


class TestPrecedence:
    """Three tiers, all left-associative."""

    def test_multiplication_binds_tighter(self) -> None:
        expr = parse_expr("1 + 2 * 3")
        assert expr == _bin(
            BinaryOp.ADDITION,
            signed_int(1),
            _bin(BinaryOp.MULTIPLICATION, signed_int(2), signed_int(3)),
        )

    def test_power_binds_tighter(self) -> None:
        expr = parse_expr("2 * 3 ^ 2")
        assert expr == _bin(
            BinaryOp.MULTIPLICATION,
            signed_int(2),
            _bin(BinaryOp.POWER, signed_int(3), signed_int(2)),
        )

    def test_subtraction_left_associative(self) -> None:
        expr = parse_expr("8 - 4 - 2")
        assert expr == _bin(
            BinaryOp.SUBTRACTION,
            _bin(BinaryOp.SUBTRACTION, signed_int(8), signed_int(4)),
            signed_int(2),
        )

    def test_mixed_tier_two_left_associative(self) -> None:
        expr = parse_expr("8 / 4 % 3 // 2")
        assert expr == _bin(
            BinaryOp.INT_DIVISION,
            _bin(
                BinaryOp.MODULO,
                _bin(BinaryOp.DIVISION, signed_int(8), signed_int(4)),
                signed_int(3),
            ),
            signed_int(2),
        )

    def test_power_left_associative(self) -> None:
        expr = parse_expr("2 ^ 3 ^ 2")
        assert expr == _bin(
            BinaryOp.POWER,
            _bin(BinaryOp.POWER, signed_int(2), signed_int(3)),
            signed_int(2),
        )

    def test_double_star_is_power(self) -> None:
        assert parse_expr("2 ** 3") == parse_expr("2 ^ 3")

    def test_parentheses_override(self) -> None:
        expr = parse_expr("(1 + 2) * 3")
        assert expr == _bin(
            BinaryOp.MULTIPLICATION,
            _bin(BinaryOp.ADDITION, signed_int(1), signed_int(2)),
            signed_int(3),
        )

    def test_redundant_parentheses(self) -> None:
        assert parse_expr("(((1)))") == signed_int(1)

    def test_whitespace_insensitive(self) -> None:
        assert parse_expr("1+2*x") == parse_expr("  1 +  2 *\tx ")


# ============================================================================
# Unary operators
# ============================================================================


class TestUnary:
    """Prefix + and - fold into the following operand."""

    def test_negation(self) -> None:
        assert parse_expr("-5") == _neg(signed_int(5))

    def test_triple_negation(self) -> None:
        assert parse_expr("- - -5") == _neg(_neg(_neg(signed_int(5))))

    def test_unary_plus_dropped(self) -> None:
        assert parse_expr("+5") == signed_int(5)
        assert parse_expr("+-5") == _neg(signed_int(5))

    def test_negation_after_binary_operator(self) -> None:
        assert parse_expr("2 * -x") == _bin(
            BinaryOp.MULTIPLICATION, signed_int(2), _neg(Variable(index=0))
        )

    def test_negation_binds_tighter_than_power(self) -> None:
        assert parse_expr("-2 ^ 2") == _bin(BinaryOp.POWER, _neg(signed_int(2)), signed_int(2))

    def test_negated_parenthesis(self) -> None:
        assert parse_expr("-(1 + 2)") == _neg(
            _bin(BinaryOp.ADDITION, signed_int(1), signed_int(2))
        )


# ============================================================================
# Symbol passes
# ============================================================================


def _num(value: int, start: int) -> Operand:
    return Operand(signed_int(value), Span(start, start + 1))


def _op(op: Operator, start: int) -> OperatorSymbol:
    return OperatorSymbol(op, Span(start, start + len(op.value)))


class TestSymbolPasses:
    """fold_unary, to_postfix and build_tree in isolation."""

    def test_fold_unary_span_covers_prefix(self) -> None:
        folded = fold_unary([_op(Operator.MINUS, 0), _num(5, 1)])
        assert len(folded) == 1
        assert isinstance(folded[0], Operand)
        assert folded[0].span == Span(0, 2)

    def test_to_postfix_order(self) -> None:
        infix = [_num(1, 0), _op(Operator.PLUS, 1), _num(2, 2), _op(Operator.STAR, 3), _num(3, 4)]
        postfix = to_postfix(infix)
        rendered = [s.op.value if isinstance(s, OperatorSymbol) else s.expr.value for s in postfix]
        assert rendered == [1, 2, 3, "*", "+"]

    def test_to_postfix_equal_tier_pops(self) -> None:
        infix = [_num(8, 0), _op(Operator.MINUS, 1), _num(4, 2), _op(Operator.MINUS, 3), _num(2, 4)]
        postfix = to_postfix(infix)
        rendered = [s.op.value if isinstance(s, OperatorSymbol) else s.expr.value for s in postfix]
        assert rendered == [8, 4, "-", 2, "-"]

    def test_build_tree_single_operand(self) -> None:
        assert build_tree([_num(7, 0)]) == signed_int(7)

    def test_build_tree_empty(self) -> None:
        with pytest.raises(ExpressionParseError, match="Empty expression"):
            build_tree([])

    def test_build_tree_extra_operand(self) -> None:
        with pytest.raises(ExpressionParseError, match="Expected operator, found expression"):
            build_tree([_num(1, 0), _num(2, 2), _num(3, 4), _op(Operator.PLUS, 6)])

    def test_build_tree_missing_operand(self) -> None:
        with pytest.raises(ExpressionParseError, match="did not reduce to a single tree"):
            build_tree([_num(1, 0), _op(Operator.PLUS, 2)])

    def test_build_tree_illegal_operator(self) -> None:
        with pytest.raises(ExpressionParseError, match="Illegal binary operator"):
            build_tree([_num(1, 0), _num(2, 2), _op(Operator.EQ, 4)])


# ============================================================================
# Errors
# ============================================================================


class TestParseErrors:
    """Malformed formulas are rejected with a located error."""

    def test_empty(self) -> None:
        with pytest.raises(ExpressionParseError, match="Empty expression"):
            parse_expr("")

    def test_empty_parentheses(self) -> None:
        with pytest.raises(ExpressionParseError, match="Empty expression") as info:
            parse_expr("1 + ()")
        assert info.value.span == Span(4, 6)

    def test_unterminated_parenthesis(self) -> None:
        with pytest.raises(ExpressionParseError, match="Unterminated parenthesis") as info:
            parse_expr("(1 + 2")
        assert info.value.span == Span(0, 1)

    def test_unexpected_closing_parenthesis(self) -> None:
        with pytest.raises(ExpressionParseError, match="Unexpected closing parenthesis") as info:
            parse_expr("1 + )")
        assert info.value.span == Span(4, 5)

    def test_overlong_int_literal(self) -> None:
        with pytest.raises(ExpressionParseError, match="Failed to parse int literal") as info:
            parse_expr("1" * 5000)
        assert isinstance(info.value.__cause__, ExpressionTokenError)

    def test_comma_as_binary_operator(self) -> None:
        with pytest.raises(ExpressionParseError, match="Illegal use of ',' as a binary operator"):
            parse_expr("1 ,")

    def test_backslash_as_binary_operator(self) -> None:
        with pytest.raises(ExpressionParseError, match="as a binary operator"):
            parse_expr("8 \\ 2")

    def test_comparison_as_binary_operator(self) -> None:
        with pytest.raises(ExpressionParseError, match="Illegal use of '<=' as a binary operator"):
            parse_expr("a <= b")

    def test_star_as_unary_operator(self) -> None:
        with pytest.raises(ExpressionParseError, match="Illegal use of '\\*' as a unary operator"):
            parse_expr("* 2")

    def test_adjacent_operands(self) -> None:
        with pytest.raises(ExpressionParseError, match="Expected operator, found expression") as info:
            parse_expr("1 2")
        assert info.value.span == Span(2, 3)

    def test_adjacent_parenthesised_operands(self) -> None:
        with pytest.raises(ExpressionParseError, match="Expected operator, found expression"):
            parse_expr("(1)(2)")

    def test_trailing_operator(self) -> None:
        with pytest.raises(ExpressionParseError, match="Incomplete expression"):
            parse_expr("1 +")

    def test_lone_minus(self) -> None:
        with pytest.raises(ExpressionParseError, match="Incomplete expression"):
            parse_expr("-")

    def test_token_error_is_chained(self) -> None:
        with pytest.raises(ExpressionParseError, match="Unexpected character") as info:
            parse_expr("1 + @")
        assert isinstance(info.value.__cause__, ExpressionTokenError)
        assert info.value.span == Span(4, 5)

    def test_error_message_shows_snippet(self) -> None:
        with pytest.raises(ExpressionParseError) as info:
            parse_expr("1 + )")
        message = str(info.value)
        assert "(at 4..5)" in message
        assert "  | 1 + )" in message
        assert message.endswith("    " + " " * 4 + "^")


class TestNestingDepth:
    """Parenthesis nesting is bounded."""

    def test_within_limit(self) -> None:
        assert parse_expr("((1))", max_depth=2) == signed_int(1)

    def test_over_limit(self) -> None:
        with pytest.raises(NestingDepthError, match="deeper than 1 levels") as info:
            parse_expr("((1))", max_depth=1)
        assert info.value.span == Span(1, 2)

    def test_default_limit(self) -> None:
        depth = 64
        assert parse_expr("(" * depth + "1" + ")" * depth) == signed_int(1)
        with pytest.raises(NestingDepthError):
            parse_expr("(" * (depth + 1) + "1" + ")" * (depth + 1))

    def test_nesting_error_is_parse_error(self) -> None:
        assert issubclass(NestingDepthError, ExpressionParseError)


# ============================================================================
# parse_formula
# ============================================================================


class TestParseFormula:
    """parse_formula returns the tree plus the variable names."""

    def test_example(self) -> None:
        parsed = parse_formula("x ^ 2 + 3 * y")
        assert parsed.variables == ("x", "y")
        assert parsed.expression == _bin(
            BinaryOp.ADDITION,
            _bin(BinaryOp.POWER, Variable(index=0), signed_int(2)),
            _bin(BinaryOp.MULTIPLICATION, signed_int(3), Variable(index=1)),
        )

    def test_no_variables(self) -> None:
        assert parse_formula("1 + 2").variables == ()

    def test_variable_table_round_trip(self) -> None:
        parsed = parse_formula("a + b")
        table = parsed.variable_table()
        assert table.index_of("b") == 1
        assert table.name_of(0) == "a"

    def test_str(self) -> None:
        assert str(parse_formula("x * 2")) == "($0 * 2)"

    def test_str_of_deep_tree(self) -> None:
        depth = 5000
        assert str(parse_formula("-" * depth + "x")) == "-" * depth + "$0"
