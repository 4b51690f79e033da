"""
Tokenizer for fefcalc formulas.

Converts a stream of characters into positioned tokens, one at a time.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum, auto

from fefcalc.core.errors import ExpressionTokenError, Span
from fefcalc.core.ir.expressions import INT64_MAX, INT64_MIN

logger = logging.getLogger(__name__)


class TokenKind(StrEnum):
    """Token types for the formula language."""

    IDENT = auto()
    INT = auto()
    FLOAT = auto()
    BOOL = auto()
    OPERATOR = auto()


class Operator(StrEnum):
    """Operator and punctuation symbols."""

    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    DOUBLE_SLASH = "//"
    BACKSLASH = "\\"
    PERCENT = "%"
    CARET = "^"
    DOUBLE_STAR = "**"
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    DOT = "."
    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    def binary_precedence(self) -> int | None:
        """Precedence tier when used as an infix operator, None if not infix."""
        return _BINARY_PRECEDENCE.get(self)

    @property
    def is_unary(self) -> bool:
        return self in (Operator.PLUS, Operator.MINUS)


_BINARY_PRECEDENCE: dict[Operator, int] = {
    Operator.PLUS: 1,
    Operator.MINUS: 1,
    Operator.STAR: 2,
    Operator.SLASH: 2,
    Operator.DOUBLE_SLASH: 2,
    Operator.PERCENT: 2,
    Operator.CARET: 3,
    Operator.DOUBLE_STAR: 3,
}


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical unit with its payload and no position."""

    kind: TokenKind
    value: str | int | float | bool | Operator

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r})"


@dataclass(frozen=True, slots=True)
class PositionedToken:
    """A token and the half-open span of source it was scanned from."""

    token: Token
    start: int
    end: int

    @property
    def kind(self) -> TokenKind:
        return self.token.kind

    @property
    def value(self) -> str | int | float | bool | Operator:
        return self.token.value

    @property
    def span(self) -> Span:
        return Span(self.start, self.end)

    def is_operator(self, op: Operator) -> bool:
        return self.token.kind == TokenKind.OPERATOR and self.token.value == op

    def __repr__(self) -> str:
        return f"PositionedToken({self.kind}, {self.value!r}, {self.start}..{self.end})"


_KEYWORDS: dict[str, Token] = {
    "true": Token(TokenKind.BOOL, True),
    "false": Token(TokenKind.BOOL, False),
}

# Characters that end an identifier and are scanned as punctuation
RESERVED_CHARS = frozenset("+-/'*!@#$%^&();:<>=?,.\\|~`\"")

_DIGITS = frozenset("0123456789")
_MAX_INT_DIGITS = len(str(INT64_MAX))

_SINGLE_CHAR_OPERATORS: dict[str, Operator] = {
    "+": Operator.PLUS,
    "-": Operator.MINUS,
    "\\": Operator.BACKSLASH,
    "%": Operator.PERCENT,
    "^": Operator.CARET,
    "(": Operator.LPAREN,
    ")": Operator.RPAREN,
    ",": Operator.COMMA,
    ".": Operator.DOT,
    "=": Operator.EQ,
}

# First char -> (second char, compound operator, operator when alone)
_COMPOUND_OPERATORS: dict[str, tuple[str, Operator, Operator | None]] = {
    "/": ("/", Operator.DOUBLE_SLASH, Operator.SLASH),
    "*": ("*", Operator.DOUBLE_STAR, Operator.STAR),
    "<": ("=", Operator.LE, Operator.LT),
    ">": ("=", Operator.GE, Operator.GT),
    "!": ("=", Operator.NE, None),
}


class Tokenizer:
    """Single-pass iterator of positioned tokens over a character stream.

    Raising an ``ExpressionTokenError`` does not end the iteration: the
    offending characters have been consumed and the next call continues
    after them. The tokenizer cannot be rewound.
    """

    def __init__(self, source: Iterable[str]) -> None:
        self._chars: Iterator[str] = iter(source)
        self._lookahead: str | None = None
        # Number of chars already consumed (= offset of the next char)
        self.read = 0

    def __iter__(self) -> Tokenizer:
        return self

    def __next__(self) -> PositionedToken:
        c = self._peek()
        while c is not None and c.isspace():
            self._advance()
            c = self._peek()

        if c is None:
            raise StopIteration
        if c in _DIGITS or c == ".":
            return self._read_number()
        if c in RESERVED_CHARS:
            return self._read_reserved()
        return self._read_text()

    def results(self) -> Iterator[PositionedToken | ExpressionTokenError]:
        """Yield every token, yielding errors in place instead of raising."""
        while True:
            try:
                yield next(self)
            except StopIteration:
                return
            except ExpressionTokenError as e:
                logger.debug("Token error: %s", e.message)
                yield e

    # -- Cursor --

    def _peek(self) -> str | None:
        if self._lookahead is None:
            self._lookahead = next(self._chars, None)
        return self._lookahead

    def _advance(self) -> str:
        c = self._peek()
        assert c is not None
        self._lookahead = None
        self.read += 1
        return c

    # -- Scanners --

    def _read_number(self) -> PositionedToken:
        start = self.read
        chars: list[str] = []
        seen_point = False

        while (c := self._peek()) is not None:
            if c in _DIGITS:
                chars.append(self._advance())
            elif c == "." and not seen_point:
                seen_point = True
                chars.append(self._advance())
            else:
                break

        text = "".join(chars)
        span = Span(start, self.read)

        if not seen_point:
            # Longer digit runs cannot fit and would hit the int conversion limit
            if len(text.lstrip("0")) > _MAX_INT_DIGITS:
                raise ExpressionTokenError(f"Failed to parse int literal {_clip(text)!r}", span)
            value = int(text)
            if not INT64_MIN <= value <= INT64_MAX:
                raise ExpressionTokenError(f"Failed to parse int literal {text!r}", span)
            return PositionedToken(Token(TokenKind.INT, value), span.start, span.end)

        if text == ".":
            raise ExpressionTokenError(f"Failed to parse float literal {text!r}", span)
        number = float(text)
        if not math.isfinite(number):
            raise ExpressionTokenError(f"Failed to parse float literal {_clip(text)!r}", span)
        return PositionedToken(Token(TokenKind.FLOAT, number), span.start, span.end)

    def _read_reserved(self) -> PositionedToken:
        start = self.read
        c = self._advance()

        if c in _SINGLE_CHAR_OPERATORS:
            op = _SINGLE_CHAR_OPERATORS[c]
        elif c in _COMPOUND_OPERATORS:
            second, compound, alone = _COMPOUND_OPERATORS[c]
            if self._peek() == second:
                self._advance()
                op = compound
            elif alone is None:
                raise ExpressionTokenError(
                    f"Unexpected character: {c!r}. Hint: {c!r} is only valid as part of "
                    f"{compound.value!r}",
                    Span(start, self.read),
                )
            else:
                op = alone
        else:
            raise ExpressionTokenError(f"Unexpected character: {c!r}", Span(start, self.read))

        return PositionedToken(Token(TokenKind.OPERATOR, op), start, self.read)

    def _read_text(self) -> PositionedToken:
        start = self.read
        chars: list[str] = []

        while (c := self._peek()) is not None and not c.isspace() and c not in RESERVED_CHARS:
            chars.append(self._advance())

        word = "".join(chars)
        token = _KEYWORDS.get(word, Token(TokenKind.IDENT, word))
        return PositionedToken(token, start, self.read)


def tokenize(source: Iterable[str]) -> list[PositionedToken]:
    """Tokenize a formula into a list of tokens, raising on the first error."""
    return list(Tokenizer(source))


def _clip(text: str, limit: int = 24) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."
