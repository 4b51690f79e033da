"""
Error types for formula tokenizing, parsing, composition and evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open range ``[start, end)`` of code-point offsets in a formula."""

    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"

    def cover(self, other: Span) -> Span:
        """Smallest span containing both spans."""
        return Span(min(self.start, other.start), max(self.end, other.end))


class FormulaError(Exception):
    """Base exception for all formula errors."""

    def __init__(self, message: str, span: Span | None = None, source: str | None = None):
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with location and snippet if available."""
        if self.span is None:
            return self.message
        location = f"{self.message} (at {self.span})"
        if self.source is None:
            return location
        return f"{location}\n{self._format_snippet()}"

    def _format_snippet(self) -> str:
        """Format the source line with an error marker under the span."""
        assert self.span is not None and self.source is not None
        line = self.source.replace("\n", " ")
        width = max(1, self.span.end - self.span.start)
        prefix = "  | "
        marker = " " * (len(prefix) + self.span.start) + "^" * width
        return f"{prefix}{line}\n{marker}"

    def with_source(self, source: str) -> FormulaError:
        """Attach the formula text so the message can show a snippet."""
        if self.source is None:
            self.source = source
            self.args = (self._format_message(),)
        return self


class ConfigError(FormulaError):
    """Raised when settings cannot be loaded or are invalid."""

    pass


class ExpressionTokenError(FormulaError):
    """
    Raised when a single token cannot be scanned.

    Examples:
    - Unexpected character
    - Malformed integer or float literal
    """

    pass


class ExpressionParseError(FormulaError):
    """
    Raised when a token sequence does not form one expression.

    Examples:
    - Unmatched or unterminated parenthesis
    - Operator used where it is not legal (unary or binary)
    - Operand where an operator was expected, or vice versa
    """

    pass


class NestingDepthError(ExpressionParseError):
    """Raised when parentheses nest deeper than the configured maximum."""

    pass


class ExpressionEvalError(FormulaError):
    """Raised when a tree cannot be evaluated to a number."""

    pass


class UnboundVariableError(ExpressionEvalError):
    """Raised when a referenced variable has no value."""

    def __init__(self, index: int, name: str | None = None):
        self.index = index
        self.name = name
        label = f"'{name}' (index {index})" if name is not None else f"index {index}"
        super().__init__(f"No value supplied for variable {label}")


class ComposeError(FormulaError):
    """
    Wraps a failure raised by a composer while folding a tree.

    Attributes:
        kind: Node kind whose compose method failed
        error: The composer's own exception
    """

    def __init__(self, kind: str, error: Exception):
        self.kind = kind
        self.error = error
        super().__init__(f"Failed to compose {kind}: {error}")


class DocumentError(FormulaError):
    """Raised when a formula document is malformed or unsupported."""

    pass
