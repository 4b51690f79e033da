"""
Variable naming for parsed formulas.

The tree refers to variables only by index; the table built while parsing
is the single authority mapping those indices back to names.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from fefcalc.core.ir.expressions import Expr


class VariableTable:
    """Append-only, first-occurrence-ordered table of distinct variable names.

    One table is owned by one parse call and shared by reference with every
    nested parenthesis level of that call, so indices stay unique within the
    formula.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: list[str] = []
        self._indices: dict[str, int] = {}
        for name in names:
            self.intern(name)

    def intern(self, name: str) -> int:
        """Return the index for ``name``, assigning the next one on first sight."""
        index = self._indices.get(name)
        if index is None:
            index = len(self._names)
            self._names.append(name)
            self._indices[name] = index
        return index

    def index_of(self, name: str) -> int | None:
        return self._indices.get(name)

    def name_of(self, index: int) -> str:
        return self._names[index]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._names))

    def __contains__(self, name: object) -> bool:
        return name in self._indices

    def __repr__(self) -> str:
        return f"VariableTable({self._names!r})"


class ParsedFormula(BaseModel):
    """A composed expression tree and the names of the variables it uses.

    ``variables[i]`` is the name of ``Variable(index=i)``.
    """

    expression: Expr = Field(description="Root of the expression tree")
    variables: tuple[str, ...] = Field(
        default=(), description="Variable names in first-occurrence order"
    )

    model_config = ConfigDict(frozen=True)

    def variable_table(self) -> VariableTable:
        """Fresh table seeded with this formula's names."""
        return VariableTable(self.variables)

    def __str__(self) -> str:
        return str(self.expression)
