"""Typed builder for parameterized SQL statements.

Statements are immutable descriptions; ``str(statement)`` renders the SQL
text. Placeholder indices are supplied by the caller and echoed verbatim as
``?N`` so the binder and the statement agree on positions. Predicates are
emitted in the order the caller adds them, parentheses included.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple, Sequence, TypeVar

from ..errors import StatementError


class Comparison(Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    BETWEEN = "BETWEEN"
    NOT_BETWEEN = "NOT BETWEEN"
    IN = "IN"
    NOT_IN = "NOT IN"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"

    @property
    def is_range(self) -> bool:
        return self in (Comparison.BETWEEN, Comparison.NOT_BETWEEN)


@dataclass(frozen=True)
class Where:
    """Single ``column OP ?index`` predicate."""

    kind: Comparison
    column: str
    index: int
    upper_index: int | None = None

    def __post_init__(self) -> None:
        if not self.column:
            raise StatementError("predicate column must not be empty")
        if self.kind.is_range and self.upper_index is None:
            raise StatementError(f"{self.kind.value} requires two placeholder indices")
        if not self.kind.is_range and self.upper_index is not None:
            raise StatementError(f"{self.kind.value} takes a single placeholder index")

    def __str__(self) -> str:
        if self.kind.is_range:
            return f"{self.column} {self.kind.value} ?{self.index} AND ?{self.upper_index}"
        return f"{self.column} {self.kind.value} ?{self.index}"

    @classmethod
    def equal(cls, index: int, column: str) -> Where:
        return cls(Comparison.EQUAL, column, index)

    @classmethod
    def not_equal(cls, index: int, column: str) -> Where:
        return cls(Comparison.NOT_EQUAL, column, index)

    @classmethod
    def between(cls, index: int, upper_index: int, column: str) -> Where:
        return cls(Comparison.BETWEEN, column, index, upper_index)

    @classmethod
    def not_between(cls, index: int, upper_index: int, column: str) -> Where:
        return cls(Comparison.NOT_BETWEEN, column, index, upper_index)


_OPEN = "("
_CLOSE = ")"
_AND = "AND"
_OR = "OR"

_F = TypeVar("_F", bound="_Filterable")


@dataclass(frozen=True)
class _Filterable:
    predicates: tuple[str, ...] = field(default=(), kw_only=True)

    def _push(self: _F, *tokens: str) -> _F:
        return replace(self, predicates=self.predicates + tokens)

    def open_parentheses(self: _F) -> _F:
        return self._push(_OPEN)

    def close_parentheses(self: _F) -> _F:
        return self._push(_CLOSE)

    def and_keyword(self: _F) -> _F:
        return self._push(_AND)

    def or_keyword(self: _F) -> _F:
        return self._push(_OR)

    def where_condition(self: _F, condition: Where) -> _F:
        return self._push(str(condition))

    def and_where(self: _F, condition: Where) -> _F:
        return self._push(_AND, str(condition))

    def or_where(self: _F, condition: Where) -> _F:
        return self._push(_OR, str(condition))

    def _where_clause(self) -> str:
        if not self.predicates:
            return ""
        text = " ".join(self.predicates)
        text = text.replace(f"{_OPEN} ", _OPEN).replace(f" {_CLOSE}", _CLOSE)
        return f" WHERE {text}"


@dataclass(frozen=True)
class Select(_Filterable):
    columns: Sequence[str] | None
    table: str

    def __str__(self) -> str:
        columns = ", ".join(self.columns) if self.columns else "*"
        return f"SELECT {columns} FROM {self.table}{self._where_clause()}"


@dataclass(frozen=True)
class SelectDistinct(_Filterable):
    columns: Sequence[str]
    table: str

    def __post_init__(self) -> None:
        if not self.columns:
            raise StatementError("At least one column must be defined for DISTINCT queries.")

    def __str__(self) -> str:
        return f"SELECT DISTINCT {', '.join(self.columns)} FROM {self.table}{self._where_clause()}"


@dataclass(frozen=True)
class Delete(_Filterable):
    table: str

    def __str__(self) -> str:
        return f"DELETE FROM {self.table}{self._where_clause()}"


class Column(NamedTuple):
    name: str
    index: int


@dataclass(frozen=True)
class Insert:
    table: str
    columns: Sequence[Column | tuple[str, int]] | None = None

    def __str__(self) -> str:
        if not self.columns:
            return f"INSERT INTO {self.table} DEFAULT VALUES"
        names = ", ".join(name for name, _ in self.columns)
        values = ", ".join(f"?{index}" for _, index in self.columns)
        return f"INSERT INTO {self.table} ({names}) VALUES({values})"


@dataclass(frozen=True)
class InsertFromSelect:
    table: str
    select: Select | SelectDistinct

    def __str__(self) -> str:
        return f"INSERT INTO {self.table} {self.select}"


def numbered_columns(*names: str, start: int = 1) -> list[Column]:
    """Number ``names`` consecutively from ``start`` for an :class:`Insert`."""
    return [Column(name, index) for index, name in enumerate(names, start=start)]
