"""Helpers for building where query mods."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from boilquery.query import Query


class Operator(str, Enum):
    """Comparison operators supported by :func:`where`."""

    EQ = "="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="


@dataclass
class WhereQueryMod:
    """A query mod that appends a where clause with its arguments."""

    clause: str
    args: list[Any] = field(default_factory=list)

    def apply(self, q: Query) -> None:
        q.append_where(self.clause, *self.args)


def _is_null(value: Any) -> bool:
    is_zero = getattr(value, "is_zero", None)
    if callable(is_zero):
        return bool(is_zero())
    return value is None


def where_null_eq(name: str, negated: bool, value: Any) -> WhereQueryMod:
    """Compare ``name`` with a nullable value, using ``is null`` for nulls.

    A value counts as null if it is None or has an ``is_zero()`` method
    that returns true.
    """
    if _is_null(value):
        negation = "not " if negated else ""
        return WhereQueryMod(f"{name} is {negation}null")

    op = "!=" if negated else "="
    return WhereQueryMod(f"{name} {op} ?", [value])


def where_is_null(name: str) -> WhereQueryMod:
    """Return a ``name is null`` where mod."""
    return WhereQueryMod(f"{name} is null")


def where_is_not_null(name: str) -> WhereQueryMod:
    """Return a ``name is not null`` where mod."""
    return WhereQueryMod(f"{name} is not null")


def where(name: str, operator: Operator | str, value: Any) -> WhereQueryMod:
    """Compare ``name`` with ``value`` using ``operator``."""
    op = Operator(operator)
    return WhereQueryMod(f"{name} {op.value} ?", [value])