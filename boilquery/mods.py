"""Query mods: small objects that each change one part of a query."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from boilquery import qmhelper
from boilquery.query import Query


class QueryMod:
    """A query mod wrapping a function that modifies a query."""

    def __init__(self, func: Callable[[Query], None]) -> None:
        self._func = func

    def apply(self, q: Query) -> None:
        self._func(q)


class QueryMods(list):
    """A list of query mods that can itself be applied as one."""

    def apply(self, q: Query) -> None:
        apply(q, *self)


def apply(q: Query, *args: Any) -> None:
    """Apply each mod to the query in order."""
    for mod in args:
        mod.apply(q)


def sql(statement: str, *args: Any) -> QueryMod:
    """Run a plain SQL statement."""
    return QueryMod(lambda q: q.set_sql(statement, *args))


def load(relationship: str, *args: Any) -> QueryMod:
    """Eager load a relationship, such as ``Videos.Tags``.

    Mods given here apply only to the last relationship of the path.
    """

    def _apply(q: Query) -> None:
        q.append_load(relationship)
        if args:
            q.set_load_mods(relationship, QueryMods(args))

    return QueryMod(_apply)


def inner_join(clause: str, *args: Any) -> QueryMod:
    """Inner join another table."""
    return QueryMod(lambda q: q.append_inner_join(clause, *args))


def left_outer_join(clause: str, *args: Any) -> QueryMod:
    """Left outer join another table."""
    return QueryMod(lambda q: q.append_left_outer_join(clause, *args))


def right_outer_join(clause: str, *args: Any) -> QueryMod:
    """Right outer join another table."""
    return QueryMod(lambda q: q.append_right_outer_join(clause, *args))


def full_outer_join(clause: str, *args: Any) -> QueryMod:
    """Full outer join another table."""
    return QueryMod(lambda q: q.append_full_outer_join(clause, *args))


def distinct(clause: str) -> QueryMod:
    """Filter out duplicates."""
    return QueryMod(lambda q: q.set_distinct(clause))


def with_(clause: str, *args: Any) -> QueryMod:
    """Add a common table expression."""
    return QueryMod(lambda q: q.append_with(clause, *args))


def select(*args: str) -> QueryMod:
    """Select specific columns instead of all of them."""
    return QueryMod(lambda q: q.append_select(*args))


def where(clause: str, *args: Any) -> qmhelper.WhereQueryMod:
    """Add a where clause; several are joined with AND."""
    return qmhelper.WhereQueryMod(clause, list(args))


def and_(clause: str, *args: Any) -> QueryMod:
    """Add a where clause joined with AND."""
    return QueryMod(lambda q: q.append_where(clause, *args))


def or_(clause: str, *args: Any) -> QueryMod:
    """Add a where clause joined with OR."""

    def _apply(q: Query) -> None:
        q.append_where(clause, *args)
        q.set_last_where_as_or()

    return QueryMod(_apply)


def or2(mod: Any) -> QueryMod:
    """Apply a where mod and join its result with OR."""

    def _apply(q: Query) -> None:
        mod.apply(q)
        q.set_last_where_as_or()

    return QueryMod(_apply)


def where_in(clause: str, *args: Any) -> QueryMod:
    """Add an ``x IN (set)`` clause, e.g. ``"column in ?"``."""
    return QueryMod(lambda q: q.append_in(clause, *args))


def and_in(clause: str, *args: Any) -> QueryMod:
    """Add an IN clause joined with AND."""
    return QueryMod(lambda q: q.append_in(clause, *args))


def or_in(clause: str, *args: Any) -> QueryMod:
    """Add an IN clause joined with OR."""

    def _apply(q: Query) -> None:
        q.append_in(clause, *args)
        q.set_last_in_as_or()

    return QueryMod(_apply)


def where_not_in(clause: str, *args: Any) -> QueryMod:
    """Add an ``x NOT IN (set)`` clause."""
    return QueryMod(lambda q: q.append_not_in(clause, *args))


def and_not_in(clause: str, *args: Any) -> QueryMod:
    """Add a NOT IN clause joined with AND."""
    return QueryMod(lambda q: q.append_not_in(clause, *args))


def or_not_in(clause: str, *args: Any) -> QueryMod:
    """Add a NOT IN clause joined with OR."""

    def _apply(q: Query) -> None:
        q.append_not_in(clause, *args)
        q.set_last_in_as_or()

    return QueryMod(_apply)


def expr(*args: Any) -> QueryMod:
    """Group where mods in parentheses.

    Once used, automatic parentheses around where clauses are turned off.
    """

    def _apply(q: Query) -> None:
        q.append_where_left_paren()
        apply(q, *args)
        q.append_where_right_paren()

    return QueryMod(_apply)


def group_by(clause: str) -> QueryMod:
    """Add a group by clause."""
    return QueryMod(lambda q: q.append_group_by(clause))


def order_by(clause: str, *args: Any) -> QueryMod:
    """Add an order by clause."""
    return QueryMod(lambda q: q.append_order_by(clause, *args))


def having(clause: str, *args: Any) -> QueryMod:
    """Add a having clause."""
    return QueryMod(lambda q: q.append_having(clause, *args))


def from_(table: str) -> QueryMod:
    """Add a table to select from."""
    return QueryMod(lambda q: q.append_from(table))


def limit(count: int) -> QueryMod:
    """Limit the number of returned rows."""
    return QueryMod(lambda q: q.set_limit(count))


def offset(count: int) -> QueryMod:
    """Skip into the results."""
    return QueryMod(lambda q: q.set_offset(count))


def for_(clause: str) -> QueryMod:
    """Add a locking clause at the end of the statement."""
    return QueryMod(lambda q: q.set_for(clause))


def comment(text: str) -> QueryMod:
    """Add a comment at the start of the query."""
    return QueryMod(lambda q: q.set_comment(text))


def rels(*args: str) -> str:
    """Join relationship names with dots for use with :func:`load`."""
    return ".".join(args)


def with_deleted() -> QueryMod:
    """Drop the automatic soft-delete where clause."""
    return QueryMod(lambda q: q.remove_soft_delete_where())