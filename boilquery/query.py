"""The query object and the operations that build it up."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class JoinKind(Enum):
    """Kinds of join clause."""

    INNER = 0
    OUTER_LEFT = 1
    OUTER_RIGHT = 2
    NATURAL = 3
    OUTER_FULL = 4


class WhereKind(Enum):
    """Kinds of entry in a where expression."""

    NORMAL = 0
    LEFT_PAREN = 1
    RIGHT_PAREN = 2
    IN = 3
    NOT_IN = 4


@dataclass
class Dialect:
    """SQL dialect settings that affect query generation."""

    lq: str = '"'
    rq: str = '"'
    use_index_placeholders: bool = False
    use_top_clause: bool = False


@dataclass
class Where:
    """One entry of a where expression."""

    kind: WhereKind = WhereKind.NORMAL
    clause: str = ""
    or_separator: bool = False
    args: list[Any] = field(default_factory=list)


@dataclass
class ArgClause:
    """A clause with its arguments."""

    clause: str
    args: list[Any] = field(default_factory=list)


@dataclass
class Join:
    """A join clause with its arguments."""

    kind: JoinKind
    clause: str
    args: list[Any] = field(default_factory=list)


_DELETED_AT = re.compile(r"deleted_at[\"'`]? is null")


@dataclass
class Query:
    """The state of a query being built."""

    dialect: Dialect = field(default_factory=Dialect)
    raw_sql: str = ""
    raw_args: list[Any] = field(default_factory=list)

    load: list[str] = field(default_factory=list)
    load_mods: dict[str, Any] = field(default_factory=dict)

    delete: bool = False
    update: dict[str, Any] = field(default_factory=dict)
    withs: list[ArgClause] = field(default_factory=list)
    select_cols: list[str] = field(default_factory=list)
    count: bool = False
    from_: list[str] = field(default_factory=list)
    joins: list[Join] = field(default_factory=list)
    where: list[Where] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)
    order_by: list[ArgClause] = field(default_factory=list)
    having: list[ArgClause] = field(default_factory=list)
    limit: int | None = None
    offset: int = 0
    for_lock: str = ""
    distinct: str = ""
    comment: str = ""

    remove_soft_delete: bool = False

    def set_dialect(self, dialect: Dialect) -> None:
        self.dialect = dialect

    def set_sql(self, sql: str, *args: Any) -> None:
        self.raw_sql = sql
        self.raw_args = list(args)

    def set_args(self, *args: Any) -> None:
        """Replace the arguments of an already built or raw query."""
        self.raw_args = list(args)

    def set_load(self, *args: str) -> None:
        self.load = list(args)

    def append_load(self, relationship: str) -> None:
        self.load.append(relationship)

    def set_load_mods(self, rel: str, applicator: Any) -> None:
        self.load_mods[rel] = applicator

    def set_select(self, columns: list[str] | None) -> None:
        self.select_cols = list(columns) if columns else []

    def set_distinct(self, distinct: str) -> None:
        self.distinct = distinct

    def set_count(self) -> None:
        self.count = True

    def set_delete(self) -> None:
        self.delete = True

    def set_limit(self, limit: int) -> None:
        self.limit = limit

    def set_offset(self, offset: int) -> None:
        self.offset = offset

    def set_for(self, clause: str) -> None:
        self.for_lock = clause

    def set_comment(self, comment: str) -> None:
        self.comment = comment

    def set_update(self, cols: dict[str, Any]) -> None:
        self.update = dict(cols)

    def append_select(self, *args: str) -> None:
        self.select_cols.extend(args)

    def append_from(self, *args: str) -> None:
        self.from_.extend(args)

    def set_from(self, *args: str) -> None:
        self.from_ = list(args)

    def append_inner_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.INNER, clause, list(args)))

    def append_left_outer_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.OUTER_LEFT, clause, list(args)))

    def append_right_outer_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.OUTER_RIGHT, clause, list(args)))

    def append_full_outer_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.OUTER_FULL, clause, list(args)))

    def append_having(self, clause: str, *args: Any) -> None:
        self.having.append(ArgClause(clause, list(args)))

    def append_where(self, clause: str, *args: Any) -> None:
        self.where.append(Where(clause=clause, args=list(args)))

    def append_in(self, clause: str, *args: Any) -> None:
        self.where.append(Where(kind=WhereKind.IN, clause=clause, args=list(args)))

    def append_not_in(self, clause: str, *args: Any) -> None:
        self.where.append(Where(kind=WhereKind.NOT_IN, clause=clause, args=list(args)))

    def set_last_where_as_or(self) -> None:
        """Join the last where entry (or parenthesised group) with OR."""
        if not self.where:
            return

        last = self.where[-1]
        if last.kind is not WhereKind.RIGHT_PAREN:
            last.or_separator = True
            return

        depth = 0
        for entry in reversed(self.where[:-1]):
            if entry.kind is WhereKind.LEFT_PAREN:
                if depth == 0:
                    entry.or_separator = True
                    return
                depth -= 1
            elif entry.kind is WhereKind.RIGHT_PAREN:
                depth += 1

        raise ValueError("could not find matching ( in where query expr")

    def set_last_in_as_or(self) -> None:
        self.set_last_where_as_or()

    def append_where_left_paren(self) -> None:
        self.where.append(Where(kind=WhereKind.LEFT_PAREN))

    def append_where_right_paren(self) -> None:
        self.where.append(Where(kind=WhereKind.RIGHT_PAREN))

    def append_group_by(self, clause: str) -> None:
        self.group_by.append(clause)

    def append_order_by(self, clause: str, *args: Any) -> None:
        self.order_by.append(ArgClause(clause, list(args)))

    def append_with(self, clause: str, *args: Any) -> None:
        self.withs.append(ArgClause(clause, list(args)))

    def remove_soft_delete_where(self) -> None:
        """Ask for the automatic soft-delete where clause to be dropped."""
        self.remove_soft_delete = True

    def strip_soft_delete(self) -> None:
        """Drop the last soft-delete where clause, if dropping was requested."""
        if not self.remove_soft_delete:
            return
        for i in range(len(self.where) - 1, -1, -1):
            entry = self.where[i]
            if entry.kind is WhereKind.NORMAL and _DELETED_AT.search(entry.clause):
                del self.where[i]
                return


def raw(query: str, *args: Any) -> Query:
    """Make a query from raw SQL."""
    return Query(raw_sql=query, raw_args=list(args))


def raw_g(query: str, *args: Any) -> Query:
    """Make a query from raw SQL, for use with the global connection."""
    return raw(query, *args)