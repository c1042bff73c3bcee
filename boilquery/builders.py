"""Turning a query object into SQL text and arguments, and running it."""

from __future__ import annotations

import logging
import re
from typing import Any

from boilquery.query import JoinKind, Query, WhereKind
from boilquery.quoting import ident_quote, ident_quote_slice, placeholders

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(
    r'"?[a-z_][_a-z0-9]*"?(?:\."?[_a-z][_a-z0-9]*"?)*', re.IGNORECASE
)
_IN_CLAUSE = re.compile(r"(.*[\s|\)|\?])IN([\s|\(|\?].*)", re.IGNORECASE)
_NOT_IN_CLAUSE = re.compile(r"(.*[\s|\)|\?])NOT\s+IN([\s|\(|\?].*)", re.IGNORECASE)
_QUESTION_MARK = re.compile(r"\\\?|\?")
_UNESCAPED_QUESTION_MARK = re.compile(r"(?<!\\)\?")

_JOIN_KEYWORDS = {
    JoinKind.INNER: "INNER JOIN",
    JoinKind.OUTER_LEFT: "LEFT JOIN",
    JoinKind.OUTER_RIGHT: "RIGHT JOIN",
    JoinKind.OUTER_FULL: "FULL JOIN",
}


def build_query(q: Query) -> tuple[str, list[Any]]:
    """Build the SQL text and arguments for ``q``.

    The result is cached on the query as its raw SQL so that it can be
    reused with different arguments.
    """
    q.strip_soft_delete()

    if q.raw_sql:
        return q.raw_sql, q.raw_args
    if q.delete:
        sql, args = _build_delete(q)
    elif q.update:
        sql, args = _build_update(q)
    else:
        sql, args = _build_select(q)

    q.raw_sql = sql
    q.raw_args = args
    return sql, args


def _from_list(q: Query) -> str:
    return ", ".join(ident_quote_slice(q.dialect.lq, q.dialect.rq, q.from_))


def _select_columns(q: Query) -> str:
    if q.distinct:
        inner = f"({q.distinct})" if q.count else q.distinct
        return "DISTINCT " + inner
    if q.joins and q.select_cols and not q.count:
        return ", ".join(write_as_statements(q))
    if q.select_cols:
        return ", ".join(ident_quote_slice(q.dialect.lq, q.dialect.rq, q.select_cols))
    if q.joins and not q.count:
        return ", ".join(write_stars(q))
    return "*"


def _build_select(q: Query) -> tuple[str, list[Any]]:
    args: list[Any] = []
    parts = [write_comment(q), _write_ctes(q, args), "SELECT "]

    if q.dialect.use_top_clause and q.limit is not None and q.offset == 0:
        parts.append(f" TOP ({q.limit}) ")

    columns = _select_columns(q)
    parts.append(f"COUNT({columns})" if q.count else columns)
    parts.append(f" FROM {_from_list(q)}")

    if q.joins:
        args_before = len(args)
        pieces = []
        for j in q.joins:
            keyword = _JOIN_KEYWORDS.get(j.kind)
            if keyword is None:
                raise ValueError(f"Unsupported join of kind {j.kind}")
            pieces.append(f" {keyword} {j.clause}")
            args.extend(j.args)
        joined = "".join(pieces)
        if q.dialect.use_index_placeholders:
            joined, _ = convert_question_marks(joined, args_before + 1)
        parts.append(joined)

    where, where_args = where_clause(q, len(args) + 1)
    parts.append(where)
    args.extend(where_args)

    parts.append(_write_modifiers(q, args))
    parts.append(";")
    return "".join(parts), args


def _build_delete(q: Query) -> tuple[str, list[Any]]:
    args: list[Any] = []
    parts = [write_comment(q), _write_ctes(q, args), "DELETE FROM ", _from_list(q)]

    where, where_args = where_clause(q, 1)
    args.extend(where_args)
    parts.append(where)

    parts.append(_write_modifiers(q, args))
    parts.append(";")
    return "".join(parts), args


def _build_update(q: Query) -> tuple[str, list[Any]]:
    args: list[Any] = []
    parts = [write_comment(q), _write_ctes(q, args), "UPDATE ", _from_list(q)]

    assignments = []
    for index, name in enumerate(sorted(q.update), start=1):
        args.append(q.update[name])
        column = ident_quote(q.dialect.lq, q.dialect.rq, name)
        marker = placeholders(q.dialect.use_index_placeholders, 1, index, 1)
        assignments.append(f"{column} = {marker}")
    parts.append(" SET " + ", ".join(assignments))

    where, where_args = where_clause(q, len(args) + 1)
    args.extend(where_args)
    parts.append(where)

    parts.append(_write_modifiers(q, args))
    parts.append(";")
    return "".join(parts), args


def _write_parameterized(q: Query, args: list[Any], keyword: str, delim: str, clauses) -> str:
    args_before = len(args)
    text = keyword + delim.join(c.clause for c in clauses)
    for c in clauses:
        args.extend(c.args)
    if q.dialect.use_index_placeholders:
        text, _ = convert_question_marks(text, args_before + 1)
    return text


def _write_modifiers(q: Query, args: list[Any]) -> str:
    parts = []
    if q.group_by:
        parts.append(" GROUP BY " + ", ".join(q.group_by))
    if q.having:
        parts.append(_write_parameterized(q, args, " HAVING ", " AND ", q.having))
    if q.order_by:
        parts.append(_write_parameterized(q, args, " ORDER BY ", ", ", q.order_by))

    if not q.dialect.use_top_clause:
        if q.limit is not None:
            parts.append(f" LIMIT {q.limit}")
        if q.offset != 0:
            parts.append(f" OFFSET {q.offset}")
    elif q.offset != 0:
        # OFFSET ... FETCH requires an ORDER BY clause.
        if not q.order_by:
            parts.append(" ORDER BY (SELECT NULL)")
        parts.append(f" OFFSET {q.offset} ROWS")
        if q.limit is not None:
            parts.append(f" FETCH NEXT {q.limit} ROWS ONLY")

    if q.for_lock:
        parts.append(f" FOR {q.for_lock}")
    return "".join(parts)


def write_stars(q: Query) -> list[str]:
    """Return ``table.*`` selections for every from entry, using aliases."""
    cols = []
    for entry in q.from_:
        toks = entry.split(" ")
        if len(toks) == 1:
            cols.append(ident_quote(q.dialect.lq, q.dialect.rq, toks[0]) + ".*")
            continue
        alias, name, ok = parse_from_clause(toks)
        if not ok:
            return []
        cols.append(ident_quote(q.dialect.lq, q.dialect.rq, alias or name) + ".*")
    return cols


def write_as_statements(q: Query) -> list[str]:
    """Quote selected columns and alias dotted ones to their dotted name."""
    cols = []
    for col in q.select_cols:
        if not _IDENTIFIER.fullmatch(col):
            cols.append(col)
            continue
        toks = col.split(".")
        quoted = ident_quote(q.dialect.lq, q.dialect.rq, col)
        if len(toks) == 1:
            cols.append(quoted)
            continue
        alias = ".".join(tok.strip('"') for tok in toks)
        cols.append(f'{quoted} as "{alias}"')
    return cols


def where_clause(q: Query, start_at: int) -> tuple[str, list[Any]]:
    """Render the where entries of ``q`` with placeholders from ``start_at``."""
    if not q.where:
        return "", []

    manual_parens = any(
        w.kind in (WhereKind.LEFT_PAREN, WhereKind.RIGHT_PAREN) for w in q.where
    )
    use_index = q.dialect.use_index_placeholders

    def wrap(text: str) -> str:
        return text if manual_parens else f"({text})"

    parts = [" WHERE "]
    args: list[Any] = []
    not_first = False

    for w in q.where:
        if not_first and w.kind is not WhereKind.RIGHT_PAREN:
            parts.append(" OR " if w.or_separator else " AND ")
        else:
            not_first = True

        if w.kind is WhereKind.NORMAL:
            text = w.clause
            if use_index:
                text, n = convert_question_marks(text, start_at)
                start_at += n
            parts.append(wrap(text))
            args.extend(w.args)
        elif w.kind is WhereKind.LEFT_PAREN:
            parts.append("(")
            not_first = False
        elif w.kind is WhereKind.RIGHT_PAREN:
            parts.append(")")
        elif w.kind in (WhereKind.IN, WhereKind.NOT_IN):
            is_in = w.kind is WhereKind.IN
            total = len(w.args)
            # An empty IN list is invalid SQL, so produce a constant instead.
            if total == 0:
                parts.append("(1=0)" if is_in else "(1=1)")
                continue

            pattern = _IN_CLAUSE if is_in else _NOT_IN_CLAUSE
            match = pattern.fullmatch(w.clause)
            if match is None:
                text, count = convert_in_question_marks(use_index, w.clause, start_at, 1, total)
                parts.append(wrap(text))
                args.extend(w.args)
                start_at += count
                continue

            left_side = match.group(1).strip()
            right_side = match.group(2).strip()
            cols = ident_quote_slice(q.dialect.lq, q.dialect.rq, left_side.split(","))
            group_at = len(cols)

            left_clause = ",".join(cols)
            if use_index:
                left_clause, left_count = convert_question_marks(left_clause, start_at)
            else:
                left_count = sum(1 for c in cols if c == "?")
            right_clause, right_count = convert_in_question_marks(
                use_index, right_side, start_at + left_count, group_at, total - left_count
            )
            keyword = " IN " if is_in else " NOT IN "
            parts.append(wrap(left_clause + keyword + right_clause))
            start_at += left_count + right_count
            args.extend(w.args)
        else:
            raise ValueError("unknown where type")

    return "".join(parts), args


def convert_in_question_marks(
    use_index_placeholders: bool, clause: str, start_at: int, group_at: int, total: int
) -> tuple[str, int]:
    """Replace the first unescaped ``?`` with a parenthesised placeholder list.

    Returns the new clause and the number of placeholders written.
    """
    if start_at == 0 or not clause:
        raise ValueError("Not a valid start number.")

    found = _UNESCAPED_QUESTION_MARK.search(clause)
    if found is None:
        return clause.replace("\\?", "?"), 0

    pos = found.start()
    marks = placeholders(use_index_placeholders, total, start_at, group_at)
    text = f"{clause[:pos]}({marks}){clause[pos + 1:]}"
    return text.replace("\\?", "?"), total


def convert_question_marks(clause: str, start_at: int) -> tuple[str, int]:
    """Replace each unescaped ``?`` with ``$n`` counting up from ``start_at``.

    Escaped ``\\?`` sequences become a plain ``?``. Returns the new clause and
    the number of placeholders written.
    """
    if start_at == 0:
        raise ValueError("Not a valid start number.")

    total = 0

    def substitute(match: re.Match) -> str:
        nonlocal total
        if match.group(0) != "?":
            return "?"
        text = f"${start_at + total}"
        total += 1
        return text

    return _QUESTION_MARK.sub(substitute, clause), total


def parse_from_clause(toks: list[str]) -> tuple[str, str, bool]:
    """Parse ``a``, ``a b`` or ``a as b`` into ``(alias, name, ok)``."""
    alias = name = ""
    ok = False
    saw_ident = saw_as = False
    for tok in toks[:3]:
        lowered = tok.lower()
        if saw_ident and lowered == "as":
            saw_as = True
            continue
        if saw_ident and lowered == "on":
            break
        if not _IDENTIFIER.fullmatch(tok):
            break
        if saw_ident or saw_as:
            alias = tok.strip('"')
            break
        name = tok.strip('"')
        saw_ident = True
        ok = True
    return alias, name, ok


def write_comment(q: Query) -> str:
    """Render the query comment as ``-- `` prefixed lines."""
    if not q.comment:
        return ""
    return "".join(f"-- {line}\n" for line in q.comment.split("\n"))


def _write_ctes(q: Query, args: list[Any]) -> str:
    if not q.withs:
        return ""
    args_before = len(args)
    body = ",".join(f" {w.clause}" for w in q.withs) + " "
    for w in q.withs:
        args.extend(w.args)
    if q.dialect.use_index_placeholders:
        body, _ = convert_question_marks(body, args_before + 1)
    return "WITH" + body


def _run(q: Query, conn: Any):
    sql, args = build_query(q)
    logger.debug("%s", sql)
    logger.debug("%r", args)
    cursor = conn.cursor()
    cursor.execute(sql, args)
    return cursor


def execute(q: Query, conn: Any):
    """Run a query that returns no rows; returns the cursor used."""
    return _run(q, conn)


def query_rows(q: Query, conn: Any):
    """Run a query and return a cursor over its rows."""
    return _run(q, conn)


def query_row(q: Query, conn: Any):
    """Run a query and return its first row, or None."""
    return _run(q, conn).fetchone()