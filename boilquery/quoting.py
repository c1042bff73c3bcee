"""Identifier quoting and placeholder generation for SQL statements."""

from __future__ import annotations

import re
from collections.abc import Iterable

_SMART_QUOTE = re.compile(
    r'"?[a-z_][_a-z0-9\-]*"?(\."?[_a-z][_a-z0-9]*"?)*(\.\*)?',
    re.IGNORECASE,
)


def ident_quote(lq: str, rq: str, name: str) -> str:
    """Quote each part of a simple (possibly dotted) identifier.

    Anything that is not a plain identifier (expressions, aliases,
    placeholders, NULL) is returned unchanged, as are parts already quoted.
    """
    if name.lower() == "null" or name == "?":
        return name
    if not _SMART_QUOTE.fullmatch(name):
        return name

    parts = []
    for part in name.split("."):
        if part.startswith(lq) or part.endswith(rq) or part == "*":
            parts.append(part)
        else:
            parts.append(f"{lq}{part}{rq}")
    return ".".join(parts)


def ident_quote_slice(lq: str, rq: str, names: Iterable[str] | None) -> list[str]:
    """Quote every identifier in ``names``."""
    return [ident_quote(lq, rq, name) for name in names or ()]


def placeholders(use_index_placeholders: bool, count: int, start: int, group: int) -> str:
    """Build ``count`` placeholders starting at ``start``, grouped by ``group``.

    With ``group`` greater than one the placeholders are wrapped in
    parenthesised tuples, e.g. ``($1,$2),($3,$4)``.
    """
    if start == 0 or group == 0:
        raise ValueError("invalid start or group numbers supplied")

    pieces: list[str] = []
    if group > 1:
        pieces.append("(")
    for i in range(count):
        if i:
            pieces.append("),(" if group > 1 and i % group == 0 else ",")
        pieces.append(f"${start + i}" if use_index_placeholders else "?")
    if group > 1:
        pieces.append(")")
    return "".join(pieces)