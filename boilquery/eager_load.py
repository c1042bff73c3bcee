"""Eager loading of model relationships, level by level.

A model that takes part in eager loading carries two attributes:

* ``R``: an object holding the loaded relationships, one attribute per
  relationship name, each a model instance, a list of them, or None.
* ``L``: a loader with a ``load_<relationship>(conn, singular, obj, mods)``
  method for every relationship. ``obj`` is the model instance when
  ``singular`` is true and a list of instances otherwise, and ``mods`` is
  the applicator given for that relationship path, or None.

Relationship paths such as ``"videos.tags"`` are loaded one level at a
time: every object of a level is loaded with a single call, and what that
call put into the ``R`` attributes is collected to load the next level.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from boilquery.builders import query_rows
from boilquery.mapping import BindKind, bind, bind_checks
from boilquery.query import Query

LOAD_METHOD_PREFIX = "load_"
RELATIONSHIP_ATTR = "R"
LOADER_ATTR = "L"


def _relationships(obj: Any) -> Any:
    try:
        rels = getattr(obj, RELATIONSHIP_ATTR)
    except AttributeError:
        raise ValueError("relationship struct was invalid") from None
    if rels is None:
        raise ValueError("relationship struct was nil")
    return rels


@dataclass
class _LoadState:
    conn: Any
    mods: Mapping[str, Any]
    loaded: set[str] = field(default_factory=set)
    to_load: list[str] = field(default_factory=list)

    def key(self, depth: int) -> str:
        return ".".join(self.to_load[: depth + 1])

    def load_relationships(self, depth: int, obj: Any, bkind: BindKind) -> None:
        if obj is None:
            return

        if self.key(depth) not in self.loaded:
            self._call_load_function(depth, obj, bkind)

        if depth + 1 >= len(self.to_load):
            return

        if bkind is BindKind.STRUCT:
            self._recurse(depth, obj)
            return

        if not obj:
            return

        collected, next_kind = collect_loaded(self.to_load[depth], obj)
        if not collected:
            return
        self.load_relationships(depth + 1, collected, next_kind)

    def _call_load_function(self, depth: int, obj: Any, bkind: BindKind) -> None:
        current = self.to_load[depth]

        if bkind is BindKind.STRUCT:
            sample = obj
        else:
            if not obj:
                return
            sample = obj[0]
            if sample is None:
                return

        try:
            loader = getattr(sample, LOADER_ATTR)
        except AttributeError:
            raise AttributeError(
                f"attempted to load {current} but no {LOADER_ATTR} loader was found"
            ) from None

        method = getattr(loader, LOAD_METHOD_PREFIX + current, None)
        if not callable(method):
            raise AttributeError(
                f"could not find {LOAD_METHOD_PREFIX}{current} method for eager loading"
            )

        key = self.key(depth)
        try:
            method(self.conn, bkind is BindKind.STRUCT, obj, self.mods.get(key))
        except Exception as err:
            raise RuntimeError(f"failed to eager load {current}") from err

        self.loaded.add(key)

    def _recurse(self, depth: int, obj: Any) -> None:
        key = self.to_load[depth]
        try:
            rels = _relationships(obj)
        except ValueError as err:
            raise ValueError(f"failed to append loaded {key}: {err}") from err

        loaded = getattr(rels, key)
        if loaded is None:
            return

        kind = (
            BindKind.PTR_SLICE_STRUCT
            if isinstance(loaded, (list, tuple))
            else BindKind.STRUCT
        )
        if isinstance(loaded, tuple):
            loaded = list(loaded)
        self.load_relationships(depth + 1, loaded, kind)


def eager_load(
    conn: Any,
    to_load: Iterable[str],
    mods: Mapping[str, Any] | None,
    obj: Any,
    bkind: BindKind,
) -> None:
    """Load every relationship path of ``to_load`` into ``obj``.

    ``obj`` is a model instance (``BindKind.STRUCT``) or a list of them
    (``BindKind.PTR_SLICE_STRUCT``). ``mods`` maps a relationship path to
    the applicator handed to the loader of that path.
    """
    state = _LoadState(conn=conn, mods=mods or {})
    for path in to_load:
        state.to_load = path.split(".")
        state.load_relationships(0, obj, bkind)


def collect_loaded(key: str, loading_from: Iterable[Any]) -> tuple[list[Any], BindKind]:
    """Gather what the relationship ``key`` holds on every object given.

    Single related objects are collected when set, lists are flattened;
    the result is always a list to load the next level into.
    """
    collection: list[Any] = []
    for item in loading_from:
        try:
            rels = _relationships(item)
        except ValueError as err:
            raise ValueError(f"failed to collect loaded {key}: {err}") from err

        loaded = getattr(rels, key)
        if loaded is None:
            continue
        if isinstance(loaded, (list, tuple)):
            collection.extend(loaded)
        else:
            collection.append(loaded)
    return collection, BindKind.PTR_SLICE_STRUCT


def bind_query(q: Query, conn: Any, obj: Any, model: type | None = None) -> Any:
    """Run ``q`` on ``conn``, bind the rows to ``obj`` and eager load.

    ``obj`` is a model instance, which takes the first row, or a list to
    which a new ``model`` instance is appended per row. The relationships
    requested with the query's loads are then eager loaded. Returns ``obj``.
    """
    _, bkind = bind_checks(obj, model)

    cursor = query_rows(q, conn)
    try:
        bind(cursor, obj, model)
    finally:
        close = getattr(cursor, "close", None)
        if callable(close):
            close()

    if q.load:
        eager_load(conn, q.load, q.load_mods, obj, bkind)
    return obj