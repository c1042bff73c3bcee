"""Mapping result columns onto the fields of dataclass models.

A model is a dataclass. Each field binds to the column named by the
``"boil"`` entry of its metadata, or to its name with title case undone.
A metadata entry of ``"-"`` keeps a field from being bound, and a
``",bind"`` suffix makes a dataclass field be searched for fields of its
own, under a ``prefix.`` named after it. Such a field names its model
class in its annotation, or gives it as its ``default_factory``.

Field positions are packed into an integer, one byte per level of
nesting, ended by a byte of 255.
"""

from __future__ import annotations

import dataclasses
import functools
import inspect
import re
import types
import typing
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any

_SENTINEL = 255
_MAX_DEPTH = 8


class BindKind(Enum):
    """What a bind target is: one model instance or a list of them."""

    STRUCT = 0
    PTR_SLICE_STRUCT = 1


class FieldRef:
    """A settable reference to one attribute of an object.

    A reference made without an object keeps what is set on it itself;
    it stands in for columns that have no field to go to.
    """

    __slots__ = ("obj", "name", "_value")

    def __init__(self, obj: Any = None, name: str | None = None) -> None:
        self.obj = obj
        self.name = name
        self._value: Any = None

    def get(self) -> Any:
        if self.obj is None:
            return self._value
        return getattr(self.obj, self.name)

    def set(self, value: Any) -> None:
        if self.obj is None:
            self._value = value
        else:
            setattr(self.obj, self.name, value)

    def __repr__(self) -> str:
        if self.obj is None:
            return "FieldRef(<ignored>)"
        return f"FieldRef({type(self.obj).__name__}.{self.name})"


def get_boil_tag(field: dataclasses.Field) -> tuple[str, bool]:
    """Return the column name and the recurse flag from a field's metadata."""
    tag = field.metadata.get("boil", "")
    if not tag:
        return "", False
    comma = tag.find(",")
    if comma == -1:
        return tag, False
    return tag[:comma], True


def _is_model(typ: Any) -> bool:
    return isinstance(typ, type) and dataclasses.is_dataclass(typ)


@functools.lru_cache(maxsize=None)
def _fields(typ: type) -> tuple[dataclasses.Field, ...]:
    return dataclasses.fields(typ)


def _unwrap_optional(hint: Any) -> Any:
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return hint


_OPTIONAL_TEXT = re.compile(r"^(?:typing\.)?Optional\[(.+)\]$")


def _resolve_annotation_text(owner: type, text: str) -> Any:
    """Look up a model class named by a string annotation, without evaluating it."""
    text = text.strip()
    match = _OPTIONAL_TEXT.match(text)
    if match:
        text = match.group(1).strip()
    parts = [part.strip() for part in text.split("|") if part.strip() != "None"]
    if len(parts) != 1:
        return None
    name = parts[0].strip("'\"")
    if name == owner.__name__:
        return owner

    found: Any = inspect.getmodule(owner)
    for piece in name.split("."):
        if found is None:
            return None
        found = getattr(found, piece, None)
    return found


@functools.lru_cache(maxsize=None)
def _model_of(typ: type, name: str) -> type | None:
    field = next(f for f in _fields(typ) if f.name == name)
    hint = field.type
    if isinstance(hint, str):
        hint = _resolve_annotation_text(typ, hint)
    else:
        hint = _unwrap_optional(hint)
    if _is_model(hint):
        return hint
    if _is_model(field.default_factory):
        return field.default_factory
    return None


def _field_model(typ: type, field: dataclasses.Field) -> type:
    model = _model_of(typ, field.name)
    if model is None:
        raise TypeError(
            f"field {typ.__name__}.{field.name} is marked for binding but is not a dataclass"
        )
    return model


def _new_struct(typ: type) -> Any:
    """Make a model instance, allocating its unset bind fields."""
    instance = typ()
    for field in _fields(typ):
        _, recurse = get_boil_tag(field)
        if recurse and getattr(instance, field.name) is None:
            setattr(instance, field.name, _field_model(typ, field)())
    return instance


def _mapping_helper(typ: type, prefix: str, current: int, depth: int, out: dict[str, int]) -> None:
    if not _is_model(typ):
        raise TypeError(f"{typ!r} is not a dataclass")
    if depth >= _MAX_DEPTH * 8:
        raise ValueError("models are nested too deeply to map")

    for index, field in enumerate(_fields(typ)):
        tag, recurse = get_boil_tag(field)
        if not tag:
            tag = untitle_case(field.name)
        elif tag[0] == "-":
            continue

        if prefix:
            tag = f"{prefix}.{tag}"

        if recurse:
            _mapping_helper(
                _field_model(typ, field), tag, current | (index << depth), depth + 8, out
            )
            continue

        out[tag] = current | (_SENTINEL << (depth + 8)) | (index << depth)


@functools.lru_cache(maxsize=None)
def _struct_mapping(typ: type) -> Mapping[str, int]:
    out: dict[str, int] = {}
    _mapping_helper(typ, "", 0, 0, out)
    return types.MappingProxyType(out)


def make_struct_mapping(typ: type) -> dict[str, int]:
    """Map every bindable column name of a model to its packed field path."""
    return dict(_struct_mapping(typ))


def bind_mapping(typ: type, mapping: Mapping[str, int], cols: Iterable[str]) -> list[int]:
    """Find the packed field path for each column.

    A column with no exact match takes the first mapped name ending in
    ``.column``; a column with no match at all gets 0 and is thrown away.
    """
    paths = []
    for col in cols:
        if col in mapping:
            paths.append(mapping[col])
            continue
        suffix = "." + col
        paths.append(next((path for name, path in mapping.items() if name.endswith(suffix)), 0))
    return paths


@functools.lru_cache(maxsize=None)
def _column_mapping(typ: type, cols: tuple[str, ...]) -> tuple[int, ...]:
    return tuple(bind_mapping(typ, _struct_mapping(typ), cols))


def ptr_from_mapping(val: Any, mapping: int, address_of: bool) -> Any:
    """Follow a packed field path from ``val``.

    With ``address_of`` a :class:`FieldRef` is returned, and unset
    intermediate models on the way are allocated; otherwise the value
    found is returned, or None where the path runs through an unset model.
    """
    if mapping == 0:
        return FieldRef() if address_of else None

    indices = []
    for level in range(_MAX_DEPTH):
        byte = (mapping >> (level * 8)) & _SENTINEL
        if byte == _SENTINEL:
            break
        indices.append(byte)
    else:
        raise ValueError("could not find pointer from mapping")
    if not indices:
        raise ValueError("mapping does not address a field")

    obj = val
    for index in indices[:-1]:
        field = _fields(type(obj))[index]
        nxt = getattr(obj, field.name)
        if nxt is None:
            if not address_of:
                return None
            nxt = _new_struct(_field_model(type(obj), field))
            setattr(obj, field.name, nxt)
        obj = nxt

    ref = FieldRef(obj, _fields(type(obj))[indices[-1]].name)
    return ref if address_of else ref.get()


def ptrs_from_mapping(val: Any, mapping: Iterable[int]) -> list[FieldRef]:
    """Return a reference to the field of ``val`` behind each packed path."""
    return [ptr_from_mapping(val, m, True) for m in mapping]


def values_from_mapping(val: Any, mapping: Iterable[int]) -> list[Any]:
    """Return the value of the field of ``val`` behind each packed path."""
    return [ptr_from_mapping(val, m, False) for m in mapping]


# Longest first, so that GUID is replaced before ID and the like.
_SPECIAL_REPLACEMENTS = {
    "ASCII": "Ascii",
    "GUID": "Guid",
    "JSON": "Json",
    "UUID": "Uuid",
    "UTF8": "Utf8",
    "ACL": "Acl",
    "API": "Api",
    "CPU": "Cpu",
    "EOF": "Eof",
    "RAM": "Ram",
    "SLA": "Sla",
    "UDP": "Udp",
    "UID": "Uid",
    "URI": "Uri",
    "URL": "Url",
    "ID": "Id",
    "IP": "Ip",
    "UI": "Ui",
}
_SPECIAL_WORDS = re.compile("|".join(_SPECIAL_REPLACEMENTS))


def untitle_case(name: str) -> str:
    """Undo title casing: ``FunID`` becomes ``fun_id``."""
    if not name:
        return ""

    name = _SPECIAL_WORDS.sub(lambda m: _SPECIAL_REPLACEMENTS[m.group(0)], name)

    words = []
    last_up = True
    start = 0
    for i, ch in enumerate(name):
        up = ch.isupper()
        digit = ch.isdigit()

        if not digit and not last_up and up:
            words.append(name[start:i])
            start = i

        if not digit and last_up and not up and i - 1 - start > 1:
            words.append(name[start : i - 1])
            start = i - 1

        last_up = up

    if name[start:]:
        words.append(name[start:])

    return "_".join(word.lower() for word in words)


def bind_checks(obj: Any, model: type | None = None) -> tuple[type, BindKind]:
    """Work out the model type and bind kind of a bind target.

    The target is a model instance, or a list to append new instances of
    ``model`` to.
    """
    if isinstance(obj, list):
        if not _is_model(model):
            raise TypeError("binding to a list needs a dataclass model type")
        return model, BindKind.PTR_SLICE_STRUCT

    if _is_model(type(obj)):
        if model is not None and not isinstance(obj, model):
            raise TypeError(
                f"obj of type {type(obj).__name__!r} is not a {getattr(model, '__name__', model)!r}"
            )
        return type(obj), BindKind.STRUCT

    raise TypeError(
        "obj type should be a model instance or a list of models "
        f"but was {type(obj).__name__!r}"
    )


def _scan(target: Any, mapping: Sequence[int], row: Sequence[Any]) -> None:
    for ref, value in zip(ptrs_from_mapping(target, mapping), row):
        ref.set(value)


def bind(rows: Any, obj: Any, model: type | None = None) -> Any:
    """Bind the rows of a DB-API cursor to ``obj`` and return it.

    A model instance takes the first row and raises LookupError when
    there is none; a list gets one new ``model`` instance per row.
    """
    struct_type, kind = bind_checks(obj, model)

    if rows.description is None:
        raise ValueError("bind failed to get column names")
    columns = tuple(desc[0] for desc in rows.description)
    mapping = _column_mapping(struct_type, columns)

    if kind is BindKind.STRUCT:
        row = rows.fetchone()
        if row is None:
            raise LookupError("no rows in result set")
        _scan(obj, mapping, row)
        return obj

    for row in rows:
        item = _new_struct(struct_type)
        _scan(item, mapping, row)
        obj.append(item)
    return obj