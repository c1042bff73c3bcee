"""Finding which defaulted columns of a model have been given values."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any

from boilquery.mapping import get_boil_tag


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    is_zero = getattr(value, "is_zero", None)
    if callable(is_zero):
        return bool(is_zero())
    if isinstance(value, (bool, int, float, complex, str, bytes, bytearray, Mapping, list, tuple, set, frozenset)):
        return not value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return all(_is_zero(getattr(value, f.name)) for f in dataclasses.fields(value))
    try:
        return value == type(value)()
    except TypeError:
        return False


def non_zero_default_set(defaults: Iterable[str], obj: Any) -> list[str]:
    """Return the columns of ``defaults`` whose fields on ``obj`` are not zero.

    Columns are matched against the ``"boil"`` names of the model's fields;
    a column with no such field raises ValueError.
    """
    fields = dataclasses.fields(obj)
    result = []
    for default in defaults:
        for f in fields:
            name, _ = get_boil_tag(f)
            if name == default:
                if not _is_zero(getattr(obj, f.name)):
                    result.append(default)
                break
        else:
            raise ValueError(
                f"could not find field name {default} in type {type(obj).__name__}"
            )
    return result