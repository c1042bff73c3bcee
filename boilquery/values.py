"""Comparing and assigning database values, including nullable wrappers.

A *valuer* is any object with a ``value()`` method returning a plain
database value (None for null). A *scanner* is any object with a
``scan(value)`` method that takes a plain database value and stores it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from boilquery.mapping import FieldRef

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@runtime_checkable
class Valuer(Protocol):
    """Something that yields a plain database value."""

    def value(self) -> Any: ...


@runtime_checkable
class Scanner(Protocol):
    """Something that can take a plain database value."""

    def scan(self, value: Any) -> None: ...


def _is_valuer(obj: Any) -> bool:
    return callable(getattr(obj, "value", None))


def _is_scanner(obj: Any) -> bool:
    return callable(getattr(obj, "scan", None))


def _call_value(obj: Any, what: str) -> Any:
    try:
        return obj.value()
    except Exception as err:
        raise ValueError(
            f"{what}: calling value() on {type(obj).__name__} failed: {err!r}"
        ) from err


def _call_scan(scanner: Any, val: Any) -> None:
    try:
        scanner.scan(val)
    except Exception as err:
        raise ValueError(
            f"tried to call scan on {type(scanner).__name__} with {val!r} but got err: {err!r}"
        ) from err


def _is_bytes(obj: Any) -> bool:
    return isinstance(obj, (bytes, bytearray, memoryview))


def _is_numeric(obj: Any) -> bool:
    return isinstance(obj, (int, float)) and not isinstance(obj, bool)


def _parse_numeric(text: str, like: Any) -> Any:
    try:
        if isinstance(like, int):
            return int(text, 0)
        return float(text)
    except ValueError as err:
        raise ValueError(
            f"tries to parse {text!r} as {type(like).__name__} but got error: {err}"
        ) from err


def _normalize(obj: Any) -> Any:
    return bytes(obj) if _is_bytes(obj) else obj


def equal(a: Any, b: Any) -> bool:
    """Compare two primitive database values, unwrapping valuers.

    A string compared with a number is parsed as that number. Values whose
    primitive types differ raise TypeError.
    """
    if (a is None) != (b is None):
        return False

    if _is_bytes(a) and _is_bytes(b):
        return bytes(a) == bytes(b)

    if _is_valuer(a):
        a = _call_value(a, "while comparing values, 'a'")
    if _is_valuer(b):
        b = _call_value(b, "while comparing values, 'b'")

    # A null wrapper may have produced None.
    if (a is None) != (b is None):
        return False

    if isinstance(a, str) and _is_numeric(b):
        a = _parse_numeric(a, b)
    if isinstance(b, str) and _is_numeric(a):
        b = _parse_numeric(b, a)

    a = _normalize(a)
    b = _normalize(b)

    if type(a) is not type(b):
        raise TypeError(
            f"primitive type of a ({type(a).__name__}) was not the same "
            f"primitive type as b ({type(b).__name__})"
        )

    if isinstance(a, (int, float, bool, str, bytes, datetime)):
        return a == b
    return False


def _assign_value(dst: Any, val: Any) -> None:
    if not isinstance(dst, FieldRef):
        raise TypeError(f"cannot assign into {type(dst).__name__}")

    current = dst.get()
    if val is None:
        if current is None:
            dst.set(None)
            return
        try:
            dst.set(type(current)())
        except TypeError:
            dst.set(None)
        return

    if isinstance(current, bool):
        dst.set(bool(val))
    elif isinstance(current, int):
        dst.set(int(val))
    elif isinstance(current, float):
        dst.set(float(val))
    elif isinstance(current, str):
        dst.set(str(val))
    elif _is_bytes(current) or _is_bytes(val):
        dst.set(bytes(val))
    else:
        dst.set(val)


def assign(dst: Any, src: Any) -> None:
    """Assign ``src`` to ``dst``, going through valuers and scanners.

    ``dst`` is a scanner or a :class:`FieldRef`. Plain values on both
    sides (other than bytes) raise TypeError: they should be assigned
    directly.
    """
    if isinstance(dst, FieldRef) and _is_bytes(src):
        dst.set(bytes(src))
        return

    dst_scanner = _is_scanner(dst)
    src_valuer = _is_valuer(src)

    if dst_scanner and src_valuer:
        _call_scan(dst, _call_value(src, f"tried to call value on {type(src).__name__}"))
    elif dst_scanner:
        _call_scan(dst, src)
    elif src_valuer:
        _assign_value(dst, _call_value(src, f"tried to call value on {type(src).__name__}"))
    else:
        raise TypeError("this case should have been handled by something other than this method")


def must_time(val: Any) -> datetime:
    """Return the datetime held by a valuer, or the zero time for null."""
    v = _call_value(val, "attempted to get time")
    if v is None:
        return ZERO_TIME
    if not isinstance(v, datetime):
        raise TypeError(f"value of {type(val).__name__} was {type(v).__name__}, not a datetime")
    return v


def is_valuer_nil(val: Any) -> bool:
    """Return True if the valuer's value is null."""
    return _call_value(val, "attempted to check for null") is None


def is_nil(val: Any) -> bool:
    """Return True if ``val`` is None or a valuer holding null."""
    if val is None:
        return True
    if _is_valuer(val):
        return is_valuer_nil(val)
    return False


def set_scanner(scanner: Any, val: Any) -> None:
    """Store ``val`` in ``scanner``, raising ValueError if it refuses."""
    _call_scan(scanner, val)