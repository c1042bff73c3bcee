from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import pytest

from boilquery.defaults import non_zero_default_set


@dataclass
class NullTime:
    time: datetime | None = None
    valid: bool = False


@dataclass
class Anything:
    id: int = field(default=0, metadata={"boil": "id"})
    name: str = field(default="", metadata={"boil": "name"})
    created_at: datetime | None = field(default=None, metadata={"boil": "created_at"})
    updated_at: NullTime = field(default_factory=NullTime, metadata={"boil": "updated_at"})


NOW = datetime(2020, 1, 2, 3, 4, 5)


@pytest.mark.parametrize(
    "defaults, obj, expected",
    [
        (["id"], Anything(name="hi"), []),
        (["id"], Anything(id=5, name="hi"), ["id"]),
        ([], Anything(id=5, name="hi"), []),
        (["id", "created_at", "updated_at"], Anything(id=5, name="hi"), ["id"]),
        (
            ["id", "created_at", "updated_at"],
            Anything(id=5, name="hi", created_at=NOW, updated_at=NullTime(NOW, True)),
            ["id", "created_at", "updated_at"],
        ),
    ],
)
def test_non_zero_default_set(defaults, obj, expected):
    assert non_zero_default_set(defaults, obj) == expected


def test_order_follows_defaults():
    obj = Anything(id=1, name="x")
    assert non_zero_default_set(["name", "id"], obj) == ["name", "id"]


def test_is_zero_method_is_used():
    @dataclass
    class Flag:
        set_: bool = True

        def is_zero(self) -> bool:
            return True

    @dataclass
    class Holder:
        flag: Flag = field(default_factory=Flag, metadata={"boil": "flag"})

    assert non_zero_default_set(["flag"], Holder()) == []


def test_unknown_column_raises():
    with pytest.raises(ValueError):
        non_zero_default_set(["missing"], Anything())